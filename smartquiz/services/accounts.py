"""Learner registration, login and language preference, plus admin login."""

from __future__ import annotations

import logging
import re

from flask import current_app
from sqlalchemy.exc import IntegrityError

from .. import db
from ..auth import credentials_match
from ..errors import ConflictError, UnauthorizedError, ValidationError
from ..i18n import normalise_language_code
from ..models import User
from .progress import status_tier_for

logger = logging.getLogger(__name__)

EMAIL_REGEX = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6
LANGUAGE_HINT = "Invalid language. Must be: uz, ru, en (or uzb, rus, eng)."


def _normalise_email(email: str | None) -> str:
    return (email or "").strip().lower()


def _validated_language(language: str | None) -> str:
    code = normalise_language_code(language)
    if code is None:
        raise ValidationError(LANGUAGE_HINT)
    return code


def register_user(
    email: str | None,
    password: str | None,
    nickname: str | None,
    language: str | None = None,
) -> User:
    address = _normalise_email(email)
    password = password or ""
    nickname = (nickname or "").strip()

    if not address or not password or not nickname:
        raise ValidationError("Please provide email, password, and nickname.")
    if not EMAIL_REGEX.match(address):
        raise ValidationError("A valid email address is required.")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long."
        )
    preference = _validated_language(language) if language else None

    if User.query.filter_by(email=address).first():
        raise ConflictError("User with this email already exists.")

    user = User(
        email=address,
        nickname=nickname,
        language_preference=preference,
        correct_answer_count=0,
        status_tier=status_tier_for(0),
    )
    user.set_password(password)
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("User with this email already exists.") from None

    logger.info("User %s registered", user.id)
    return user


def authenticate_user(email: str | None, password: str | None) -> User:
    address = _normalise_email(email)
    if not address or not password:
        raise ValidationError("Please provide email and password.")

    user = User.query.filter_by(email=address).first()
    if not user or not user.check_password(password):
        raise UnauthorizedError("Invalid email or password.", kind="invalid_credentials")
    return user


def set_language_preference(user: User, language: str | None) -> str:
    if not language:
        raise ValidationError("Please provide a language: uz, ru, en (or uzb, rus, eng).")
    user.language_preference = _validated_language(language)
    db.session.commit()
    return user.language_preference


def authenticate_admin(login: str | None, password: str | None) -> str:
    login = (login or "").strip()
    password = password or ""
    if not login or not password:
        raise ValidationError("Please provide login and password.")

    expected_login = current_app.config["ADMIN_LOGIN"]
    expected_password = current_app.config["ADMIN_PASSWORD"]
    login_ok = credentials_match(login, expected_login)
    password_ok = credentials_match(password, expected_password)
    if not (login_ok and password_ok):
        logger.warning("Rejected admin login attempt")
        raise UnauthorizedError("Invalid admin credentials.", kind="invalid_credentials")
    return expected_login


__all__ = [
    "authenticate_admin",
    "authenticate_user",
    "register_user",
    "set_language_preference",
]
