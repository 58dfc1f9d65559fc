"""Signed session tokens and request guards for learners and the admin."""

from __future__ import annotations

import hmac
from datetime import datetime, timedelta
from functools import wraps
from typing import Any

from flask import current_app, g, request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from . import db
from .errors import ForbiddenError, UnauthorizedError
from .models import User

TOKEN_SALT = "smartquiz-session"
USER_ROLE = "user"
ADMIN_ROLE = "admin"


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=TOKEN_SALT)


def token_ttl() -> timedelta:
    return timedelta(days=int(current_app.config.get("TOKEN_TTL_DAYS", 7)))


def issue_token(claims: dict[str, Any]) -> tuple[str, datetime]:
    """Sign ``claims`` and return the token with its expiry time."""

    token = _serializer().dumps(claims)
    return token, datetime.utcnow() + token_ttl()


def issue_user_token(user: User) -> tuple[str, datetime]:
    return issue_token({"sub": user.id, "role": USER_ROLE})


def issue_admin_token(login: str) -> tuple[str, datetime]:
    return issue_token({"role": ADMIN_ROLE, "login": login})


def verify_token(token: str) -> dict[str, Any]:
    try:
        claims = _serializer().loads(token, max_age=int(token_ttl().total_seconds()))
    except SignatureExpired:
        raise UnauthorizedError("Token has expired.", kind="token_expired") from None
    except BadSignature:
        raise UnauthorizedError("Invalid token.", kind="token_invalid") from None
    if not isinstance(claims, dict):
        raise UnauthorizedError("Invalid token.", kind="token_invalid")
    return claims


def credentials_match(supplied: str, expected: str) -> bool:
    return hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))


def _extract_token() -> str | None:
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return None


def _require_token() -> dict[str, Any]:
    token_value = _extract_token()
    if not token_value:
        raise UnauthorizedError("Authentication token required.", kind="token_missing")
    return verify_token(token_value)


def _user_from_claims(claims: dict[str, Any]) -> User:
    if claims.get("role", USER_ROLE) != USER_ROLE or "sub" not in claims:
        raise UnauthorizedError("Token does not identify a user.", kind="token_invalid")
    try:
        user_id = int(claims["sub"])
    except (TypeError, ValueError):
        raise UnauthorizedError("Invalid token.", kind="token_invalid") from None
    user = db.session.get(User, user_id)
    if not user:
        raise UnauthorizedError("User no longer exists.", kind="token_invalid")
    return user


def require_user(func):
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        g.current_user = _user_from_claims(_require_token())
        return func(*args, **kwargs)

    return wrapper


def optional_user(func):
    """Attach the learner when a valid token is present; ignore bad tokens."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        g.current_user = None
        token_value = _extract_token()
        if token_value:
            try:
                g.current_user = _user_from_claims(verify_token(token_value))
            except UnauthorizedError as exc:
                current_app.logger.debug("Ignoring optional token: %s", exc.kind)
        return func(*args, **kwargs)

    return wrapper


def require_admin(func):
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        claims = _require_token()
        if claims.get("role") != ADMIN_ROLE:
            raise ForbiddenError("Access denied. Admin only.")
        if not credentials_match(str(claims.get("login", "")), current_app.config["ADMIN_LOGIN"]):
            raise UnauthorizedError("Admin token no longer matches configuration.", kind="token_invalid")
        g.admin_login = claims["login"]
        return func(*args, **kwargs)

    return wrapper


__all__ = [
    "ADMIN_ROLE",
    "USER_ROLE",
    "credentials_match",
    "issue_admin_token",
    "issue_token",
    "issue_user_token",
    "optional_user",
    "require_admin",
    "require_user",
    "verify_token",
]
