"""Question authoring and learner-facing question retrieval."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Sequence

from flask import current_app
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.datastructures import FileStorage

from .. import db
from ..errors import InternalError, NotFoundError, ValidationError
from ..i18n import resolve_language
from ..models import Category, Question, QuestionOption, User, UserQuestionProgress
from .question_translation import OptionDraft, TranslatedQuestion, translate_question
from .translation import TranslationChain, build_translation_chain
from .uploads import StoredImage, delete_image, save_question_image, validate_image

logger = logging.getLogger(__name__)

OPTION_COUNT = 4


@dataclass(frozen=True)
class OptionView:
    index: int
    text: str


@dataclass(frozen=True)
class QuestionView:
    """A question projected to one language, without the answer key."""

    id: int
    category_id: int
    text: str
    options: tuple[OptionView, ...]
    image: str | None
    created_at: datetime


def coerce_id(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer id.")
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer id.") from None


def parse_option_drafts(raw_options: Any) -> list[OptionDraft]:
    """Validate base-language options: exactly four, exactly one correct."""

    if isinstance(raw_options, str):
        try:
            raw_options = json.loads(raw_options)
        except ValueError:
            raise ValidationError(
                "Invalid options format. Must be a valid JSON array.", kind="invalid_options"
            ) from None

    if not isinstance(raw_options, (list, tuple)) or len(raw_options) != OPTION_COUNT:
        raise ValidationError(
            f"Question must have exactly {OPTION_COUNT} options.", kind="invalid_options"
        )

    drafts: list[OptionDraft] = []
    for position, item in enumerate(raw_options):
        if isinstance(item, OptionDraft):
            drafts.append(item)
            continue
        if not isinstance(item, dict):
            raise ValidationError(
                f"Option {position + 1} must be an object with text and isCorrect.",
                kind="invalid_options",
            )
        text = str(item.get("text") or "").strip()
        if not text:
            raise ValidationError(f"Option {position + 1} text is required.", kind="invalid_options")
        drafts.append(OptionDraft(text=text, is_correct=item.get("isCorrect") is True))

    correct_count = sum(1 for draft in drafts if draft.is_correct)
    if correct_count != 1:
        raise ValidationError(
            "Exactly one option must be marked as correct.", kind="invalid_options"
        )
    return drafts


def _require_question_text(base_text: Any) -> str:
    text = str(base_text or "").strip()
    if not text:
        raise ValidationError("Question text in the base language is required.")
    return text


def _category_or_404(category_id: int) -> Category:
    category = db.session.get(Category, category_id)
    if not category:
        raise NotFoundError("Category not found.")
    return category


def _question_or_404(question_id: int) -> Question:
    question = db.session.get(Question, question_id)
    if not question:
        raise NotFoundError("Question not found.")
    return question


def _default_chain() -> TranslationChain:
    return build_translation_chain(current_app.config)


def _translate(text: str, drafts: Sequence[OptionDraft], chain: TranslationChain | None) -> TranslatedQuestion:
    return translate_question(
        text,
        drafts,
        chain=chain or _default_chain(),
        max_workers=int(current_app.config.get("TRANSLATION_MAX_WORKERS", 10)),
    )


def _apply_translation(question: Question, translated: TranslatedQuestion) -> None:
    question.text = translated.text
    existing = {option.position: option for option in question.options}
    for position, option in enumerate(translated.options):
        row = existing.get(position)
        if row is None:
            row = QuestionOption(position=position)
            question.options.append(row)
        row.text = option.text
        row.is_correct = option.is_correct


def _has_upload(image: FileStorage | None) -> bool:
    return image is not None and bool(image.filename)


def _commit_or_cleanup(stored: StoredImage | None, action: str) -> None:
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        if stored:
            delete_image(stored.path)
        logger.exception("Failed to %s question", action)
        raise InternalError(f"Could not {action} the question.") from exc


def create_question(
    category_id: Any,
    base_text: Any,
    base_options: Any,
    image: FileStorage | None = None,
    *,
    chain: TranslationChain | None = None,
) -> Question:
    """Validate, translate and store a new question."""

    category_key = coerce_id(category_id, "categoryId")
    text = _require_question_text(base_text)
    drafts = parse_option_drafts(base_options)
    validate_image(image)
    category = _category_or_404(category_key)

    translated = _translate(text, drafts, chain)

    stored = save_question_image(image) if _has_upload(image) else None
    question = Question(category=category, image_url=stored.url if stored else None)
    _apply_translation(question, translated)
    db.session.add(question)
    _commit_or_cleanup(stored, "create")

    logger.info("Question %s created in category %s", question.id, category.id)
    return question


def update_question(
    question_id: Any,
    category_id: Any,
    base_text: Any,
    base_options: Any,
    image: FileStorage | None = None,
    *,
    chain: TranslationChain | None = None,
) -> Question:
    """Replace a question's content and re-run the full translation."""

    question = _question_or_404(coerce_id(question_id, "id"))
    category_key = coerce_id(category_id, "categoryId")
    text = _require_question_text(base_text)
    drafts = parse_option_drafts(base_options)
    validate_image(image)
    category = _category_or_404(category_key)

    translated = _translate(text, drafts, chain)

    previous_image = question.image_url
    stored = save_question_image(image) if _has_upload(image) else None
    question.category = category
    _apply_translation(question, translated)
    if stored:
        question.image_url = stored.url
    _commit_or_cleanup(stored, "update")

    if stored and previous_image:
        delete_image(previous_image)

    logger.info("Question %s updated", question.id)
    return question


def delete_question(question_id: Any) -> None:
    question = _question_or_404(coerce_id(question_id, "id"))
    image_url = question.image_url
    db.session.delete(question)
    _commit_or_cleanup(None, "delete")
    if image_url:
        delete_image(image_url)
    logger.info("Question %s deleted", question_id)


def delete_all_questions() -> int:
    """Remove every question with its options, progress rows and image files."""

    questions = Question.query.all()
    image_urls = [question.image_url for question in questions if question.image_url]
    for question in questions:
        db.session.delete(question)
    _commit_or_cleanup(None, "delete")
    for url in image_urls:
        delete_image(url)
    logger.info("Deleted %s questions", len(questions))
    return len(questions)


def get_question(question_id: Any) -> Question:
    return _question_or_404(coerce_id(question_id, "id"))


def list_questions(category_id: Any = None) -> list[Question]:
    query = Question.query
    if category_id not in (None, ""):
        query = query.filter(Question.category_id == coerce_id(category_id, "categoryId"))
    return query.order_by(Question.created_at.desc(), Question.id.desc()).all()


def correctly_solved_ids_query(user_id: int):
    return select(UserQuestionProgress.question_id).where(
        UserQuestionProgress.user_id == user_id,
        UserQuestionProgress.is_correct.is_(True),
    )


def project_question(question: Question, language: str) -> QuestionView:
    return QuestionView(
        id=question.id,
        category_id=question.category_id,
        text=question.text.get(language),
        options=tuple(
            OptionView(index=option.position, text=option.text.get(language))
            for option in question.options
        ),
        image=question.image_url,
        created_at=question.created_at,
    )


def list_unsolved_for_user(
    category_id: Any,
    user: User,
    language: str | None = None,
) -> tuple[str, list[QuestionView]]:
    """Return the resolved language and the category's questions not yet answered correctly.

    Incorrectly answered questions stay in the pool so they can be retried.
    """

    category_key = coerce_id(category_id, "categoryId")
    resolved = resolve_language(language, user.language_preference)

    questions = (
        Question.query.filter(
            Question.category_id == category_key,
            Question.id.not_in(correctly_solved_ids_query(user.id)),
        )
        .order_by(Question.created_at.asc(), Question.id.asc())
        .all()
    )
    return resolved, [project_question(question, resolved) for question in questions]


__all__ = [
    "OPTION_COUNT",
    "OptionView",
    "QuestionView",
    "coerce_id",
    "create_question",
    "delete_all_questions",
    "delete_question",
    "get_question",
    "list_questions",
    "list_unsolved_for_user",
    "parse_option_drafts",
    "project_question",
    "update_question",
]
