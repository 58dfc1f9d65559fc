"""Answer submission and progress tracking for learners."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .. import db
from ..errors import InternalError, NotFoundError, ValidationError
from ..models import Category, Question, User, UserQuestionProgress

logger = logging.getLogger(__name__)

NOVICE = "novice"
ADVANCED = "advanced"
ELITE = "elite"

ADVANCED_THRESHOLD = 11
ELITE_THRESHOLD = 51


@dataclass(frozen=True)
class AnswerResult:
    is_correct: bool
    correct_answer_count: int
    status_tier: str
    already_solved: bool = False


@dataclass(frozen=True)
class CategoryProgress:
    category_id: int
    total: int
    completed: int


@dataclass(frozen=True)
class ProgressSummary:
    """Counters shown on a learner profile."""

    solved: int
    correct: int
    status_tier: str
    categories: tuple[CategoryProgress, ...]


def status_tier_for(correct_answer_count: int) -> str:
    if correct_answer_count >= ELITE_THRESHOLD:
        return ELITE
    if correct_answer_count >= ADVANCED_THRESHOLD:
        return ADVANCED
    return NOVICE


def _coerce_option_index(value: Any) -> int:
    if isinstance(value, bool) or value is None:
        raise ValidationError("selectedOptionIndex must be an integer.", kind="invalid_index")
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        raise ValidationError("selectedOptionIndex must be an integer.", kind="invalid_index") from None


def _progress_entry(user_id: int, question_id: int) -> UserQuestionProgress | None:
    return UserQuestionProgress.query.filter_by(user_id=user_id, question_id=question_id).first()


def _current_result(user: User, *, is_correct: bool, already_solved: bool = False) -> AnswerResult:
    return AnswerResult(
        is_correct=is_correct,
        correct_answer_count=user.correct_answer_count,
        status_tier=status_tier_for(user.correct_answer_count),
        already_solved=already_solved,
    )


def _record_correct(user: User, question: Question, entry: UserQuestionProgress | None) -> bool:
    """Mark the pair correctly solved; return ``True`` only if this call made the transition."""

    now = datetime.utcnow()
    if entry is None:
        db.session.add(
            UserQuestionProgress(
                user_id=user.id,
                question_id=question.id,
                is_correct=True,
                attempt_count=1,
                first_attempted_at=now,
                last_attempted_at=now,
            )
        )
        db.session.flush()
        transitioned = True
    else:
        result = db.session.execute(
            update(UserQuestionProgress)
            .where(
                UserQuestionProgress.id == entry.id,
                UserQuestionProgress.is_correct.is_(False),
            )
            .values(
                is_correct=True,
                attempt_count=UserQuestionProgress.attempt_count + 1,
                last_attempted_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        transitioned = result.rowcount == 1

    if transitioned:
        db.session.execute(
            update(User)
            .where(User.id == user.id)
            .values(correct_answer_count=User.correct_answer_count + 1)
            .execution_options(synchronize_session=False)
        )
    return transitioned


def _record_incorrect(user: User, question: Question, entry: UserQuestionProgress | None) -> None:
    now = datetime.utcnow()
    if entry is None:
        db.session.add(
            UserQuestionProgress(
                user_id=user.id,
                question_id=question.id,
                is_correct=False,
                attempt_count=1,
                first_attempted_at=now,
                last_attempted_at=now,
            )
        )
        db.session.flush()
        return

    db.session.execute(
        update(UserQuestionProgress)
        .where(UserQuestionProgress.id == entry.id)
        .values(attempt_count=UserQuestionProgress.attempt_count + 1, last_attempted_at=now)
        .execution_options(synchronize_session=False)
    )


def _apply_answer(user: User, question: Question, is_correct: bool) -> AnswerResult:
    entry = _progress_entry(user.id, question.id)
    if entry is not None and entry.is_correct:
        return _current_result(user, is_correct=True, already_solved=True)

    if is_correct:
        transitioned = _record_correct(user, question, entry)
    else:
        _record_incorrect(user, question, entry)
        transitioned = False

    db.session.commit()
    db.session.refresh(user)

    if transitioned:
        tier = status_tier_for(user.correct_answer_count)
        if user.status_tier != tier:
            user.status_tier = tier
            db.session.commit()
        logger.info(
            "User %s solved question %s (%s correct answers)",
            user.id,
            question.id,
            user.correct_answer_count,
        )
    elif is_correct:
        return _current_result(user, is_correct=True, already_solved=True)

    return _current_result(user, is_correct=is_correct)


def submit_answer(user: User, question_id: Any, selected_option_index: Any) -> AnswerResult:
    """Check an answer and advance the learner's progress.

    A question already answered correctly is never counted twice: resubmitting
    it is a successful no-op reporting the current counters.
    """

    try:
        question_key = int(question_id)
    except (TypeError, ValueError):
        raise ValidationError("questionId is required.") from None

    question = db.session.get(Question, question_key)
    if not question:
        raise NotFoundError("Question not found.")

    index = _coerce_option_index(selected_option_index)
    options = list(question.options)
    if index < 0 or index >= len(options):
        raise ValidationError(
            f"selectedOptionIndex must be between 0 and {len(options) - 1}.", kind="invalid_index"
        )
    is_correct = options[index].is_correct

    try:
        return _apply_answer(user, question, is_correct)
    except IntegrityError:
        # Another request recorded this pair first; evaluate against what it stored.
        db.session.rollback()
        logger.info("Concurrent answer for user %s question %s; retrying once", user.id, question.id)
        db.session.refresh(user)
        try:
            return _apply_answer(user, question, is_correct)
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise InternalError("Could not record the answer.") from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Failed to record answer for user %s", user.id)
        raise InternalError("Could not record the answer.") from exc


def refresh_status_tier(user: User) -> User:
    """Repair the stored counter and tier if they drifted from the progress rows.

    The counter only ever grows: progress rows disappear when an admin deletes a
    question, but answers already earned stay counted.
    """

    recorded = (
        db.session.query(func.count(UserQuestionProgress.id))
        .filter(
            UserQuestionProgress.user_id == user.id,
            UserQuestionProgress.is_correct.is_(True),
        )
        .scalar()
        or 0
    )
    correct = max(user.correct_answer_count or 0, recorded)
    tier = status_tier_for(correct)
    if user.correct_answer_count != correct or user.status_tier != tier:
        logger.info(
            "Repairing progress counters for user %s (%s -> %s)",
            user.id,
            user.correct_answer_count,
            correct,
        )
        user.correct_answer_count = correct
        user.status_tier = tier
        db.session.commit()
    return user


def solved_question_ids(user: User) -> set[int]:
    rows = db.session.query(UserQuestionProgress.question_id).filter_by(user_id=user.id)
    return {row.question_id for row in rows}


def correctly_solved_question_ids(user: User) -> set[int]:
    rows = db.session.query(UserQuestionProgress.question_id).filter_by(
        user_id=user.id, is_correct=True
    )
    return {row.question_id for row in rows}


def completed_counts_by_category(user: User | None) -> dict[int, int]:
    if user is None:
        return {}
    rows = (
        db.session.query(Question.category_id, func.count(UserQuestionProgress.id))
        .join(UserQuestionProgress, UserQuestionProgress.question_id == Question.id)
        .filter(
            UserQuestionProgress.user_id == user.id,
            UserQuestionProgress.is_correct.is_(True),
        )
        .group_by(Question.category_id)
        .all()
    )
    return {category_id: count for category_id, count in rows}


def get_progress_summary(user: User) -> ProgressSummary:
    refresh_status_tier(user)
    totals = dict(
        db.session.query(Question.category_id, func.count(Question.id))
        .group_by(Question.category_id)
        .all()
    )
    completed = completed_counts_by_category(user)
    categories = tuple(
        CategoryProgress(
            category_id=category.id,
            total=totals.get(category.id, 0),
            completed=completed.get(category.id, 0),
        )
        for category in Category.query.order_by(Category.display_order.asc(), Category.id.asc())
    )
    return ProgressSummary(
        solved=len(solved_question_ids(user)),
        correct=user.correct_answer_count,
        status_tier=user.status_tier,
        categories=categories,
    )


__all__ = [
    "ADVANCED",
    "ELITE",
    "NOVICE",
    "AnswerResult",
    "CategoryProgress",
    "ProgressSummary",
    "completed_counts_by_category",
    "correctly_solved_question_ids",
    "get_progress_summary",
    "refresh_status_tier",
    "solved_question_ids",
    "status_tier_for",
    "submit_answer",
]
