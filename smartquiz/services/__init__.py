"""Service layer for quiz content, translation and learner progress."""

from .accounts import (
    authenticate_admin,
    authenticate_user,
    register_user,
    set_language_preference,
)
from .categories import (
    CategorySummary,
    backfill_category_names,
    list_categories,
    seed_default_categories,
)
from .progress import (
    AnswerResult,
    ProgressSummary,
    get_progress_summary,
    refresh_status_tier,
    status_tier_for,
    submit_answer,
)
from .questions import (
    QuestionView,
    create_question,
    delete_question,
    list_questions,
    list_unsolved_for_user,
    update_question,
)
from .translation import TranslationChain, build_translation_chain

__all__ = [
    "authenticate_admin",
    "authenticate_user",
    "register_user",
    "set_language_preference",
    "CategorySummary",
    "backfill_category_names",
    "list_categories",
    "seed_default_categories",
    "AnswerResult",
    "ProgressSummary",
    "get_progress_summary",
    "refresh_status_tier",
    "status_tier_for",
    "submit_answer",
    "QuestionView",
    "create_question",
    "delete_question",
    "list_questions",
    "list_unsolved_for_user",
    "update_question",
    "TranslationChain",
    "build_translation_chain",
]
