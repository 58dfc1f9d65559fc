"""Bulk import of questions from JSON files."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from ..errors import NotFoundError, ValidationError
from ..i18n import BASE_LANGUAGE
from ..models import Category, Question
from .categories import find_category_by_name
from .questions import create_question
from .translation import TranslationChain

logger = logging.getLogger(__name__)

# File-name fragments mapped to the English category name they belong to.
FILENAME_HINTS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("game", ("Games", "Game")),
    ("movie", ("Movies",)),
    ("science", ("Science",)),
    ("football", ("Football",)),
    ("mma", ("MMA",)),
    ("music", ("Music",)),
)


@dataclass
class ImportReport:
    created: list[int] = field(default_factory=list)
    skipped: list[tuple[int, str]] = field(default_factory=list)
    failed: list[tuple[int, str]] = field(default_factory=list)


def _base_text(value: Any) -> str:
    if isinstance(value, dict):
        return str(value.get(BASE_LANGUAGE) or "").strip()
    return str(value or "").strip()


def _base_options(raw_options: Any) -> Any:
    if not isinstance(raw_options, list):
        return raw_options
    options = []
    for item in raw_options:
        if isinstance(item, dict):
            options.append({"text": _base_text(item.get("text")), "isCorrect": item.get("isCorrect")})
        else:
            options.append(item)
    return options


def category_for_file(path: Path) -> Category | None:
    """Guess the target category from a file name such as ``questions/games.json``."""

    stem = path.stem.lower()
    for fragment, names in FILENAME_HINTS:
        if fragment in stem:
            for name in names:
                category = find_category_by_name(name)
                if category:
                    return category
    return None


def load_items(path: Path) -> list[dict[str, Any]]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except ValueError as exc:
        raise ValidationError(f"{path} is not valid JSON.") from exc
    if not isinstance(data, list):
        raise ValidationError(f"{path} must contain a JSON array of questions.")
    return data


def import_questions(
    items: Iterable[dict[str, Any]],
    category: Category,
    *,
    chain: TranslationChain | None = None,
) -> ImportReport:
    """Create each item through the normal authoring pipeline.

    Items whose base-language text already exists in the category are skipped;
    invalid items are reported and do not stop the import.
    """

    report = ImportReport()
    for number, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            report.failed.append((number, "item must be an object"))
            continue
        text = _base_text(item.get("question"))
        if text and Question.query.filter_by(category_id=category.id, text_uz=text).first():
            report.skipped.append((number, text))
            continue
        try:
            question = create_question(
                category.id, text, _base_options(item.get("options")), chain=chain
            )
        except (ValidationError, NotFoundError) as exc:
            logger.warning("Skipping question %s: %s", number, exc.message)
            report.failed.append((number, exc.message))
            continue
        report.created.append(question.id)

    logger.info(
        "Imported %s questions into category %s (%s skipped, %s failed)",
        len(report.created),
        category.id,
        len(report.skipped),
        len(report.failed),
    )
    return report


__all__ = [
    "ImportReport",
    "category_for_file",
    "import_questions",
    "load_items",
]
