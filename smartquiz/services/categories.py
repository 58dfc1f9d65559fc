"""Category listing, seeding and name maintenance."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable

from sqlalchemy import func

from .. import db
from ..i18n import KNOWN_CATEGORY_NAMES, LocalizedText, normalise_localized_name, resolve_language
from ..models import Category, Question, User
from .progress import completed_counts_by_category

logger = logging.getLogger(__name__)

# (display order, English key) for the categories every fresh install starts with.
DEFAULT_CATEGORIES: tuple[tuple[int, str], ...] = (
    (1, "Movies"),
    (2, "Science"),
    (3, "Games"),
    (4, "Football"),
    (5, "MMA"),
    (6, "Music"),
)


@dataclass(frozen=True)
class CategorySummary:
    id: int
    name: str
    origin_name: str
    display_order: int
    question_count: int
    completed_count: int


def list_categories(language: str | None = None, user: User | None = None) -> tuple[str, list[CategorySummary]]:
    """Return categories in display order with per-user completion counts."""

    resolved = resolve_language(language, user.language_preference if user else None)
    totals = dict(
        db.session.query(Question.category_id, func.count(Question.id))
        .group_by(Question.category_id)
        .all()
    )
    completed = completed_counts_by_category(user)

    summaries = [
        CategorySummary(
            id=category.id,
            name=category.name.get(resolved),
            origin_name=category.name.en or category.name.uz,
            display_order=category.display_order,
            question_count=totals.get(category.id, 0),
            completed_count=completed.get(category.id, 0),
        )
        for category in Category.query.order_by(Category.display_order.asc(), Category.id.asc())
    ]
    return resolved, summaries


def create_category(name: Any, display_order: int = 0) -> Category:
    category = Category(display_order=display_order)
    category.name = normalise_localized_name(name)
    db.session.add(category)
    db.session.commit()
    logger.info("Category %s created (%s)", category.id, category.name_en)
    return category


def seed_default_categories(defaults: Iterable[tuple[int, str]] = DEFAULT_CATEGORIES) -> tuple[int, int]:
    """Create the default categories, matching existing rows by display order.

    Returns ``(created, updated)`` counts.
    """

    created = updated = 0
    for order, key in defaults:
        name = KNOWN_CATEGORY_NAMES[key]
        category = Category.query.filter_by(display_order=order).first()
        if category is None:
            category = Category(display_order=order)
            category.name = name
            db.session.add(category)
            created += 1
            logger.info("Created category %s / %s / %s (order %s)", name.uz, name.ru, name.en, order)
        elif category.name != name:
            category.name = name
            updated += 1
            logger.info("Updated category %s / %s / %s (order %s)", name.uz, name.ru, name.en, order)
    db.session.commit()
    return created, updated


def backfill_category_names() -> int:
    """Complete any category whose stored name is missing a language slot."""

    changed = 0
    for category in Category.query.order_by(Category.id.asc()):
        current = LocalizedText(
            uz=category.name_uz or "", ru=category.name_ru or "", en=category.name_en or ""
        )
        if current.is_complete():
            continue
        try:
            completed = normalise_localized_name(current.as_dict())
        except ValueError:
            logger.warning("Category %s has no usable name; leaving it unchanged.", category.id)
            continue
        category.name = completed
        changed += 1
        logger.info("Completed category %s name -> %s", category.id, completed.as_dict())
    if changed:
        db.session.commit()
    return changed


def find_category_by_name(value: str) -> Category | None:
    needle = (value or "").strip().lower()
    if not needle:
        return None
    return Category.query.filter(
        (func.lower(Category.name_uz) == needle)
        | (func.lower(Category.name_ru) == needle)
        | (func.lower(Category.name_en) == needle)
    ).first()


__all__ = [
    "DEFAULT_CATEGORIES",
    "CategorySummary",
    "backfill_category_names",
    "create_category",
    "find_category_by_name",
    "list_categories",
    "seed_default_categories",
]
