"""Database maintenance helpers to keep legacy deployments compatible."""

from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from . import db
from .i18n import normalise_localized_name

CATEGORY_NAME_COLUMNS = ("name_uz", "name_ru", "name_en")


def _decode_legacy_name(raw: Any) -> Any:
    """Legacy rows store either a plain string or a JSON object in ``name``."""

    if isinstance(raw, str) and raw.strip().startswith("{"):
        try:
            return json.loads(raw)
        except ValueError:
            return raw
    return raw


def ensure_category_language_columns(engine: Engine, logger: logging.Logger | None = None) -> None:
    """Upgrade a legacy ``categories`` table that only has a single ``name`` column.

    The per-language columns are added and filled from the legacy value, which
    may be a plain string or a partial language object. The legacy ``name`` and
    ``order`` columns are dropped afterwards.
    """

    inspector = inspect(engine)
    if "categories" not in inspector.get_table_names():
        return

    columns = {column["name"] for column in inspector.get_columns("categories")}
    missing = [name for name in CATEGORY_NAME_COLUMNS if name not in columns]
    if not missing and "display_order" in columns:
        return

    logger = logger or logging.getLogger(__name__)
    logger.warning("Legacy categories table detected; adding per-language name columns.")

    try:
        with engine.begin() as connection:
            for column in missing:
                connection.execute(
                    text(f"ALTER TABLE categories ADD COLUMN {column} VARCHAR(120) NOT NULL DEFAULT ''")
                )
            if "display_order" not in columns:
                connection.execute(
                    text("ALTER TABLE categories ADD COLUMN display_order INTEGER NOT NULL DEFAULT 0")
                )
                if "order" in columns:
                    connection.execute(text('UPDATE categories SET display_order = "order"'))

            if "name" not in columns:
                return

            rows = list(connection.execute(text("SELECT id, name FROM categories ORDER BY id")))
            for row in rows:
                try:
                    localized = normalise_localized_name(_decode_legacy_name(row.name))
                except ValueError:
                    logger.warning("Category %s has an empty legacy name; skipping.", row.id)
                    continue
                connection.execute(
                    text(
                        "UPDATE categories SET name_uz = :uz, name_ru = :ru, name_en = :en "
                        "WHERE id = :id"
                    ),
                    {**localized.as_dict(), "id": row.id},
                )

            # The ORM no longer writes these columns, so they must not block inserts.
            connection.execute(text("ALTER TABLE categories DROP COLUMN name"))
            if "order" in columns:
                connection.execute(text('ALTER TABLE categories DROP COLUMN "order"'))
    except SQLAlchemyError:
        logger.exception("Failed to upgrade legacy categories table")
        raise


def ensure_core_tables(engine: Engine, logger: logging.Logger | None = None) -> None:
    """Ensure the base SQLAlchemy models are materialised for new databases."""

    logger = logger or logging.getLogger(__name__)
    try:
        db.create_all()
    except SQLAlchemyError:
        logger.exception("Failed to create core tables during maintenance")
        raise


def ensure_database_schema(engine: Engine, logger: logging.Logger | None = None) -> None:
    """Run all lightweight schema checks for legacy compatibility."""

    ensure_category_language_columns(engine, logger)
    ensure_core_tables(engine, logger)
