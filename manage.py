from __future__ import annotations

from pathlib import Path

import click
from dotenv import load_dotenv

load_dotenv()

from smartquiz import create_app, db  # noqa: E402
from smartquiz.errors import ValidationError  # noqa: E402
from smartquiz.models import Category  # noqa: E402
from smartquiz.services.categories import (  # noqa: E402
    backfill_category_names,
    seed_default_categories,
)
from smartquiz.services.importer import (  # noqa: E402
    category_for_file,
    import_questions,
    load_items,
)
from smartquiz.services.questions import delete_all_questions  # noqa: E402

app = create_app()


@app.cli.command("init-db")
def init_db() -> None:
    """Initialise the database schema."""
    db.create_all()
    app.logger.info("Database tables created")


@app.cli.command("seed-categories")
def seed_categories() -> None:
    """Create or refresh the default trilingual categories."""
    created, updated = seed_default_categories()
    click.echo(f"Categories seeded: {created} created, {updated} updated.")


@app.cli.command("backfill-category-names")
def backfill_names() -> None:
    """Fill in missing language slots on category names."""
    changed = backfill_category_names()
    click.echo(f"Category names completed: {changed}.")


@app.cli.command("import-questions")
@click.argument("json_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--category", "category_id", type=int, help="Target category id.")
def import_questions_command(json_path: Path, category_id: int | None) -> None:
    """Import questions from a JSON array, translating each one."""
    if category_id is not None:
        category = db.session.get(Category, category_id)
    else:
        category = category_for_file(json_path)
    if category is None:
        raise click.ClickException(
            "Category not found. Pass --category <id> or name the file after a category."
        )

    try:
        items = load_items(json_path)
    except ValidationError as exc:
        raise click.ClickException(exc.message) from exc

    click.echo(f"Importing {len(items)} questions into {category.name_en} ({category.id})")
    report = import_questions(items, category)
    for number, text in report.skipped:
        click.echo(f"  skipped #{number}: already exists ({text[:50]})")
    for number, reason in report.failed:
        click.echo(f"  failed #{number}: {reason}", err=True)
    click.echo(
        f"Done: {len(report.created)} created, {len(report.skipped)} skipped, "
        f"{len(report.failed)} failed."
    )


@app.cli.command("delete-all-questions")
@click.option("--yes", is_flag=True, help="Confirm deletion without prompting.")
def delete_all_questions_command(yes: bool) -> None:
    """Delete every question and its uploaded image."""
    if not yes:
        click.confirm("Delete ALL questions and their images?", abort=True)
    removed = delete_all_questions()
    click.echo(f"Deleted {removed} questions.")
