from __future__ import annotations

from typing import Any

from flask import current_app, g, jsonify, request

from ..auth import require_admin
from ..models import Category, Question
from ..services.questions import (
    create_question,
    delete_question,
    get_question,
    list_questions,
    update_question,
)
from . import admin_bp


def _serialise_question(question: Question) -> dict[str, Any]:
    return {
        "id": question.id,
        "category": {
            "id": question.category_id,
            "name": question.category.name.as_dict() if question.category else None,
        },
        "question": question.text.as_dict(),
        "options": [
            {"index": option.position, "text": option.text.as_dict(), "isCorrect": option.is_correct}
            for option in question.options
        ],
        "image": question.image_url,
        "createdAt": question.created_at.isoformat() if question.created_at else None,
        "updatedAt": question.updated_at.isoformat() if question.updated_at else None,
    }


def _question_fields() -> tuple[Any, Any, Any]:
    """Read question fields from JSON or multipart form data."""

    if request.is_json:
        data = request.get_json(silent=True) or {}
    else:
        data = request.form
    return data.get("categoryId"), data.get("question"), data.get("options")


@admin_bp.get("/categories")
@require_admin
def categories():
    rows = Category.query.order_by(Category.display_order.asc(), Category.id.asc()).all()
    return jsonify(
        {
            "categories": [
                {"id": row.id, "name": row.name.as_dict(), "order": row.display_order}
                for row in rows
            ]
        }
    )


@admin_bp.get("/questions")
@require_admin
def questions():
    rows = list_questions(request.args.get("categoryId"))
    return jsonify({"count": len(rows), "questions": [_serialise_question(row) for row in rows]})


@admin_bp.get("/questions/<question_id>")
@require_admin
def question_detail(question_id: str):
    return jsonify({"question": _serialise_question(get_question(question_id))})


@admin_bp.post("/questions")
@require_admin
def add_question():
    category_id, text, options = _question_fields()
    question = create_question(category_id, text, options, request.files.get("image"))
    current_app.logger.info(
        "question created", extra={"question_id": question.id, "admin": g.admin_login}
    )
    return jsonify({"message": "Question added successfully.", "question": _serialise_question(question)}), 201


@admin_bp.put("/questions/<question_id>")
@require_admin
def edit_question(question_id: str):
    category_id, text, options = _question_fields()
    question = update_question(question_id, category_id, text, options, request.files.get("image"))
    current_app.logger.info(
        "question updated", extra={"question_id": question.id, "admin": g.admin_login}
    )
    return jsonify({"message": "Question updated successfully.", "question": _serialise_question(question)})


@admin_bp.delete("/questions/<question_id>")
@require_admin
def remove_question(question_id: str):
    delete_question(question_id)
    current_app.logger.info(
        "question deleted", extra={"question_id": question_id, "admin": g.admin_login}
    )
    return jsonify({"message": "Question deleted successfully."})
