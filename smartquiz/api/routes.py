from __future__ import annotations

from datetime import datetime
from typing import Any

from flask import current_app, g, jsonify, request

from ..auth import issue_admin_token, issue_user_token, optional_user, require_user
from ..models import User
from ..services.accounts import (
    authenticate_admin,
    authenticate_user,
    register_user,
    set_language_preference,
)
from ..services.categories import CategorySummary, list_categories
from ..services.progress import AnswerResult, get_progress_summary, submit_answer
from ..services.questions import QuestionView, list_unsolved_for_user
from . import api_bp


def _payload() -> dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _token_response(user: User, token: str, expires_at: datetime) -> dict[str, Any]:
    return {
        "userId": user.id,
        "token": token,
        "expiresAt": expires_at.isoformat(),
        "user": {"id": user.id, "email": user.email, "nickname": user.nickname},
    }


def _serialise_profile(user: User) -> dict[str, Any]:
    summary = get_progress_summary(user)
    return {
        "id": user.id,
        "email": user.email,
        "nickname": user.nickname,
        "statusTier": summary.status_tier,
        "mode": user.mode,
        "correctAnswerCount": summary.correct,
        "solvedQuestionsCount": summary.solved,
        "language": user.language_preference,
        "categories": [
            {
                "categoryId": item.category_id,
                "questionCount": item.total,
                "completedCount": item.completed,
            }
            for item in summary.categories
        ],
        "createdAt": user.created_at.isoformat() if user.created_at else None,
        "updatedAt": user.updated_at.isoformat() if user.updated_at else None,
    }


def _serialise_category(summary: CategorySummary) -> dict[str, Any]:
    return {
        "id": summary.id,
        "name": summary.name,
        "originName": summary.origin_name,
        "displayOrder": summary.display_order,
        "questionCount": summary.question_count,
        "completedCount": summary.completed_count,
    }


def _serialise_question_view(view: QuestionView) -> dict[str, Any]:
    return {
        "id": view.id,
        "categoryId": view.category_id,
        "question": view.text,
        "options": [{"index": option.index, "text": option.text} for option in view.options],
        "image": view.image,
        "createdAt": view.created_at.isoformat() if view.created_at else None,
    }


def _serialise_answer(result: AnswerResult) -> dict[str, Any]:
    return {
        "isCorrect": result.is_correct,
        "correctAnswerCount": result.correct_answer_count,
        "statusTier": result.status_tier,
        "alreadySolved": result.already_solved,
    }


@api_bp.post("/auth/register")
def register():
    data = _payload()
    user = register_user(
        data.get("email"),
        data.get("password"),
        data.get("nickname"),
        data.get("language"),
    )
    token, expires_at = issue_user_token(user)
    current_app.logger.info("register success", extra={"user_id": user.id})
    return jsonify(_token_response(user, token, expires_at)), 201


@api_bp.post("/auth/login")
def login():
    data = _payload()
    user = authenticate_user(data.get("email"), data.get("password"))
    token, expires_at = issue_user_token(user)
    current_app.logger.info("login success", extra={"user_id": user.id})
    return jsonify(_token_response(user, token, expires_at))


@api_bp.post("/auth/admin/login")
def admin_login():
    data = _payload()
    login_name = authenticate_admin(data.get("login"), data.get("password"))
    token, expires_at = issue_admin_token(login_name)
    current_app.logger.info("admin login success")
    return jsonify(
        {
            "token": token,
            "expiresAt": expires_at.isoformat(),
            "admin": {"login": login_name, "role": "admin"},
        }
    )


@api_bp.get("/auth/profile")
@require_user
def get_profile():
    return jsonify(_serialise_profile(g.current_user))


@api_bp.route("/auth/profile/language", methods=["PATCH", "PUT"])
@api_bp.put("/auth/language")
@require_user
def update_language():
    language = set_language_preference(g.current_user, _payload().get("language"))
    return jsonify({"message": "Language updated successfully", "language": language})


@api_bp.get("/categories")
@optional_user
def categories():
    language, summaries = list_categories(request.args.get("language"), g.current_user)
    return jsonify(
        {
            "count": len(summaries),
            "language": language,
            "categories": [_serialise_category(summary) for summary in summaries],
        }
    )


@api_bp.get("/questions/<category_id>")
@require_user
def unsolved_questions(category_id: str):
    language, views = list_unsolved_for_user(
        category_id, g.current_user, request.args.get("language")
    )
    return jsonify(
        {
            "count": len(views),
            "language": language,
            "questions": [_serialise_question_view(view) for view in views],
        }
    )


@api_bp.post("/questions/answer")
@require_user
def answer_question():
    data = _payload()
    result = submit_answer(
        g.current_user,
        data.get("questionId"),
        data.get("selectedOptionIndex"),
    )
    return jsonify(_serialise_answer(result))
