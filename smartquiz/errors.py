"""Error taxonomy shared by the services and rendered by the JSON API."""

from __future__ import annotations

from flask import Flask, current_app, jsonify
from werkzeug.exceptions import HTTPException


class QuizError(RuntimeError):
    """Base class for errors that are reported to API clients."""

    kind = "error"
    status_code = 400

    def __init__(self, message: str, *, kind: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if kind:
            self.kind = kind


class ValidationError(QuizError):
    """Raised when input is malformed or missing required fields."""

    kind = "validation_error"
    status_code = 400


class NotFoundError(QuizError):
    """Raised when a referenced category, question or user does not exist."""

    kind = "not_found"
    status_code = 404


class ConflictError(QuizError):
    kind = "conflict"
    status_code = 409


class UnauthorizedError(QuizError):
    """Raised when a token is absent, invalid or expired, or credentials are wrong."""

    kind = "unauthorized"
    status_code = 401


class ForbiddenError(QuizError):
    kind = "forbidden"
    status_code = 403


class InternalError(QuizError):
    """Raised when the store or file system fails in the middle of a write."""

    kind = "internal_error"
    status_code = 500


def _json_error(message: str, kind: str, status: int):
    return jsonify({"error": message, "kind": kind}), status


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(QuizError)
    def handle_quiz_error(exc: QuizError):
        if exc.status_code >= 500:
            current_app.logger.error("request failed: %s", exc.message)
        return _json_error(exc.message, exc.kind, exc.status_code)

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        kind = {
            404: "not_found",
            405: "method_not_allowed",
            413: "payload_too_large",
        }.get(exc.code or 500, "http_error")
        return _json_error(exc.description or exc.name, kind, exc.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        current_app.logger.exception("Unhandled error while processing request")
        return _json_error("Internal server error.", InternalError.kind, 500)


__all__ = [
    "QuizError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "UnauthorizedError",
    "ForbiddenError",
    "InternalError",
    "register_error_handlers",
]
