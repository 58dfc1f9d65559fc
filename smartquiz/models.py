from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, UniqueConstraint
from werkzeug.security import check_password_hash, generate_password_hash

from . import db
from .i18n import LocalizedText


class Category(db.Model):
    __tablename__ = "categories"

    id = db.Column(db.Integer, primary_key=True)
    name_uz = db.Column(db.String(120), nullable=False)
    name_ru = db.Column(db.String(120), nullable=False)
    name_en = db.Column(db.String(120), nullable=False)
    display_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    questions = db.relationship("Question", back_populates="category")

    @property
    def name(self) -> LocalizedText:
        return LocalizedText(uz=self.name_uz, ru=self.name_ru, en=self.name_en)

    @name.setter
    def name(self, value: LocalizedText) -> None:
        self.name_uz = value.uz
        self.name_ru = value.ru
        self.name_en = value.en


class Question(db.Model):
    __tablename__ = "questions"

    id = db.Column(db.Integer, primary_key=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=False, index=True)
    text_uz = db.Column(db.Text, nullable=False)
    text_ru = db.Column(db.Text, nullable=False)
    text_en = db.Column(db.Text, nullable=False)
    image_url = db.Column(db.String(500))
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    category = db.relationship("Category", back_populates="questions")
    options = db.relationship(
        "QuestionOption",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="QuestionOption.position",
    )
    progress_entries = db.relationship(
        "UserQuestionProgress", back_populates="question", cascade="all, delete-orphan"
    )

    @property
    def text(self) -> LocalizedText:
        return LocalizedText(uz=self.text_uz, ru=self.text_ru, en=self.text_en)

    @text.setter
    def text(self, value: LocalizedText) -> None:
        self.text_uz = value.uz
        self.text_ru = value.ru
        self.text_en = value.en


class QuestionOption(db.Model):
    __tablename__ = "question_options"

    id = db.Column(db.Integer, primary_key=True)
    question_id = db.Column(db.Integer, db.ForeignKey("questions.id"), nullable=False)
    position = db.Column(db.Integer, nullable=False)
    text_uz = db.Column(db.String(500), nullable=False)
    text_ru = db.Column(db.String(500), nullable=False)
    text_en = db.Column(db.String(500), nullable=False)
    is_correct = db.Column(db.Boolean, nullable=False, default=False)

    question = db.relationship("Question", back_populates="options")

    __table_args__ = (
        UniqueConstraint("question_id", "position", name="uq_option_position"),
        CheckConstraint("position >= 0 AND position < 4", name="option_position_range"),
    )

    @property
    def text(self) -> LocalizedText:
        return LocalizedText(uz=self.text_uz, ru=self.text_ru, en=self.text_en)

    @text.setter
    def text(self, value: LocalizedText) -> None:
        self.text_uz = value.uz
        self.text_ru = value.ru
        self.text_en = value.en


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    nickname = db.Column(db.String(120), nullable=False)
    language_preference = db.Column(db.String(5))
    status_tier = db.Column(db.String(20), nullable=False, default="novice")
    correct_answer_count = db.Column(db.Integer, nullable=False, default=0)
    mode = db.Column(db.String(20), nullable=False, default="standard")
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    progress_entries = db.relationship(
        "UserQuestionProgress", back_populates="user", cascade="all, delete-orphan"
    )

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)


class UserQuestionProgress(db.Model):
    """One row per attempted (user, question) pair.

    The rows form the solved set; rows with ``is_correct`` form the correctly
    solved subset.
    """

    __tablename__ = "user_question_progress"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    question_id = db.Column(db.Integer, db.ForeignKey("questions.id"), nullable=False)
    is_correct = db.Column(db.Boolean, nullable=False, default=False)
    attempt_count = db.Column(db.Integer, nullable=False, default=1)
    first_attempted_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    last_attempted_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    user = db.relationship("User", back_populates="progress_entries")
    question = db.relationship("Question", back_populates="progress_entries")

    __table_args__ = (
        UniqueConstraint("user_id", "question_id", name="uq_progress_user_question"),
    )


__all__ = [
    "Category",
    "Question",
    "QuestionOption",
    "User",
    "UserQuestionProgress",
]
