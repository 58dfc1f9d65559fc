from __future__ import annotations

import pytest

from smartquiz import create_app, db
from smartquiz.config import TestConfig
from smartquiz.errors import NotFoundError, ValidationError
from smartquiz.i18n import LocalizedText
from smartquiz.models import Category, Question, QuestionOption, User, UserQuestionProgress
from smartquiz.services import progress
from smartquiz.services.progress import (
    ADVANCED,
    ELITE,
    NOVICE,
    completed_counts_by_category,
    correctly_solved_question_ids,
    get_progress_summary,
    refresh_status_tier,
    solved_question_ids,
    status_tier_for,
    submit_answer,
)
from smartquiz.services.questions import delete_question, list_unsolved_for_user


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def learner(app):
    user = User(email="learner@example.com", nickname="Dilnoza")
    user.set_password("secret1")
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def category(app):
    category = Category(display_order=2)
    category.name = LocalizedText(uz="Fan", ru="Наука", en="Science")
    db.session.add(category)
    db.session.commit()
    return category


def _make_question(category, text="Su formulasi?", correct=0):
    question = Question(category=category)
    question.text = LocalizedText.uniform(text)
    for position, label in enumerate(["H2O", "CO2", "O2", "N2"]):
        option = QuestionOption(position=position, is_correct=position == correct)
        option.text = LocalizedText.uniform(label)
        question.options.append(option)
    db.session.add(question)
    db.session.commit()
    return question


@pytest.mark.parametrize(
    "count, tier",
    [(0, NOVICE), (10, NOVICE), (11, ADVANCED), (50, ADVANCED), (51, ELITE), (500, ELITE)],
)
def test_status_tier_boundaries(count, tier):
    assert status_tier_for(count) == tier


def test_correct_answer_counts_once(learner, category):
    question = _make_question(category)

    first = submit_answer(learner, question.id, 0)
    assert first.is_correct is True
    assert first.correct_answer_count == 1
    assert first.status_tier == NOVICE
    assert first.already_solved is False

    second = submit_answer(learner, question.id, 0)
    assert second.is_correct is True
    assert second.correct_answer_count == 1
    assert second.already_solved is True

    # A wrong option on an already solved question is still a no-op success.
    third = submit_answer(learner, question.id, 2)
    assert third.is_correct is True
    assert third.correct_answer_count == 1

    assert UserQuestionProgress.query.count() == 1
    assert db.session.get(User, learner.id).correct_answer_count == 1


def test_incorrect_then_correct(learner, category):
    question = _make_question(category)

    wrong = submit_answer(learner, question.id, 3)
    assert wrong.is_correct is False
    assert wrong.correct_answer_count == 0
    assert solved_question_ids(learner) == {question.id}
    assert correctly_solved_question_ids(learner) == set()

    _, pool = list_unsolved_for_user(category.id, learner)
    assert [view.id for view in pool] == [question.id]

    wrong_again = submit_answer(learner, question.id, "1")
    assert wrong_again.is_correct is False
    entry = UserQuestionProgress.query.filter_by(user_id=learner.id).one()
    assert entry.attempt_count == 2

    right = submit_answer(learner, question.id, 0)
    assert right.is_correct is True
    assert right.correct_answer_count == 1
    assert correctly_solved_question_ids(learner) == {question.id}

    again = submit_answer(learner, question.id, 0)
    assert again.correct_answer_count == 1

    _, pool = list_unsolved_for_user(category.id, learner)
    assert pool == []


def test_correctly_solved_set_only_grows(learner, category):
    first = _make_question(category, "Birinchi")
    second = _make_question(category, "Ikkinchi", correct=1)

    submit_answer(learner, first.id, 0)
    submit_answer(learner, first.id, 3)
    submit_answer(learner, second.id, 0)
    assert correctly_solved_question_ids(learner) == {first.id}

    submit_answer(learner, second.id, 1)
    assert correctly_solved_question_ids(learner) == {first.id, second.id}
    assert completed_counts_by_category(learner) == {category.id: 2}
    assert completed_counts_by_category(None) == {}


def test_eleventh_correct_answer_promotes(learner, category):
    learner.correct_answer_count = 10
    db.session.commit()
    question = _make_question(category)

    result = submit_answer(learner, question.id, 0)

    assert result.correct_answer_count == 11
    assert result.status_tier == ADVANCED
    assert db.session.get(User, learner.id).status_tier == ADVANCED


@pytest.mark.parametrize("index", [-1, 4, "x", None, True, 1.5])
def test_invalid_option_index(learner, category, index):
    question = _make_question(category)
    with pytest.raises(ValidationError) as excinfo:
        submit_answer(learner, question.id, index)
    assert excinfo.value.kind == "invalid_index"
    assert UserQuestionProgress.query.count() == 0


def test_unknown_question(learner, category):
    with pytest.raises(NotFoundError):
        submit_answer(learner, 12345, 0)
    with pytest.raises(ValidationError):
        submit_answer(learner, None, 0)


def test_refresh_status_tier_repairs_drift(learner, category):
    question = _make_question(category)
    submit_answer(learner, question.id, 0)

    learner.correct_answer_count = 0
    learner.status_tier = ELITE
    db.session.commit()

    refresh_status_tier(learner)
    assert learner.correct_answer_count == 1
    assert learner.status_tier == NOVICE


def test_refresh_status_tier_never_lowers_counter(learner, category):
    learner.correct_answer_count = 60
    learner.status_tier = NOVICE
    db.session.commit()

    refresh_status_tier(learner)
    assert learner.correct_answer_count == 60
    assert learner.status_tier == ELITE


def test_deleting_solved_question_keeps_earned_progress(learner, category):
    learner.correct_answer_count = 10
    db.session.commit()
    question = _make_question(category)
    kept = _make_question(category, "Ikkinchi")
    assert submit_answer(learner, question.id, 0).status_tier == ADVANCED

    delete_question(question.id)

    summary = get_progress_summary(learner)
    assert summary.correct == 11
    assert summary.status_tier == ADVANCED
    assert db.session.get(User, learner.id).correct_answer_count == 11

    result = submit_answer(learner, kept.id, 0)
    assert result.correct_answer_count == 12


def _stale_lookup_once(monkeypatch):
    """Make the first progress lookup miss a row another request already stored."""

    real_lookup = progress._progress_entry
    calls = []

    def lookup(user_id, question_id):
        calls.append(question_id)
        if len(calls) == 1:
            return None
        return real_lookup(user_id, question_id)

    monkeypatch.setattr(progress, "_progress_entry", lookup)
    return calls


def test_concurrent_correct_submission_counts_once(learner, category, monkeypatch):
    question = _make_question(category)
    submit_answer(learner, question.id, 0)

    calls = _stale_lookup_once(monkeypatch)
    result = submit_answer(learner, question.id, 0)

    assert len(calls) == 2
    assert result.is_correct is True
    assert result.correct_answer_count == 1
    assert result.already_solved is True
    assert UserQuestionProgress.query.count() == 1
    assert db.session.get(User, learner.id).correct_answer_count == 1


def test_correct_submission_racing_incorrect_one_counts_once(learner, category, monkeypatch):
    question = _make_question(category)
    submit_answer(learner, question.id, 2)

    calls = _stale_lookup_once(monkeypatch)
    result = submit_answer(learner, question.id, 0)

    assert len(calls) == 2
    assert result.is_correct is True
    assert result.correct_answer_count == 1
    assert result.already_solved is False
    entry = UserQuestionProgress.query.filter_by(user_id=learner.id).one()
    assert entry.is_correct is True

    monkeypatch.undo()
    assert submit_answer(learner, question.id, 0).correct_answer_count == 1


def test_incorrect_submission_racing_correct_one_is_noop(learner, category, monkeypatch):
    question = _make_question(category)
    submit_answer(learner, question.id, 0)

    _stale_lookup_once(monkeypatch)
    result = submit_answer(learner, question.id, 3)

    assert result.is_correct is True
    assert result.already_solved is True
    assert result.correct_answer_count == 1
    assert correctly_solved_question_ids(learner) == {question.id}


def test_progress_summary(learner, category):
    empty = Category(display_order=5)
    empty.name = LocalizedText(uz="MMA", ru="ММА", en="MMA")
    db.session.add(empty)
    db.session.commit()

    solved = _make_question(category, "Birinchi")
    missed = _make_question(category, "Ikkinchi")
    _make_question(category, "Uchinchi")
    submit_answer(learner, solved.id, 0)
    submit_answer(learner, missed.id, 2)

    summary = get_progress_summary(learner)
    assert summary.solved == 2
    assert summary.correct == 1
    assert summary.status_tier == NOVICE
    by_category = {item.category_id: item for item in summary.categories}
    assert by_category[category.id].total == 3
    assert by_category[category.id].completed == 1
    assert by_category[empty.id].total == 0
