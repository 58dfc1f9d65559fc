from __future__ import annotations

import io
import time

import pytest
from itsdangerous.timed import TimestampSigner

from smartquiz import create_app, db
from smartquiz.config import TestConfig
from smartquiz.models import Question, User
from smartquiz.services.categories import seed_default_categories


@pytest.fixture
def app(tmp_path):
    class ApiTestConfig(TestConfig):
        UPLOAD_FOLDER = str(tmp_path / "uploads")

    app = create_app(ApiTestConfig)
    with app.app_context():
        db.create_all()
        seed_default_categories()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def _auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _register(client, email="dilnoza@example.com", **extra):
    payload = {"email": email, "password": "secret1", "nickname": "Dilnoza", **extra}
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 201, response.get_json()
    return response.get_json()["token"]


def _admin_token(client):
    response = client.post("/api/auth/admin/login", json={"login": "admin", "password": "admin-pass"})
    assert response.status_code == 200
    return response.get_json()["token"]


def _science_id(client):
    categories = client.get("/api/categories?language=en").get_json()["categories"]
    return next(item["id"] for item in categories if item["originName"] == "Science")


WATER_OPTIONS = [
    {"text": "H2O", "isCorrect": True},
    {"text": "CO2", "isCorrect": False},
    {"text": "O2", "isCorrect": False},
    {"text": "N2", "isCorrect": False},
]


def _add_question(client, admin_token, category_id, text="Su formulasi?"):
    response = client.post(
        "/api/admin/questions",
        headers=_auth_headers(admin_token),
        json={"categoryId": category_id, "question": text, "options": WATER_OPTIONS},
    )
    assert response.status_code == 201, response.get_json()
    return response.get_json()["question"]


def test_end_to_end_science_question(app, client):
    admin_token = _admin_token(client)
    science = _science_id(client)
    created = _add_question(client, admin_token, science)
    assert created["question"] == {"uz": "Su formulasi?", "ru": "Su formulasi?", "en": "Su formulasi?"}

    token = _register(client)
    listing = client.get(f"/api/questions/{science}?language=en", headers=_auth_headers(token))
    assert listing.status_code == 200
    body = listing.get_json()
    assert body["language"] == "en"
    assert body["count"] == 1
    question = body["questions"][0]
    assert question["question"] == "Su formulasi?"
    assert [option["text"] for option in question["options"]] == ["H2O", "CO2", "O2", "N2"]
    assert all("isCorrect" not in option for option in question["options"])

    answer = client.post(
        "/api/questions/answer",
        headers=_auth_headers(token),
        json={"questionId": question["id"], "selectedOptionIndex": 0},
    ).get_json()
    assert answer["isCorrect"] is True
    assert answer["correctAnswerCount"] == 1
    assert answer["statusTier"] == "novice"

    again = client.post(
        "/api/questions/answer",
        headers=_auth_headers(token),
        json={"questionId": question["id"], "selectedOptionIndex": 0},
    ).get_json()
    assert again["isCorrect"] is True
    assert again["correctAnswerCount"] == 1
    assert again["statusTier"] == "novice"

    remaining = client.get(f"/api/questions/{science}", headers=_auth_headers(token)).get_json()
    assert remaining["count"] == 0

    profile = client.get("/api/auth/profile", headers=_auth_headers(token)).get_json()
    assert profile["correctAnswerCount"] == 1
    assert profile["solvedQuestionsCount"] == 1
    assert profile["statusTier"] == "novice"
    assert profile["mode"] == "standard"


def test_wrong_answer_keeps_question_available(client):
    admin_token = _admin_token(client)
    science = _science_id(client)
    question = _add_question(client, admin_token, science)
    token = _register(client)

    answer = client.post(
        "/api/questions/answer",
        headers=_auth_headers(token),
        json={"questionId": question["id"], "selectedOptionIndex": 2},
    ).get_json()
    assert answer == {
        "isCorrect": False,
        "correctAnswerCount": 0,
        "statusTier": "novice",
        "alreadySolved": False,
    }

    remaining = client.get(f"/api/questions/{science}", headers=_auth_headers(token)).get_json()
    assert remaining["count"] == 1


def test_answer_validation_errors(client):
    admin_token = _admin_token(client)
    question = _add_question(client, admin_token, _science_id(client))
    token = _register(client)

    bad_index = client.post(
        "/api/questions/answer",
        headers=_auth_headers(token),
        json={"questionId": question["id"], "selectedOptionIndex": 7},
    )
    assert bad_index.status_code == 400
    assert bad_index.get_json()["kind"] == "invalid_index"

    missing = client.post(
        "/api/questions/answer",
        headers=_auth_headers(token),
        json={"questionId": 999, "selectedOptionIndex": 0},
    )
    assert missing.status_code == 404
    assert missing.get_json()["kind"] == "not_found"


def test_token_errors_are_distinguished(app, client, monkeypatch):
    missing = client.get("/api/auth/profile")
    assert missing.status_code == 401
    assert missing.get_json()["kind"] == "token_missing"

    invalid = client.get("/api/auth/profile", headers=_auth_headers("not-a-token"))
    assert invalid.status_code == 401
    assert invalid.get_json()["kind"] == "token_invalid"

    eight_days_ago = int(time.time()) - 8 * 24 * 3600
    monkeypatch.setattr(TimestampSigner, "get_timestamp", lambda self: eight_days_ago)
    stale_token = _register(client)
    monkeypatch.undo()

    expired = client.get("/api/auth/profile", headers=_auth_headers(stale_token))
    assert expired.status_code == 401
    assert expired.get_json()["kind"] == "token_expired"


def test_token_for_deleted_user_is_invalid(app, client):
    token = _register(client)
    with app.app_context():
        db.session.delete(User.query.filter_by(email="dilnoza@example.com").one())
        db.session.commit()

    response = client.get("/api/auth/profile", headers=_auth_headers(token))
    assert response.status_code == 401
    assert response.get_json()["kind"] == "token_invalid"


def test_admin_routes_require_admin_token(client):
    user_token = _register(client)

    assert client.get("/api/admin/questions").status_code == 401
    forbidden = client.get("/api/admin/questions", headers=_auth_headers(user_token))
    assert forbidden.status_code == 403
    assert forbidden.get_json()["kind"] == "forbidden"

    admin_token = _admin_token(client)
    assert client.get("/api/admin/questions", headers=_auth_headers(admin_token)).status_code == 200

    # An admin token does not identify a learner.
    assert client.get("/api/auth/profile", headers=_auth_headers(admin_token)).status_code == 401


def test_admin_login_rejects_bad_credentials(client):
    response = client.post("/api/auth/admin/login", json={"login": "admin", "password": "nope"})
    assert response.status_code == 401
    assert response.get_json()["kind"] == "invalid_credentials"

    response = client.post("/api/auth/admin/login", json={})
    assert response.status_code == 400


def test_register_and_login(client):
    _register(client, email="Dilnoza@Example.com", language="rus")

    duplicate = client.post(
        "/api/auth/register",
        json={"email": "dilnoza@example.com", "password": "secret1", "nickname": "Other"},
    )
    assert duplicate.status_code == 409

    weak = client.post(
        "/api/auth/register",
        json={"email": "weak@example.com", "password": "123", "nickname": "Weak"},
    )
    assert weak.status_code == 400

    login = client.post("/api/auth/login", json={"email": "dilnoza@example.com", "password": "secret1"})
    assert login.status_code == 200
    body = login.get_json()
    assert body["user"]["nickname"] == "Dilnoza"

    profile = client.get("/api/auth/profile", headers=_auth_headers(body["token"])).get_json()
    assert profile["language"] == "ru"

    wrong = client.post("/api/auth/login", json={"email": "dilnoza@example.com", "password": "bad-pass"})
    assert wrong.status_code == 401
    assert wrong.get_json()["kind"] == "invalid_credentials"


def test_language_preference_drives_content(client):
    admin_token = _admin_token(client)
    science = _science_id(client)
    _add_question(client, admin_token, science)
    token = _register(client)

    default = client.get(f"/api/questions/{science}", headers=_auth_headers(token)).get_json()
    assert default["language"] == "uz"

    categories = client.get("/api/categories", headers=_auth_headers(token)).get_json()
    assert categories["language"] == "uz"
    assert categories["categories"][1]["name"] == "Fan"

    updated = client.patch(
        "/api/auth/profile/language", headers=_auth_headers(token), json={"language": "eng"}
    )
    assert updated.status_code == 200
    assert updated.get_json()["language"] == "en"

    preferred = client.get(f"/api/questions/{science}", headers=_auth_headers(token)).get_json()
    assert preferred["language"] == "en"

    explicit = client.get(
        f"/api/questions/{science}?language=ru", headers=_auth_headers(token)
    ).get_json()
    assert explicit["language"] == "ru"

    lenient = client.get(
        f"/api/questions/{science}?language=fr", headers=_auth_headers(token)
    ).get_json()
    assert lenient["language"] == "uz"

    rejected = client.put("/api/auth/language", headers=_auth_headers(token), json={"language": "fr"})
    assert rejected.status_code == 400


def test_categories_listing_counts(client):
    admin_token = _admin_token(client)
    science = _science_id(client)
    first = _add_question(client, admin_token, science)
    _add_question(client, admin_token, science, text="Tuz formulasi?")

    anonymous = client.get("/api/categories?language=ru").get_json()
    assert anonymous["count"] == 6
    assert [item["displayOrder"] for item in anonymous["categories"]] == [1, 2, 3, 4, 5, 6]
    science_row = next(item for item in anonymous["categories"] if item["id"] == science)
    assert science_row["name"] == "Наука"
    assert science_row["questionCount"] == 2
    assert science_row["completedCount"] == 0

    token = _register(client)
    client.post(
        "/api/questions/answer",
        headers=_auth_headers(token),
        json={"questionId": first["id"], "selectedOptionIndex": 0},
    )
    mine = client.get("/api/categories", headers=_auth_headers(token)).get_json()
    science_row = next(item for item in mine["categories"] if item["id"] == science)
    assert science_row["completedCount"] == 1

    ignored = client.get("/api/categories", headers=_auth_headers("garbage")).get_json()
    assert ignored["count"] == 6


def test_admin_question_lifecycle_with_image(app, client):
    admin_token = _admin_token(client)
    science = _science_id(client)

    created = client.post(
        "/api/admin/questions",
        headers=_auth_headers(admin_token),
        data={
            "categoryId": str(science),
            "question": "Su formulasi?",
            "options": '[{"text": "H2O", "isCorrect": true}, {"text": "CO2", "isCorrect": false},'
            ' {"text": "O2", "isCorrect": false}, {"text": "N2", "isCorrect": false}]',
            "image": (io.BytesIO(b"fake image"), "water.png", "image/png"),
        },
        content_type="multipart/form-data",
    )
    assert created.status_code == 201, created.get_json()
    question = created.get_json()["question"]
    assert question["image"].startswith("/uploads/questions/question-")
    assert question["options"][0]["isCorrect"] is True

    served = client.get(question["image"])
    assert served.status_code == 200
    assert served.data == b"fake image"
    served.close()

    updated = client.put(
        f"/api/admin/questions/{question['id']}",
        headers=_auth_headers(admin_token),
        json={"categoryId": science, "question": "Suv formulasi?", "options": WATER_OPTIONS},
    )
    assert updated.status_code == 200
    assert updated.get_json()["question"]["question"]["uz"] == "Suv formulasi?"
    assert updated.get_json()["question"]["image"] == question["image"]

    listing = client.get(
        f"/api/admin/questions?categoryId={science}", headers=_auth_headers(admin_token)
    ).get_json()
    assert listing["count"] == 1

    detail = client.get(f"/api/admin/questions/{question['id']}", headers=_auth_headers(admin_token))
    assert detail.status_code == 200
    assert detail.get_json()["question"]["question"]["uz"] == "Suv formulasi?"
    assert detail.get_json()["question"]["options"][0]["isCorrect"] is True

    deleted = client.delete(f"/api/admin/questions/{question['id']}", headers=_auth_headers(admin_token))
    assert deleted.status_code == 200
    assert client.get(question["image"]).status_code == 404
    gone = client.get(f"/api/admin/questions/{question['id']}", headers=_auth_headers(admin_token))
    assert gone.status_code == 404
    with app.app_context():
        assert Question.query.count() == 0


def test_admin_rejects_invalid_question(client):
    admin_token = _admin_token(client)
    response = client.post(
        "/api/admin/questions",
        headers=_auth_headers(admin_token),
        json={"categoryId": _science_id(client), "question": "Savol", "options": WATER_OPTIONS[:3]},
    )
    assert response.status_code == 400
    assert response.get_json()["kind"] == "invalid_options"

    response = client.post(
        "/api/admin/questions",
        headers=_auth_headers(admin_token),
        json={"categoryId": 999, "question": "Savol", "options": WATER_OPTIONS},
    )
    assert response.status_code == 404

    response = client.post(
        "/api/admin/questions",
        headers=_auth_headers(admin_token),
        data={
            "categoryId": "1",
            "question": "Savol",
            "options": "[]",
            "image": (io.BytesIO(b"text"), "notes.txt", "text/plain"),
        },
        content_type="multipart/form-data",
    )
    assert response.status_code == 400


def test_health_and_unknown_routes(client):
    health = client.get("/health").get_json()
    assert health == {"status": "ok", "database": "connected"}

    missing = client.get("/api/does-not-exist")
    assert missing.status_code == 404
    assert missing.get_json()["kind"] == "not_found"
