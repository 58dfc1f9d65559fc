from pathlib import Path

from flask import Flask, jsonify, send_from_directory
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError

db = SQLAlchemy()
migrate = Migrate()

from .config import DEFAULT_ADMIN_PASSWORD, DEFAULT_SECRET_KEY, Config
from .db_maintenance import ensure_database_schema
from .errors import register_error_handlers


def _warn_on_default_credentials(app: Flask) -> None:
    if app.config.get("TESTING"):
        return
    if app.config.get("ADMIN_PASSWORD") == DEFAULT_ADMIN_PASSWORD:
        app.logger.warning("ADMIN_PASSWORD is not set; the built-in default admin password is in use.")
    if app.config.get("SECRET_KEY") == DEFAULT_SECRET_KEY:
        app.logger.warning("SECRET_KEY is not set; tokens are signed with the built-in development key.")


def create_app(config_class: type[Config] | None = None) -> Flask:
    app = Flask(__name__)
    config = config_class or Config
    app.config.from_object(config)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))
    _warn_on_default_credentials(app)

    Path(app.instance_path).mkdir(parents=True, exist_ok=True)

    db_uri = app.config.get("SQLALCHEMY_DATABASE_URI")
    if db_uri:
        try:
            url = make_url(db_uri)
        except ArgumentError:
            url = None
        if url and url.drivername == "sqlite" and url.database and url.database != ":memory:":
            db_path = Path(url.database)
            if not db_path.is_absolute():
                db_path = Path(app.root_path) / db_path
            db_path.parent.mkdir(parents=True, exist_ok=True)

    upload_folder = Path(app.config.get("UPLOAD_FOLDER") or Path(app.instance_path) / "uploads" / "questions")
    app.config["UPLOAD_FOLDER"] = str(upload_folder)
    upload_folder.mkdir(parents=True, exist_ok=True)

    db.init_app(app)
    migrate.init_app(app, db)

    from .admin import admin_bp
    from .api import api_bp

    app.register_blueprint(api_bp)
    app.register_blueprint(admin_bp)
    register_error_handlers(app)

    @app.get("/uploads/questions/<path:filename>")
    def uploaded_question_image(filename: str):
        return send_from_directory(app.config["UPLOAD_FOLDER"], filename)

    @app.get("/health")
    def health():
        try:
            db.session.execute(text("SELECT 1"))
            database = "connected"
        except SQLAlchemyError:
            app.logger.warning("Health check could not reach the database.")
            database = "disconnected"
        return jsonify({"status": "ok", "database": database})

    @app.route("/")
    def index():
        return jsonify(
            {
                "message": "SmartQuiz API is running",
                "endpoints": {
                    "auth": [
                        "POST /api/auth/register",
                        "POST /api/auth/login",
                        "POST /api/auth/admin/login",
                        "GET /api/auth/profile",
                        "PATCH /api/auth/profile/language",
                    ],
                    "categories": ["GET /api/categories"],
                    "questions": [
                        "GET /api/questions/<categoryId>?language=uz|ru|en",
                        "POST /api/questions/answer",
                    ],
                    "admin": [
                        "GET /api/admin/categories",
                        "GET /api/admin/questions",
                        "GET /api/admin/questions/<id>",
                        "POST /api/admin/questions",
                        "PUT /api/admin/questions/<id>",
                        "DELETE /api/admin/questions/<id>",
                    ],
                },
            }
        )

    with app.app_context():
        ensure_database_schema(db.engine, app.logger)

    return app
