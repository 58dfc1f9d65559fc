import os
from pathlib import Path

from sqlalchemy.engine import URL

DEFAULT_SECRET_KEY = "dev-secret-key"
DEFAULT_ADMIN_PASSWORD = "change-me"


def _env_flag(name: str, default: str = "1") -> bool:
    return os.environ.get(name, default).lower() not in {"0", "false", "no"}


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", os.environ.get("JWT_SECRET", DEFAULT_SECRET_KEY))
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    default_db_path = Path(__file__).resolve().parent.parent / "instance" / "smartquiz.db"
    default_db_uri = URL.create(
        drivername="sqlite",
        database=str(default_db_path),
    )
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", str(default_db_uri))
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    TOKEN_TTL_DAYS = int(os.environ.get("TOKEN_TTL_DAYS", "7"))
    ADMIN_LOGIN = os.environ.get("ADMIN_LOGIN", "admin")
    ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", DEFAULT_ADMIN_PASSWORD)

    UPLOAD_FOLDER = os.environ.get("UPLOAD_FOLDER")
    PUBLIC_BASE_URL = os.environ.get("PUBLIC_BASE_URL", "")
    MAX_CONTENT_LENGTH = 5 * 1024 * 1024

    LIBRETRANSLATE_API_URL = os.environ.get("LIBRETRANSLATE_API_URL")
    LIBRETRANSLATE_API_KEY = os.environ.get("LIBRETRANSLATE_API_KEY")
    GOOGLE_TRANSLATE_API_KEY = os.environ.get("GOOGLE_TRANSLATE_API_KEY")
    GOOGLE_TRANSLATE_URL = os.environ.get(
        "GOOGLE_TRANSLATE_URL", "https://translation.googleapis.com/language/translate/v2"
    )
    MYMEMORY_API_URL = os.environ.get("MYMEMORY_API_URL", "https://api.mymemory.translated.net/get")
    TRANSLATION_DEFAULT_PROVIDER_ENABLED = _env_flag("TRANSLATION_DEFAULT_PROVIDER_ENABLED")
    TRANSLATION_TIMEOUT = float(os.environ.get("TRANSLATION_TIMEOUT", "10"))
    TRANSLATION_MAX_WORKERS = int(os.environ.get("TRANSLATION_MAX_WORKERS", "10"))


class TestConfig(Config):
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    TESTING = True
    SECRET_KEY = "test-secret-key"
    ADMIN_LOGIN = "admin"
    ADMIN_PASSWORD = "admin-pass"
    LIBRETRANSLATE_API_URL = None
    LIBRETRANSLATE_API_KEY = None
    GOOGLE_TRANSLATE_API_KEY = None
    TRANSLATION_DEFAULT_PROVIDER_ENABLED = False
