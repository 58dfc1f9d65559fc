"""Storage for images attached to questions."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from uuid import uuid4

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from ..errors import InternalError, ValidationError

logger = logging.getLogger(__name__)

URL_PREFIX = "/uploads/questions"


@dataclass(frozen=True)
class StoredImage:
    path: Path
    url: str


def _upload_dir() -> Path:
    return Path(current_app.config["UPLOAD_FOLDER"])


def validate_image(upload: FileStorage | None) -> None:
    if upload is None or not upload.filename:
        return
    if not (upload.mimetype or "").startswith("image/"):
        raise ValidationError("Only image files are allowed.")


def save_question_image(upload: FileStorage) -> StoredImage:
    """Persist an uploaded image under a unique generated name."""

    validate_image(upload)
    extension = Path(secure_filename(upload.filename or "")).suffix.lower()
    filename = f"question-{int(time.time() * 1000)}-{uuid4().hex[:12]}{extension}"
    directory = _upload_dir()
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / filename
    try:
        upload.save(path)
    except OSError as exc:
        logger.exception("Failed to store uploaded image %s", filename)
        raise InternalError("Could not store the uploaded image.") from exc

    base_url = (current_app.config.get("PUBLIC_BASE_URL") or "").rstrip("/")
    return StoredImage(path=path, url=f"{base_url}{URL_PREFIX}/{filename}")


def image_path_for_url(url: str | None) -> Path | None:
    if not url:
        return None
    name = Path(url.split("?", 1)[0]).name
    if not name:
        return None
    return _upload_dir() / name


def delete_image(url_or_path: str | Path | None) -> bool:
    """Remove a stored image. Missing files are ignored."""

    if url_or_path is None:
        return False
    path = url_or_path if isinstance(url_or_path, Path) else image_path_for_url(url_or_path)
    if path is None:
        return False
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError:
        logger.warning("Could not delete image file %s", path, exc_info=True)
        return False
    return True


__all__ = [
    "StoredImage",
    "delete_image",
    "image_path_for_url",
    "save_question_image",
    "validate_image",
]
