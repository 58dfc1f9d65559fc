"""Language codes and trilingual text values shared by the quiz content model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Union

BASE_LANGUAGE = "uz"
TARGET_LANGUAGES: tuple[str, ...] = ("ru", "en")
SUPPORTED_LANGUAGES: tuple[str, ...] = (BASE_LANGUAGE, *TARGET_LANGUAGES)

# Three-letter codes are still sent by older mobile clients.
LANGUAGE_ALIASES: dict[str, str] = {
    "uzb": "uz",
    "rus": "ru",
    "eng": "en",
    "uz": "uz",
    "ru": "ru",
    "en": "en",
}


def canonical_language_code(value: str | None) -> str:
    """Map a short or long code onto its short form, passing unknown codes through."""

    code = (value or "").strip().lower()
    return LANGUAGE_ALIASES.get(code, code)


def normalise_language_code(value: str | None) -> str | None:
    """Return the supported short code for ``value`` or ``None`` when unsupported."""

    code = canonical_language_code(value)
    if code in SUPPORTED_LANGUAGES:
        return code
    return None


def ensure_language_code(value: str | None) -> str:
    return normalise_language_code(value) or BASE_LANGUAGE


def resolve_language(requested: str | None, preference: str | None = None) -> str:
    """Pick the content language for a learner.

    An explicit request wins over the stored preference, which wins over the base
    language. Unrecognised codes fall back to the base language instead of failing.
    """

    if requested:
        return ensure_language_code(requested)
    return ensure_language_code(preference)


@dataclass(frozen=True)
class LocalizedText:
    uz: str
    ru: str
    en: str

    @classmethod
    def uniform(cls, value: str) -> "LocalizedText":
        return cls(uz=value, ru=value, en=value)

    def get(self, language: str) -> str:
        """Return the text for ``language`` with a fallback to the base slot."""

        code = ensure_language_code(language)
        return getattr(self, code) or self.uz

    def as_dict(self) -> dict[str, str]:
        return {"uz": self.uz, "ru": self.ru, "en": self.en}

    def is_complete(self) -> bool:
        return all(value.strip() for value in (self.uz, self.ru, self.en))


@dataclass(frozen=True)
class LegacyName:
    """A category name stored as a single plain string."""

    value: str


@dataclass(frozen=True)
class LocalizedName:
    """A category name stored as a (possibly partial) per-language mapping."""

    values: Mapping[str, Any]


CategoryName = Union[LegacyName, LocalizedName]


# Built-in translations for the category names that shipped before names were localised.
KNOWN_CATEGORY_NAMES: dict[str, LocalizedText] = {
    "Movies": LocalizedText(uz="Kinolar", ru="Фильмы", en="Movies"),
    "Science": LocalizedText(uz="Fan", ru="Наука", en="Science"),
    "Game": LocalizedText(uz="O'yinlar", ru="Игры", en="Games"),
    "Games": LocalizedText(uz="O'yinlar", ru="Игры", en="Games"),
    "Football": LocalizedText(uz="Futbol", ru="Футбол", en="Football"),
    "MMA": LocalizedText(uz="MMA", ru="ММА", en="MMA"),
    "Music": LocalizedText(uz="Musiqa", ru="Музыка", en="Music"),
}


def classify_category_name(raw: Any) -> CategoryName:
    if isinstance(raw, Mapping):
        return LocalizedName(values=raw)
    if raw is None:
        return LegacyName(value="")
    return LegacyName(value=str(raw))


def normalise_localized_name(raw: Any) -> LocalizedText:
    """Turn any historical category name shape into a complete trilingual value."""

    name = raw if isinstance(raw, (LegacyName, LocalizedName)) else classify_category_name(raw)

    if isinstance(name, LegacyName):
        value = name.value.strip()
        if not value:
            raise ValueError("Category name must not be empty.")
        return KNOWN_CATEGORY_NAMES.get(value) or LocalizedText.uniform(value)

    slots = {code: str(name.values.get(code) or "").strip() for code in SUPPORTED_LANGUAGES}
    if all(slots.values()):
        return LocalizedText(**slots)

    seed = next((slots[code] for code in ("uz", "en", "ru") if slots[code]), "")
    if not seed:
        raise ValueError("Category name must not be empty.")
    known = KNOWN_CATEGORY_NAMES.get(seed)
    if known:
        return known
    return LocalizedText(**{code: slots[code] or seed for code in SUPPORTED_LANGUAGES})


__all__ = [
    "BASE_LANGUAGE",
    "TARGET_LANGUAGES",
    "SUPPORTED_LANGUAGES",
    "LANGUAGE_ALIASES",
    "KNOWN_CATEGORY_NAMES",
    "CategoryName",
    "LegacyName",
    "LocalizedName",
    "LocalizedText",
    "canonical_language_code",
    "classify_category_name",
    "ensure_language_code",
    "normalise_language_code",
    "normalise_localized_name",
    "resolve_language",
]
