"""Turn a base-language question into its stored trilingual form."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Sequence

from ..i18n import BASE_LANGUAGE, TARGET_LANGUAGES, LocalizedText
from .translation import TranslationChain

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OptionDraft:
    """An answer option as authored in the base language."""

    text: str
    is_correct: bool


@dataclass(frozen=True)
class TranslatedOption:
    text: LocalizedText
    is_correct: bool


@dataclass(frozen=True)
class TranslatedQuestion:
    text: LocalizedText
    options: tuple[TranslatedOption, ...]


def _safe_translate(chain: TranslationChain, text: str, target: str) -> str:
    try:
        translated = chain.translate_text(text, BASE_LANGUAGE, target)
    except Exception:
        logger.exception("Translation to %s failed; keeping base text.", target)
        return text
    return translated if (translated or "").strip() else text


def translate_question(
    base_text: str,
    base_options: Sequence[OptionDraft],
    *,
    chain: TranslationChain,
    max_workers: int = 10,
) -> TranslatedQuestion:
    """Translate the question text and every option into each target language.

    All (field, language) pairs are independent, so they are submitted to a
    thread pool together. The base slot is always the literal input and a
    failed translation leaves the base text in its slot.
    """

    fields = [base_text, *(option.text for option in base_options)]
    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        futures = {
            (index, language): executor.submit(_safe_translate, chain, text, language)
            for index, text in enumerate(fields)
            for language in TARGET_LANGUAGES
        }
        results = {key: future.result() for key, future in futures.items()}

    def localized(index: int) -> LocalizedText:
        return LocalizedText(
            uz=fields[index],
            ru=results[(index, "ru")],
            en=results[(index, "en")],
        )

    logger.info("Translated question with %s options into %s.", len(base_options), ", ".join(TARGET_LANGUAGES))
    return TranslatedQuestion(
        text=localized(0),
        options=tuple(
            TranslatedOption(text=localized(index + 1), is_correct=option.is_correct)
            for index, option in enumerate(base_options)
        ),
    )


__all__ = [
    "OptionDraft",
    "TranslatedOption",
    "TranslatedQuestion",
    "translate_question",
]
