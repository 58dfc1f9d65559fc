"""Machine translation with an ordered chain of HTTP providers.

Providers are tried in priority order: a self-hosted LibreTranslate endpoint when
one is configured, Google Translate when an API key is configured, then the free
MyMemory service. When every provider fails the source text is returned so that
question authoring never blocks on third-party availability.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Sequence

import requests

from ..i18n import BASE_LANGUAGE, canonical_language_code

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class TranslationProviderError(RuntimeError):
    """Raised when a single provider cannot translate a piece of text."""


class TranslationProvider:
    """A single translation backend."""

    name = "provider"

    def __init__(self, *, timeout: float = DEFAULT_TIMEOUT, session: requests.Session | None = None) -> None:
        self.timeout = timeout
        self.http = session or requests

    def translate(self, text: str, source: str, target: str) -> str:
        raise NotImplementedError

    def _send(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = self.http.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise TranslationProviderError(f"{self.name} is unreachable.") from exc

        if response.status_code >= 400:
            raise TranslationProviderError(f"{self.name} returned status {response.status_code}.")

        try:
            return response.json()
        except ValueError as exc:
            raise TranslationProviderError(f"{self.name} responded with invalid JSON.") from exc


class LibreTranslateProvider(TranslationProvider):
    name = "libretranslate"

    def __init__(self, api_url: str, *, api_key: str | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.api_url = api_url
        self.api_key = api_key

    def translate(self, text: str, source: str, target: str) -> str:
        payload = {"q": text, "source": source, "target": target, "format": "text"}
        if self.api_key:
            payload["api_key"] = self.api_key
        data = self._send("POST", self.api_url, json=payload)
        translated = data.get("translatedText") if isinstance(data, dict) else None
        if not translated:
            raise TranslationProviderError("LibreTranslate returned an invalid response.")
        return str(translated)


class GoogleTranslateProvider(TranslationProvider):
    name = "google"

    def __init__(self, api_key: str, *, api_url: str | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.api_key = api_key
        self.api_url = api_url or "https://translation.googleapis.com/language/translate/v2"

    def translate(self, text: str, source: str, target: str) -> str:
        data = self._send(
            "POST",
            self.api_url,
            params={"key": self.api_key},
            json={"q": text, "source": source, "target": target},
        )
        try:
            return str(data["data"]["translations"][0]["translatedText"])
        except (KeyError, IndexError, TypeError) as exc:
            raise TranslationProviderError("Google Translate returned an invalid response.") from exc


class MyMemoryProvider(TranslationProvider):
    name = "mymemory"

    def __init__(self, *, api_url: str | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.api_url = api_url or "https://api.mymemory.translated.net/get"

    def translate(self, text: str, source: str, target: str) -> str:
        data = self._send("GET", self.api_url, params={"q": text, "langpair": f"{source}|{target}"})
        # Quota and lookup errors arrive as HTTP 200 with the message in translatedText.
        status = data.get("responseStatus") if isinstance(data, dict) else None
        if status is not None and str(status) != "200":
            raise TranslationProviderError(f"MyMemory returned status {status}.")
        translated = None
        if isinstance(data, dict) and isinstance(data.get("responseData"), dict):
            translated = data["responseData"].get("translatedText")
        if not translated:
            raise TranslationProviderError("MyMemory returned an invalid response.")
        return str(translated)


class TranslationChain:
    """Run providers in order and return the first successful translation."""

    def __init__(self, providers: Iterable[TranslationProvider]) -> None:
        self.providers: tuple[TranslationProvider, ...] = tuple(providers)

    def translate_text(self, text: str, source: str = BASE_LANGUAGE, target: str = "en") -> str:
        source_code = canonical_language_code(source)
        target_code = canonical_language_code(target)
        if source_code == target_code or not (text or "").strip():
            return text

        for provider in self.providers:
            try:
                return provider.translate(text, source_code, target_code)
            except TranslationProviderError as exc:
                logger.warning(
                    "Translation provider %s failed (%s -> %s): %s; trying next provider.",
                    provider.name,
                    source_code,
                    target_code,
                    exc,
                )
            except Exception:
                logger.exception("Translation provider %s raised unexpectedly.", provider.name)

        if self.providers:
            logger.warning(
                "All translation providers failed (%s -> %s); keeping source text.",
                source_code,
                target_code,
            )
        return text


def build_translation_chain(config: Mapping[str, Any]) -> TranslationChain:
    """Assemble the provider chain from application configuration."""

    timeout = float(config.get("TRANSLATION_TIMEOUT") or DEFAULT_TIMEOUT)
    providers: list[TranslationProvider] = []

    libre_url = (config.get("LIBRETRANSLATE_API_URL") or "").strip()
    if libre_url:
        providers.append(
            LibreTranslateProvider(
                libre_url, api_key=config.get("LIBRETRANSLATE_API_KEY"), timeout=timeout
            )
        )

    google_key = (config.get("GOOGLE_TRANSLATE_API_KEY") or "").strip()
    if google_key:
        providers.append(
            GoogleTranslateProvider(
                google_key, api_url=config.get("GOOGLE_TRANSLATE_URL"), timeout=timeout
            )
        )

    if config.get("TRANSLATION_DEFAULT_PROVIDER_ENABLED", True):
        providers.append(MyMemoryProvider(api_url=config.get("MYMEMORY_API_URL"), timeout=timeout))

    return TranslationChain(providers)


def provider_names(chain: TranslationChain) -> Sequence[str]:
    return [provider.name for provider in chain.providers]


__all__ = [
    "TranslationProvider",
    "TranslationProviderError",
    "LibreTranslateProvider",
    "GoogleTranslateProvider",
    "MyMemoryProvider",
    "TranslationChain",
    "build_translation_chain",
    "provider_names",
]
