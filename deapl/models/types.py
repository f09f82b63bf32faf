# deapl/models/types.py
"""
Core data types for deapl translation requests.
"""

import math
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Mapping, Optional

from deapl.services.exceptions import InvalidRequestError


# Source languages offered by the translator's source menu (page option codes)
SOURCE_LANGUAGES = frozenset({
    "bg", "zh", "cs", "da", "nl", "en", "et", "fi", "fr", "de", "el", "hu",
    "it", "ja", "lv", "lt", "pl", "pt", "ro", "ru", "sk", "sl", "es", "sv",
})

# Target locale -> page option code.
# English and Portuguese keep their regional variant on the page.
TARGET_LANGUAGE_MAP: dict[str, str] = {
    "bg-BG": "bg",
    "zh-CN": "zh",
    "cs-CZ": "cs",
    "da-DK": "da",
    "nl-NL": "nl",
    "en-US": "en-US",
    "en-GB": "en-GB",
    "et-ET": "et",
    "fi-FI": "fi",
    "fr-FR": "fr",
    "de-DE": "de",
    "el-GR": "el",
    "hu-HU": "hu",
    "it-IT": "it",
    "ja-JP": "ja",
    "lv-LV": "lv",
    "lt-LT": "lt",
    "pl-PL": "pl",
    "pt-PT": "pt-PT",
    "pt-BR": "pt-BR",
    "ro-RO": "ro",
    "ru-RU": "ru",
    "sk-SK": "sk",
    "sl-SL": "sl",
    "es-ES": "es",
    "sv-SV": "sv",
}

# Page option codes accepted directly as targets (e.g. "de")
TARGET_PAGE_CODES = frozenset(TARGET_LANGUAGE_MAP.values())

# Bare "en"/"pt" are ambiguous targets; pick the variant the page defaults to
_TARGET_ALIASES = {
    "en": "en-US",
    "pt": "pt-PT",
}

DEFAULT_DELAY_MS = 150

# camelCase option keys accepted alongside the field names
_OPTION_ALIASES = {
    "targetLanguage": "target_language",
    "sourceLanguage": "source_language",
    "defaultDelay": "default_delay_ms",
}


class Formality(Enum):
    """Register toggle offered for some target languages"""
    FORMAL = "formal"
    INFORMAL = "informal"


class ClickResult(Enum):
    """Outcome of a guarded click; callers decide retry vs. fatal"""
    FOUND = "found"
    NOT_FOUND = "not_found"

    def __bool__(self) -> bool:
        return self is ClickResult.FOUND


def resolve_target_language(language: str) -> str:
    """
    Map a target language to the option code used in the page markup.

    Accepts locale keys ("de-DE"), page codes ("de") and the bare
    aliases "en"/"pt".

    Raises:
        InvalidRequestError: If the language is not offered as a target
    """
    if language in TARGET_LANGUAGE_MAP:
        return TARGET_LANGUAGE_MAP[language]
    if language in TARGET_PAGE_CODES:
        return language
    if language in _TARGET_ALIASES:
        return _TARGET_ALIASES[language]
    raise InvalidRequestError(f"Unsupported target language: {language!r}")


def resolve_source_language(language: str) -> str:
    """Validate a source language code."""
    if language not in SOURCE_LANGUAGES:
        raise InvalidRequestError(f"Unsupported source language: {language!r}")
    return language


def _coerce_formality(value: Any) -> Optional[Formality]:
    if value is None or isinstance(value, Formality):
        return value
    try:
        return Formality(value)
    except ValueError:
        raise InvalidRequestError(
            f"Formality must be 'formal' or 'informal', got {value!r}"
        ) from None


@dataclass(frozen=True)
class TranslateOptions:
    """
    Caller-facing translation options.
    """
    target_language: str
    source_language: Optional[str] = None
    formality: Optional[Formality] = None
    default_delay_ms: float = DEFAULT_DELAY_MS

    def __post_init__(self):
        object.__setattr__(self, "formality", _coerce_formality(self.formality))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "TranslateOptions":
        """Build options from a dict, accepting snake_case or camelCase keys."""
        def pick(*keys):
            for key in keys:
                if key in data and data[key] is not None:
                    return data[key]
            return None

        target = pick("target_language", "targetLanguage")
        if target is None:
            raise InvalidRequestError("target_language is required")
        delay = pick("default_delay_ms", "defaultDelay")
        return cls(
            target_language=target,
            source_language=pick("source_language", "sourceLanguage"),
            formality=pick("formality"),
            default_delay_ms=DEFAULT_DELAY_MS if delay is None else delay,
        )


@dataclass(frozen=True)
class TranslationRequest:
    """
    One immutable translation request.

    Language fields hold page option codes after validation.
    """
    text: str
    target_language: str
    source_language: Optional[str] = None
    formality: Optional[Formality] = None
    default_delay_ms: float = DEFAULT_DELAY_MS

    def __post_init__(self):
        if not isinstance(self.text, str):
            raise InvalidRequestError("text must be a string")
        object.__setattr__(self, "target_language", resolve_target_language(self.target_language))
        if self.source_language is not None:
            resolve_source_language(self.source_language)
        object.__setattr__(self, "formality", _coerce_formality(self.formality))
        delay = self.default_delay_ms
        # bool is an int subclass; True is not a delay
        if (
            isinstance(delay, bool)
            or not isinstance(delay, (int, float))
            or not math.isfinite(delay)
            or delay < 0
        ):
            raise InvalidRequestError(
                f"default_delay_ms must be a non-negative number of milliseconds, got {delay!r}"
            )
        if isinstance(delay, float) and delay.is_integer():
            object.__setattr__(self, "default_delay_ms", int(delay))

    @classmethod
    def from_options(cls, text: str, options: TranslateOptions) -> "TranslationRequest":
        return cls(
            text=text,
            target_language=options.target_language,
            source_language=options.source_language,
            formality=options.formality,
            default_delay_ms=options.default_delay_ms,
        )

    @property
    def default_delay(self) -> float:
        """Settle delay in seconds"""
        return self.default_delay_ms / 1000


@dataclass(frozen=True)
class TranslationResult:
    """
    Result of a single translation.

    output_found is False when the output element was missing from the page,
    which distinguishes "translated to empty" from a changed page layout.
    """
    text: str
    request: TranslationRequest
    elapsed_seconds: float = 0.0
    output_found: bool = True


def normalize_option_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    """
    Map option keys (snake_case or camelCase) to TranslateOptions field names.

    Raises:
        InvalidRequestError: For keys that name no option
    """
    names = {f.name for f in fields(TranslateOptions)}
    normalized = {}
    for key, value in data.items():
        name = _OPTION_ALIASES.get(key, key)
        if name not in names:
            raise InvalidRequestError(f"Unknown translation option: {key!r}")
        normalized[name] = value
    return normalized
