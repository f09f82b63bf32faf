# deapl/models/__init__.py
"""
Data models for deapl.
"""

from .types import (
    SOURCE_LANGUAGES,
    TARGET_LANGUAGE_MAP,
    Formality,
    ClickResult,
    TranslateOptions,
    TranslationRequest,
    TranslationResult,
    resolve_source_language,
    resolve_target_language,
)

__all__ = [
    'SOURCE_LANGUAGES',
    'TARGET_LANGUAGE_MAP',
    'Formality',
    'ClickResult',
    'TranslateOptions',
    'TranslationRequest',
    'TranslationResult',
    'resolve_source_language',
    'resolve_target_language',
]
