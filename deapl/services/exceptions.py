# deapl/services/exceptions.py
"""
Error types raised by the translation pipeline.

Kept free of Playwright imports so models and settings can depend on it
without loading browser-automation modules.
"""


class DeaplError(Exception):
    """Base class for all deapl errors."""

    pass


class InvalidRequestError(DeaplError, ValueError):
    """Raised when a translation request has invalid fields."""

    pass


class BrowserLaunchError(DeaplError):
    """Raised when the browser process cannot be started."""

    pass


class NavigationTimeoutError(DeaplError):
    """Raised when the translator page never becomes ready after navigation."""

    pass


class TranslationTimeoutError(DeaplError):
    """Raised when the page keeps reporting an active translation."""

    pass


class InterstitialError(DeaplError):
    """Raised when banners or dialogs keep reappearing past the retry bound."""

    pass


class LanguageSelectionError(DeaplError):
    """Raised when a language menu does not open or lacks the requested option."""

    pass


class FormalityUnsupportedError(DeaplError):
    """Raised when formality is requested but the page has no formality control."""

    pass


class QueueFullError(DeaplError):
    """Raised when a bounded task queue rejects a submission."""

    pass


class ElementNotFoundError(DeaplError):
    """Raised when a required page element is missing after the page loaded."""

    pass
