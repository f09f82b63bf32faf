# deapl/__init__.py
"""
deapl - DeepL web translator automation

Drives the DeepL web page in a headless Chromium (Playwright) and returns
the translated text:

    import asyncio
    import deapl

    text = asyncio.run(deapl.translate("This is a test", target_language="de"))
"""

from importlib.metadata import PackageNotFoundError, version


def _get_version() -> str:
    """Installed distribution version, or a fallback for source checkouts."""
    try:
        return version("deapl")
    except PackageNotFoundError:
        return "0.0.0"


__version__ = _get_version()

# Public API, loaded on first access so importing deapl stays cheap
_LAZY_IMPORTS = {
    'translate': 'deapl.services.translator',
    'translate_sync': 'deapl.services.translator',
    'kill': 'deapl.services.translator',
    'kill_sync': 'deapl.services.translator',
    'set_concurrency': 'deapl.services.translator',
    'get_translator': 'deapl.services.translator',
    'Translator': 'deapl.services.translator',
    'TranslateOptions': 'deapl.models.types',
    'TranslationResult': 'deapl.models.types',
    'Formality': 'deapl.models.types',
    'TranslatorSettings': 'deapl.config.settings',
    'setup_logging': 'deapl.logging_setup',
    'DeaplError': 'deapl.services.exceptions',
    'BrowserLaunchError': 'deapl.services.exceptions',
    'FormalityUnsupportedError': 'deapl.services.exceptions',
    'InvalidRequestError': 'deapl.services.exceptions',
}


def __getattr__(name: str):
    import importlib
    if name in _LAZY_IMPORTS:
        module = importlib.import_module(_LAZY_IMPORTS[name])
        return getattr(module, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = list(_LAZY_IMPORTS)
