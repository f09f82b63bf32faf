# deapl/config/settings.py
"""
Runtime settings for deapl.

Settings come from environment-style string flags and are read once:
- load_settings() caches the parsed TranslatorSettings per process
- invalidate_cache() forces the next load_settings() to re-read the environment

Recognized variables:
    DEAPL_CONCURRENCY              max simultaneous page sessions (default 1)
    DEAPL_HEADLESS                 run the browser headless (default true)
    DEAPL_SCREENSHOT_ON_FAILURE    save a screenshot when a request fails
    DEAPL_SCREENSHOT_DIR           where failure screenshots go (default temp dir)
    DEAPL_EXECUTABLE_PATH          browser binary to launch instead of the bundled one
    DEAPL_SELECTOR_VERSION         selector table revision to use
    DEAPL_NAVIGATION_TIMEOUT_MS    page load bound
    DEAPL_SELECTOR_TIMEOUT_MS      bound for each element wait
    DEAPL_TRANSLATION_TIMEOUT_MS   bound for the "translating" indicator to clear
    DEAPL_MAX_QUEUE_SIZE           reject submissions past this many waiting tasks
"""

import logging
import os
import tempfile
import threading
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Mapping, Optional

# Module logger
logger = logging.getLogger(__name__)

ENV_PREFIX = "DEAPL_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}

_settings_cache: Optional["TranslatorSettings"] = None
_settings_cache_lock = threading.Lock()


def parse_bool(raw: str, default: bool, name: str = "") -> bool:
    """Parse an environment flag; malformed values keep the default."""
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    logger.warning("Ignoring invalid boolean for %s: %r (using %s)", name, raw, default)
    return default


def parse_int(raw: str, default: Optional[int], name: str = "", minimum: int = 0) -> Optional[int]:
    """Parse an integer flag; malformed or out-of-range values keep the default."""
    try:
        value = int(raw.strip(), 10)
    except ValueError:
        logger.warning("Ignoring invalid integer for %s: %r (using %s)", name, raw, default)
        return default
    if value < minimum:
        logger.warning("Ignoring %s=%d below minimum %d (using %s)", name, value, minimum, default)
        return default
    return value


@dataclass(frozen=True)
class TranslatorSettings:
    """Translator settings"""

    # Queue
    concurrency: int = 1                  # Simultaneous page sessions
    max_queue_size: Optional[int] = None  # None = unbounded

    # Browser
    headless: bool = True
    executable_path: Optional[str] = None  # None = Playwright's bundled Chromium
    viewport_width: int = 800
    viewport_height: int = 600

    # Diagnostics
    screenshot_on_failure: bool = False
    screenshot_dir: Path = field(default_factory=lambda: Path(tempfile.gettempdir()))

    # Page markup revision
    selector_version: Optional[str] = None  # None = DEFAULT_SELECTOR_VERSION

    # Timeouts (milliseconds)
    navigation_timeout_ms: int = 30000
    selector_timeout_ms: int = 10000
    translation_timeout_ms: int = 30000

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "TranslatorSettings":
        """Build settings from DEAPL_* variables (os.environ by default)."""
        env = os.environ if environ is None else environ
        defaults = cls()
        values = {}

        def raw(name: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + name)
            if value is None or not value.strip():
                return None
            return value

        # Integer flags: field -> minimum accepted value
        for name, minimum in (
            ("concurrency", 1),
            ("max_queue_size", 1),
            ("navigation_timeout_ms", 1),
            ("selector_timeout_ms", 1),
            ("translation_timeout_ms", 1),
        ):
            value = raw(name.upper())
            if value is not None:
                values[name] = parse_int(value, getattr(defaults, name), ENV_PREFIX + name.upper(), minimum)

        for name in ("headless", "screenshot_on_failure"):
            value = raw(name.upper())
            if value is not None:
                values[name] = parse_bool(value, getattr(defaults, name), ENV_PREFIX + name.upper())

        value = raw("SCREENSHOT_DIR")
        if value is not None:
            values["screenshot_dir"] = Path(value.strip()).expanduser()
        value = raw("EXECUTABLE_PATH")
        if value is not None:
            values["executable_path"] = value.strip()
        value = raw("SELECTOR_VERSION")
        if value is not None:
            values["selector_version"] = value.strip()

        settings = cls(**values)
        logger.debug("Loaded settings from environment: %s", settings)
        return settings

    def replace(self, **changes) -> "TranslatorSettings":
        """Return a copy with the given fields changed."""
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise TypeError(f"Unknown settings field(s): {', '.join(sorted(unknown))}")
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data.update(changes)
        return TranslatorSettings(**data)


def load_settings(use_cache: bool = True) -> TranslatorSettings:
    """Load settings from the environment, reading it only once per process.

    Args:
        use_cache: Return the cached settings when available (default: True)
    """
    global _settings_cache
    with _settings_cache_lock:
        if use_cache and _settings_cache is not None:
            return _settings_cache
        _settings_cache = TranslatorSettings.from_env()
        return _settings_cache


def invalidate_cache() -> None:
    """Drop cached settings so the next load re-reads the environment."""
    global _settings_cache
    with _settings_cache_lock:
        _settings_cache = None
