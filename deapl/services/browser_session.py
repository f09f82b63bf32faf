# deapl/services/browser_session.py
"""
Owns the single shared browser used by every translation request.

The browser is launched lazily on first use. Concurrent first callers share
one launch task, so at most one browser exists per session. A failed launch
is forgotten so the next caller can try again, and shutdown() resets the
session so a later request relaunches.
"""

import asyncio
import logging
import threading
from typing import Optional

from deapl.config.settings import TranslatorSettings, load_settings
from deapl.services.exceptions import BrowserLaunchError

# Module logger
logger = logging.getLogger(__name__)


class PlaywrightManager:
    """
    Thread-safe singleton manager for Playwright imports.

    Provides lazy loading of Playwright modules so importing deapl does not
    require Playwright until a browser is actually needed.
    """

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                # Double-check locking pattern
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._async_playwright = None
                    cls._instance._error_types = None
                    cls._instance._initialized = False
        return cls._instance

    def _ensure_initialized(self):
        """Lazy initialization of Playwright imports."""
        if not self._initialized:
            with self._lock:
                if not self._initialized:
                    from playwright.async_api import (
                        async_playwright,
                        TimeoutError as PlaywrightTimeoutError,
                        Error as PlaywrightError,
                    )
                    self._async_playwright = async_playwright
                    self._error_types = {
                        'TimeoutError': PlaywrightTimeoutError,
                        'Error': PlaywrightError,
                    }
                    self._initialized = True

    def get_async_playwright(self):
        """Get async_playwright function."""
        self._ensure_initialized()
        return self._async_playwright

    def get_error_types(self):
        """Get Playwright error types for exception handling."""
        self._ensure_initialized()
        return self._error_types


# Global singleton instance
_playwright_manager = PlaywrightManager()


def _get_async_playwright():
    """Get async_playwright function."""
    return _playwright_manager.get_async_playwright()


def _get_playwright_errors():
    """Get Playwright error types."""
    return _playwright_manager.get_error_types()


class BrowserSession:
    """
    Single-flight manager for one Chromium process and its browser context.
    """

    # Chromium flags: quiet startup and hide the automation fingerprint
    LAUNCH_ARGS = (
        "--disable-blink-features=AutomationControlled",
        "--no-first-run",
        "--no-default-browser-check",
        "--disable-extensions",
        "--disable-sync",
        "--disable-background-networking",
        "--disable-component-update",
        "--disable-client-side-phishing-detection",
        "--disable-default-apps",
        "--disable-dev-shm-usage",
        # Chromium's own translate bar would fight with the page under test
        "--disable-features=TranslateUI",
    )

    USER_AGENT = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    LOCALE = "en-US"

    # Runs before any page script; headless Chromium reports navigator.webdriver
    STEALTH_INIT_SCRIPT = """
        Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
        Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });
    """

    def __init__(self, settings: Optional[TranslatorSettings] = None):
        self._settings = settings or load_settings()
        self._launch_task: Optional[asyncio.Task] = None
        self._playwright = None
        self._browser = None
        self._context = None

    @property
    def settings(self) -> TranslatorSettings:
        return self._settings

    @property
    def is_started(self) -> bool:
        """True once a launch has been requested and not yet torn down."""
        return self._launch_task is not None

    def _launch_options(self) -> dict:
        options = {
            "headless": self._settings.headless,
            "args": list(self.LAUNCH_ARGS),
        }
        if self._settings.executable_path:
            options["executable_path"] = self._settings.executable_path
        return options

    def _context_options(self) -> dict:
        return {
            "viewport": {
                "width": self._settings.viewport_width,
                "height": self._settings.viewport_height,
            },
            "user_agent": self.USER_AGENT,
            "locale": self.LOCALE,
        }

    async def _launch(self):
        """Start Playwright, launch Chromium and open the shared context."""
        try:
            async_playwright = _get_async_playwright()
        except ImportError as e:
            raise BrowserLaunchError("Playwright is not installed") from e

        logger.info(
            "Launching browser (headless=%s, executable=%s)",
            self._settings.headless, self._settings.executable_path or "bundled",
        )
        try:
            playwright = await async_playwright().start()
        except Exception as e:
            raise BrowserLaunchError(f"Failed to start Playwright: {e}") from e

        try:
            browser = await playwright.chromium.launch(**self._launch_options())
            try:
                context = await browser.new_context(**self._context_options())
                await context.add_init_script(self.STEALTH_INIT_SCRIPT)
            except Exception:
                await browser.close()
                raise
        except Exception as e:
            try:
                await playwright.stop()
            except Exception as stop_err:
                logger.debug("Error stopping Playwright after failed launch: %s", stop_err)
            raise BrowserLaunchError(f"Failed to launch browser: {e}") from e

        self._playwright = playwright
        self._browser = browser
        self._context = context
        logger.info("Browser launched")
        return browser

    def _on_launch_done(self, task: asyncio.Task) -> None:
        # A failed or cancelled launch must not wedge later callers
        if task.cancelled() or task.exception() is not None:
            if self._launch_task is task:
                self._launch_task = None
            logger.debug("Browser launch did not complete; next acquire will retry")

    async def acquire_browser(self):
        """
        Return the shared browser, launching it on first use.

        Every concurrent caller awaits the same launch task.

        Raises:
            BrowserLaunchError: If the browser cannot be started
        """
        if self._launch_task is None:
            task = asyncio.get_running_loop().create_task(self._launch())
            task.add_done_callback(self._on_launch_done)
            self._launch_task = task
        # Shielded so one cancelled waiter does not abort the launch for others
        return await asyncio.shield(self._launch_task)

    async def new_page(self):
        """Open a fresh page in the shared browser context."""
        await self.acquire_browser()
        page = await self._context.new_page()
        logger.debug("Opened page (%d open)", len(self._context.pages))
        return page

    def discard(self) -> None:
        """Forget the browser without closing it.

        Used when the event loop that owned the browser has been closed;
        the Playwright connection died with it.
        """
        if self._launch_task is not None:
            logger.debug("Discarding browser session bound to a closed event loop")
        self._launch_task = None
        self._context = self._browser = self._playwright = None

    async def shutdown(self) -> None:
        """
        Close the browser if one was launched.

        No-op when nothing was ever launched. Callers must drain in-flight
        requests first. After shutdown the next acquire_browser() relaunches.
        """
        task = self._launch_task
        if task is None:
            return
        self._launch_task = None

        try:
            await task
        except Exception as e:
            # Launch cleaned up after itself
            logger.debug("Shutdown after failed launch: %s", e)
            return

        context, browser, playwright = self._context, self._browser, self._playwright
        self._context = self._browser = self._playwright = None

        logger.info("Closing browser...")
        try:
            if context is not None:
                await context.close()
            if browser is not None:
                await browser.close()
        except Exception as e:
            logger.warning("Error closing browser: %s", e)
        finally:
            if playwright is not None:
                try:
                    await playwright.stop()
                except Exception as e:
                    logger.warning("Error stopping Playwright: %s", e)
        logger.info("Browser closed")
