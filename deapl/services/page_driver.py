# deapl/services/page_driver.py
"""
Drives one translator page through a single translation.

Sequence: navigate -> dismiss interstitials -> select languages -> type text
-> wait for the translation -> optionally switch formality -> read the result.
The page is closed on every exit path.
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Optional

from deapl.config.settings import TranslatorSettings
from deapl.models.types import ClickResult, Formality, TranslationRequest, TranslationResult
from deapl.services.browser_session import _get_playwright_errors
from deapl.services.exceptions import (
    ElementNotFoundError,
    FormalityUnsupportedError,
    InterstitialError,
    LanguageSelectionError,
    NavigationTimeoutError,
    TranslationTimeoutError,
)
from deapl.services.selectors import SelectorTable

# Module logger
logger = logging.getLogger(__name__)

# Reads a textarea value, falling back to text content for custom elements.
# Returns null when the element is missing so the caller can tell it apart from "".
_EXTRACT_TEXT_JS = """
(selector) => {
    const node = document.querySelector(selector);
    if (!node) return null;
    if (typeof node.value === 'string') return node.value;
    return node.textContent || '';
}
"""

# Forces a hover-only menu container open by adding its "open" classes
_ADD_CLASSES_JS = """
([selector, classes]) => {
    const node = document.querySelector(selector);
    if (!node) return false;
    node.classList.add(...classes);
    return true;
}
"""


class PageDriver:
    """
    Runs the translator UI choreography on one page.
    """

    # Settle delays (seconds) where the page exposes no observable signal
    TRANSLATION_SETTLE_SECONDS = 1.0   # Before and after waiting for the busy indicator
    INTERSTITIAL_SETTLE_SECONDS = 1.0  # After dismissing a banner/dialog

    # Retry bounds
    MAX_INTERSTITIAL_ROUNDS = 5  # Dismiss rounds before giving up on a persistent dialog
    MENU_OPEN_ATTEMPTS = 2       # Language menus sometimes ignore the first click

    # Short waits (milliseconds)
    MENU_OPEN_TIMEOUT_MS = 3000
    INTERSTITIAL_CLICK_TIMEOUT_MS = 2000

    SCREENSHOT_PREFIX = "deapl_failure_"

    def __init__(
        self,
        page,
        selectors: SelectorTable,
        settings: TranslatorSettings,
        settle_seconds: Optional[float] = None,
    ):
        self.page = page
        self.selectors = selectors
        self.settings = settings
        self._translation_settle = (
            self.TRANSLATION_SETTLE_SECONDS if settle_seconds is None else settle_seconds
        )
        self._interstitial_settle = (
            self.INTERSTITIAL_SETTLE_SECONDS if settle_seconds is None else settle_seconds
        )
        self._timeout_error = _get_playwright_errors()['TimeoutError']

    async def run(self, request: TranslationRequest) -> TranslationResult:
        """
        Translate one request on this page.

        The page is closed before returning or raising.

        Raises:
            NavigationTimeoutError: Translator UI never appeared
            InterstitialError: Banners/dialogs kept reappearing
            LanguageSelectionError: Language menu or option unavailable
            ElementNotFoundError: Source input missing or formality menu never opened
            TranslationTimeoutError: Translation never finished
            FormalityUnsupportedError: Formality requested but not offered
        """
        start_time = time.monotonic()
        try:
            await self._navigate()
            await self._dismiss_interstitials()

            if request.source_language:
                await self._select_language(
                    "source",
                    self.selectors.source_language_button,
                    self.selectors.source_language_option(request.source_language),
                    request,
                )
            await self._select_language(
                "target",
                self.selectors.target_language_button,
                self.selectors.target_language_option(request.target_language),
                request,
            )

            await self._enter_text(request)
            await self._wait_for_translation()

            if request.formality is not None:
                await self._switch_formality(request.formality, request)
                await self._wait_for_translation()

            text, found = await self._extract_result()
        except Exception as e:
            logger.warning("Translation failed (%s): %s", type(e).__name__, e)
            await self._capture_failure_screenshot()
            raise
        finally:
            await self._close_page()

        elapsed = time.monotonic() - start_time
        logger.debug("Translation finished in %.2fs (%d chars)", elapsed, len(text))
        return TranslationResult(
            text=text,
            request=request,
            elapsed_seconds=elapsed,
            output_found=found,
        )

    # =========================================================================
    # Element helpers
    # =========================================================================

    async def _has_selector(self, selector: str) -> bool:
        return await self.page.query_selector(selector) is not None

    async def _is_visible(self, selector: str) -> bool:
        # Hidden dialogs can linger in the DOM and cannot be clicked
        element = await self.page.query_selector(selector)
        return element is not None and await element.is_visible()

    async def _wait_for(self, selector: str, timeout_ms: int, state: str = "attached") -> bool:
        """Wait for an element state; False on timeout."""
        try:
            await self.page.wait_for_selector(selector, state=state, timeout=timeout_ms)
            return True
        except self._timeout_error:
            return False

    async def _click(self, selector: str, timeout_ms: Optional[int] = None) -> ClickResult:
        """Wait for an element and click it."""
        timeout_ms = timeout_ms or self.settings.selector_timeout_ms
        if not await self._wait_for(selector, timeout_ms):
            logger.debug("Click target not found: %s", selector)
            return ClickResult.NOT_FOUND
        try:
            await self.page.click(selector, timeout=timeout_ms)
        except self._timeout_error:
            # Detached or covered between the wait and the click
            logger.debug("Click timed out: %s", selector)
            return ClickResult.NOT_FOUND
        return ClickResult.FOUND

    # =========================================================================
    # Choreography steps
    # =========================================================================

    async def _navigate(self) -> None:
        url = self.selectors.url
        timeout_ms = self.settings.navigation_timeout_ms
        logger.debug("Navigating to %s", url)
        try:
            await self.page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
        except self._timeout_error as e:
            raise NavigationTimeoutError(f"Timed out loading {url}") from e
        if not await self._wait_for(self.selectors.target_language_button, timeout_ms):
            raise NavigationTimeoutError(
                f"Translator UI did not appear within {timeout_ms}ms ({url})"
            )

    async def _dismiss_interstitials(self) -> int:
        """
        Click away cookie banners and dialogs until none are visible.

        Returns:
            Number of dismiss rounds performed

        Raises:
            InterstitialError: Still present after MAX_INTERSTITIAL_ROUNDS
        """
        present: list[str] = []
        for rounds in range(self.MAX_INTERSTITIAL_ROUNDS + 1):
            present = [
                selector for selector in self.selectors.interstitial_dismiss
                if await self._is_visible(selector)
            ]
            if not present:
                if rounds:
                    logger.debug("Dismissed interstitials in %d round(s)", rounds)
                return rounds
            if rounds == self.MAX_INTERSTITIAL_ROUNDS:
                break
            for selector in present:
                result = await self._click(selector, self.INTERSTITIAL_CLICK_TIMEOUT_MS)
                logger.debug("Dismiss %s: %s", selector, result.value)
            await asyncio.sleep(self._interstitial_settle)

        raise InterstitialError(
            f"Interstitials still present after {self.MAX_INTERSTITIAL_ROUNDS} rounds: "
            + ", ".join(present)
        )

    async def _open_menu(self, button: str, menu: str, what: str, delay: float, error_cls) -> None:
        """Click a menu button until its menu renders (MENU_OPEN_ATTEMPTS tries)."""
        for attempt in range(1, self.MENU_OPEN_ATTEMPTS + 1):
            await asyncio.sleep(delay)
            if not await self._click(button):
                raise error_cls(f"{what} button not found: {button}")
            if await self._wait_for(menu, self.MENU_OPEN_TIMEOUT_MS):
                return
            logger.info("%s menu did not open (attempt %d/%d)", what, attempt, self.MENU_OPEN_ATTEMPTS)
        raise error_cls(f"{what} menu did not open after {self.MENU_OPEN_ATTEMPTS} attempts")

    async def _select_language(
        self, kind: str, button: str, option: str, request: TranslationRequest
    ) -> None:
        code = request.source_language if kind == "source" else request.target_language
        logger.debug("Selecting %s language: %s", kind, code)
        await self._open_menu(
            button,
            self.selectors.language_listbox,
            f"{kind.capitalize()} language",
            request.default_delay,
            LanguageSelectionError,
        )
        await asyncio.sleep(request.default_delay)
        if not await self._click(option):
            raise LanguageSelectionError(f"No {kind} language option for {code!r}")

    async def _enter_text(self, request: TranslationRequest) -> None:
        await asyncio.sleep(request.default_delay)
        if not await self._click(self.selectors.source_input):
            raise ElementNotFoundError(f"Source input not found: {self.selectors.source_input}")
        await asyncio.sleep(request.default_delay)
        # Keystrokes, not a value assignment: the page translates on key events
        await self.page.keyboard.type(request.text)
        logger.debug("Typed %d chars", len(request.text))

    async def _wait_for_translation(self) -> None:
        await asyncio.sleep(self._translation_settle)
        timeout_ms = self.settings.translation_timeout_ms
        if not await self._wait_for(self.selectors.translation_busy, timeout_ms, state="detached"):
            raise TranslationTimeoutError(f"Translation still running after {timeout_ms}ms")
        await asyncio.sleep(self._translation_settle)

    async def _switch_formality(self, formality: Formality, request: TranslationRequest) -> None:
        toggler = self.selectors.formality_toggler
        if not await self._has_selector(toggler):
            raise FormalityUnsupportedError(
                f"Cannot switch formality: no formality control for target {request.target_language!r}"
            )

        if self.selectors.formality_open_classes:
            await self.page.evaluate(
                _ADD_CLASSES_JS,
                [self.selectors.formality_switch, list(self.selectors.formality_open_classes)],
            )

        logger.debug("Switching formality: %s", formality.value)
        await self._open_menu(
            toggler,
            self.selectors.formality_menu,
            "Formality",
            request.default_delay,
            ElementNotFoundError,
        )
        option = (
            self.selectors.formal_option if formality is Formality.FORMAL
            else self.selectors.informal_option
        )
        if not await self._click(option):
            raise FormalityUnsupportedError(f"No {formality.value} option in formality menu")

    async def _extract_result(self) -> tuple[str, bool]:
        value = await self.page.evaluate(_EXTRACT_TEXT_JS, self.selectors.target_output)
        if value is None:
            logger.warning("Output element not found: %s", self.selectors.target_output)
            return "", False
        return value, True

    # =========================================================================
    # Cleanup / diagnostics
    # =========================================================================

    async def _capture_failure_screenshot(self) -> Optional[Path]:
        """Best-effort screenshot; its own errors never replace the original one."""
        if not self.settings.screenshot_on_failure:
            return None
        directory = Path(self.settings.screenshot_dir)
        path = directory / f"{self.SCREENSHOT_PREFIX}{int(time.time() * 1000)}.png"
        try:
            directory.mkdir(parents=True, exist_ok=True)
            await self.page.screenshot(path=str(path), type="png")
        except Exception as e:
            logger.debug("Failed to capture failure screenshot: %s", e)
            return None
        logger.info("Saved failure screenshot: %s", path)
        return path

    async def _close_page(self) -> None:
        try:
            await self.page.close()
        except Exception as e:
            logger.warning("Error closing page: %s", e)
