from __future__ import annotations

import asyncio
import sys
import time
from pathlib import Path
from typing import Optional

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError


# Ensure the project root is importable when running `pytest` via its entrypoint,
# where `sys.path[0]` may not be the repo root.
_PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

from deapl.config.settings import TranslatorSettings  # noqa: E402
from deapl.models.types import SOURCE_LANGUAGES, TARGET_PAGE_CODES  # noqa: E402
from deapl.services.selectors import LMT_TEXTAREA, SelectorTable  # noqa: E402


# (text, target page code, formality) -> translation
PHRASES = {
    ("This is a test", "de", None): "Dies ist ein Test",
    ("You lie", "de", None): "Du lügst",
    ("You lie", "de", "formal"): "Sie lügen",
    ("You lie", "de", "informal"): "Du lügst",
    ("Hallo", "en-US", None): "Hello",
}

# Targets for which the page shows a formality toggle
FORMALITY_LANGUAGES = frozenset({"de", "fr", "it", "es", "nl", "pl", "pt-PT", "pt-BR", "ru", "ja"})


class FakeKeyboard:
    def __init__(self, page: "FakePage"):
        self._page = page
        self.typed: list[str] = []

    async def type(self, text: str, delay: Optional[float] = None) -> None:
        await asyncio.sleep(0)
        self.typed.append(text)
        self._page._on_typed(text)


class FakeElement:
    def __init__(self, selector: str, visible: bool = True):
        self.selector = selector
        self._visible = visible

    async def is_visible(self) -> bool:
        return self._visible


class FakePage:
    """
    In-memory stand-in for a Playwright page showing the translator UI.

    Only the calls PageDriver makes are implemented. Element presence is a set
    of selector strings from the SelectorTable in use.
    """

    def __init__(
        self,
        table: SelectorTable = LMT_TEXTAREA,
        *,
        ui_loads: bool = True,
        cookie_banner_rounds: int = 0,
        dialog_rounds: int = 0,
        menu_failures: int = 0,
        stuck_busy: bool = False,
        output_missing: bool = False,
        missing_options: tuple[str, ...] = (),
        formality_languages=FORMALITY_LANGUAGES,
        screenshot_error: Optional[Exception] = None,
        phrases: Optional[dict] = None,
        hidden: tuple[str, ...] = (),
        on_close=None,
    ):
        self.table = table
        self.ui_loads = ui_loads
        self.cookie_banner_rounds = cookie_banner_rounds
        self.dialog_rounds = dialog_rounds
        self.menu_failures = menu_failures
        self.stuck_busy = stuck_busy
        self.output_missing = output_missing
        self.missing_options = set(missing_options)
        self.formality_languages = formality_languages
        self.screenshot_error = screenshot_error
        self.phrases = PHRASES if phrases is None else phrases
        self._on_close = on_close

        self.keyboard = FakeKeyboard(self)
        self.present: set[str] = set()
        # Attached but not displayed; clicks time out
        self.hidden: set[str] = set(hidden)
        self.visited: list[str] = []
        self.clicks: list[str] = []
        self.evaluated: list = []
        self.screenshots: list[str] = []
        self.closed = False

        self.source_language: Optional[str] = None
        self.target_language: Optional[str] = None
        self.formality: Optional[str] = None
        self.source_text = ""
        self.output_text = ""
        self._focused = False
        self._open_menu: Optional[str] = None

    # --- Playwright page API ---

    async def goto(self, url: str, wait_until: str = "load", timeout: Optional[float] = None):
        await asyncio.sleep(0)
        self.visited.append(url)
        if not self.ui_loads:
            return None
        t = self.table
        self.present |= {
            t.source_language_button,
            t.target_language_button,
            t.source_input,
        }
        if not self.output_missing:
            self.present.add(t.target_output)
        if self.cookie_banner_rounds:
            self.present.add(t.cookie_banner_dismiss)
        if self.dialog_rounds:
            self.present.add(t.dialog_dismiss[0])
        return None

    async def query_selector(self, selector: str):
        await asyncio.sleep(0)
        if selector in self.present or selector in self.hidden:
            return FakeElement(selector, visible=selector not in self.hidden)
        return None

    async def wait_for_selector(self, selector: str, state: str = "visible", timeout: Optional[float] = None):
        await asyncio.sleep(0)
        if state == "detached":
            if selector == self.table.translation_busy and selector in self.present:
                if self.stuck_busy:
                    raise PlaywrightTimeoutError(f"Timeout {timeout}ms waiting for {selector} to detach")
                self.present.discard(selector)
            elif selector in self.present:
                raise PlaywrightTimeoutError(f"Timeout {timeout}ms waiting for {selector} to detach")
            return None
        if selector not in self.present:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms waiting for {selector}")
        return FakeElement(selector)

    async def click(self, selector: str, timeout: Optional[float] = None):
        await asyncio.sleep(0)
        if selector not in self.present:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms clicking {selector}")
        self.clicks.append(selector)
        self._on_click(selector)

    async def evaluate(self, expression: str, arg=None):
        await asyncio.sleep(0)
        self.evaluated.append((expression, arg))
        if isinstance(arg, list):
            # Forcing the formality switch open
            return arg[0] in self.present
        if arg == self.table.target_output:
            if arg not in self.present:
                return None
            return self.output_text
        return None

    async def screenshot(self, path: Optional[str] = None, **kwargs):
        if self.screenshot_error is not None:
            raise self.screenshot_error
        self.screenshots.append(path)
        return b""

    async def close(self):
        self.closed = True
        if self._on_close is not None:
            self._on_close(self)

    # --- Simulated page behavior ---

    def _all_options(self) -> set[str]:
        codes = (set(SOURCE_LANGUAGES) | set(TARGET_PAGE_CODES)) - self.missing_options
        return {self.table.target_language_option(code) for code in codes}

    def _on_click(self, selector: str) -> None:
        t = self.table
        if selector == t.cookie_banner_dismiss:
            self.cookie_banner_rounds -= 1
            if self.cookie_banner_rounds <= 0:
                self.present.discard(selector)
        elif selector in t.dialog_dismiss:
            self.dialog_rounds -= 1
            if self.dialog_rounds <= 0:
                self.present.discard(selector)
        elif selector in (t.source_language_button, t.target_language_button):
            if self.menu_failures > 0:
                self.menu_failures -= 1
                return
            self._open_menu = "source" if selector == t.source_language_button else "target"
            self.present.add(t.language_listbox)
            self.present |= self._all_options()
        elif self._open_menu and selector in self._all_options():
            code = selector.split("translator-lang-option-")[1].rstrip('"]')
            if self._open_menu == "source":
                self.source_language = code
            else:
                self.target_language = code
                if code in self.formality_languages:
                    self.present.add(t.formality_toggler)
                    self.present.add(t.formality_switch)
                else:
                    self.present.discard(t.formality_toggler)
            self.present.discard(t.language_listbox)
            self.present -= self._all_options()
            self._open_menu = None
        elif selector == t.source_input:
            self._focused = True
        elif selector == t.formality_toggler:
            self.present |= {t.formality_menu, t.formal_option, t.informal_option}
        elif selector in (t.formal_option, t.informal_option):
            self.formality = "formal" if selector == t.formal_option else "informal"
            self.present -= {t.formality_menu, t.formal_option, t.informal_option}
            self._retranslate()

    def _on_typed(self, text: str) -> None:
        if not self._focused:
            return
        self.source_text += text
        self._retranslate()

    def _retranslate(self) -> None:
        key = (self.source_text, self.target_language, self.formality)
        translated = self.phrases.get(key)
        if translated is None:
            translated = f"[{self.target_language}] {self.source_text}"
        self.output_text = translated
        self.present.add(self.table.translation_busy)


class FakeSession:
    """
    Stand-in for BrowserSession handing out FakePages.

    Records page open/close times so tests can check concurrency bounds.
    """

    def __init__(self, page_factory=None):
        self._page_factory = page_factory or (lambda: FakePage())
        self.launch_count = 0
        self.shutdown_count = 0
        self.discard_count = 0
        self.pages: list[FakePage] = []
        self.open_pages = 0
        self.max_open_pages = 0
        self.intervals: list[list[float]] = []
        self._started = False

    @property
    def is_started(self) -> bool:
        return self._started

    async def acquire_browser(self):
        if not self._started:
            self._started = True
            self.launch_count += 1
        await asyncio.sleep(0)
        return self

    async def new_page(self):
        await self.acquire_browser()
        page = self._page_factory()
        interval = [time.monotonic(), None]
        self.intervals.append(interval)

        def on_close(_page, interval=interval):
            interval[1] = time.monotonic()
            self.open_pages -= 1

        page._on_close = on_close
        self.pages.append(page)
        self.open_pages += 1
        self.max_open_pages = max(self.max_open_pages, self.open_pages)
        return page

    async def shutdown(self):
        if not self._started:
            return
        self._started = False
        self.shutdown_count += 1

    def discard(self):
        self._started = False
        self.discard_count += 1


@pytest.fixture
def settings(tmp_path):
    """Settings with short timeouts, independent of the environment"""
    return TranslatorSettings(
        selector_timeout_ms=100,
        navigation_timeout_ms=100,
        translation_timeout_ms=100,
        screenshot_dir=tmp_path,
    )


@pytest.fixture
def fake_page():
    return FakePage()


@pytest.fixture
def fake_session():
    return FakeSession()
