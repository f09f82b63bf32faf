# deapl/services/translator.py
"""
Public entry point: queue translation requests against the shared browser.

Async callers use Translator.translate(); synchronous callers use
translate_sync(), which runs the async API on a dedicated event-loop thread.
A module-level default Translator backs deapl.translate() / deapl.kill().
"""

import asyncio
import concurrent.futures
import dataclasses
import functools
import logging
import threading
from typing import Any, Mapping, Optional, Union

from deapl.config.settings import TranslatorSettings, load_settings
from deapl.models.types import (
    TranslateOptions,
    TranslationRequest,
    TranslationResult,
    normalize_option_keys,
)
from deapl.services.browser_session import BrowserSession
from deapl.services.page_driver import PageDriver
from deapl.services.selectors import SelectorTable, get_selector_table
from deapl.services.task_queue import TaskQueue

# Module logger
logger = logging.getLogger(__name__)

OptionsLike = Union[TranslateOptions, Mapping[str, Any], None]


class LoopThreadExecutor:
    """
    Runs coroutines on one dedicated event-loop thread.

    Playwright objects belong to the loop that created them, so every sync
    call for a Translator must go through the same loop.
    """

    def __init__(self, name: str = "deapl-loop"):
        self._name = name
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._shutdown_flag = False
        self._thread_lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the loop thread.

        Raises:
            RuntimeError: If the executor has been shutdown
        """
        with self._thread_lock:
            if self._shutdown_flag:
                raise RuntimeError("Executor has been shutdown and cannot be restarted")
            if self.is_running:
                return
            self._loop = asyncio.new_event_loop()
            ready = threading.Event()
            self._thread = threading.Thread(
                target=self._worker, args=(self._loop, ready), name=self._name, daemon=True
            )
            self._thread.start()
            ready.wait()

    @staticmethod
    def _worker(loop: asyncio.AbstractEventLoop, ready: threading.Event) -> None:
        asyncio.set_event_loop(loop)
        loop.call_soon(ready.set)
        try:
            loop.run_forever()
        finally:
            loop.close()

    def execute(self, func, *args, timeout: Optional[float] = 300):
        """
        Run an async function on the loop thread and wait for its result.

        Args:
            func: Coroutine function to run
            *args: Arguments to pass to the function
            timeout: Maximum seconds to wait (None = no limit)

        Raises:
            RuntimeError: If the executor is shutting down
            TimeoutError: If the call does not finish in time
            Exception raised by the coroutine
        """
        if self._shutdown_flag:
            raise RuntimeError("Executor is shutting down")
        self.start()

        future = asyncio.run_coroutine_threadsafe(func(*args), self._loop)
        try:
            return future.result(timeout=timeout)
        except concurrent.futures.TimeoutError:
            future.cancel()
            raise TimeoutError(f"Operation timed out after {timeout} seconds") from None

    def shutdown(self) -> None:
        """Stop the loop thread; later execute() calls raise RuntimeError."""
        with self._thread_lock:
            self._shutdown_flag = True
            loop, thread = self._loop, self._thread
        if loop is not None and thread is not None and thread.is_alive():
            loop.call_soon_threadsafe(loop.stop)
            thread.join(timeout=5)
            if thread.is_alive():
                logger.debug("Loop thread still running, will be terminated on exit")


class Translator:
    """
    Translates text through the web translator UI.

    Requests are admitted by a TaskQueue (default concurrency 1) and each
    runs a PageDriver on its own page of the shared BrowserSession.
    """

    # Default wait for translate_sync()/kill_sync()
    SYNC_TIMEOUT_SECONDS = 300

    def __init__(
        self,
        settings: Optional[TranslatorSettings] = None,
        session: Optional[BrowserSession] = None,
        selectors: Optional[SelectorTable] = None,
        settle_seconds: Optional[float] = None,
    ):
        self.settings = settings or load_settings()
        self.selectors = selectors or get_selector_table(self.settings.selector_version)
        self._session = session or BrowserSession(self.settings)
        self._queue = TaskQueue(self.settings.concurrency, self.settings.max_queue_size)
        self._settle_seconds = settle_seconds
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._executor: Optional[LoopThreadExecutor] = None
        self._executor_lock = threading.Lock()

    @property
    def session(self) -> BrowserSession:
        return self._session

    @property
    def queue(self) -> TaskQueue:
        return self._queue

    @property
    def concurrency(self) -> int:
        return self._queue.concurrency

    def set_concurrency(self, concurrency: int) -> None:
        """Set the maximum number of simultaneous page sessions (>= 1)."""
        self._queue.set_concurrency(concurrency)

    def _bind_loop(self) -> None:
        """Tie this translator to the running loop; rebind if the old loop closed."""
        loop = asyncio.get_running_loop()
        if self._loop is loop:
            return
        if self._loop is not None and not self._loop.is_closed():
            raise RuntimeError(
                "Translator is bound to another running event loop; "
                "use translate_sync() or a separate Translator"
            )
        if self._loop is not None:
            logger.info("Previous event loop closed; starting a fresh browser session")
            self._forget_closed_loop()
        self._loop = loop

    def _forget_closed_loop(self) -> None:
        # Browser handles and queue waiters died with the old loop
        self._session.discard()
        self._queue = TaskQueue(self._queue.concurrency, self.settings.max_queue_size)
        self._loop = None

    @staticmethod
    def _build_request(text: str, options: OptionsLike, overrides: dict) -> TranslationRequest:
        overrides = normalize_option_keys(overrides)
        if isinstance(options, TranslateOptions):
            if overrides:
                options = dataclasses.replace(options, **overrides)
        else:
            data = dict(options or {})
            data.update(overrides)
            options = TranslateOptions.from_mapping(data)
        return TranslationRequest.from_options(text, options)

    async def translate_detailed(
        self, text: str, options: OptionsLike = None, **kwargs
    ) -> TranslationResult:
        """
        Translate text and return the full result.

        Args:
            text: Text to translate
            options: TranslateOptions or a mapping (snake_case or camelCase keys)
            **kwargs: Option overrides (target_language=..., formality=...)

        Raises:
            InvalidRequestError: Invalid languages/formality/delay
            DeaplError subclasses from the browser pipeline
        """
        request = self._build_request(text, options, kwargs)
        self._bind_loop()

        if not request.text.strip():
            # Nothing to type; the page would never start a translation
            return TranslationResult(text="", request=request)

        logger.debug(
            "Submitting translation: %d chars, %s -> %s, formality=%s",
            len(request.text),
            request.source_language or "auto",
            request.target_language,
            request.formality.value if request.formality else None,
        )
        return await self._queue.submit(functools.partial(self._run, request))

    async def translate(self, text: str, options: OptionsLike = None, **kwargs) -> str:
        """Translate text and return the translated string."""
        result = await self.translate_detailed(text, options, **kwargs)
        return result.text

    async def _run(self, request: TranslationRequest) -> TranslationResult:
        page = await self._session.new_page()
        driver = PageDriver(page, self.selectors, self.settings, settle_seconds=self._settle_seconds)
        return await driver.run(request)

    async def kill(self) -> None:
        """
        Wait for queued requests to finish, then close the shared browser.

        A later translate() launches a new browser.
        """
        if self._loop is not None and self._loop.is_closed():
            self._forget_closed_loop()
            return
        await self._queue.join()
        await self._session.shutdown()

    # =========================================================================
    # Synchronous API
    # =========================================================================

    def _get_executor(self) -> LoopThreadExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = LoopThreadExecutor()
            return self._executor

    def translate_sync(
        self,
        text: str,
        options: OptionsLike = None,
        timeout: Optional[float] = None,
        **kwargs,
    ) -> str:
        """Blocking translate() for non-async callers."""
        call = functools.partial(self.translate, text, options, **kwargs)
        return self._get_executor().execute(
            call, timeout=self.SYNC_TIMEOUT_SECONDS if timeout is None else timeout
        )

    def kill_sync(self, timeout: Optional[float] = None) -> None:
        """
        Blocking kill(); also stops the loop thread used by translate_sync().

        After async-only use (e.g. asyncio.run(translate(...))) the owning loop
        is already closed, so the stale browser handles are dropped instead.
        A Translator still bound to a running loop must use kill() there.
        """
        with self._executor_lock:
            executor, self._executor = self._executor, None
        if executor is None:
            if self._loop is not None and self._loop.is_closed():
                self._forget_closed_loop()
            return
        try:
            executor.execute(
                self.kill, timeout=self.SYNC_TIMEOUT_SECONDS if timeout is None else timeout
            )
        finally:
            executor.shutdown()
        # The loop thread is gone; the next call binds to a new loop
        self._loop = None


# Module-level default translator
_default_translator: Optional[Translator] = None
_default_translator_lock = threading.Lock()


def get_translator() -> Translator:
    """Return the process-wide default Translator, creating it on first use."""
    global _default_translator
    with _default_translator_lock:
        if _default_translator is None:
            _default_translator = Translator()
        return _default_translator


async def translate(text: str, options: OptionsLike = None, **kwargs) -> str:
    """Translate text with the default Translator."""
    return await get_translator().translate(text, options, **kwargs)


async def kill() -> None:
    """Close the default Translator's browser (no-op if never used)."""
    if _default_translator is None:
        return
    await _default_translator.kill()


def set_concurrency(concurrency: int) -> None:
    """Set the default Translator's concurrency limit."""
    get_translator().set_concurrency(concurrency)


def translate_sync(text: str, options: OptionsLike = None, timeout: Optional[float] = None, **kwargs) -> str:
    """Blocking translate() with the default Translator."""
    return get_translator().translate_sync(text, options, timeout=timeout, **kwargs)


def kill_sync(timeout: Optional[float] = None) -> None:
    """Blocking kill() for the default Translator."""
    if _default_translator is None:
        return
    _default_translator.kill_sync(timeout=timeout)
