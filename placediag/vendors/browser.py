"""Process-wide Playwright browser used to render JavaScript-heavy listing pages.

Playwright objects are bound to the event loop that created them, while the
HTTP layer calls in from arbitrary worker threads. The session therefore owns
one background thread running an asyncio loop; callers submit render jobs to
it and block on the result with a timeout. Every render gets its own browser
context, closed when the job ends or is cancelled, so no cookies, DOM or
network state leak between requests.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from placediag.core.config import Settings, get_settings
from placediag.core.errors import BrowserUnavailable, RenderTimeout
from placediag.vendors.naver_place import MOBILE_USER_AGENT

logger = logging.getLogger(__name__)

LAUNCH_TIMEOUT_SECONDS = 60
LAUNCH_RETRY_COOLDOWN_SECONDS = 30
SHUTDOWN_TIMEOUT_SECONDS = 15
EXPAND_CLICK_TIMEOUT_MS = 2000

# Runs inside the page; true once any marker shows up in the rendered body.
_READY_PREDICATE = """
(markers) => {
  const html = (document.body && document.body.innerHTML) || '';
  return markers.some((m) => html.includes(m));
}
"""


@dataclass(frozen=True)
class RenderRequest:
    url: str
    frame_selector: Optional[str] = None
    ready_markers: Sequence[str] = ()
    expand_selectors: Sequence[str] = ()
    text_selectors: Mapping[str, Sequence[str]] = field(default_factory=dict)


@dataclass
class RenderedPage:
    url: str
    markup: str = ""
    title: str = ""
    dom_text: Dict[str, str] = field(default_factory=dict)
    json_responses: List[Any] = field(default_factory=list)


class BrowserSession:
    """Owns the Playwright driver, one Chromium instance and the loop thread."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()
        self._lock = threading.Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._playwright = None
        self._browser = None
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._launch_future: Optional[concurrent.futures.Future] = None
        self._launch_deadline = 0.0
        self._failed_at: Optional[float] = None

    @property
    def started(self) -> bool:
        return self._browser is not None

    # ---------- lifecycle ----------

    def start(self, timeout: Optional[float] = None) -> None:
        """Launch the browser, waiting at most ``timeout`` seconds. Safe to call repeatedly.

        A caller whose ``timeout`` runs out first gets RenderTimeout while the
        launch carries on for later callers. A launch that fails or outlasts
        LAUNCH_TIMEOUT_SECONDS raises BrowserUnavailable, and so does every
        attempt within LAUNCH_RETRY_COOLDOWN_SECONDS of that failure.
        """
        with self._lock:
            if self.started:
                return
            if self._launch_future is None:
                self._begin_launch()
            future, launch_deadline = self._launch_future, self._launch_deadline

        launch_remaining = max(launch_deadline - time.monotonic(), 0.0)
        caller_bound = timeout is not None and timeout < launch_remaining
        try:
            future.result(timeout=max(timeout, 0.0) if caller_bound else launch_remaining)
        except concurrent.futures.TimeoutError as exc:
            if caller_bound:
                raise RenderTimeout(f"browser launch still running after {timeout}s") from exc
            raise self._fail_launch(future, f"launch exceeded {LAUNCH_TIMEOUT_SECONDS}s") from exc
        except Exception as exc:  # noqa: BLE001
            raise self._fail_launch(future, exc) from exc

        with self._lock:
            if self._launch_future is future:
                self._launch_future = None
                self._failed_at = None
                logger.info(
                    "Browser session started (headless=%s, max_contexts=%d)",
                    self.settings.browser_headless,
                    self.settings.max_render_contexts,
                )

    def close(self) -> None:
        with self._lock:
            if self._loop is None:
                return
            if self._launch_future is not None:
                self._launch_future.cancel()
                self._launch_future = None
            if self._browser is not None or self._playwright is not None:
                try:
                    self._submit(self._shutdown()).result(timeout=SHUTDOWN_TIMEOUT_SECONDS)
                except Exception as exc:  # noqa: BLE001
                    logger.warning("Browser shutdown did not complete cleanly: %s", exc)
            self._stop_loop()
            logger.info("Browser session closed")

    def __enter__(self) -> "BrowserSession":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _begin_launch(self) -> None:
        """Start the loop thread and submit the launch. Caller holds the lock."""
        if self._failed_at is not None:
            retry_in = self._failed_at + LAUNCH_RETRY_COOLDOWN_SECONDS - time.monotonic()
            if retry_in > 0:
                raise BrowserUnavailable(f"browser launch failed recently; next attempt in {retry_in:.0f}s")
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._loop.run_forever, name="browser-session", daemon=True
        )
        self._thread.start()
        self._launch_future = self._submit(self._launch())
        self._launch_deadline = time.monotonic() + LAUNCH_TIMEOUT_SECONDS

    def _fail_launch(self, future: concurrent.futures.Future, reason) -> BrowserUnavailable:
        with self._lock:
            if self._launch_future is future:
                future.cancel()
                self._launch_future = None
                self._failed_at = time.monotonic()
                logger.error("Browser launch failed: %s", reason)
                self._stop_loop()
        return BrowserUnavailable(f"browser could not be started: {reason}")

    def _submit(self, coro) -> concurrent.futures.Future:
        return asyncio.run_coroutine_threadsafe(coro, self._loop)

    def _stop_loop(self) -> None:
        loop, thread = self._loop, self._thread
        self._loop = None
        self._thread = None
        self._browser = None
        self._playwright = None
        if loop is not None:
            loop.call_soon_threadsafe(loop.stop)
        if thread is not None:
            thread.join(timeout=SHUTDOWN_TIMEOUT_SECONDS)
        if loop is not None and not loop.is_running():
            loop.close()

    async def _launch(self) -> None:
        self._semaphore = asyncio.Semaphore(self.settings.max_render_contexts)
        self._playwright = await async_playwright().start()
        try:
            browser = await self._playwright.chromium.launch(
                headless=self.settings.browser_headless,
                args=["--no-sandbox", "--disable-setuid-sandbox"],
            )
        except BaseException:
            await self._playwright.stop()
            self._playwright = None
            raise
        self._browser = browser

    async def _shutdown(self) -> None:
        if self._browser is not None:
            await self._browser.close()
        if self._playwright is not None:
            await self._playwright.stop()

    # ---------- rendering ----------

    def render(self, request: RenderRequest, timeout: Optional[float] = None) -> RenderedPage:
        """Render ``request.url`` in a fresh context, bounded by ``timeout`` seconds.

        The budget covers launching the browser when it is not running yet. On
        timeout the in-flight job is cancelled (its context is closed) and
        RenderTimeout is raised; nothing gathered so far is returned.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        if not self.started:
            self.start(timeout)
        remaining = None if deadline is None else max(deadline - time.monotonic(), 0.0)

        future = self._submit(self._render(request))
        try:
            return future.result(timeout=remaining)
        except concurrent.futures.TimeoutError as exc:
            future.cancel()
            raise RenderTimeout(f"render of {request.url} exceeded {timeout}s") from exc
        except concurrent.futures.CancelledError as exc:
            raise RenderTimeout(f"render of {request.url} was cancelled") from exc

    async def _render(self, request: RenderRequest) -> RenderedPage:
        async with self._semaphore:
            context = await self._browser.new_context(
                user_agent=MOBILE_USER_AGENT,
                locale="ko-KR",
                viewport={"width": 412, "height": 915},
            )
            pending: List[asyncio.Task] = []

            def on_response(response) -> None:
                if _is_json_response(response):
                    pending.append(asyncio.ensure_future(_read_json(response)))

            try:
                page = await context.new_page()
                page.on("response", on_response)
                await page.goto(
                    request.url, wait_until="load", timeout=self.settings.navigation_timeout_ms
                )

                target = await self._resolve_target(page, request.frame_selector)
                await self._wait_until_ready(target, request.ready_markers)
                await self._expand(target, request.expand_selectors)
                if self.settings.settle_ms:
                    await asyncio.sleep(self.settings.settle_ms / 1000)

                rendered = RenderedPage(url=request.url)
                rendered.markup = await target.content()
                rendered.title = await _safe_title(target)
                for name, selectors in request.text_selectors.items():
                    rendered.dom_text[name] = await first_text(target, selectors)

                bodies = await asyncio.gather(*pending, return_exceptions=True)
                rendered.json_responses = [
                    body for body in bodies if body is not None and not isinstance(body, BaseException)
                ]
                logger.info(
                    "Rendered %s (markup=%d chars, json_responses=%d)",
                    request.url,
                    len(rendered.markup),
                    len(rendered.json_responses),
                )
                return rendered
            finally:
                for task in pending:
                    task.cancel()
                await context.close()

    async def _resolve_target(self, page, frame_selector: Optional[str]):
        if not frame_selector:
            return page
        try:
            handle = await page.wait_for_selector(frame_selector, timeout=self.settings.frame_timeout_ms)
            frame = await handle.content_frame() if handle else None
        except PlaywrightTimeoutError:
            logger.warning("Frame %s did not appear; reading top-level page", frame_selector)
            return page
        if frame is None:
            logger.warning("Frame %s has no content; reading top-level page", frame_selector)
            return page
        return frame

    async def _wait_until_ready(self, target, markers: Sequence[str]) -> None:
        if not markers:
            return
        try:
            await target.wait_for_function(
                _READY_PREDICATE, arg=list(markers), timeout=self.settings.ready_timeout_ms
            )
        except PlaywrightTimeoutError:
            logger.info("Readiness markers not seen within %dms; continuing", self.settings.ready_timeout_ms)

    async def _expand(self, target, selectors: Sequence[str]) -> None:
        """Click "more"/tab controls that lazily reveal description text."""
        for selector in selectors:
            try:
                locator = target.locator(selector).first
                if await locator.count() == 0:
                    continue
                await locator.click(timeout=EXPAND_CLICK_TIMEOUT_MS)
            except PlaywrightError as exc:
                logger.debug("Expand control %s not clickable: %s", selector, exc)


async def first_text(target, selectors: Sequence[str]) -> str:
    """Text of the first selector that yields a non-empty node, in priority order."""
    for selector in selectors:
        try:
            element = await target.query_selector(selector)
            if element is None:
                continue
            text = (await element.inner_text()).strip()
        except PlaywrightError:
            continue
        if text:
            return text
    return ""


def _is_json_response(response) -> bool:
    if response.request.resource_type not in ("xhr", "fetch"):
        return False
    content_type = (response.headers or {}).get("content-type", "")
    return "json" in content_type.lower()


async def _read_json(response) -> Optional[Any]:
    try:
        return await response.json()
    except (PlaywrightError, ValueError):
        return None


async def _safe_title(target) -> str:
    try:
        return (await target.title()).strip()
    except PlaywrightError:
        return ""


_SESSION: Optional[BrowserSession] = None
_SESSION_LOCK = threading.Lock()


def get_browser_session() -> BrowserSession:
    """The process-wide session, created on first use (not started)."""
    global _SESSION
    with _SESSION_LOCK:
        if _SESSION is None:
            _SESSION = BrowserSession()
        return _SESSION


def close_browser_session() -> None:
    global _SESSION
    with _SESSION_LOCK:
        session, _SESSION = _SESSION, None
    if session is not None:
        session.close()
