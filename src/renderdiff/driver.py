"""
Page driver capability and its Playwright implementation.

The session only depends on PageDriver; PlaywrightDriver is the default
collaborator. Raw response bodies that the browser cannot hand back are
fetched with httpx, which is what a non-JS client sees anyway.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from .document import DocumentQuery, ElementView, SnapshotDocument
from .errors import EngineFailure, NavigationError, NavigationTimeoutError, TransportProtocolError
from .evasion import LaunchProfile
from .logging_utils import log_event

logger = logging.getLogger(__name__)

ENGINES = ("chromium", "firefox", "webkit")

# Error markers that mean protocol negotiation failed rather than the page
TRANSPORT_ERROR_MARKERS = (
    "ERR_HTTP2_PROTOCOL_ERROR",
    "ERR_SPDY_PROTOCOL_ERROR",
    "ERR_QUIC_PROTOCOL_ERROR",
    "ERR_HTTP_1_1_REQUIRED",
    "NS_ERROR_NET_INTERRUPT",
)

CAPTURE_SCRIPT = """
(selectors) => {
  const view = (el, matched) => {
    const attrs = {};
    for (const attr of el.attributes) attrs[attr.name] = attr.value;
    let nested = false;
    for (let parent = el.parentElement; parent && !nested; parent = parent.parentElement) {
      nested = matched.has(parent);
    }
    return { tag: el.tagName.toLowerCase(), text: (el.innerText || el.textContent || '').trim(), attrs, nested };
  };
  const selections = {};
  for (const selector of selectors) {
    try {
      const elements = Array.from(document.querySelectorAll(selector));
      const matched = new Set(elements);
      selections[selector] = elements.map((el) => view(el, matched));
    } catch (e) {
      selections[selector] = [];
    }
  }
  const body = document.body;
  return {
    title: document.title || '',
    bodyText: body ? (body.innerText || '') : '',
    bodyIsEmpty: !body || (body.children.length === 0 && !(body.innerText || '').trim()),
    selections,
  };
}
"""

METRICS_SCRIPT = """
() => {
  const navigation = performance.getEntriesByType('navigation')[0];
  const paint = performance.getEntriesByType('paint');
  const paintTime = (name) => (paint.find((p) => p.name === name) || {}).startTime || 0;
  return {
    dom_content_loaded: navigation ? navigation.domContentLoadedEventEnd - navigation.domContentLoadedEventStart : 0,
    load_complete: navigation ? navigation.loadEventEnd - navigation.loadEventStart : 0,
    first_paint: paintTime('first-paint'),
    first_contentful_paint: paintTime('first-contentful-paint'),
    total_load_time: navigation ? navigation.loadEventEnd - navigation.startTime : 0,
  };
}
"""

RUNTIME_FRAMEWORKS_SCRIPT = """
() => {
  const detected = [];
  if (window.React && (window.React.version || window.React.Component)) detected.push('React');
  if (window.Vue && window.Vue.version) detected.push('Vue.js');
  if (window.angular && window.angular.version) detected.push('Angular');
  if (window.jQuery && window.jQuery.fn && window.jQuery.fn.jquery) detected.push('jQuery');
  if (window.__NEXT_DATA__) detected.push('Next.js');
  if (window.__NUXT__) detected.push('Nuxt.js');
  return detected;
}
"""


@dataclass(frozen=True)
class NavigationResponse:
    """Raw response of the primary document, captured before scripts run."""

    url: str
    status_code: int | None
    raw_markup: str


class PageDriver(ABC):
    """
    Abstract interface over one browser engine instance.

    Implementations raise NavigationError subclasses from navigate and
    EngineFailure for anything the session should treat as fatal.
    """

    engine_id: str

    @abstractmethod
    async def launch(self, profile: LaunchProfile) -> None:
        pass

    @abstractmethod
    async def navigate(self, url: str, timeout_ms: int, degraded: bool = False) -> NavigationResponse:
        """
        Navigate to a URL and return the raw response body.

        Args:
            url: Target URL
            timeout_ms: Navigation timeout in milliseconds
            degraded: Use the older transport (HTTP/1.1) for this attempt

        Raises:
            TransportProtocolError: Protocol negotiation failed
            NavigationTimeoutError: Navigation timed out
            NavigationError: Any other navigation failure
        """
        pass

    @abstractmethod
    async def capture_document(self, selectors: list[str]) -> DocumentQuery:
        pass

    @abstractmethod
    async def wait_for_network_idle(self, timeout_ms: int) -> bool:
        """Return False if the network did not go idle within the timeout."""
        pass

    @abstractmethod
    async def pause(self, delay_ms: float) -> None:
        pass

    @abstractmethod
    async def move_pointer(self, x: float, y: float) -> None:
        pass

    @abstractmethod
    async def content(self) -> str:
        pass

    @abstractmethod
    async def screenshot(self, timeout_ms: int) -> bytes:
        pass

    @abstractmethod
    async def performance_metrics(self) -> dict[str, Any]:
        pass

    @abstractmethod
    async def runtime_frameworks(self) -> list[str]:
        pass

    @abstractmethod
    async def close(self) -> None:
        pass


class RawMarkupFetcher:
    """
    Fetches URLs without JavaScript execution.

    Uses httpx for HTTP requests. Follows redirects and returns the body as
    non-JS crawlers and AI tools see it.
    """

    def __init__(self, user_agent: str, follow_redirects: bool = True):
        """
        Initialize the raw markup fetcher.

        Args:
            user_agent: User-Agent header
            follow_redirects: Whether to follow HTTP redirects
        """
        self.user_agent = user_agent
        self.follow_redirects = follow_redirects

    async def fetch(self, url: str, timeout: int = 30000) -> tuple[NavigationResponse | None, str | None]:
        """
        Fetch URL without JavaScript execution.

        Args:
            url: The URL to fetch
            timeout: Timeout in milliseconds

        Returns:
            Tuple of (NavigationResponse, None) on success, or (None, error_message) on failure
        """
        try:
            async with httpx.AsyncClient(
                follow_redirects=self.follow_redirects,
                timeout=timeout / 1000.0,
                headers={"User-Agent": self.user_agent},
            ) as client:
                response = await client.get(url)
                return (
                    NavigationResponse(
                        url=str(response.url),
                        status_code=response.status_code,
                        raw_markup=response.text,
                    ),
                    None,
                )

        except httpx.TimeoutException:
            return None, f"Timeout after {timeout}ms"
        except httpx.HTTPError as e:
            return None, f"HTTP error: {str(e)}"


class PlaywrightDriver(PageDriver):
    """
    Playwright implementation of the page driver.

    Owns one browser and one context at a time; close() releases both.
    """

    def __init__(self, engine_id: str, headless: bool = True, raw_fetcher: RawMarkupFetcher | None = None):
        """
        Initialize the driver.

        Args:
            engine_id: 'chromium', 'firefox' or 'webkit'
            headless: Whether to run the browser headless
            raw_fetcher: Fallback for reading raw bodies (optional)
        """
        if engine_id not in ENGINES:
            raise ValueError(f"Unsupported engine: {engine_id}")

        self.engine_id = engine_id
        self.headless = headless
        self.raw_fetcher = raw_fetcher
        self._playwright = None
        self._browser = None
        self._context = None
        self._page = None
        self._profile: LaunchProfile | None = None

    async def launch(self, profile: LaunchProfile) -> None:
        self._profile = profile
        try:
            self._playwright = await async_playwright().start()
            await self._open(profile)
        except PlaywrightError as e:
            raise EngineFailure(f"Browser initialization error: {str(e)}") from e

    async def _open(self, profile: LaunchProfile) -> None:
        browser_type = getattr(self._playwright, self.engine_id)
        launch_options: dict[str, Any] = {"headless": self.headless}
        if self.engine_id == "chromium":
            launch_options["args"] = list(profile.launch_args)
        elif self.engine_id == "firefox" and profile.firefox_user_prefs:
            launch_options["firefox_user_prefs"] = dict(profile.firefox_user_prefs)
        self._browser = await browser_type.launch(**launch_options)
        self._context = await self._browser.new_context(**profile.context_options)
        if profile.init_script:
            await self._context.add_init_script(profile.init_script)
        self._page = await self._context.new_page()

    async def _reopen_degraded(self) -> None:
        await self._close_browser()
        await self._open(self._profile.degraded())

    async def navigate(self, url: str, timeout_ms: int, degraded: bool = False) -> NavigationResponse:
        try:
            if degraded:
                await self._reopen_degraded()
            response = await self._page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeoutError(f"Navigation timeout after {timeout_ms}ms") from e
        except PlaywrightError as e:
            message = str(e)
            if any(marker in message for marker in TRANSPORT_ERROR_MARKERS):
                raise TransportProtocolError(message) from e
            raise NavigationError(f"Navigation error: {message}") from e

        if response is None:
            raise NavigationError("No response received")

        try:
            raw_markup = await response.text()
        except PlaywrightError as e:
            # Bodies of redirected navigations are not retained by the browser
            raw_markup = await self._fetch_raw(url, timeout_ms, str(e))

        return NavigationResponse(url=self._page.url, status_code=response.status, raw_markup=raw_markup)

    async def _fetch_raw(self, url: str, timeout_ms: int, reason: str) -> str:
        if self.raw_fetcher is None:
            raise NavigationError(f"Raw response body unavailable: {reason}")

        log_event(logger, logging.INFO, "raw_body_refetch", engine=self.engine_id, url=url, reason=reason)
        result, error = await self.raw_fetcher.fetch(url, timeout=timeout_ms)
        if result is None:
            raise NavigationError(f"Raw response body unavailable: {error}")
        return result.raw_markup

    async def capture_document(self, selectors: list[str]) -> DocumentQuery:
        data = await self._page.evaluate(CAPTURE_SCRIPT, selectors)
        selections = {
            selector: [
                ElementView(
                    tag=item["tag"],
                    text=item["text"],
                    attrs=item.get("attrs") or {},
                    nested=bool(item.get("nested")),
                )
                for item in items
            ]
            for selector, items in (data.get("selections") or {}).items()
        }
        return SnapshotDocument(
            title=data.get("title", ""),
            body_text=data.get("bodyText", ""),
            body_is_empty=bool(data.get("bodyIsEmpty")),
            selections=selections,
        )

    async def wait_for_network_idle(self, timeout_ms: int) -> bool:
        try:
            await self._page.wait_for_load_state("networkidle", timeout=timeout_ms)
            return True
        except PlaywrightTimeoutError:
            return False

    async def pause(self, delay_ms: float) -> None:
        await asyncio.sleep(delay_ms / 1000.0)

    async def move_pointer(self, x: float, y: float) -> None:
        await self._page.mouse.move(x, y)

    async def content(self) -> str:
        return await self._page.content()

    async def screenshot(self, timeout_ms: int) -> bytes:
        return await self._page.screenshot(full_page=True, timeout=timeout_ms)

    async def performance_metrics(self) -> dict[str, Any]:
        return await self._page.evaluate(METRICS_SCRIPT)

    async def runtime_frameworks(self) -> list[str]:
        return list(await self._page.evaluate(RUNTIME_FRAMEWORKS_SCRIPT))

    async def _close_browser(self) -> None:
        if self._context is not None:
            await self._context.close()
            self._context = None
            self._page = None
        if self._browser is not None:
            await self._browser.close()
            self._browser = None

    async def close(self) -> None:
        try:
            await self._close_browser()
        finally:
            if self._playwright is not None:
                await self._playwright.stop()
                self._playwright = None
