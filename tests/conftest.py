"""
Shared fixtures: an in-memory page driver so sessions, the analyzer and
batches can be exercised without launching a browser.
"""

import pytest

from renderdiff.document import SoupDocument
from renderdiff.driver import NavigationResponse, PageDriver
from renderdiff.errors import EngineFailure


class FakeDriver(PageDriver):
    """
    Scripted PageDriver.

    `navigate_errors` is consumed one entry per navigation attempt; None means
    that attempt succeeds. The live document is always the settled markup.
    """

    def __init__(
        self,
        engine_id="chromium",
        raw_markup="<html><body>Hello</body></html>",
        settled_markup=None,
        status_code=200,
        navigate_errors=(),
        launch_error=None,
        content_error=None,
        network_idle=True,
        screenshot=b"\x89PNG fake",
        screenshot_error=None,
        performance=None,
        frameworks=(),
    ):
        self.engine_id = engine_id
        self.raw_markup = raw_markup
        self.settled_markup = raw_markup if settled_markup is None else settled_markup
        self.status_code = status_code
        self.navigate_errors = list(navigate_errors)
        self.launch_error = launch_error
        self.content_error = content_error
        self.network_idle = network_idle
        self._screenshot = screenshot
        self.screenshot_error = screenshot_error
        self.performance = performance or {"total_load_time": 1200}
        self.frameworks = list(frameworks)

        self.profile = None
        self.navigations = []
        self.pointer_moves = []
        self.pauses = []
        self.close_count = 0

    async def launch(self, profile):
        self.profile = profile
        if self.launch_error is not None:
            raise self.launch_error

    async def navigate(self, url, timeout_ms, degraded=False):
        self.navigations.append(degraded)
        if self.navigate_errors:
            error = self.navigate_errors.pop(0)
            if error is not None:
                raise error
        return NavigationResponse(url=url, status_code=self.status_code, raw_markup=self.raw_markup)

    async def capture_document(self, selectors):
        return SoupDocument(self.settled_markup)

    async def wait_for_network_idle(self, timeout_ms):
        return self.network_idle

    async def pause(self, delay_ms):
        self.pauses.append(delay_ms)

    async def move_pointer(self, x, y):
        self.pointer_moves.append((x, y))

    async def content(self):
        if self.content_error is not None:
            raise self.content_error
        return self.settled_markup

    async def screenshot(self, timeout_ms):
        if self.screenshot_error is not None:
            raise self.screenshot_error
        return self._screenshot

    async def performance_metrics(self):
        return dict(self.performance)

    async def runtime_frameworks(self):
        return list(self.frameworks)

    async def close(self):
        self.close_count += 1


@pytest.fixture
def make_driver():
    """Factory fixture building FakeDriver instances."""

    def _make(**kwargs):
        return FakeDriver(**kwargs)

    return _make


@pytest.fixture
def failing_launch():
    return EngineFailure("Browser initialization error: executable not found")


SHOP_SHELL = "<html><head></head><body></body></html>"

SHOP_RENDERED = """
<html><head></head><body>
<nav>
  <a href="/">Home</a>
  <a href="/shop">Shop All</a>
  <a href="/about">About Us</a>
  <a href="/help">Help Center</a>
  <a href="/login">Sign In</a>
</nav>
<div class="product"><span class="price">$19.99</span></div>
<div class="product"><span class="price">$249.00</span></div>
</body></html>
"""


@pytest.fixture
def shop_pages():
    """Empty shell and its rendered version: 5 navigation links, 2 prices."""
    return SHOP_SHELL, SHOP_RENDERED
