"""
Integration tests for the browser driver and raw markup fetcher.

Tests actual HTTP requests and browser rendering with real URLs.
"""

import pytest

from renderdiff.config import DEFAULT_USER_AGENT, AnalyzerConfig
from renderdiff.driver import PlaywrightDriver, RawMarkupFetcher
from renderdiff.errors import NavigationError
from renderdiff.evasion import build_profile
from renderdiff.job_runner import Analyzer
from renderdiff.models import AnalysisMode, RunStatus, Target

pytestmark = pytest.mark.integration


@pytest.mark.asyncio
async def test_raw_markup_fetcher_success():
    """Test successful fetch with RawMarkupFetcher."""
    fetcher = RawMarkupFetcher(user_agent=DEFAULT_USER_AGENT)

    result, error = await fetcher.fetch("https://httpbin.org/html")

    assert error is None
    assert result is not None
    assert result.status_code == 200
    assert result.url == "https://httpbin.org/html"
    assert "<html>" in result.raw_markup.lower()


@pytest.mark.asyncio
async def test_raw_markup_fetcher_redirects():
    """Test that RawMarkupFetcher follows redirects."""
    fetcher = RawMarkupFetcher(user_agent=DEFAULT_USER_AGENT)

    # httpbin.org/redirect/1 redirects to /get
    result, error = await fetcher.fetch("https://httpbin.org/redirect/1")

    assert error is None
    assert "/get" in result.url


@pytest.mark.asyncio
async def test_raw_markup_fetcher_invalid_host():
    fetcher = RawMarkupFetcher(user_agent=DEFAULT_USER_AGENT)

    result, error = await fetcher.fetch("https://this-domain-does-not-exist-12345.com")

    assert result is None
    assert error is not None


@pytest.mark.asyncio
async def test_playwright_driver_navigate_and_capture():
    """Test navigation, capture and extraction with a real Chromium."""
    driver = PlaywrightDriver("chromium", raw_fetcher=RawMarkupFetcher(user_agent=DEFAULT_USER_AGENT))
    try:
        await driver.launch(build_profile(AnalysisMode.QUICK, DEFAULT_USER_AGENT))
        response = await driver.navigate("https://httpbin.org/html", timeout_ms=30000)

        assert response.status_code == 200
        assert "Herman Melville" in response.raw_markup

        document = await driver.capture_document(["h1"])
        assert document.select("h1")[0].text == "Herman Melville - Moby-Dick"
        assert document.body_is_empty is False

        assert await driver.wait_for_network_idle(15000) is True
        assert "Moby-Dick" in await driver.content()
        assert (await driver.screenshot(10000))[:4] == b"\x89PNG"
    finally:
        await driver.close()


@pytest.mark.asyncio
async def test_playwright_driver_unresolvable_host():
    driver = PlaywrightDriver("chromium")
    try:
        await driver.launch(build_profile(AnalysisMode.QUICK, DEFAULT_USER_AGENT))
        with pytest.raises(NavigationError):
            await driver.navigate("https://this-domain-does-not-exist-12345.com", timeout_ms=15000)
    finally:
        await driver.close()


@pytest.mark.asyncio
async def test_analyzer_static_page():
    """Test that a static page needs no script execution."""
    analyzer = Analyzer(AnalyzerConfig(mode=AnalysisMode.QUICK, post_settle_delay_ms=500))

    report = await analyzer.analyze_target(Target("https://httpbin.org/html", AnalysisMode.QUICK))

    assert report.runs["chromium"].status == RunStatus.SUCCESS
    assert report.score.value >= 80
    assert report.requires_js_rendering is False
