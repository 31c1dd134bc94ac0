"""
Page driver session: resilient navigate/settle/extract state machine around
one browser engine instance.
"""

import logging
import random
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .config import AnalyzerConfig
from .document import DocumentQuery
from .driver import PageDriver
from .errors import (
    BlockedError,
    EngineFailure,
    NavigationError,
    TransportProtocolError,
)
from .evasion import LaunchProfile, build_profile
from .logging_utils import log_event
from .models import RunStatus, Target

logger = logging.getLogger(__name__)

# Responses that mean the page exists but refuses access
RESTRICTED_STATUS_CODES = (401, 403, 429)


class SessionState(str, Enum):
    LAUNCH = "launch"
    NAVIGATE_PRIMARY = "navigate_primary"
    NAVIGATE_FALLBACK = "navigate_fallback"
    DETECT_BLOCKING = "detect_blocking"
    SETTLE = "settle"
    EXTRACT = "extract"
    CLOSE = "close"
    FAILED = "failed"
    BLOCKED = "blocked"
    PROTECTED = "protected"
    DONE = "done"


TERMINAL_STATUS = {
    SessionState.DONE: RunStatus.SUCCESS,
    SessionState.FAILED: RunStatus.FAILED,
    SessionState.BLOCKED: RunStatus.BLOCKED,
    SessionState.PROTECTED: RunStatus.PROTECTED,
}


@dataclass
class SessionOutcome:
    """
    What one session produced.

    Only `success` outcomes carry markup and a settled document.
    """

    engine_id: str
    status: RunStatus
    raw_markup: str = ""
    settled_markup: str = ""
    settled_document: DocumentQuery | None = None
    screenshot: bytes | None = None
    performance: dict[str, Any] = field(default_factory=dict)
    runtime_frameworks: list[str] = field(default_factory=list)
    status_code: int | None = None
    error: str | None = None
    evasion_used: str = "standard"


def _mentions(text: str, indicator: str) -> bool:
    # Whole words only: "robot" must not match "Robotics"
    return re.search(rf"(?<![a-z0-9]){re.escape(indicator)}(?![a-z0-9])", text) is not None


def detect_blocking(document: DocumentQuery, indicators: tuple[str, ...]) -> str | None:
    """
    Check a document for automation-detection indicators.

    Args:
        document: Document available right after navigation
        indicators: Lower-case phrases that signal blocking

    Returns:
        The matched indicator (or 'empty body'), None when not blocked
    """
    if document.body_is_empty:
        return "empty body"

    title = document.title.lower()
    body_text = document.body_text.lower()
    for indicator in indicators:
        if _mentions(title, indicator) or _mentions(body_text, indicator):
            return indicator
    return None


class PageDriverSession:
    """
    Drives one engine through launch, navigation, blocking detection,
    settling and extraction.

    Every visited state is appended to `history`. The driver is closed exactly
    once, whatever path the session takes.
    """

    def __init__(
        self,
        driver: PageDriver,
        target: Target,
        config: AnalyzerConfig,
        selectors: list[str],
        rng: random.Random | None = None,
    ):
        """
        Initialize the session.

        Args:
            driver: Page driver for one engine
            target: URL and mode being analyzed
            config: Analyzer configuration
            selectors: Selectors the settled document snapshot must answer
            rng: Random source for stealth behaviour (optional)
        """
        self.driver = driver
        self.target = target
        self.config = config
        self.selectors = selectors
        self.rng = rng or random.Random()
        self.profile: LaunchProfile = build_profile(target.mode, config.user_agent)
        self.history: list[SessionState] = []

        self._error: str | None = None
        self._raw_markup = ""
        self._status_code: int | None = None
        self._outcome: SessionOutcome | None = None

        self._handlers = {
            SessionState.LAUNCH: self._launch,
            SessionState.NAVIGATE_PRIMARY: self._navigate_primary,
            SessionState.NAVIGATE_FALLBACK: self._navigate_fallback,
            SessionState.DETECT_BLOCKING: self._detect_blocking,
            SessionState.SETTLE: self._settle,
            SessionState.EXTRACT: self._extract,
        }

    @property
    def fallback_attempts(self) -> int:
        return self.history.count(SessionState.NAVIGATE_FALLBACK)

    async def run(self) -> SessionOutcome:
        """
        Run the state machine to completion.

        Returns:
            SessionOutcome; failures are recorded on it, not raised
        """
        state = SessionState.LAUNCH
        try:
            while state not in TERMINAL_STATUS:
                self.history.append(state)
                try:
                    state = await self._handlers[state]()
                except Exception as e:
                    self._record(EngineFailure(f"{state.value}: {e}"))
                    state = SessionState.FAILED
            self.history.append(state)
        finally:
            self.history.append(SessionState.CLOSE)
            await self._close()

        if state == SessionState.DONE and self._outcome is not None:
            return self._outcome

        log_event(
            logger,
            logging.WARNING,
            "session_ended",
            engine=self.driver.engine_id,
            url=self.target.url,
            status=TERMINAL_STATUS[state].value,
            error=self._error,
        )
        return SessionOutcome(
            engine_id=self.driver.engine_id,
            status=TERMINAL_STATUS[state],
            status_code=self._status_code,
            error=self._error,
            evasion_used=self._evasion_label,
        )

    def _record(self, error: Exception) -> None:
        self._error = f"{type(error).__name__}: {error}"

    @property
    def _evasion_label(self) -> str:
        return "stealth" if self.profile.stealth else "standard"

    async def _launch(self) -> SessionState:
        try:
            await self.driver.launch(self.profile)
        except EngineFailure as e:
            self._record(e)
            return SessionState.FAILED
        log_event(
            logger,
            logging.DEBUG,
            "browser_launched",
            engine=self.driver.engine_id,
            profile=self.profile.name,
        )
        return SessionState.NAVIGATE_PRIMARY

    async def _navigate_primary(self) -> SessionState:
        try:
            response = await self.driver.navigate(
                self.target.url, self.config.navigation_timeout_ms, degraded=False
            )
        except TransportProtocolError as e:
            log_event(
                logger,
                logging.INFO,
                "transport_fallback",
                engine=self.driver.engine_id,
                url=self.target.url,
                error=str(e),
            )
            return SessionState.NAVIGATE_FALLBACK
        except NavigationError as e:
            self._record(e)
            return SessionState.FAILED

        self._raw_markup = response.raw_markup
        self._status_code = response.status_code
        return SessionState.DETECT_BLOCKING

    async def _navigate_fallback(self) -> SessionState:
        try:
            response = await self.driver.navigate(
                self.target.url, self.config.navigation_timeout_ms, degraded=True
            )
        except NavigationError as e:
            self._record(NavigationError(f"Fallback navigation failed: {e}"))
            return SessionState.FAILED

        self._raw_markup = response.raw_markup
        self._status_code = response.status_code
        return SessionState.DETECT_BLOCKING

    async def _detect_blocking(self) -> SessionState:
        document = await self.driver.capture_document(self.selectors)
        indicator = detect_blocking(document, self.config.blocking_indicators)
        if indicator is not None:
            self._record(BlockedError(f"Automation detected: {indicator}"))
            return SessionState.BLOCKED

        if self._status_code in RESTRICTED_STATUS_CODES:
            self._error = f"Access restricted: HTTP {self._status_code}"
            return SessionState.PROTECTED

        return SessionState.SETTLE

    async def _settle(self) -> SessionState:
        if self.profile.stealth:
            await self._simulate_pointer()

        idle = await self.driver.wait_for_network_idle(self.config.settle_timeout_ms)
        if not idle:
            log_event(
                logger,
                logging.INFO,
                "network_idle_timeout",
                engine=self.driver.engine_id,
                url=self.target.url,
                timeout_ms=self.config.settle_timeout_ms,
            )

        await self.driver.pause(self.config.post_settle_delay_ms)
        return SessionState.EXTRACT

    async def _simulate_pointer(self) -> None:
        # Cosmetic only: must not change what gets extracted
        await self.driver.move_pointer(100 + self.rng.random() * 100, 100 + self.rng.random() * 100)
        await self.driver.pause(500 + self.rng.random() * 1000)
        await self.driver.move_pointer(200 + self.rng.random() * 100, 200 + self.rng.random() * 100)
        await self.driver.pause(300 + self.rng.random() * 700)
        await self.driver.pause(2000 + self.rng.random() * 3000)

    async def _extract(self) -> SessionState:
        settled_markup = await self.driver.content()
        document = await self.driver.capture_document(self.selectors)

        screenshot = None
        try:
            screenshot = await self.driver.screenshot(self.config.screenshot_timeout_ms)
        except Exception as e:
            log_event(
                logger,
                logging.WARNING,
                "screenshot_failed",
                engine=self.driver.engine_id,
                error=str(e),
            )

        try:
            performance = await self.driver.performance_metrics()
        except Exception as e:
            log_event(logger, logging.WARNING, "metrics_failed", engine=self.driver.engine_id, error=str(e))
            performance = {}

        try:
            runtime_frameworks = await self.driver.runtime_frameworks()
        except Exception as e:
            log_event(
                logger,
                logging.WARNING,
                "runtime_framework_detection_failed",
                engine=self.driver.engine_id,
                error=str(e),
            )
            runtime_frameworks = []

        self._outcome = SessionOutcome(
            engine_id=self.driver.engine_id,
            status=RunStatus.SUCCESS,
            raw_markup=self._raw_markup,
            settled_markup=settled_markup,
            settled_document=document,
            screenshot=screenshot,
            performance=performance,
            runtime_frameworks=runtime_frameworks,
            status_code=self._status_code,
            evasion_used=self._evasion_label,
        )
        return SessionState.DONE

    async def _close(self) -> None:
        try:
            await self.driver.close()
        except Exception as e:
            log_event(logger, logging.WARNING, "browser_close_failed", engine=self.driver.engine_id, error=str(e))
