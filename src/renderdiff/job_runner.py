"""
Job runner for orchestrating the full analysis pipeline.

Drives one session per engine (sequentially), classifies and scores the
results, and processes batches of targets with a politeness delay.
"""

import asyncio
import logging
import random
from collections.abc import Callable, Sequence
from datetime import datetime

from .classifier import ContentClassifier
from .config import AnalyzerConfig, BatchConfig
from .driver import ENGINES, PageDriver, PlaywrightDriver, RawMarkupFetcher
from .errors import BatchDeadlineExceeded, EngineFailure, InvalidInputError
from .frameworks import detect_frameworks, merge_frameworks
from .logging_utils import log_event
from .models import (
    AnalysisMode,
    BatchCandidate,
    BatchResult,
    BrowserRun,
    PerformanceMetrics,
    RunStatus,
    Target,
    TargetReport,
    compute_diff_percent,
)
from .normalizer import normalize
from .recommendations import RecommendationSynthesizer
from .scorer import AccessibilityScorer
from .session import PageDriverSession
from .storage import StorageError

logger = logging.getLogger(__name__)

DriverFactory = Callable[[str], PageDriver]
ScreenshotSink = Callable[[str, bytes], str]


def engines_for(mode: AnalysisMode) -> list[str]:
    """Quick and stealth analysis use Chromium only; full analysis uses every engine."""
    if mode == AnalysisMode.FULL:
        return list(ENGINES)
    return ["chromium"]


class Analyzer:
    """
    Orchestrates the analysis of a single target.

    Engines are driven one after another so only one browser context is
    alive at a time. A failure in one engine never affects the others.
    """

    def __init__(
        self,
        config: AnalyzerConfig | None = None,
        driver_factory: DriverFactory | None = None,
        screenshot_sink: ScreenshotSink | None = None,
        rng: random.Random | None = None,
    ):
        """
        Initialize the analyzer.

        Args:
            config: Analyzer configuration (defaults if omitted)
            driver_factory: Builds a PageDriver for an engine id (Playwright by default)
            screenshot_sink: Persists screenshot bytes and returns their path (optional)
            rng: Random source for stealth behaviour (optional)
        """
        self.config = config or AnalyzerConfig()
        self.driver_factory = driver_factory or self._playwright_driver
        self.screenshot_sink = screenshot_sink
        self.rng = rng

        # Initialize components
        self.classifier = ContentClassifier(example_limit=self.config.example_limit)
        self.scorer = AccessibilityScorer(self.config.scoring)
        self.synthesizer = RecommendationSynthesizer(self.config.slow_load_threshold_ms)

    def _playwright_driver(self, engine_id: str) -> PageDriver:
        return PlaywrightDriver(
            engine_id,
            headless=self.config.headless,
            raw_fetcher=RawMarkupFetcher(user_agent=self.config.user_agent),
        )

    def analyze(self, url: str, mode: AnalysisMode | str | None = None) -> TargetReport:
        """
        Analyze a URL synchronously.

        Convenience method that wraps analyze_target.

        Raises:
            InvalidInputError: If the URL or mode is invalid (no run is attempted)
        """
        target = Target(url, AnalysisMode.parse(mode or self.config.mode))
        return asyncio.run(self.analyze_target(target))

    async def analyze_target(self, target: Target) -> TargetReport:
        """
        Run every engine for the target and build the report.

        Args:
            target: Validated target

        Returns:
            TargetReport (always produced, even if every engine failed)
        """
        started_at = datetime.now()
        log_event(logger, logging.INFO, "analysis_started", url=target.url, mode=target.mode.value)

        runs: dict[str, BrowserRun] = {}
        for engine_id in engines_for(target.mode):
            runs[engine_id] = await self._run_engine(engine_id, target)

        frameworks = merge_frameworks(*(run.frameworks for run in runs.values() if run.succeeded))
        score = self.scorer.score(runs.values(), frameworks)
        recommendations = self.synthesizer.synthesize(score, runs.values(), frameworks)

        report = TargetReport(
            target=target,
            runs=runs,
            score=score,
            recommendations=recommendations,
            frameworks=frameworks,
            started_at=started_at,
            finished_at=datetime.now(),
        )
        log_event(
            logger,
            logging.INFO,
            "analysis_completed",
            url=target.url,
            score=score.value,
            confidence=score.confidence,
            consistency=score.consistency.value,
            error=score.error,
        )
        return report

    async def _run_engine(self, engine_id: str, target: Target) -> BrowserRun:
        """
        Run one engine session and turn its outcome into a BrowserRun.

        Any exception is recorded on the run and never re-raised.
        """
        log_event(logger, logging.INFO, "engine_started", engine=engine_id, url=target.url)
        try:
            driver = self.driver_factory(engine_id)
            session = PageDriverSession(
                driver, target, self.config, self.classifier.selectors, rng=self.rng
            )
            outcome = await session.run()

            if outcome.status != RunStatus.SUCCESS:
                return BrowserRun(
                    engine_id=engine_id,
                    status=outcome.status,
                    error=outcome.error,
                    status_code=outcome.status_code,
                    evasion_used=outcome.evasion_used,
                )

            raw_text = normalize(outcome.raw_markup)
            settled_text = normalize(outcome.settled_markup)
            findings = self.classifier.classify(
                outcome.raw_markup, raw_text, outcome.settled_document
            )
            frameworks = merge_frameworks(
                detect_frameworks(outcome.raw_markup, outcome.settled_markup),
                outcome.runtime_frameworks,
            )

            screenshot_path = None
            if outcome.screenshot and self.screenshot_sink is not None:
                try:
                    screenshot_path = self.screenshot_sink(engine_id, outcome.screenshot)
                except StorageError as e:
                    log_event(
                        logger, logging.WARNING, "screenshot_not_saved", engine=engine_id, error=str(e)
                    )

            run = BrowserRun(
                engine_id=engine_id,
                status=RunStatus.SUCCESS,
                raw_length=len(raw_text),
                settled_length=len(settled_text),
                diff_percent=compute_diff_percent(len(raw_text), len(settled_text)),
                category_findings=findings,
                performance_metrics=PerformanceMetrics.from_mapping(outcome.performance),
                raw_markup_length=len(outcome.raw_markup),
                settled_markup_length=len(outcome.settled_markup),
                frameworks=tuple(frameworks),
                screenshot_path=screenshot_path,
                status_code=outcome.status_code,
                evasion_used=outcome.evasion_used,
            )
            log_event(
                logger,
                logging.INFO,
                "engine_completed",
                engine=engine_id,
                raw_length=run.raw_length,
                settled_length=run.settled_length,
                diff_percent=run.diff_percent,
                missing=findings.total_missing,
            )
            return run

        except Exception as e:
            log_event(logger, logging.ERROR, "engine_failed", engine=engine_id, error=str(e))
            return BrowserRun(
                engine_id=engine_id,
                status=RunStatus.FAILED,
                error=f"{EngineFailure.__name__}: {e}",
            )


def select_pending_rows(rows: Sequence[Sequence[str]]) -> list[BatchCandidate]:
    """
    Find rows that still need analysis.

    A row qualifies when column A holds a URL and column B (the first result
    column) is empty. The first row is a header. Row indexes are 1-based, as
    in a spreadsheet.

    Args:
        rows: Table rows, header first

    Returns:
        List of BatchCandidate in row order
    """
    candidates = []
    for index, row in enumerate(rows[1:], start=2):
        url = row[0].strip() if len(row) > 0 and row[0] else ""
        result = row[1].strip() if len(row) > 1 and row[1] else ""
        if url and not result:
            candidates.append(BatchCandidate(url=url, row_index=index))
    return candidates


class BatchRunner:
    """
    Processes targets sequentially with a mandatory delay between them.

    At most `max_batch_size` targets are processed per invocation; the rest
    are returned as deferred.
    """

    def __init__(
        self,
        analyzer: Analyzer,
        config: BatchConfig | None = None,
        on_report: Callable[[BatchCandidate, TargetReport], None] | None = None,
    ):
        """
        Initialize the batch runner.

        Args:
            analyzer: Analyzer used for every target
            config: Batch limits (defaults if omitted)
            on_report: Called after each target is analyzed (optional); a StorageError it
                raises is recorded on the result and the batch continues
        """
        self.analyzer = analyzer
        self.config = config or BatchConfig()
        self.on_report = on_report

    def run(self, candidates: Sequence[BatchCandidate]) -> BatchResult:
        """
        Run a batch synchronously under the wall-clock deadline.

        Raises:
            BatchDeadlineExceeded: If the whole batch overran its deadline
        """
        return asyncio.run(self.run_with_deadline(candidates))

    async def run_with_deadline(self, candidates: Sequence[BatchCandidate]) -> BatchResult:
        try:
            return await asyncio.wait_for(self.run_async(candidates), timeout=self.config.deadline_seconds)
        except asyncio.TimeoutError as e:
            raise BatchDeadlineExceeded(
                f"Batch exceeded its deadline of {self.config.deadline_seconds:g}s"
            ) from e

    async def run_async(self, candidates: Sequence[BatchCandidate]) -> BatchResult:
        """
        Process up to max_batch_size candidates.

        Args:
            candidates: Eligible candidates in processing order

        Returns:
            BatchResult with reports, invalid inputs and deferred candidates
        """
        started_at = datetime.now()
        selected = list(candidates[: self.config.max_batch_size])
        deferred = list(candidates[self.config.max_batch_size :])

        if deferred:
            log_event(
                logger,
                logging.WARNING,
                "batch_limited",
                max_batch_size=self.config.max_batch_size,
                deferred=len(deferred),
            )

        result = BatchResult(started_at=started_at, finished_at=None, reports=[], deferred=deferred)

        for position, candidate in enumerate(selected):
            log_event(
                logger,
                logging.INFO,
                "batch_target_started",
                position=position + 1,
                total=len(selected),
                url=candidate.url,
                row=candidate.row_index,
            )
            try:
                target = Target(candidate.url, self.analyzer.config.mode)
            except InvalidInputError as e:
                result.invalid.append((candidate, str(e)))
                log_event(logger, logging.ERROR, "batch_target_invalid", url=candidate.url, error=str(e))
            else:
                report = await self.analyzer.analyze_target(target)
                result.reports.append((candidate, report))
                if self.on_report is not None:
                    try:
                        self.on_report(candidate, report)
                    except StorageError as e:
                        result.publish_errors.append((candidate, str(e)))
                        log_event(
                            logger,
                            logging.ERROR,
                            "batch_publish_failed",
                            url=candidate.url,
                            row=candidate.row_index,
                            error=str(e),
                        )

            if position < len(selected) - 1:
                await asyncio.sleep(self.config.delay_between_targets_ms / 1000.0)

        result.finished_at = datetime.now()
        return result
