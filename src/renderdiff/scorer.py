"""
Accessibility scorer.

Reduces the browser runs of one target to a bounded score, a confidence value
and a cross-engine consistency rating.
"""

from collections.abc import Iterable

from .config import ScoringConfig
from .frameworks import MODERN_FRAMEWORKS
from .models import AccessibilityScore, BrowserRun, Consistency

ALL_RUNS_FAILED = "All engines failed or were blocked"


def _mean(values: list[float]) -> float:
    return sum(values) / len(values)


def _variance(values: list[float]) -> float:
    mean = _mean(values)
    return sum((value - mean) ** 2 for value in values) / len(values)


class AccessibilityScorer:
    """
    Scores a target from its browser runs.

    Only successful runs contribute findings and diff averages; failed,
    blocked and protected runs only reduce confidence. The result does not
    depend on the order of the runs.
    """

    def __init__(self, config: ScoringConfig | None = None):
        """
        Initialize the scorer.

        Args:
            config: Penalty weights and thresholds (defaults if omitted)
        """
        self.config = config or ScoringConfig()

    def score(self, runs: Iterable[BrowserRun], frameworks: Iterable[str] = ()) -> AccessibilityScore:
        """
        Compute the accessibility score.

        Args:
            runs: Browser runs for one target
            frameworks: Framework names detected across runs

        Returns:
            AccessibilityScore; when no run succeeded the value is 0 with an error marker
        """
        runs = list(runs)
        # Sorted so float sums are identical whatever the input order
        successful = sorted((run for run in runs if run.succeeded), key=lambda run: run.engine_id)
        unsuccessful = len(runs) - len(successful)

        if not successful:
            return AccessibilityScore(
                value=0,
                confidence=0,
                consistency=Consistency.NOT_APPLICABLE,
                average_diff_percent=0,
                error=ALL_RUNS_FAILED,
            )

        diffs = [float(abs(run.diff_percent)) for run in successful]
        average_diff = _mean(diffs)
        consistency = self.consistency(successful)

        value = 100
        value -= self._volume_penalty(average_diff)
        value -= self._category_penalties(successful)
        value -= self._framework_penalty(frameworks)
        if consistency == Consistency.LOW:
            value -= self.config.consistency_penalty
        value -= self._shell_page_penalty(successful)

        return AccessibilityScore(
            value=max(0, min(100, value)),
            confidence=self.confidence(unsuccessful, consistency),
            consistency=consistency,
            average_diff_percent=round(average_diff),
        )

    def consistency(self, successful: list[BrowserRun]) -> Consistency:
        """
        Rate agreement of |diff_percent| across engines.

        Args:
            successful: Successful runs only

        Returns:
            Consistency; N/A with fewer than two runs
        """
        if len(successful) < 2:
            return Consistency.NOT_APPLICABLE

        variance = _variance([float(abs(run.diff_percent)) for run in successful])
        if variance < self.config.high_consistency_variance:
            return Consistency.HIGH
        if variance < self.config.medium_consistency_variance:
            return Consistency.MEDIUM
        return Consistency.LOW

    def confidence(self, unsuccessful: int, consistency: Consistency) -> int:
        confidence = 100 - unsuccessful * self.config.failed_run_confidence_penalty
        if consistency == Consistency.LOW:
            confidence -= self.config.low_consistency_confidence_penalty
        return max(0, min(100, confidence))

    def _volume_penalty(self, average_diff: float) -> int:
        for threshold, penalty in sorted(self.config.volume_bands, reverse=True):
            if average_diff > threshold:
                return penalty
        return 0

    def _category_penalties(self, successful: list[BrowserRun]) -> int:
        findings = [run.category_findings for run in successful]
        penalty = 0

        if any(finding["pricing"].missing > 0 for finding in findings):
            penalty += self.config.pricing_penalty

        if any(finding["reviews"].missing > 0 for finding in findings):
            penalty += self.config.reviews_penalty

        navigation_missing = max(finding["navigation"].missing for finding in findings)
        penalty += min(
            self.config.navigation_penalty_cap,
            navigation_missing * self.config.navigation_penalty_per_link,
        )

        if any(finding.purchase_controls_missing > 0 for finding in findings):
            penalty += self.config.purchase_control_penalty

        return penalty

    def _framework_penalty(self, frameworks: Iterable[str]) -> int:
        modern = {name for name in frameworks if name in MODERN_FRAMEWORKS}
        return min(self.config.framework_penalty_cap, len(modern) * self.config.framework_penalty)

    def _shell_page_penalty(self, successful: list[BrowserRun]) -> int:
        # A shell page: little pre-execution text, and rendering adds content
        average_raw = _mean([float(run.raw_length) for run in successful])
        adds_content = _mean([float(run.content_difference) for run in successful]) > 0
        if average_raw < self.config.min_raw_content_length and adds_content:
            return self.config.shell_page_penalty
        return 0
