"""
Recommendation synthesizer.

Maps the score and per-category findings to severity-ordered findings.
"""

from collections.abc import Iterable

from .models import (
    AccessibilityScore,
    BrowserRun,
    CategoryFinding,
    Consistency,
    ControlCategory,
    Recommendation,
    Severity,
)

# Category message templates: (severity, label)
CATEGORY_MESSAGES = {
    "pricing": (Severity.CRITICAL, "pricing elements"),
    "navigation": (Severity.HIGH, "navigation links"),
    "headings": (Severity.HIGH, "headings"),
    "reviews": (Severity.HIGH, "review/rating elements"),
    "inventory": (Severity.HIGH, "inventory/availability elements"),
    "interactive": (Severity.MEDIUM, "interactive controls"),
    "media": (Severity.LOW, "media elements"),
}

# (minimum score, severity, message), checked top down
SCORE_BANDS = (
    (80, Severity.INFO, "Excellent accessibility - content is available without script execution"),
    (60, Severity.LOW, "Good accessibility - minor dependency on script execution"),
    (40, Severity.MEDIUM, "Moderate script dependency - verify with the specific crawler or tool"),
    (0, Severity.HIGH, "Poor accessibility - most content requires script execution"),
)


def _with_example(message: str, finding: CategoryFinding) -> str:
    if finding.examples:
        return f"{message} (e.g. '{finding.examples[0]}')"
    return message


class RecommendationSynthesizer:
    """
    Builds the ordered recommendation list for one target.
    """

    def __init__(self, slow_load_threshold_ms: int = 5000):
        """
        Initialize the synthesizer.

        Args:
            slow_load_threshold_ms: Average load time above which a performance note is added
        """
        self.slow_load_threshold_ms = slow_load_threshold_ms

    def synthesize(
        self,
        score: AccessibilityScore,
        runs: Iterable[BrowserRun],
        frameworks: Iterable[str] = (),
    ) -> list[Recommendation]:
        """
        Produce recommendations ordered by severity (most severe first).

        Args:
            score: Score computed from the runs
            runs: Browser runs for the target
            frameworks: Detected framework names

        Returns:
            List of Recommendation
        """
        runs = list(runs)
        frameworks = list(frameworks)

        if score.error:
            recommendations = [
                Recommendation(
                    Severity.CRITICAL,
                    f"Analysis failed - unable to determine script dependency ({score.error})",
                ),
                Recommendation(
                    Severity.INFO, "Try manual testing or a different analysis mode (e.g. stealth)"
                ),
            ]
            recommendations.extend(self._run_notes(runs))
            return recommendations

        successful = sorted((run for run in runs if run.succeeded), key=lambda run: run.engine_id)
        recommendations = [self._headline(score)]
        recommendations.extend(self._category_messages(successful))

        if any(run.significant_change for run in successful):
            recommendations.append(
                Recommendation(
                    Severity.MEDIUM,
                    "Serve key content in the initial HTML (server-side rendering or pre-rendering)",
                )
            )

        if score.consistency == Consistency.LOW:
            recommendations.append(
                Recommendation(
                    Severity.MEDIUM,
                    "Rendering varies significantly across engines - test each engine separately",
                )
            )

        recommendations.extend(self._run_notes(runs))

        if frameworks:
            recommendations.append(
                Recommendation(Severity.INFO, f"Frameworks detected: {', '.join(frameworks)}")
            )

        load_times = [run.performance_metrics.total_load_time for run in successful]
        if load_times and sum(load_times) / len(load_times) > self.slow_load_threshold_ms:
            recommendations.append(
                Recommendation(
                    Severity.INFO,
                    f"Slow page load ({round(sum(load_times) / len(load_times))}ms average) - "
                    "crawlers with short timeouts may give up",
                )
            )

        if score.confidence < 80:
            recommendations.append(
                Recommendation(
                    Severity.INFO,
                    f"Analysis confidence is {score.confidence}% - results may be unreliable",
                )
            )

        return sorted(recommendations, key=lambda rec: rec.severity.rank)

    @staticmethod
    def _headline(score: AccessibilityScore) -> Recommendation:
        for minimum, severity, message in SCORE_BANDS:
            if score.value >= minimum:
                return Recommendation(severity, f"{message} (score {score.value}/100)")
        return Recommendation(Severity.HIGH, f"Poor accessibility (score {score.value}/100)")

    @staticmethod
    def _category_messages(successful: list[BrowserRun]) -> list[Recommendation]:
        if not successful:
            return []

        messages = []
        for category, (severity, label) in CATEGORY_MESSAGES.items():
            # The run with the most missing units speaks for the category
            finding = max(
                (run.category_findings[category] for run in successful),
                key=lambda item: item.missing,
            )
            count = finding.missing

            if category == "interactive":
                purchase = max(run.category_findings.purchase_controls_missing for run in successful)
                if purchase > 0:
                    messages.append(
                        Recommendation(
                            Severity.CRITICAL,
                            f"{purchase} purchase/cart controls only exist after script execution",
                            category,
                        )
                    )
                count -= purchase

            if count <= 0:
                continue

            message = f"{category}: {count} {label} only exist after script execution"
            if category == "interactive":
                search = max(
                    run.category_findings.control_breakdown.get(ControlCategory.SEARCH, 0)
                    for run in successful
                )
                if search:
                    message += f", including {search} search controls"
            messages.append(Recommendation(severity, _with_example(message, finding), category))

        return messages

    @staticmethod
    def _run_notes(runs: list[BrowserRun]) -> list[Recommendation]:
        notes = []
        for run in sorted(runs, key=lambda run: run.engine_id):
            if run.succeeded:
                continue
            notes.append(
                Recommendation(
                    Severity.INFO,
                    f"{run.engine_id} run {run.status.value}: {run.error or 'no details'}",
                )
            )
        return notes
