"""
Unit tests for recommendation synthesis.
"""

from renderdiff.models import (
    AccessibilityScore,
    BrowserRun,
    CategoryFinding,
    CategoryFindings,
    Consistency,
    ControlCategory,
    PerformanceMetrics,
    RunStatus,
    Severity,
)
from renderdiff.recommendations import RecommendationSynthesizer


def run(engine_id="chromium", findings=None, diff=0, status=RunStatus.SUCCESS, load_time=1000.0):
    return BrowserRun(
        engine_id=engine_id,
        status=status,
        raw_length=1000,
        settled_length=1000 + diff * 10,
        diff_percent=diff,
        category_findings=findings or CategoryFindings.empty(),
        performance_metrics=PerformanceMetrics(total_load_time=load_time),
        error=None if status == RunStatus.SUCCESS else "NavigationError: refused",
    )


def score(value=100, confidence=100, consistency=Consistency.HIGH, error=None):
    return AccessibilityScore(value=value, confidence=confidence, consistency=consistency, error=error)


class TestSynthesize:
    """Tests for RecommendationSynthesizer.synthesize()."""

    def test_accessible_page_gets_single_headline(self):
        """Test that a clean page only gets the 'accessible' headline."""
        recommendations = RecommendationSynthesizer().synthesize(score(), [run()])

        assert len(recommendations) == 1
        assert recommendations[0].severity == Severity.INFO
        assert "Excellent accessibility" in recommendations[0].message

    def test_missing_pricing_is_critical_and_first(self):
        findings = CategoryFindings(
            categories={
                "navigation": CategoryFinding(total=5, missing=5, examples=("Home",)),
                "pricing": CategoryFinding(total=2, missing=2, examples=("$19.99",)),
            }
        )
        recommendations = RecommendationSynthesizer().synthesize(
            score(value=15, consistency=Consistency.NOT_APPLICABLE), [run(findings=findings, diff=100)]
        )

        first = recommendations[0]
        assert first.severity == Severity.CRITICAL
        assert first.category == "pricing"
        assert "$19.99" in first.message

        navigation = [rec for rec in recommendations if rec.category == "navigation"]
        assert navigation[0].severity == Severity.HIGH
        assert "5 navigation links" in navigation[0].message

    def test_sorted_by_severity(self):
        findings = CategoryFindings(
            categories={
                "media": CategoryFinding(total=1, missing=1),
                "headings": CategoryFinding(total=1, missing=1),
                "pricing": CategoryFinding(total=1, missing=1),
            }
        )
        recommendations = RecommendationSynthesizer().synthesize(
            score(value=45), [run(findings=findings, diff=30)], ["React"]
        )
        ranks = [rec.severity.rank for rec in recommendations]
        assert ranks == sorted(ranks)

    def test_purchase_controls_split_from_interactive(self):
        """Test that cart controls get their own critical entry."""
        findings = CategoryFindings(
            categories={"interactive": CategoryFinding(total=4, missing=3)},
            control_breakdown={ControlCategory.PURCHASE: 2, ControlCategory.SEARCH: 1},
        )
        recommendations = RecommendationSynthesizer().synthesize(score(value=75), [run(findings=findings)])

        critical = [rec for rec in recommendations if rec.severity == Severity.CRITICAL]
        assert len(critical) == 1
        assert "2 purchase/cart controls" in critical[0].message

        medium = [rec for rec in recommendations if rec.category == "interactive" and rec.severity == Severity.MEDIUM]
        assert "1 interactive controls" in medium[0].message
        assert "1 search controls" in medium[0].message

    def test_total_failure(self):
        """Test that total failure yields a critical entry plus guidance."""
        runs = [
            run("chromium", status=RunStatus.BLOCKED),
            run("firefox", status=RunStatus.FAILED),
        ]
        recommendations = RecommendationSynthesizer().synthesize(
            score(value=0, confidence=0, consistency=Consistency.NOT_APPLICABLE, error="All engines failed"),
            runs,
        )

        assert recommendations[0].severity == Severity.CRITICAL
        assert "Analysis failed" in recommendations[0].message
        assert all(rec.severity == Severity.INFO for rec in recommendations[1:])
        assert any("chromium run blocked" in rec.message for rec in recommendations)

    def test_informational_notes(self):
        """Test notes for frameworks, slow loads, low confidence and inconsistency."""
        runs = [
            run("chromium", diff=0, load_time=9000.0),
            run("firefox", diff=60, load_time=7000.0),
            run("webkit", status=RunStatus.FAILED),
        ]
        recommendations = RecommendationSynthesizer(slow_load_threshold_ms=5000).synthesize(
            score(value=70, confidence=55, consistency=Consistency.LOW), runs, ["React"]
        )
        messages = [rec.message for rec in recommendations]

        assert any("Frameworks detected: React" in message for message in messages)
        assert any("Slow page load (8000ms average)" in message for message in messages)
        assert any("confidence is 55%" in message for message in messages)
        assert any("varies significantly across engines" in message for message in messages)
        assert any("webkit run failed" in message for message in messages)
        assert any("server-side rendering" in message for message in messages)
