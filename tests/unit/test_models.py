"""
Unit tests for core data models.
"""

from datetime import datetime

import pytest

from renderdiff.errors import InvalidInputError
from renderdiff.models import (
    ROW_HEADERS,
    AccessibilityScore,
    AnalysisMode,
    BatchCandidate,
    BatchResult,
    BrowserRun,
    CategoryFinding,
    CategoryFindings,
    Consistency,
    ControlCategory,
    PerformanceMetrics,
    Recommendation,
    ReviewSummary,
    RunStatus,
    Severity,
    Target,
    TargetReport,
    compute_diff_percent,
)


class TestTarget:
    """Tests for Target model."""

    def test_valid_https_url(self):
        """Test that valid HTTPS URL is accepted."""
        target = Target("https://example.com/path")
        assert target.url == "https://example.com/path"
        assert target.mode == AnalysisMode.FULL

    def test_mode_is_parsed_from_string(self):
        """Test that a mode name is converted to AnalysisMode."""
        assert Target("http://example.com", "Stealth").mode == AnalysisMode.STEALTH

    def test_surrounding_whitespace_rejected(self):
        """Test that URL input is not automatically trimmed."""
        with pytest.raises(InvalidInputError):
            Target("  https://example.com  ")

    def test_relative_url_rejected(self):
        """Test that URL without http/https scheme is rejected."""
        with pytest.raises(InvalidInputError, match="absolute http"):
            Target("example.com")

    def test_other_scheme_rejected(self):
        with pytest.raises(InvalidInputError):
            Target("ftp://example.com/file")

    def test_empty_url_rejected(self):
        """Test that empty URL is rejected."""
        with pytest.raises(InvalidInputError, match="non-empty string"):
            Target("")

    def test_unknown_mode_rejected(self):
        """Test that an unknown mode fails before any run."""
        with pytest.raises(InvalidInputError, match="Unknown analysis mode"):
            Target("https://example.com", "thorough")

    def test_invalid_input_is_a_value_error(self):
        """Test that callers catching ValueError still catch invalid input."""
        with pytest.raises(ValueError):
            Target("not a url")


class TestComputeDiffPercent:
    """Tests for compute_diff_percent()."""

    def test_identical_lengths(self):
        assert compute_diff_percent(500, 500) == 0

    def test_growth_and_shrink(self):
        """Test that growth is positive and shrinkage negative."""
        assert compute_diff_percent(1000, 1500) == 50
        assert compute_diff_percent(1000, 250) == -75

    def test_empty_raw_with_settled_content(self):
        """Test that an empty raw document is a 100% change, not infinite."""
        assert compute_diff_percent(0, 4000) == 100

    def test_both_empty(self):
        assert compute_diff_percent(0, 0) == 0

    def test_clamped_to_bounds(self):
        """Test that extreme growth is clamped to 200."""
        assert compute_diff_percent(10, 10000) == 200
        assert compute_diff_percent(1, 0) == -100


class TestCategoryFinding:
    """Tests for CategoryFinding invariants."""

    def test_missing_cannot_exceed_total(self):
        with pytest.raises(ValueError):
            CategoryFinding(total=2, missing=3)

    def test_negative_counts_rejected(self):
        with pytest.raises(ValueError):
            CategoryFinding(total=-1, missing=0)

    def test_to_dict(self):
        finding = CategoryFinding(total=4, missing=1, examples=("Pricing",))
        assert finding.to_dict() == {"total": 4, "missing": 1, "examples": ["Pricing"]}


class TestCategoryFindings:
    """Tests for CategoryFindings."""

    def test_empty_has_every_category(self):
        """Test that empty findings still list all seven categories at zero."""
        findings = CategoryFindings.empty()
        assert set(findings.categories) == {
            "navigation",
            "headings",
            "pricing",
            "inventory",
            "reviews",
            "interactive",
            "media",
        }
        assert findings.total_missing == 0
        assert "fully accessible" in findings.summary_line()

    def test_summary_line_lists_missing_categories(self):
        findings = CategoryFindings(
            categories={
                "pricing": CategoryFinding(total=2, missing=2),
                "navigation": CategoryFinding(total=6, missing=5),
            }
        )
        line = findings.summary_line()
        assert line.startswith("Impact: ")
        assert "2 pricing elements missing (CRITICAL)" in line
        assert "5 navigation links missing" in line

    def test_purchase_controls_missing(self):
        findings = CategoryFindings(control_breakdown={ControlCategory.PURCHASE: 2})
        assert findings.purchase_controls_missing == 2

    def test_findings_are_read_only(self):
        """Test that findings cannot be changed once built, even through the caller's dicts."""
        categories = {"pricing": CategoryFinding(total=2, missing=2)}
        breakdown = {ControlCategory.PURCHASE: 1}
        findings = CategoryFindings(categories=categories, control_breakdown=breakdown)

        categories["pricing"] = CategoryFinding()
        breakdown[ControlCategory.PURCHASE] = 5

        assert findings["pricing"].missing == 2
        assert findings.purchase_controls_missing == 1
        with pytest.raises(TypeError):
            findings.categories["pricing"] = CategoryFinding()
        with pytest.raises(TypeError):
            findings.control_breakdown[ControlCategory.SEARCH] = 1
        with pytest.raises(AttributeError):
            findings.pricing = None

    def test_review_average(self):
        assert ReviewSummary(ratings=(4.0, 5.0, 4.5)).average == 4.5
        assert ReviewSummary().average is None


class TestBrowserRun:
    """Tests for BrowserRun model."""

    def test_diff_percent_out_of_bounds_rejected(self):
        with pytest.raises(ValueError):
            BrowserRun(engine_id="chromium", status=RunStatus.SUCCESS, diff_percent=250)

    def test_significant_change_by_percent(self):
        run = BrowserRun(
            engine_id="chromium", status=RunStatus.SUCCESS, raw_length=100, settled_length=120,
            diff_percent=20,
        )
        assert run.significant_change is True
        assert run.content_difference == 20

    def test_significant_change_by_absolute_length(self):
        """Test that a large absolute change counts even when the percentage is small."""
        run = BrowserRun(
            engine_id="chromium", status=RunStatus.SUCCESS, raw_length=50000, settled_length=52500,
            diff_percent=5,
        )
        assert run.significant_change is True

    def test_unsuccessful_run_defaults(self):
        """Test that a failed run carries zero findings and an explicit error."""
        run = BrowserRun(engine_id="webkit", status=RunStatus.FAILED, error="NavigationError: boom")
        assert run.succeeded is False
        assert run.category_findings.total_missing == 0
        assert run.to_dict()["error"] == "NavigationError: boom"


class TestPerformanceMetrics:
    def test_from_mapping_ignores_bad_values(self):
        metrics = PerformanceMetrics.from_mapping(
            {"total_load_time": "2500", "first_paint": None, "load_complete": "n/a", "dom_content_loaded": -3}
        )
        assert metrics.total_load_time == 2500.0
        assert metrics.first_paint == 0.0
        assert metrics.load_complete == 0.0
        assert metrics.dom_content_loaded == 0.0

    def test_from_mapping_empty(self):
        assert PerformanceMetrics.from_mapping(None) == PerformanceMetrics()


class TestAccessibilityScore:
    def test_bounds_enforced(self):
        with pytest.raises(ValueError):
            AccessibilityScore(value=101, confidence=100, consistency=Consistency.HIGH)
        with pytest.raises(ValueError):
            AccessibilityScore(value=50, confidence=-1, consistency=Consistency.HIGH)


def _report(runs, score, recommendations=()):
    return TargetReport(
        target=Target("https://example.com", AnalysisMode.QUICK),
        runs=runs,
        score=score,
        recommendations=list(recommendations),
        frameworks=["React"],
        started_at=datetime(2024, 1, 1, 12, 0, 0),
        finished_at=datetime(2024, 1, 1, 12, 0, 30),
    )


class TestTargetReport:
    """Tests for TargetReport model."""

    def test_to_row_matches_headers(self):
        """Test that the flattened row has one cell per header."""
        findings = CategoryFindings(
            categories={
                "pricing": CategoryFinding(total=2, missing=1, examples=("$19.99",)),
                "headings": CategoryFinding(total=3, missing=2, examples=("Best Sellers",)),
            }
        )
        run = BrowserRun(
            engine_id="chromium",
            status=RunStatus.SUCCESS,
            raw_length=800,
            settled_length=1200,
            diff_percent=50,
            category_findings=findings,
            raw_markup_length=5000,
            settled_markup_length=9000,
        )
        score = AccessibilityScore(
            value=40, confidence=100, consistency=Consistency.NOT_APPLICABLE, average_diff_percent=50
        )
        report = _report(
            {"chromium": run},
            score,
            [
                Recommendation(Severity.CRITICAL, "pricing missing"),
                Recommendation(Severity.HIGH, "headings missing"),
                Recommendation(Severity.INFO, "frameworks"),
            ],
        )

        row = report.to_row()
        assert len(row) == len(ROW_HEADERS)
        cells = dict(zip(ROW_HEADERS, row))
        assert cells["Raw HTML Length"] == 5000
        assert cells["Rendered HTML Length"] == 9000
        assert cells["Accessibility Score"] == 40
        assert cells["Status"] == "Complete (quick)"
        assert cells["Recommendations"] == "pricing missing | headings missing"
        assert cells["Critical Missing"] == 3
        assert cells["Headings Missing"] == "Yes"
        assert cells["Navigation Missing"] == "No"
        assert cells["Impact Level"] == "High"
        assert cells["Content Example"] == "Best Sellers"
        assert cells["Protected"] == "No"
        assert cells["Frameworks"] == "React"

    def test_failed_report_is_still_complete(self):
        """Test that a total failure still produces a report with an error marker."""
        run = BrowserRun(engine_id="chromium", status=RunStatus.BLOCKED, error="BlockedError: captcha")
        score = AccessibilityScore(
            value=0, confidence=0, consistency=Consistency.NOT_APPLICABLE, error="All engines failed"
        )
        report = _report({"chromium": run}, score)

        assert report.success is False
        assert report.primary_run is run
        data = report.to_dict()
        assert data["summary"]["error"] == "All engines failed"
        assert data["browsers"]["chromium"]["status"] == "blocked"

        cells = dict(zip(ROW_HEADERS, report.to_row()))
        assert cells["Status"] == "Error"
        assert cells["Protected"] == "Yes"
        assert cells["Content Summary"] == "All engines failed"


class TestBatchResult:
    def test_counts(self):
        score_ok = AccessibilityScore(value=90, confidence=100, consistency=Consistency.HIGH)
        score_failed = AccessibilityScore(
            value=0, confidence=0, consistency=Consistency.NOT_APPLICABLE, error="failed"
        )
        result = BatchResult(
            started_at=datetime.now(),
            finished_at=None,
            reports=[
                (BatchCandidate("https://a.example", 2), _report({}, score_ok)),
                (BatchCandidate("https://b.example", 3), _report({}, score_failed)),
            ],
            invalid=[(BatchCandidate("nope", 4), "bad url")],
        )
        assert result.processed == 3
        assert result.succeeded == 1
        assert result.failed == 2
