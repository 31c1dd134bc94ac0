"""
Core data models for the rendering differential analysis engine.

All models are pure data structures that can be serialized and reused
by both the CLI and any other collaborator (spreadsheet writers, CI jobs).
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping
from urllib.parse import urlparse

from .errors import InvalidInputError

DIFF_PERCENT_LIMIT = 200

CATEGORY_NAMES = (
    "navigation",
    "headings",
    "pricing",
    "inventory",
    "reviews",
    "interactive",
    "media",
)


class AnalysisMode(str, Enum):
    """How thoroughly (and how quietly) a target is analyzed."""

    QUICK = "quick"
    FULL = "full"
    STEALTH = "stealth"

    @classmethod
    def parse(cls, value: "str | AnalysisMode") -> "AnalysisMode":
        """Parse a mode name, raising InvalidInputError for unknown values."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(mode.value for mode in cls)
            raise InvalidInputError(f"Unknown analysis mode: {value!r} (expected {allowed})")


class RunStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    PROTECTED = "protected"
    BLOCKED = "blocked"


class Consistency(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    NOT_APPLICABLE = "N/A"


class Severity(str, Enum):
    """Recommendation severity, most severe first."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Sort key: lower rank sorts first."""
        return list(Severity).index(self)


class LinkCategory(str, Enum):
    MAIN = "main"
    SUPPORT = "support"
    ACCOUNT = "account"
    OTHER = "other"


class ControlCategory(str, Enum):
    PURCHASE = "purchase"
    SEARCH = "search"
    FORM = "form"
    NAVIGATION = "navigation"
    OTHER = "other"


@dataclass(frozen=True)
class Target:
    """
    A URL to analyze and the mode to analyze it in.

    Frozen to ensure immutability once a run starts.
    """

    url: str
    mode: AnalysisMode = AnalysisMode.FULL

    def __post_init__(self):
        """Validate URL format and normalize the mode."""
        if not self.url or not isinstance(self.url, str):
            raise InvalidInputError(f"URL must be a non-empty string: {self.url}")

        parsed = urlparse(self.url)
        if parsed.scheme.lower() not in ("http", "https") or not parsed.netloc:
            raise InvalidInputError(f"URL must be an absolute http(s) URL: {self.url}")
        if self.url != self.url.strip():
            raise InvalidInputError(f"URL must not contain surrounding whitespace: {self.url!r}")

        object.__setattr__(self, "mode", AnalysisMode.parse(self.mode))


def compute_diff_percent(raw_length: int, settled_length: int) -> int:
    """
    Percentage change from raw to settled content length.

    Bounded to [-200, 200]. An empty raw document with rendered content is a
    100% change rather than an infinite one.

    Args:
        raw_length: Normalized text length before script execution
        settled_length: Normalized text length after settling

    Returns:
        Integer percentage change
    """
    if raw_length <= 0:
        return 100 if settled_length > 0 else 0

    percent = round(((settled_length - raw_length) / raw_length) * 100)
    return max(-DIFF_PERCENT_LIMIT, min(DIFF_PERCENT_LIMIT, percent))


@dataclass(frozen=True)
class ContentUnit:
    """One candidate element from the settled document."""

    category: str
    text: str
    locator_hint: str
    found_in_raw: bool


@dataclass(frozen=True)
class CategoryFinding:
    """
    Total vs. missing-from-raw counts for one content category.

    `examples` holds the first few missing texts for compact reporting.
    """

    total: int = 0
    missing: int = 0
    examples: tuple[str, ...] = ()

    def __post_init__(self):
        """Enforce 0 <= missing <= total."""
        if self.total < 0 or self.missing < 0 or self.missing > self.total:
            raise ValueError(
                f"Invalid category counts: missing={self.missing}, total={self.total}"
            )

    def to_dict(self) -> dict:
        return {"total": self.total, "missing": self.missing, "examples": list(self.examples)}


@dataclass(frozen=True)
class PricingSummary:
    """Currency and numeric range across detected price units."""

    currency: str | None = None
    minimum: float | None = None
    maximum: float | None = None


@dataclass(frozen=True)
class ReviewSummary:
    """Ratings parsed from review units, normalized to a 5-point scale."""

    ratings: tuple[float, ...] = ()

    @property
    def average(self) -> float | None:
        """Average rating, or None when nothing was parseable."""
        if not self.ratings:
            return None
        return round(sum(self.ratings) / len(self.ratings), 2)


@dataclass(frozen=True)
class CategoryFindings:
    """
    Per-category findings for one browser run, plus category-specific extras.

    The mappings are read-only views over private copies.
    """

    categories: Mapping[str, CategoryFinding] = field(default_factory=dict)
    pricing: PricingSummary = field(default_factory=PricingSummary)
    reviews: ReviewSummary = field(default_factory=ReviewSummary)
    link_breakdown: Mapping[LinkCategory, int] = field(default_factory=dict)
    control_breakdown: Mapping[ControlCategory, int] = field(default_factory=dict)

    def __post_init__(self):
        """Ensure every category is present and freeze the mappings."""
        categories = {name: self.categories.get(name, CategoryFinding()) for name in CATEGORY_NAMES}
        categories.update(self.categories)
        object.__setattr__(self, "categories", MappingProxyType(categories))
        object.__setattr__(self, "link_breakdown", MappingProxyType(dict(self.link_breakdown)))
        object.__setattr__(self, "control_breakdown", MappingProxyType(dict(self.control_breakdown)))

    @classmethod
    def empty(cls) -> "CategoryFindings":
        """Zero-valued findings for runs that produced nothing to classify."""
        return cls()

    def __getitem__(self, category: str) -> CategoryFinding:
        return self.categories[category]

    @property
    def total_missing(self) -> int:
        return sum(finding.missing for finding in self.categories.values())

    @property
    def purchase_controls_missing(self) -> int:
        """Missing interactive controls that look like purchase/cart actions."""
        return self.control_breakdown.get(ControlCategory.PURCHASE, 0)

    def summary_line(self) -> str:
        """
        One-line description of what is missing without script execution.
        """
        if self.total_missing == 0:
            return "Content appears fully accessible - no missing elements detected"

        labels = {
            "pricing": "pricing elements missing (CRITICAL)",
            "headings": "headings missing",
            "navigation": "navigation links missing",
            "reviews": "review elements missing",
            "inventory": "inventory elements missing",
            "interactive": "interactive elements missing",
            "media": "media elements missing",
        }
        issues = [
            f"{self.categories[name].missing} {label}"
            for name, label in labels.items()
            if self.categories[name].missing > 0
        ]
        return f"Impact: {' | '.join(issues)}"

    def to_dict(self) -> dict:
        return {
            "categories": {name: finding.to_dict() for name, finding in self.categories.items()},
            "pricing": {
                "currency": self.pricing.currency,
                "minimum": self.pricing.minimum,
                "maximum": self.pricing.maximum,
            },
            "reviews": {
                "ratings": list(self.reviews.ratings),
                "average": self.reviews.average,
            },
            "link_breakdown": {key.value: count for key, count in self.link_breakdown.items()},
            "control_breakdown": {
                key.value: count for key, count in self.control_breakdown.items()
            },
        }


@dataclass(frozen=True)
class PerformanceMetrics:
    """Navigation timing collected from the settled page (milliseconds)."""

    dom_content_loaded: float = 0.0
    load_complete: float = 0.0
    first_paint: float = 0.0
    first_contentful_paint: float = 0.0
    total_load_time: float = 0.0

    @classmethod
    def from_mapping(cls, data: dict[str, Any] | None) -> "PerformanceMetrics":
        """Build metrics from a loosely-typed mapping, ignoring bad values."""
        if not data:
            return cls()

        values = {}
        for name in (
            "dom_content_loaded",
            "load_complete",
            "first_paint",
            "first_contentful_paint",
            "total_load_time",
        ):
            try:
                values[name] = max(0.0, float(data.get(name) or 0.0))
            except (TypeError, ValueError):
                values[name] = 0.0
        return cls(**values)


@dataclass(frozen=True)
class BrowserRun:
    """
    Results of one engine session against one target.

    Built once when the session closes and never mutated afterwards.
    """

    engine_id: str
    status: RunStatus
    raw_length: int = 0  # Normalized pre-execution text length
    settled_length: int = 0  # Normalized settled text length
    diff_percent: int = 0
    category_findings: CategoryFindings = field(default_factory=CategoryFindings.empty)
    performance_metrics: PerformanceMetrics = field(default_factory=PerformanceMetrics)
    error: str | None = None
    raw_markup_length: int = 0
    settled_markup_length: int = 0
    frameworks: tuple[str, ...] = ()
    screenshot_path: str | None = None
    status_code: int | None = None
    evasion_used: str = "standard"

    def __post_init__(self):
        """Validate the diff bound."""
        if abs(self.diff_percent) > DIFF_PERCENT_LIMIT:
            raise ValueError(f"diff_percent out of range: {self.diff_percent}")

    @property
    def succeeded(self) -> bool:
        return self.status == RunStatus.SUCCESS

    @property
    def content_difference(self) -> int:
        """Difference in normalized text length (settled - raw)."""
        return self.settled_length - self.raw_length

    @property
    def significant_change(self) -> bool:
        """Whether script execution changes the content meaningfully."""
        return abs(self.diff_percent) > 15 or abs(self.content_difference) > 2000

    def to_dict(self) -> dict:
        return {
            "engine": self.engine_id,
            "status": self.status.value,
            "raw_length": self.raw_length,
            "settled_length": self.settled_length,
            "raw_markup_length": self.raw_markup_length,
            "settled_markup_length": self.settled_markup_length,
            "content_difference": self.content_difference,
            "diff_percent": self.diff_percent,
            "significant_change": self.significant_change,
            "frameworks": list(self.frameworks),
            "category_findings": self.category_findings.to_dict(),
            "performance_metrics": {
                "dom_content_loaded": self.performance_metrics.dom_content_loaded,
                "load_complete": self.performance_metrics.load_complete,
                "first_paint": self.performance_metrics.first_paint,
                "first_contentful_paint": self.performance_metrics.first_contentful_paint,
                "total_load_time": self.performance_metrics.total_load_time,
            },
            "screenshot_path": self.screenshot_path,
            "status_code": self.status_code,
            "evasion_used": self.evasion_used,
            "error": self.error,
        }


@dataclass(frozen=True)
class AccessibilityScore:
    """
    Score for one target, derived from all of its browser runs.

    `error` is set when no run could be analyzed; the value is then 0 by
    definition rather than an artifact of averaging nothing.
    """

    value: int
    confidence: int
    consistency: Consistency
    average_diff_percent: int = 0
    error: str | None = None

    def __post_init__(self):
        """Validate bounds."""
        if not 0 <= self.value <= 100:
            raise ValueError(f"Score out of range: {self.value}")
        if not 0 <= self.confidence <= 100:
            raise ValueError(f"Confidence out of range: {self.confidence}")


@dataclass(frozen=True)
class Recommendation:
    severity: Severity
    message: str
    category: str | None = None

    def to_dict(self) -> dict:
        return {"severity": self.severity.value, "message": self.message, "category": self.category}


# Column order of the flattened row written back for spreadsheet collaborators
ROW_HEADERS = [
    "Raw HTML Length",
    "Rendered HTML Length",
    "Average Content Change (%)",
    "Frameworks",
    "Accessibility Score",
    "Status",
    "Recommendations",
    "Analyzed At",
    "Content Summary",
    "Critical Missing",
    "Navigation Missing",
    "Headings Missing",
    "Interactive Missing",
    "Pricing Missing",
    "Impact Level",
    "Content Example",
    "Evasion Used",
    "Protected",
    "Confidence",
]


@dataclass
class TargetReport:
    """
    Complete analysis for a single target.

    Always produced, even when every engine failed; failures are carried in
    explicit error fields rather than missing sections.
    """

    target: Target
    runs: dict[str, BrowserRun]
    score: AccessibilityScore
    recommendations: list[Recommendation]
    frameworks: list[str]
    started_at: datetime
    finished_at: datetime | None = None

    @property
    def error(self) -> str | None:
        return self.score.error

    @property
    def success(self) -> bool:
        """Check if at least one engine produced an analyzable run."""
        return self.score.error is None

    @property
    def requires_js_rendering(self) -> bool:
        return any(run.significant_change for run in self.runs.values() if run.succeeded)

    @property
    def primary_run(self) -> BrowserRun | None:
        """First successful run in engine order, else the first run."""
        for run in self.runs.values():
            if run.succeeded:
                return run
        return next(iter(self.runs.values()), None)

    def to_dict(self) -> dict:
        """
        Convert report to dictionary for serialization.

        Used for JSON export and any collaborator that needs the full structure.
        """
        return {
            "url": self.target.url,
            "analysis_type": self.target.mode.value,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "browsers": {engine: run.to_dict() for engine, run in self.runs.items()},
            "summary": {
                "accessibility_score": self.score.value,
                "analysis_confidence": self.score.confidence,
                "cross_browser_consistency": self.score.consistency.value,
                "average_content_change": self.score.average_diff_percent,
                "requires_js_rendering": self.requires_js_rendering,
                "frameworks_detected": list(self.frameworks),
                "error": self.score.error,
            },
            "recommendations": [rec.to_dict() for rec in self.recommendations],
            "success": self.success,
        }

    def to_row(self) -> list:
        """
        Flatten the report into scalar cells, in ROW_HEADERS order.
        """
        run = self.primary_run
        findings = run.category_findings if run else CategoryFindings.empty()

        pricing_missing = findings["pricing"].missing
        headings_missing = findings["headings"].missing
        navigation_missing = findings["navigation"].missing
        critical_missing = pricing_missing + headings_missing

        if critical_missing > 3 or pricing_missing > 0:
            impact_level = "High"
        elif critical_missing > 0 or navigation_missing > 0:
            impact_level = "Medium"
        else:
            impact_level = "Low"

        example = "None"
        for name in ("headings", "navigation", "pricing"):
            if findings[name].examples:
                example = findings[name].examples[0]
                break

        top_recommendations = " | ".join(rec.message for rec in self.recommendations[:2])
        protected = run is None or run.status in (
            RunStatus.PROTECTED,
            RunStatus.BLOCKED,
            RunStatus.FAILED,
        )

        return [
            run.raw_markup_length if run else 0,
            run.settled_markup_length if run else 0,
            self.score.average_diff_percent,
            ", ".join(self.frameworks) or "None",
            self.score.value,
            f"Complete ({self.target.mode.value})" if self.success else "Error",
            top_recommendations or "Analysis complete",
            (self.finished_at or self.started_at).isoformat(),
            findings.summary_line() if self.success else (self.score.error or ""),
            critical_missing,
            "Yes" if navigation_missing > 0 else "No",
            "Yes" if headings_missing > 0 else "No",
            findings["interactive"].missing,
            pricing_missing,
            impact_level,
            example[:50],
            run.evasion_used if run else "standard",
            "Yes" if protected else "No",
            self.score.confidence,
        ]


@dataclass(frozen=True)
class BatchCandidate:
    """A URL awaiting analysis and the 1-indexed row it came from."""

    url: str
    row_index: int


@dataclass
class BatchResult:
    """
    Results for a batch of targets.

    `deferred` holds eligible candidates beyond the per-invocation cap; they
    are reported, never silently dropped.
    `publish_errors` holds candidates whose report was analyzed but could not
    be published.
    """

    started_at: datetime
    finished_at: datetime | None
    reports: list[tuple[BatchCandidate, TargetReport]]
    deferred: list[BatchCandidate] = field(default_factory=list)
    invalid: list[tuple[BatchCandidate, str]] = field(default_factory=list)
    publish_errors: list[tuple[BatchCandidate, str]] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.reports) + len(self.invalid)

    @property
    def succeeded(self) -> int:
        return sum(1 for _, report in self.reports if report.success)

    @property
    def failed(self) -> int:
        return self.processed - self.succeeded
