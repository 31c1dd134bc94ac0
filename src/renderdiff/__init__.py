"""
JavaScript Rendering Differential Analyzer.

Core engine for measuring how much of a page's content only exists after
client-side scripts run. Designed to be reusable by the CLI and by any other
collaborator (spreadsheet writers, CI jobs).
"""

# Core models
from .classifier import ContentClassifier
from .config import AnalyzerConfig, BatchConfig, ScoringConfig

# Main orchestrators
from .job_runner import Analyzer, BatchRunner, select_pending_rows
from .models import (
    AccessibilityScore,
    AnalysisMode,
    BatchCandidate,
    BatchResult,
    BrowserRun,
    CategoryFindings,
    Recommendation,
    Target,
    TargetReport,
)
from .normalizer import normalize
from .recommendations import RecommendationSynthesizer
from .scorer import AccessibilityScorer
from .session import PageDriverSession

__all__ = [
    # Models
    "Target",
    "AnalysisMode",
    "BrowserRun",
    "CategoryFindings",
    "AccessibilityScore",
    "Recommendation",
    "TargetReport",
    "BatchCandidate",
    "BatchResult",
    # Configuration
    "AnalyzerConfig",
    "BatchConfig",
    "ScoringConfig",
    # Pipeline stages
    "normalize",
    "ContentClassifier",
    "AccessibilityScorer",
    "RecommendationSynthesizer",
    "PageDriverSession",
    # Main entry points
    "Analyzer",
    "BatchRunner",
    "select_pending_rows",
]
