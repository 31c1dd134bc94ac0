"""
Configuration value objects for the analysis engine.

Built once at the entry point and passed down to the session, classifier,
scorer and batch runner. Components never read process state directly;
only `from_env` does, and only the CLI calls it.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, replace

from .models import AnalysisMode

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

DEFAULT_BLOCKING_INDICATORS = (
    "access denied",
    "blocked",
    "security check",
    "captcha",
    "robot",
    "automated",
    "suspicious activity",
    "ray id",
)


@dataclass(frozen=True)
class ScoringConfig:
    """
    Penalty weights and thresholds for the accessibility score.

    These are tunable defaults, not fixed semantics.
    """

    # (threshold, penalty) pairs, checked from the largest threshold down
    volume_bands: tuple[tuple[float, int], ...] = (
        (100.0, 40),
        (50.0, 30),
        (25.0, 20),
        (10.0, 10),
    )
    pricing_penalty: int = 30
    reviews_penalty: int = 15
    navigation_penalty_per_link: int = 2
    navigation_penalty_cap: int = 20
    purchase_control_penalty: int = 25
    framework_penalty: int = 5
    framework_penalty_cap: int = 15
    consistency_penalty: int = 10
    min_raw_content_length: int = 500
    shell_page_penalty: int = 15

    # Variance of |diff_percent| across engines
    high_consistency_variance: float = 25.0
    medium_consistency_variance: float = 100.0

    failed_run_confidence_penalty: int = 30
    low_consistency_confidence_penalty: int = 15


@dataclass(frozen=True)
class AnalyzerConfig:
    """
    Settings for one analysis invocation.

    Timeouts and delays are in milliseconds.
    """

    mode: AnalysisMode = AnalysisMode.FULL
    navigation_timeout_ms: int = 30000
    settle_timeout_ms: int = 15000
    post_settle_delay_ms: int = 3000
    screenshot_timeout_ms: int = 10000
    example_limit: int = 3
    headless: bool = True
    user_agent: str = DEFAULT_USER_AGENT
    blocking_indicators: tuple[str, ...] = DEFAULT_BLOCKING_INDICATORS
    publish_results: bool = True
    output_dir: str = "."
    slow_load_threshold_ms: int = 5000
    scoring: ScoringConfig = field(default_factory=ScoringConfig)

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> "AnalyzerConfig":
        """
        Build a config from an environment mapping.

        Args:
            environ: Mapping such as os.environ

        Returns:
            AnalyzerConfig with recognised variables applied over defaults
        """
        config = cls()
        mode = environ.get("ANALYSIS_TYPE")
        if mode:
            config = replace(config, mode=AnalysisMode.parse(mode))

        config = replace(
            config,
            navigation_timeout_ms=_get_int(
                environ, "NAVIGATION_TIMEOUT_MS", config.navigation_timeout_ms
            ),
            settle_timeout_ms=_get_int(environ, "SETTLE_TIMEOUT_MS", config.settle_timeout_ms),
            publish_results=_get_bool(environ, "PUBLISH_RESULTS", config.publish_results),
            output_dir=environ.get("OUTPUT_DIR", config.output_dir),
        )
        return config


@dataclass(frozen=True)
class BatchConfig:
    """
    Settings for sequential batch processing.

    The inter-target delay is a politeness mechanism and is applied between
    every pair of targets.
    """

    max_batch_size: int = 50
    delay_between_targets_ms: int = 5000
    deadline_seconds: float = 600.0

    def __post_init__(self):
        """Validate limits."""
        if self.max_batch_size < 1:
            raise ValueError(f"max_batch_size must be positive: {self.max_batch_size}")
        if self.delay_between_targets_ms < 0:
            raise ValueError(
                f"delay_between_targets_ms must not be negative: {self.delay_between_targets_ms}"
            )

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> "BatchConfig":
        """Build a batch config from an environment mapping."""
        defaults = cls()
        return cls(
            max_batch_size=_get_int(environ, "MAX_BATCH_SIZE", defaults.max_batch_size),
            delay_between_targets_ms=_get_int(
                environ, "DELAY_BETWEEN_URLS", defaults.delay_between_targets_ms
            ),
            deadline_seconds=float(
                _get_int(environ, "GLOBAL_TIMEOUT_SECONDS", int(defaults.deadline_seconds))
            ),
        )


def _get_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw_value = environ.get(name)
    if raw_value is None or not raw_value.strip():
        return default
    try:
        return int(raw_value.strip())
    except ValueError:
        return default


def _get_bool(environ: Mapping[str, str], name: str, default: bool) -> bool:
    raw_value = environ.get(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}
