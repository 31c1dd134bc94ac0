"""
Error taxonomy for the rendering differential analysis engine.

Per-engine errors are caught by the analyzer and recorded on the BrowserRun;
only input validation failures and the batch deadline terminate a run.
"""


class AnalyzerError(Exception):
    """Base exception for analyzer errors."""

    pass


class InvalidInputError(AnalyzerError, ValueError):
    """Raised when a target URL or analysis mode cannot be used."""

    pass


class NavigationError(AnalyzerError):
    """Raised when the target page could not be navigated to."""

    pass


class TransportProtocolError(NavigationError):
    """Exception raised on a transport negotiation failure (e.g. HTTP/2)."""

    pass


class NavigationTimeoutError(NavigationError):
    """Exception raised when navigation exceeds its timeout."""

    pass


class BlockedError(AnalyzerError):
    """Raised when the page shows automation-detection indicators."""

    pass


class EngineFailure(AnalyzerError):
    """Any other failure inside a single engine's session."""

    pass


class BatchDeadlineExceeded(AnalyzerError):
    """Raised when a batch overruns its wall-clock deadline."""

    pass
