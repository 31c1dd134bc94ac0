"""
Terminal output formatter for CLI.

Handles all display logic - no business logic, just presentation.
"""

from renderdiff.models import BatchResult, TargetReport
from renderdiff.reporting import render_text_summary


def print_report(report: TargetReport) -> None:
    """
    Print a human-readable report for one target.

    Args:
        report: TargetReport to display
    """
    print("\n" + "=" * 80)
    print(render_text_summary(report))
    print("=" * 80 + "\n")


def print_batch_summary(result: BatchResult) -> None:
    """
    Print a human-readable summary of a batch to terminal.

    Shows overall statistics, one line per analyzed target, and anything
    that was skipped or deferred.

    Args:
        result: BatchResult containing all reports
    """
    print("\n" + "=" * 80)
    print("RENDERING ANALYSIS BATCH")
    print("=" * 80)
    print(f"\nURLs Processed: {result.processed}")
    print(f"URLs Succeeded: {result.succeeded}")
    print(f"URLs Failed:    {result.failed}")
    print(f"URLs Deferred:  {len(result.deferred)}")

    if result.finished_at:
        duration = (result.finished_at - result.started_at).total_seconds()
        print(f"Duration:       {duration:.1f} seconds")

    print(f"\n{'=' * 80}\n")

    for candidate, report in result.reports:
        score = report.score
        if report.success:
            print(
                f"[row {candidate.row_index}] {candidate.url}\n"
                f"    Score: {score.value}/100  Confidence: {score.confidence}%  "
                f"Consistency: {score.consistency.value}  "
                f"JS required: {'YES' if report.requires_js_rendering else 'NO'}"
            )
        else:
            print(f"[row {candidate.row_index}] {candidate.url}\n    ✗ {report.error}")

    if result.invalid:
        print(f"\n{'=' * 80}")
        print(f"INVALID URLS ({len(result.invalid)})")
        print(f"{'=' * 80}\n")
        for candidate, error in result.invalid:
            print(f"[row {candidate.row_index}] {candidate.url}")
            print(f"    • {error}")

    if result.publish_errors:
        print(f"\n{'=' * 80}")
        print(f"UNPUBLISHED REPORTS ({len(result.publish_errors)})")
        print(f"{'=' * 80}\n")
        for candidate, error in result.publish_errors:
            print(f"[row {candidate.row_index}] {candidate.url}")
            print(f"    • {error}")

    if result.deferred:
        print(
            f"\n{len(result.deferred)} URLs deferred to the next run "
            f"(first: row {result.deferred[0].row_index})"
        )
