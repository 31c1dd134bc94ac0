"""
Human-readable rendering of a target report.
"""

from .models import TargetReport


def render_text_summary(report: TargetReport) -> str:
    """
    Render a report as plain text.

    Args:
        report: TargetReport to render

    Returns:
        Multi-line summary
    """
    score = report.score
    lines = [
        "JavaScript Rendering Analysis Report",
        "=" * 36,
        "",
        f"URL: {report.target.url}",
        f"Analysis Type: {report.target.mode.value}",
        f"Started: {report.started_at.isoformat()}",
        "",
        "SUMMARY",
        "-" * 7,
        f"Accessibility Score: {score.value}/100",
        f"Requires JS Rendering: {'YES' if report.requires_js_rendering else 'NO'}",
        f"Average Content Change: {score.average_diff_percent}%",
        f"Frameworks Detected: {', '.join(report.frameworks) or 'None'}",
        f"Cross-Browser Consistency: {score.consistency.value}",
        f"Analysis Confidence: {score.confidence}%",
    ]
    if score.error:
        lines.append(f"Error: {score.error}")

    run = report.primary_run
    if run is not None and run.succeeded:
        findings = run.category_findings
        lines += ["", f"CONTENT MISSING FROM RAW HTML ({run.engine_id})", "-" * 30]
        lines.append(findings.summary_line())
        for name, finding in findings.categories.items():
            if finding.missing > 0:
                example = f" - e.g. {finding.examples[0]!r}" if finding.examples else ""
                lines.append(f"  {name}: {finding.missing}/{finding.total} missing{example}")

        if findings.pricing.currency or findings.pricing.minimum is not None:
            lines.append(
                f"  pricing range: {findings.pricing.currency or ''}"
                f"{findings.pricing.minimum} - {findings.pricing.maximum}"
            )
        if findings.reviews.average is not None:
            lines.append(
                f"  average rating: {findings.reviews.average}/5 "
                f"({len(findings.reviews.ratings)} ratings)"
            )
        if findings.link_breakdown:
            breakdown = ", ".join(
                f"{category.value}={count}" for category, count in findings.link_breakdown.items()
            )
            lines.append(f"  missing links by type: {breakdown}")

    lines += ["", "RECOMMENDATIONS", "-" * 15]
    for recommendation in report.recommendations:
        lines.append(f"[{recommendation.severity.value.upper()}] {recommendation.message}")

    lines += ["", "BROWSER RESULTS", "-" * 15]
    for engine_id, browser_run in report.runs.items():
        lines += [
            f"{engine_id.upper()}:",
            f"  Status: {browser_run.status.value}",
            f"  Content Change: {browser_run.diff_percent}%",
            f"  Frameworks: {', '.join(browser_run.frameworks) or 'None'}",
            f"  Load Time: {round(browser_run.performance_metrics.total_load_time)}ms",
            f"  Screenshot: {browser_run.screenshot_path or 'None'}",
        ]
        if browser_run.error:
            lines.append(f"  Error: {browser_run.error}")

    return "\n".join(lines)
