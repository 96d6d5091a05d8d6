"""Quality gate evaluation."""

from core.state import FixReport, VerificationResult


def needs_regeneration(report: FixReport) -> bool:
    """Any critical issue means the step is regenerated rather than patched."""
    return any(i.severity == "critical" for i in report.issues)


def verification_passed(result: VerificationResult) -> bool:
    """Zero failures recorded across every artifact."""
    return result.failure_count == 0


def summarize_issues(report: FixReport) -> dict:
    """Count issues by severity, e.g. {"high": 1, "critical": 1}."""
    counts = {}
    for issue in report.issues:
        counts[issue.severity] = counts.get(issue.severity, 0) + 1
    return counts
