"""
Report rendering for branch reviews.
"""

from ..diffparse.formatting import format_enriched_for_review
from .models import BranchReviewResult, FileComment, Severity

NO_ISSUES_TEXT = "No significant issues found."

__all__ = ["format_branch_review", "format_comment", "format_enriched_for_review"]


def format_comment(comment: FileComment) -> str:
    """``**path:line** [SEVERITY]: message`` plus an optional suggestion block."""
    location = f"{comment.file_path}:{comment.line}" if comment.line > 0 else comment.file_path
    text = f"**{location}** [{comment.severity.value}]: {comment.message}\n"
    if comment.suggestion:
        text += f"```suggestion\n{comment.suggestion}\n```\n"
    return text


def format_branch_review(result: BranchReviewResult) -> str:
    """Render a branch review as markdown."""
    parts = [f"# Branch Review: {result.branch_name} → {result.base_branch}\n\n"]

    parts.append("## Walkthrough\n\n")
    if result.walkthrough.summary:
        parts.append(f"{result.walkthrough.summary}\n\n")

    if result.walkthrough.changes_table:
        parts.append(f"## Changes\n\n{result.walkthrough.changes_table}\n\n")

    parts.append("## Detailed Review\n\n")
    severity_counts = {severity: 0 for severity in Severity}

    for review in result.file_reviews:
        parts.append(f"### {review.file_path}\n\n")
        if not review.comments:
            parts.append(f"{review.summary or NO_ISSUES_TEXT}\n\n")
            continue

        for comment in review.comments:
            severity_counts[comment.severity] += 1
            parts.append(format_comment(comment))
            parts.append("\n")

    issue_count = sum(severity_counts.values())
    parts.append("## Statistics\n\n")
    parts.append(f"- Files reviewed: {result.total_files}\n")
    if issue_count:
        breakdown = ", ".join(
            f"{count} {severity.value}" for severity, count in severity_counts.items() if count
        )
        parts.append(f"- Issues: {issue_count} ({breakdown})\n")
    else:
        parts.append("- Issues: 0\n")
    parts.append(f"- Changes: +{result.total_additions}/-{result.total_deletions}\n")

    return "".join(parts)
