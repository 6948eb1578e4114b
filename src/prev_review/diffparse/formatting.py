"""Render enriched file changes as line-numbered review blocks."""

from .models import EnrichedFileChange, LineType

CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Approximate token count for text."""
    return len(text) // CHARS_PER_TOKEN


def _line_no(line: int | None) -> str:
    if line is None or line <= 0:
        return "?"
    return str(line)


def format_enriched_for_review(efc: EnrichedFileChange) -> str:
    """Format one enriched file: header, then one fenced block per hunk."""
    change = efc.change
    lang_tag = f" [{efc.language}]" if efc.language else ""
    parts = [
        f"## File: {change.path} ({change.label}) "
        f"[+{change.stats.additions}/-{change.stats.deletions}]{lang_tag}\n\n"
    ]

    if change.is_binary:
        parts.append("Binary file\n\n")
        return "".join(parts)

    fence = efc.language or "diff"
    for eh in efc.enriched_hunks:
        hunk = eh.hunk
        parts.append(f"### Lines {eh.start_line}-{eh.end_line}:\n")
        parts.append(
            f"@@ -{hunk.old_start},{hunk.old_lines} +{hunk.new_start},{hunk.new_lines} @@\n"
        )
        parts.append(f"```{fence}\n")

        for offset, line in enumerate(eh.context_before):
            line_no = eh.start_line + offset
            if line_no >= hunk.new_start:
                break
            parts.append(f"  {_line_no(line_no)} | {line}\n")

        for diff_line in hunk.lines:
            if diff_line.type is LineType.ADDED:
                parts.append(f"+ {_line_no(diff_line.new_line_no)} | {diff_line.content}\n")
            elif diff_line.type is LineType.DELETED:
                parts.append(f"- {_line_no(diff_line.old_line_no)} | {diff_line.content}\n")
            else:
                parts.append(f"  {_line_no(diff_line.new_line_no)} | {diff_line.content}\n")

        after_start = hunk.new_end + 1
        for offset, line in enumerate(eh.context_after):
            parts.append(f"  {_line_no(after_start + offset)} | {line}\n")

        parts.append("```\n\n")

    return "".join(parts)
