"""
Diff parsing and context enrichment.

Turns unified diff text into structured file changes and expands hunks with
surrounding source lines for review.
"""

from .context import (
    ContextEnricher,
    enrich_hunks,
    fallback_enriched_hunks,
    total_tokens,
)
from .formatting import estimate_tokens, format_enriched_for_review
from .language import detect_language
from .models import (
    DiffLine,
    DiffStats,
    EnrichedFileChange,
    EnrichedHunk,
    FileChange,
    HostDiff,
    Hunk,
    LineType,
)
from .parser import (
    DiffParser,
    filter_by_path,
    filter_text_changes,
    format_for_review,
    is_binary_path,
    parse_git_diff,
    parse_host_diffs,
)

__all__ = [
    "ContextEnricher",
    "enrich_hunks",
    "fallback_enriched_hunks",
    "total_tokens",
    "estimate_tokens",
    "format_enriched_for_review",
    "detect_language",
    "DiffLine",
    "DiffStats",
    "EnrichedFileChange",
    "EnrichedHunk",
    "FileChange",
    "HostDiff",
    "Hunk",
    "LineType",
    "DiffParser",
    "filter_by_path",
    "filter_text_changes",
    "format_for_review",
    "is_binary_path",
    "parse_git_diff",
    "parse_host_diffs",
]
