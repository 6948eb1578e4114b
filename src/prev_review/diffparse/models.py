"""
Data models for parsed and enriched diffs.

Line numbers are 1-based. ``None`` marks a line number that does not exist on
that side of the diff (deleted lines have no new number, added lines no old
number).
"""

from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel


class LineType(str, Enum):
    """Classification of a single diff line."""

    CONTEXT = "context"
    ADDED = "added"
    DELETED = "deleted"


@dataclass
class DiffLine:
    """A single line inside a hunk."""

    type: LineType
    content: str
    old_line_no: int | None = None
    new_line_no: int | None = None


@dataclass
class Hunk:
    """A contiguous block of change."""

    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    lines: list[DiffLine] = field(default_factory=list)

    @property
    def new_end(self) -> int:
        """Last new-file line covered by the hunk, never before ``new_start``."""
        return max(self.new_start + self.new_lines - 1, self.new_start)


@dataclass
class DiffStats:
    """Addition/deletion counts."""

    additions: int = 0
    deletions: int = 0


@dataclass
class FileChange:
    """Diff for a single file."""

    old_path: str = ""
    new_path: str = ""
    is_new: bool = False
    is_deleted: bool = False
    is_renamed: bool = False
    is_binary: bool = False
    hunks: list[Hunk] = field(default_factory=list)
    stats: DiffStats = field(default_factory=DiffStats)

    @property
    def path(self) -> str:
        """Path used for display and lookups: new path, else old path."""
        if self.new_path.strip():
            return self.new_path
        return self.old_path

    @property
    def label(self) -> str:
        """Human-readable change label."""
        if self.is_new:
            return "New"
        if self.is_deleted:
            return "Deleted"
        if self.is_renamed:
            return f"Renamed from {self.old_path}"
        return "Modified"


@dataclass
class EnrichedHunk:
    """A hunk with surrounding source lines.

    ``start_line``/``end_line`` is the inclusive new-file range covered after
    context expansion and merging.
    """

    hunk: Hunk
    context_before: list[str] = field(default_factory=list)
    context_after: list[str] = field(default_factory=list)
    start_line: int = 1
    end_line: int = 1


@dataclass
class EnrichedFileChange:
    """A file change augmented with surrounding code context."""

    change: FileChange
    language: str = ""
    full_new_content: str = ""
    enriched_hunks: list[EnrichedHunk] = field(default_factory=list)
    token_estimate: int = 0

    @property
    def path(self) -> str:
        return self.change.path


class HostDiff(BaseModel):
    """Per-file diff record as returned by a hosting API (GitLab MR changes)."""

    old_path: str = ""
    new_path: str = ""
    diff: str = ""
    new_file: bool = False
    renamed_file: bool = False
    deleted_file: bool = False
