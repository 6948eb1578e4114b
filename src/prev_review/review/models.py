"""
Data models for the branch review pipeline.

Defines all types passed between categorization, batching, the completion
rounds and report rendering.
"""

from dataclasses import dataclass, field
from enum import Enum

from ..diffparse.models import EnrichedFileChange, FileChange


class Severity(str, Enum):
    """How severe a review comment is. Declaration order is report order."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @classmethod
    def parse(cls, value: str) -> "Severity | None":
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


_SEVERITY_RANK = {
    Severity.CRITICAL: 4,
    Severity.HIGH: 3,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
}


class Strictness(str, Enum):
    """How much the reviewer should report."""

    STRICT = "strict"  # Everything, including nits
    NORMAL = "normal"  # MEDIUM and above
    LENIENT = "lenient"  # HIGH and above

    @property
    def min_severity(self) -> Severity:
        return _MIN_SEVERITY[self]

    @classmethod
    def parse(cls, value: "Strictness | str") -> "Strictness":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.NORMAL


_MIN_SEVERITY = {
    Strictness.STRICT: Severity.LOW,
    Strictness.NORMAL: Severity.MEDIUM,
    Strictness.LENIENT: Severity.HIGH,
}


class CommentKind(str, Enum):
    ISSUE = "ISSUE"
    SUGGESTION = "SUGGESTION"
    REMARK = "REMARK"

    @classmethod
    def parse(cls, value: str) -> "CommentKind | None":
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


class ChangeCategory(str, Enum):
    """What happened to the file."""

    NEW = "New"
    MODIFIED = "Modified"
    DELETED = "Deleted"
    RENAMED = "Renamed"
    BINARY = "Binary"


class FileGroup(str, Enum):
    """Topical group derived from the file path."""

    TESTS = "tests"
    COMMANDS = "commands"
    DOCS = "docs"
    DEPENDENCIES = "dependencies"
    CI_CONFIG = "ci/config"
    CORE = "core"
    OTHER = "other"


@dataclass
class CategorizedFile:
    """An enriched file change with category and group."""

    enriched: EnrichedFileChange
    category: ChangeCategory
    group: FileGroup

    @property
    def change(self) -> FileChange:
        return self.enriched.change

    @property
    def path(self) -> str:
        return self.enriched.change.path

    @property
    def token_estimate(self) -> int:
        return self.enriched.token_estimate


@dataclass
class FileBatch:
    """Files reviewed together in one completion call.

    A solo batch holds a single oversized file and accepts nothing else.
    """

    files: list[CategorizedFile] = field(default_factory=list)
    total_tokens: int = 0
    solo: bool = False


@dataclass
class FileComment:
    """A review comment on a specific file/line. ``line`` is 0 when unknown."""

    file_path: str
    line: int = 0
    kind: CommentKind = CommentKind.ISSUE
    severity: Severity = Severity.MEDIUM
    message: str = ""
    suggestion: str = ""


@dataclass
class ReviewResponse:
    """Parsed detailed-review completion."""

    summary: str = ""
    comments: list[FileComment] = field(default_factory=list)
    file_summaries: dict[str, str] = field(default_factory=dict)


@dataclass
class WalkthroughResult:
    """Pass-1 walkthrough summary."""

    summary: str = ""
    changes_table: str = ""
    raw_content: str = ""


@dataclass
class FileReviewResult:
    """Review output for a single file."""

    file_path: str
    comments: list[FileComment] = field(default_factory=list)
    summary: str = ""


@dataclass
class BranchReviewResult:
    """Complete output of a branch review."""

    branch_name: str
    base_branch: str
    walkthrough: WalkthroughResult
    file_reviews: list[FileReviewResult] = field(default_factory=list)
    total_files: int = 0
    total_additions: int = 0
    total_deletions: int = 0

    @property
    def all_comments(self) -> list[FileComment]:
        return [c for fr in self.file_reviews for c in fr.comments]
