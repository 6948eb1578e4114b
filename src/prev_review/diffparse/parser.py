"""
Unified Diff Parser

Parses git diff output (or per-file records from a hosting API) into
structured FileChange objects with classified, line-numbered hunks.
"""

import re
from collections.abc import Iterable, Mapping
from pathlib import PurePosixPath

import structlog

from ..errors import DiffParseError
from .models import DiffLine, DiffStats, FileChange, HostDiff, Hunk, LineType

logger = structlog.get_logger(__name__)

DEV_NULL = "/dev/null"
NO_NEWLINE_MARKER = "\\ No newline at end of file"

BINARY_EXTENSIONS = frozenset({
    ".pdf", ".png", ".jpg", ".jpeg", ".gif", ".webp", ".bmp", ".ico", ".tiff", ".heic",
    ".zip", ".tar", ".gz", ".bz2", ".xz", ".7z", ".rar",
    ".jar", ".war", ".so", ".dll", ".dylib", ".a", ".o", ".obj", ".exe", ".bin", ".class",
    ".woff", ".woff2", ".ttf", ".otf", ".eot",
    ".mp3", ".mp4", ".mov", ".wav", ".avi", ".mkv", ".flac",
})


def is_binary_path(path: str) -> bool:
    """Guess whether a path is binary from its extension."""
    return PurePosixPath(path.strip()).suffix.lower() in BINARY_EXTENSIONS


def clean_path(path: str) -> str:
    """Strip the conventional ``a/`` or ``b/`` prefix."""
    path = path.strip().strip('"')
    if path.startswith(("a/", "b/")):
        return path[2:]
    return path


class _HunkCursor:
    """Tracks old/new line positions while consuming a hunk body."""

    def __init__(self, hunk: Hunk):
        self.hunk = hunk
        self.old_line = hunk.old_start
        self.new_line = hunk.new_start

    @property
    def complete(self) -> bool:
        hunk = self.hunk
        return (
            self.old_line >= hunk.old_start + hunk.old_lines
            and self.new_line >= hunk.new_start + hunk.new_lines
        )

    def append(self, change: FileChange, line: str) -> None:
        if line == "" or line == NO_NEWLINE_MARKER:
            return

        marker = line[0]
        if marker == "+":
            diff_line = DiffLine(LineType.ADDED, line[1:], new_line_no=self.new_line)
            self.new_line += 1
            change.stats.additions += 1
        elif marker == "-":
            diff_line = DiffLine(LineType.DELETED, line[1:], old_line_no=self.old_line)
            self.old_line += 1
            change.stats.deletions += 1
        else:
            content = line[1:] if marker == " " else line
            diff_line = DiffLine(
                LineType.CONTEXT,
                content,
                old_line_no=self.old_line,
                new_line_no=self.new_line,
            )
            self.old_line += 1
            self.new_line += 1

        self.hunk.lines.append(diff_line)


class DiffParser:
    """Parse unified diff text into structured FileChange objects."""

    FILE_HEADER = re.compile(r'^diff --git "?a/(.+?)"? "?b/(.+?)"?$')
    HUNK_HEADER = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@(.*)$")
    NEW_FILE = re.compile(r"^new file mode ")
    DELETED_FILE = re.compile(r"^deleted file mode ")
    RENAME_FROM = re.compile(r"^rename from (.+)$")
    RENAME_TO = re.compile(r"^rename to (.+)$")
    BINARY_FILE = re.compile(r"^Binary files |GIT binary patch")

    def parse(self, raw: str) -> list[FileChange]:
        """Parse full diff output.

        Raises:
            DiffParseError: if ``raw`` is non-empty but contains no file diffs.
        """
        lines = raw.replace("\r\n", "\n").split("\n")

        changes: list[FileChange] = []
        current: FileChange | None = None
        cursor: _HunkCursor | None = None

        def flush_hunk() -> None:
            nonlocal cursor
            if current is not None and cursor is not None:
                current.hunks.append(cursor.hunk)
            cursor = None

        def flush_file() -> None:
            nonlocal current
            flush_hunk()
            if current is not None:
                changes.append(self._finalize(current))
            current = None

        for line in lines:
            if line.startswith("diff --git "):
                flush_file()
                old_path, new_path = self._parse_git_header(line)
                current = FileChange(old_path=old_path, new_path=new_path)
                continue

            # Plain unified diffs have no "diff --git" line; a "---" marker
            # outside an unfinished hunk opens the next file.
            if line.startswith("--- ") and (current is None or (cursor and cursor.complete)):
                flush_file()
                current = FileChange()

            if current is None:
                continue

            if cursor is None or cursor.complete:
                if self._apply_header_line(current, line):
                    continue

            if line.startswith("@@ "):
                flush_hunk()
                hunk = self.parse_hunk_header(line)
                if hunk is None:
                    logger.debug("Skipping malformed hunk header", header=line, file=current.path)
                    continue
                cursor = _HunkCursor(hunk)
                continue

            if cursor is None:
                continue
            cursor.append(current, line)

        flush_file()

        if not changes and raw.strip():
            raise DiffParseError("failed to parse diff: no file diffs found")

        logger.debug("Parsed diff", files=len(changes))
        return changes

    def parse_host_diffs(self, records: Iterable[HostDiff | Mapping]) -> list[FileChange]:
        """Convert hosting-API per-file diff records into FileChanges."""
        changes: list[FileChange] = []
        for record in records:
            diff = record if isinstance(record, HostDiff) else HostDiff.model_validate(record)
            change = FileChange(
                old_path=diff.old_path,
                new_path=diff.new_path,
                is_new=diff.new_file,
                is_deleted=diff.deleted_file,
                is_renamed=diff.renamed_file,
                is_binary=bool(self.BINARY_FILE.search(diff.diff)),
            )
            if diff.diff:
                self._parse_hunks_into(change, diff.diff)
            changes.append(self._finalize(change))
        return changes

    def parse_hunk_header(self, line: str) -> Hunk | None:
        """Parse ``@@ -a[,b] +c[,d] @@``; None when the ranges are malformed."""
        match = self.HUNK_HEADER.match(line)
        if not match:
            return None
        return Hunk(
            old_start=int(match.group(1)),
            old_lines=int(match.group(2) or "1"),
            new_start=int(match.group(3)),
            new_lines=int(match.group(4) or "1"),
        )

    def _parse_hunks_into(self, change: FileChange, raw: str) -> None:
        cursor: _HunkCursor | None = None
        for line in raw.replace("\r\n", "\n").split("\n"):
            if line.startswith("@@ "):
                if cursor is not None:
                    change.hunks.append(cursor.hunk)
                    cursor = None
                hunk = self.parse_hunk_header(line)
                if hunk is not None:
                    cursor = _HunkCursor(hunk)
                continue
            if cursor is not None:
                cursor.append(change, line)
        if cursor is not None:
            change.hunks.append(cursor.hunk)

    def _apply_header_line(self, change: FileChange, line: str) -> bool:
        """Apply a file-level marker line. Returns True if the line was one."""
        if self.NEW_FILE.match(line):
            change.is_new = True
            return True
        if self.DELETED_FILE.match(line):
            change.is_deleted = True
            return True

        rename_from = self.RENAME_FROM.match(line)
        if rename_from:
            change.is_renamed = True
            change.old_path = clean_path(rename_from.group(1))
            return True
        rename_to = self.RENAME_TO.match(line)
        if rename_to:
            change.is_renamed = True
            change.new_path = clean_path(rename_to.group(1))
            return True

        if self.BINARY_FILE.search(line):
            change.is_binary = True
            return True

        if line.startswith("--- "):
            path = self._parse_path_marker(line[4:])
            if path == DEV_NULL:
                change.is_new = True
                change.old_path = ""
            else:
                change.old_path = clean_path(path)
            return True
        if line.startswith("+++ "):
            path = self._parse_path_marker(line[4:])
            if path == DEV_NULL:
                change.is_deleted = True
                change.new_path = ""
            else:
                change.new_path = clean_path(path)
            return True

        return False

    def _parse_git_header(self, line: str) -> tuple[str, str]:
        match = self.FILE_HEADER.match(line)
        if match:
            return match.group(1), match.group(2)
        parts = line.split()
        if len(parts) < 4:
            return "", ""
        return clean_path(parts[2]), clean_path(parts[3])

    @staticmethod
    def _parse_path_marker(raw: str) -> str:
        path = raw.strip()
        if "\t" in path:
            return path.split("\t", 1)[0].strip('"')
        if path.startswith('"') and path.endswith('"'):
            return path.strip('"')
        return path.split(" ", 1)[0]

    @staticmethod
    def _finalize(change: FileChange) -> FileChange:
        if change.is_new:
            change.old_path = ""
        if change.is_deleted:
            change.new_path = ""
        if (
            not change.is_renamed
            and change.old_path
            and change.new_path
            and change.old_path != change.new_path
        ):
            change.is_renamed = True
        if not change.is_binary:
            change.is_binary = is_binary_path(change.path)
        return change


def parse_git_diff(raw: str) -> list[FileChange]:
    """Parse raw unified diff output."""
    return DiffParser().parse(raw)


def parse_host_diffs(records: Iterable[HostDiff | Mapping]) -> list[FileChange]:
    """Parse per-file diff records from a hosting API."""
    return DiffParser().parse_host_diffs(records)


def filter_text_changes(changes: list[FileChange]) -> list[FileChange]:
    """Drop binary changes."""
    return [c for c in changes if not c.is_binary]


def filter_by_path(changes: list[FileChange], path_filter: str) -> list[FileChange]:
    """Keep changes whose old or new path contains ``path_filter``."""
    path_filter = path_filter.strip()
    if not path_filter or path_filter == ".":
        return changes
    return [c for c in changes if path_filter in c.new_path or path_filter in c.old_path]


def format_for_review(changes: list[FileChange]) -> str:
    """Render non-binary changes as a plain unified diff with file headers."""
    parts: list[str] = []
    for change in changes:
        if change.is_binary:
            continue
        parts.append(
            f"### File: {change.path} ({change.label}) "
            f"[+{change.stats.additions}/-{change.stats.deletions}]\n"
        )
        for hunk in change.hunks:
            parts.append(
                f"@@ -{hunk.old_start},{hunk.old_lines} +{hunk.new_start},{hunk.new_lines} @@\n"
            )
            for diff_line in hunk.lines:
                parts.append(f"{_PREFIX[diff_line.type]}{diff_line.content}\n")
        parts.append("\n")
    return "".join(parts)


_PREFIX = {
    LineType.ADDED: "+",
    LineType.DELETED: "-",
    LineType.CONTEXT: " ",
}
