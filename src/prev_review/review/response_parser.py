"""
Review Response Parser

Turns detailed-review completion text into structured file comments.
Accepts the markdown finding format requested by the review prompt and a
JSON fallback some models prefer.
"""

import json
import re
from dataclasses import dataclass
from typing import Any

import structlog

from .models import CommentKind, FileComment, ReviewResponse, Severity, Strictness

logger = structlog.get_logger(__name__)

# **path:42** [HIGH]: msg   /   File: path (line 42) [ISSUE] [HIGH]: msg
COMMENT_HEADER = re.compile(
    r"^\s*(?:[-*]\s*)?(?:File:\s*)?([^\s:()\[\]]+\.\w+)\s*(?:\(line\s*(\d+)\)|:(\d+))?"
    r"\s*(?:\[(\w+)\])?\s*(?:\[(\w+)\])?\s*:?\s*(.*)\s*$",
    re.IGNORECASE,
)

# File: path (modified) [ISSUE] [HIGH]: msg
RELAXED_COMMENT_HEADER = re.compile(
    r"^\s*(?:[-*]\s*)?(?:File:\s*)?([^\s:()\[\]]+\.\w+)\s*(?:\(([^)]*)\))?"
    r"\s*(?:\[(\w+)\])?\s*(?:\[(\w+)\])?\s*:?\s*(.*)\s*$",
    re.IGNORECASE,
)

LINE_IN_PARENS = re.compile(r"\bline\s*(\d+)\b", re.IGNORECASE)

# Bold or "File:" marks a bare path as a header; otherwise it needs a line or label.
EXPLICIT_HEADER = re.compile(r"^\s*(?:[-*]\s*)?(?:\*\*|File:)", re.IGNORECASE)

# "**file.go**: No significant issues found."
NO_ISSUES = re.compile(r"^no\s+(?:significant\s+)?issues\b", re.IGNORECASE)

FENCE = "```"
SUGGESTION_FENCE = "```suggestion"

FINDING_KEYS = ("findings", "file_comments", "comments", "issues")


@dataclass
class CommentHeader:
    file_path: str
    line: int
    kind: CommentKind
    severity: Severity
    message: str
    labeled: bool = True

    @property
    def is_clean_verdict(self) -> bool:
        """An unlabeled header saying the file has no issues."""
        return not self.labeled and bool(NO_ISSUES.match(self.message))


def parse_kind_and_severity(*tokens: str | None) -> tuple[CommentKind, Severity]:
    """Read kind and severity labels in any order, with ISSUE/MEDIUM defaults."""
    kind = CommentKind.ISSUE
    severity = Severity.MEDIUM
    for token in tokens:
        if not token or not token.strip():
            continue
        parsed_kind = CommentKind.parse(token)
        if parsed_kind is not None:
            kind = parsed_kind
            continue
        parsed_severity = Severity.parse(token)
        if parsed_severity is not None:
            severity = parsed_severity
    return kind, severity


def parse_comment_header(line: str) -> CommentHeader | None:
    """Parse a finding header line, or None if the line is not one.

    A line opening with a dotted word such as ``os.path.join is unsafe`` is
    prose unless it carries a line number or label, or is bold or prefixed
    with ``File:``.
    """
    header = _match_comment_header(line)
    if header is None or not (header.labeled or EXPLICIT_HEADER.match(line)):
        return None
    return header


def _match_comment_header(line: str) -> CommentHeader | None:
    normalized = line.replace("**", "").strip()
    if not normalized:
        return None

    match = COMMENT_HEADER.match(normalized)
    if match and match.group(1).strip():
        has_meta = any((match.group(i) or "").strip() for i in (2, 3, 4, 5))
        # "path (modified): ..." belongs to the relaxed form
        if not has_meta and match.group(6).strip().startswith("("):
            match = None

    if match and match.group(1).strip():
        line_no = int(match.group(2) or match.group(3) or 0)
        kind, severity = parse_kind_and_severity(match.group(4), match.group(5))
        return CommentHeader(
            file_path=match.group(1).strip(),
            line=line_no,
            kind=kind,
            severity=severity,
            message=match.group(6).strip(),
            labeled=has_meta,
        )

    relaxed = RELAXED_COMMENT_HEADER.match(normalized)
    if not relaxed or not relaxed.group(1).strip():
        return None

    line_no = 0
    paren = LINE_IN_PARENS.search((relaxed.group(2) or "").strip())
    if paren:
        line_no = int(paren.group(1))
    kind, severity = parse_kind_and_severity(relaxed.group(3), relaxed.group(4))
    return CommentHeader(
        file_path=relaxed.group(1).strip(),
        line=line_no,
        kind=kind,
        severity=severity,
        message=relaxed.group(5).strip(),
        labeled=bool(line_no or relaxed.group(3) or relaxed.group(4)),
    )


def _trim_blank_edges(lines: list[str]) -> list[str]:
    start, end = 0, len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return lines[start:end]


def extract_suggestion(msg_lines: list[str]) -> tuple[str, str]:
    """Split message lines into (message, suggestion) around a suggestion fence."""
    message_parts: list[str] = []
    suggestion_parts: list[str] = []
    in_suggestion = False

    for line in msg_lines:
        stripped = line.strip()
        if not in_suggestion and stripped.startswith(SUGGESTION_FENCE):
            in_suggestion = True
            continue
        if in_suggestion:
            if stripped == FENCE:
                in_suggestion = False
                continue
            suggestion_parts.append(line)
        else:
            message_parts.append(line)

    message = "\n".join(message_parts).strip()
    suggestion = "\n".join(_trim_blank_edges(suggestion_parts))
    return message, suggestion


def _parse_file_comments(lines: list[str], response: ReviewResponse) -> None:
    comments = response.comments
    current: CommentHeader | None = None
    msg_lines: list[str] = []
    in_code_block = False

    def flush():
        if current is None:
            return
        message, suggestion = extract_suggestion(msg_lines)
        if current.is_clean_verdict:
            response.file_summaries[current.file_path] = message
            return
        comments.append(
            FileComment(
                file_path=current.file_path,
                line=current.line,
                kind=current.kind,
                severity=current.severity,
                message=message,
                suggestion=suggestion,
            )
        )

    for line in lines:
        stripped = line.strip()

        # Fenced code never starts a new comment
        if stripped.startswith(FENCE):
            in_code_block = not in_code_block
            if current is not None:
                msg_lines.append(line)
            continue
        if in_code_block:
            if current is not None:
                msg_lines.append(line)
            continue

        header = parse_comment_header(line)
        if header is not None:
            flush()
            current = header
            msg_lines = [header.message] if header.message else []
        elif current is not None:
            msg_lines.append(line)

    flush()


def parse_review_response(content: str) -> ReviewResponse:
    """Parse markdown review output.

    Everything before the first finding header is the summary. Unlabeled
    "no issues" verdicts land in ``file_summaries`` rather than ``comments``.
    """
    lines = content.split("\n")
    for i, line in enumerate(lines):
        if parse_comment_header(line) is not None:
            response = ReviewResponse(summary="\n".join(lines[:i]).strip())
            _parse_file_comments(lines[i:], response)
            return response
    return ReviewResponse(summary=content.strip())


def _extract_json_payload(content: str) -> str:
    text = content.strip()
    if not text:
        return ""

    if text.startswith(FENCE):
        lines = text.split("\n")
        if len(lines) >= 3 and lines[-1].strip() == FENCE:
            text = "\n".join(lines[1:-1]).strip()
            if not text:
                return ""

    if text[0] == "[":
        end = text.rfind("]")
        return text[: end + 1].strip() if end > 0 else ""
    if text[0] == "{":
        end = text.rfind("}")
        return text[: end + 1].strip() if end > 0 else ""

    start, end = text.find("["), text.rfind("]")
    if start >= 0 and end > start:
        return text[start : end + 1].strip()
    start, end = text.find("{"), text.rfind("}")
    if start >= 0 and end > start:
        return text[start : end + 1].strip()
    return ""


def _first_string(item: dict[str, Any], *keys: str) -> str:
    for key in keys:
        value = item.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return ""


def _first_int(item: dict[str, Any], *keys: str) -> int:
    for key in keys:
        if key not in item:
            continue
        value = item[key]
        if isinstance(value, bool):
            continue
        if isinstance(value, (int, float)):
            return int(value)
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                continue
    return 0


def _to_file_comments(items: list[Any]) -> list[FileComment]:
    comments = []
    for item in items:
        if not isinstance(item, dict):
            continue
        path = _first_string(item, "file", "file_path", "path", "filename").strip()
        if not path:
            continue
        kind, severity = parse_kind_and_severity(
            _first_string(item, "kind", "type"),
            _first_string(item, "severity", "level", "priority"),
        )
        suggestion = _first_string(item, "suggestion", "patch", "fix")
        comments.append(
            FileComment(
                file_path=path,
                line=_first_int(item, "line", "new_line", "line_number"),
                kind=kind,
                severity=severity,
                message=_first_string(item, "message", "title", "description").strip(),
                suggestion="\n".join(_trim_blank_edges(suggestion.replace("\r\n", "\n").split("\n")))
                if suggestion
                else "",
            )
        )
    return comments


def parse_review_response_json(content: str) -> ReviewResponse | None:
    """Parse JSON review output, or None when the text holds no usable findings.

    Accepts ``{"summary": ..., "findings": [...]}`` (also ``file_comments``,
    ``comments`` or ``issues``) or a bare array of findings, optionally fenced.
    """
    payload = _extract_json_payload(content)
    if not payload:
        return None

    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        return None

    if isinstance(data, dict) and data:
        summary = data.get("summary")
        summary = summary.strip() if isinstance(summary, str) else ""
        for key in FINDING_KEYS:
            items = data.get(key)
            if isinstance(items, list):
                comments = _to_file_comments(items)
                if comments:
                    return ReviewResponse(summary=summary, comments=comments)
                return None
        return None

    if isinstance(data, list) and data:
        comments = _to_file_comments(data)
        return ReviewResponse(comments=comments) if comments else None

    return None


def parse_review(content: str) -> ReviewResponse:
    """Parse review output as JSON when possible, otherwise as markdown."""
    parsed = parse_review_response_json(content)
    if parsed is not None:
        logger.debug("Parsed JSON review response", comments=len(parsed.comments))
        return parsed
    return parse_review_response(content)


def filter_by_severity(
    comments: list[FileComment], strictness: Strictness | str
) -> list[FileComment]:
    """Drop comments below the strictness threshold.

    strict keeps everything, normal keeps MEDIUM and above, lenient keeps HIGH
    and above.
    """
    min_rank = Strictness.parse(strictness).min_severity.rank
    return [c for c in comments if c.severity.rank >= min_rank]
