"""
Context Enricher

Expands each hunk with surrounding lines from the target revision, merges
hunks whose expanded windows touch, and estimates the token cost of the
resulting review block.
"""

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Protocol

import structlog

from ..errors import GitError, SymbolProviderError
from ..symbols.models import SymbolInfo
from .formatting import estimate_tokens, format_enriched_for_review
from .language import detect_language
from .models import EnrichedFileChange, EnrichedHunk, FileChange, Hunk

logger = structlog.get_logger(__name__)

# Flat estimate for files that carry no reviewable text.
NON_TEXT_TOKEN_ESTIMATE = 100


class FileSource(Protocol):
    """Reads file content at a revision. ``None`` means the file is absent."""

    async def read_file(self, ref: str, path: str) -> str | None: ...


class SymbolLookup(Protocol):
    """Finds the code symbol enclosing a line."""

    async def find_enclosing_symbol(self, file_path: str, line: int) -> SymbolInfo | None: ...


@dataclass
class _Window:
    hunk: Hunk
    start: int
    end: int


def fallback_enriched_hunks(hunks: list[Hunk]) -> list[EnrichedHunk]:
    """Context-free enriched hunks spanning each hunk's own new-file range."""
    enriched = []
    for hunk in hunks:
        start = hunk.new_start if hunk.new_start > 0 else 1
        end = max(hunk.new_start + hunk.new_lines - 1, start)
        enriched.append(EnrichedHunk(hunk=hunk, start_line=start, end_line=end))
    return enriched


def enrich_hunks(hunks: list[Hunk], lines: list[str], context_lines: int) -> list[EnrichedHunk]:
    """Add context lines around hunks, merging windows that overlap or touch.

    Line counts on a merged hunk are the sum of its parts; they are only an
    approximation used for display and token estimation.
    """
    if not hunks or not lines:
        return []

    total = len(lines)
    windows: list[_Window] = []
    for hunk in sorted(hunks, key=lambda h: h.new_start):
        start = max(hunk.new_start - context_lines, 1)
        end = min(hunk.new_end + context_lines, total)

        if windows and start <= windows[-1].end + 1:
            last = windows[-1]
            last.end = max(last.end, end)
            last.hunk = replace(
                last.hunk,
                lines=last.hunk.lines + hunk.lines,
                old_lines=last.hunk.old_lines + hunk.old_lines,
                new_lines=last.hunk.new_lines + hunk.new_lines,
            )
        else:
            windows.append(_Window(hunk=hunk, start=start, end=end))

    enriched = []
    for window in windows:
        hunk = window.hunk
        before_end = min(hunk.new_start - 1, total)
        after_start = hunk.new_end + 1
        enriched.append(
            EnrichedHunk(
                hunk=hunk,
                context_before=lines[window.start - 1:before_end] if before_end >= window.start else [],
                context_after=lines[after_start - 1:window.end] if after_start <= window.end else [],
                start_line=window.start,
                end_line=window.end,
            )
        )
    return enriched


def content_lines(content: str) -> list[str]:
    """Split file content into lines; a final newline does not start a new line."""
    if content.endswith("\n"):
        content = content[:-1]
    return content.split("\n")


def symbol_hunk(eh: EnrichedHunk, symbol: SymbolInfo) -> EnrichedHunk | None:
    """Rebuild a hunk's context from the symbol enclosing it.

    The symbol body is split around the change: lines before the hunk become
    context-before, lines after it context-after. Returns None unless the
    symbol carries a valid 1-based range that contains the hunk start.
    """
    hunk = eh.hunk
    start, end = symbol.start_line, symbol.end_line
    if start < 1 or end < start or not start <= hunk.new_start <= end:
        return None

    body = content_lines(symbol.content)
    return replace(
        eh,
        context_before=body[: hunk.new_start - start],
        context_after=body[hunk.new_end + 1 - start : end - start + 1],
        start_line=start,
        end_line=max(end, hunk.new_end),
    )


def total_tokens(enriched: list[EnrichedFileChange]) -> int:
    """Sum of token estimates."""
    return sum(efc.token_estimate for efc in enriched)


class ContextEnricher:
    """Attach surrounding source context to parsed file changes."""

    def __init__(self, source: FileSource, context_lines: int = 10, repo_path: str | Path = "."):
        """
        Initialize enricher.

        Args:
            source: Reads file content at the target revision
            context_lines: Lines of context on each side of a hunk
            repo_path: Repository root, joined with file paths for symbol lookups
        """
        self.source = source
        self.context_lines = context_lines if context_lines > 0 else 10
        self.repo_path = Path(repo_path)

    async def enrich(self, changes: list[FileChange], target_ref: str) -> list[EnrichedFileChange]:
        """Enrich every change. Content retrieval failures degrade per file."""
        enriched = [await self.enrich_file(change, target_ref) for change in changes]
        logger.debug(
            "Enriched file changes",
            files=len(enriched),
            context_lines=self.context_lines,
            tokens=total_tokens(enriched),
        )
        return enriched

    async def enrich_file(self, change: FileChange, target_ref: str) -> EnrichedFileChange:
        efc = EnrichedFileChange(change=change, language=detect_language(change.path))

        if change.is_binary or change.is_deleted:
            efc.token_estimate = NON_TEXT_TOKEN_ESTIMATE
            return efc

        try:
            content = await self.source.read_file(target_ref, change.path)
        except GitError as e:
            logger.warning("Falling back to raw hunks", file=change.path, error=str(e))
            content = None

        if content:
            efc.full_new_content = content
            efc.enriched_hunks = enrich_hunks(
                change.hunks, content_lines(content), self.context_lines
            )
        if not efc.enriched_hunks:
            efc.enriched_hunks = fallback_enriched_hunks(change.hunks)

        efc.token_estimate = estimate_tokens(format_enriched_for_review(efc))
        return efc

    async def apply_symbol_context(
        self, enriched: list[EnrichedFileChange], symbols: SymbolLookup
    ) -> list[EnrichedFileChange]:
        """Replace line-based context with the enclosing symbol's body.

        Hunks whose lookup misses or fails keep their line context.
        """
        result = []
        for efc in enriched:
            change = efc.change
            if change.is_binary or change.is_deleted:
                result.append(efc)
                continue

            hunks = list(efc.enriched_hunks)
            file_path = str(self.repo_path / change.path)
            for index, eh in enumerate(hunks):
                try:
                    symbol = await symbols.find_enclosing_symbol(file_path, eh.hunk.new_start)
                except SymbolProviderError as e:
                    logger.debug("Symbol lookup failed", file=change.path, line=eh.hunk.new_start, error=str(e))
                    continue
                rebuilt = symbol_hunk(eh, symbol) if symbol is not None else None
                if rebuilt is None:
                    continue
                hunks[index] = rebuilt

            updated = replace(efc, enriched_hunks=hunks)
            updated.token_estimate = estimate_tokens(format_enriched_for_review(updated))
            result.append(updated)
        return result
