"""
Unit tests for context enrichment.

Covers window expansion and merging, the degraded path when file content is
unavailable, and symbol-level substitution.
"""

from unittest.mock import AsyncMock

import pytest

from prev_review.diffparse import (
    ContextEnricher,
    DiffLine,
    FileChange,
    Hunk,
    LineType,
    enrich_hunks,
    fallback_enriched_hunks,
    format_enriched_for_review,
    parse_git_diff,
    total_tokens,
)
from prev_review.diffparse.context import NON_TEXT_TOKEN_ESTIMATE, content_lines
from prev_review.errors import GitError, SymbolProviderError
from prev_review.symbols.models import SymbolInfo


def make_hunk(new_start: int, new_lines: int = 1) -> Hunk:
    """A hunk that replaces ``new_lines`` lines starting at ``new_start``."""
    lines = [
        DiffLine(LineType.ADDED, f"changed {new_start + i}", new_line_no=new_start + i)
        for i in range(new_lines)
    ]
    return Hunk(
        old_start=new_start,
        old_lines=new_lines,
        new_start=new_start,
        new_lines=new_lines,
        lines=lines,
    )


def file_lines(count: int) -> list[str]:
    return [f"line {n}" for n in range(1, count + 1)]


ONE_LINE_DIFF = """\
diff --git a/pkg/calc.go b/pkg/calc.go
--- a/pkg/calc.go
+++ b/pkg/calc.go
@@ -8,1 +8,1 @@
-line 8
+line 8 changed
"""


class StubSource:
    """FileSource returning fixed content or raising."""

    def __init__(self, content: str | None = None, error: Exception | None = None):
        self.content = content
        self.error = error

    async def read_file(self, ref: str, path: str) -> str | None:
        if self.error:
            raise self.error
        return self.content


# =============================================================================
# UNIT TESTS: enrich_hunks()
# =============================================================================

class TestEnrichHunks:
    """Window expansion and merge rules."""

    def test_overlapping_windows_merge(self):
        """Hunks at 5 and 10 with 5 lines of context become one."""
        enriched = enrich_hunks([make_hunk(5), make_hunk(10)], file_lines(30), 5)

        assert len(enriched) == 1
        assert enriched[0].start_line == 1
        assert enriched[0].end_line == 15
        assert len(enriched[0].hunk.lines) == 2

    def test_distant_hunks_stay_separate(self):
        """Hunks at 5 and 50 with 3 lines of context stay apart."""
        enriched = enrich_hunks([make_hunk(5), make_hunk(50)], file_lines(60), 3)

        assert len(enriched) == 2
        assert (enriched[0].start_line, enriched[0].end_line) == (2, 8)
        assert (enriched[1].start_line, enriched[1].end_line) == (47, 53)

    def test_adjacent_windows_merge(self):
        """Windows that touch (end + 1 == start) merge."""
        enriched = enrich_hunks([make_hunk(5), make_hunk(12)], file_lines(30), 3)

        # [2, 8] and [9, 15]
        assert len(enriched) == 1
        assert (enriched[0].start_line, enriched[0].end_line) == (2, 15)

    def test_merged_counts_are_summed(self):
        enriched = enrich_hunks([make_hunk(5, 2), make_hunk(9, 3)], file_lines(30), 3)

        assert enriched[0].hunk.new_lines == 5
        assert enriched[0].hunk.old_lines == 5

    def test_unsorted_input_is_sorted(self):
        enriched = enrich_hunks([make_hunk(50), make_hunk(5)], file_lines(60), 3)

        assert [eh.hunk.new_start for eh in enriched] == [5, 50]

    def test_first_line_has_no_context_before(self):
        enriched = enrich_hunks([make_hunk(1)], file_lines(10), 3)

        assert enriched[0].context_before == []
        assert enriched[0].context_after == ["line 2", "line 3", "line 4"]

    def test_last_line_has_no_context_after(self):
        enriched = enrich_hunks([make_hunk(10)], file_lines(10), 3)

        assert enriched[0].context_before == ["line 7", "line 8", "line 9"]
        assert enriched[0].context_after == []
        assert enriched[0].end_line == 10

    def test_window_clamped_to_file(self):
        enriched = enrich_hunks([make_hunk(3)], file_lines(5), 10)

        assert (enriched[0].start_line, enriched[0].end_line) == (1, 5)

    @pytest.mark.parametrize("hunks,lines", [([], file_lines(5)), ([make_hunk(1)], [])])
    def test_empty_input_returns_empty(self, hunks, lines):
        assert enrich_hunks(hunks, lines, 3) == []

    def test_fallback_spans_own_range(self):
        enriched = fallback_enriched_hunks([make_hunk(7, 3), Hunk(0, 2, 0, 0)])

        assert (enriched[0].start_line, enriched[0].end_line) == (7, 9)
        assert enriched[0].context_before == []
        assert (enriched[1].start_line, enriched[1].end_line) == (1, 1)


# =============================================================================
# UNIT TESTS: ContextEnricher
# =============================================================================

class TestContextEnricher:
    """File-level enrichment against a content source."""

    @pytest.mark.asyncio
    async def test_single_line_change_in_small_file(self):
        """One changed line in a 15-line file gets context on both sides."""
        changes = parse_git_diff(ONE_LINE_DIFF)
        content = "\n".join(file_lines(15))
        enricher = ContextEnricher(StubSource(content), context_lines=3)

        enriched = await enricher.enrich(changes, "feature")

        efc = enriched[0]
        assert len(efc.enriched_hunks) == 1
        eh = efc.enriched_hunks[0]
        assert eh.start_line >= 1
        assert eh.context_before == ["line 5", "line 6", "line 7"]
        assert eh.context_after == ["line 9", "line 10", "line 11"]
        assert efc.language == "go"
        assert efc.full_new_content == content
        assert efc.token_estimate > 0

    @pytest.mark.asyncio
    async def test_binary_file_flat_estimate(self):
        """A binary entry is estimated at 100 tokens with no hunks."""
        change = FileChange(old_path="", new_path="image.png", is_new=True, is_binary=True)
        source = AsyncMock()
        enricher = ContextEnricher(source)

        efc = await enricher.enrich_file(change, "feature")

        assert efc.token_estimate == NON_TEXT_TOKEN_ESTIMATE == 100
        assert efc.enriched_hunks == []
        source.read_file.assert_not_called()

    @pytest.mark.asyncio
    async def test_deleted_file_flat_estimate(self):
        change = FileChange(old_path="gone.py", is_deleted=True, hunks=[make_hunk(1)])
        efc = await ContextEnricher(StubSource("x")).enrich_file(change, "feature")

        assert efc.token_estimate == 100
        assert efc.enriched_hunks == []

    @pytest.mark.asyncio
    async def test_missing_content_falls_back(self):
        """Absent content leaves the file reviewable without context."""
        changes = parse_git_diff(ONE_LINE_DIFF)
        efc = (await ContextEnricher(StubSource(None)).enrich(changes, "feature"))[0]

        assert len(efc.enriched_hunks) == 1
        assert efc.enriched_hunks[0].context_before == []
        assert (efc.enriched_hunks[0].start_line, efc.enriched_hunks[0].end_line) == (8, 8)

    @pytest.mark.asyncio
    async def test_read_error_degrades(self):
        """A git failure on one file does not fail enrichment."""
        changes = parse_git_diff(ONE_LINE_DIFF)
        source = StubSource(error=GitError(["show", "feature:pkg/calc.go"], "fatal: bad object"))

        efc = (await ContextEnricher(source).enrich(changes, "feature"))[0]

        assert len(efc.enriched_hunks) == 1
        assert efc.full_new_content == ""

    @pytest.mark.asyncio
    async def test_more_context_costs_more_tokens(self):
        changes = parse_git_diff(ONE_LINE_DIFF)
        content = "\n".join(file_lines(40))

        small = await ContextEnricher(StubSource(content), context_lines=3).enrich(changes, "f")
        large = await ContextEnricher(StubSource(content), context_lines=10).enrich(changes, "f")

        assert total_tokens(large) > total_tokens(small)

    @pytest.mark.asyncio
    async def test_trailing_newline_is_not_a_line(self):
        """A change on the real last line of a newline-terminated file has no context after."""
        change = FileChange(old_path="a.go", new_path="a.go", hunks=[make_hunk(20)])
        content = "\n".join(file_lines(20)) + "\n"

        efc = await ContextEnricher(StubSource(content), context_lines=3).enrich_file(change, "f")

        eh = efc.enriched_hunks[0]
        assert eh.context_before == ["line 17", "line 18", "line 19"]
        assert eh.context_after == []
        assert (eh.start_line, eh.end_line) == (17, 20)

    @pytest.mark.parametrize(
        "content,expected",
        [("a\nb\n", ["a", "b"]), ("a\nb", ["a", "b"]), ("a\n\n", ["a", ""]), ("", [""])],
    )
    def test_content_lines(self, content, expected):
        assert content_lines(content) == expected

    def test_non_positive_context_defaults_to_ten(self):
        assert ContextEnricher(StubSource(), context_lines=0).context_lines == 10


# =============================================================================
# UNIT TESTS: symbol substitution
# =============================================================================

class TestSymbolContext:
    """Replacing line windows with enclosing symbols."""

    @pytest.mark.asyncio
    async def test_symbol_replaces_context(self):
        """The symbol body is split around the change and rendered on both sides."""
        changes = parse_git_diff(ONE_LINE_DIFF)
        enricher = ContextEnricher(StubSource("\n".join(file_lines(40))), repo_path="/repo")
        enriched = await enricher.enrich(changes, "feature")

        symbols = AsyncMock()
        symbols.find_enclosing_symbol.return_value = SymbolInfo(
            name="Add", kind="function", file_path="/repo/pkg/calc.go",
            start_line=6, end_line=9, content="func Add() {\n\tx := 1\n\treturn x\n}",
        )

        updated = await enricher.apply_symbol_context(enriched, symbols)

        eh = updated[0].enriched_hunks[0]
        assert eh.context_before == ["func Add() {", "\tx := 1"]
        assert eh.context_after == ["}"]
        assert (eh.start_line, eh.end_line) == (6, 9)
        symbols.find_enclosing_symbol.assert_awaited_once_with("/repo/pkg/calc.go", 8)
        assert updated[0].token_estimate != enriched[0].token_estimate

        rendered = format_enriched_for_review(updated[0])
        assert "### Lines 6-9:\n" in rendered
        assert "  6 | func Add() {\n  7 | \tx := 1\n- 8 | line 8\n+ 8 | line 8 changed\n  9 | }\n" in rendered

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "symbol",
        [
            SymbolInfo(file_path="/repo/pkg/calc.go", content="func Add() {}"),
            SymbolInfo(start_line=9, end_line=6, content="func Add() {}"),
            SymbolInfo(start_line=20, end_line=30, content="func Other() {}"),
            SymbolInfo(start_line=1, end_line=5, content="func Before() {}"),
        ],
        ids=["no-range", "inverted", "starts-after-hunk", "ends-before-hunk"],
    )
    async def test_symbol_not_enclosing_hunk_is_a_miss(self, symbol):
        changes = parse_git_diff(ONE_LINE_DIFF)
        enricher = ContextEnricher(StubSource("\n".join(file_lines(40))), context_lines=3)
        enriched = await enricher.enrich(changes, "feature")

        symbols = AsyncMock()
        symbols.find_enclosing_symbol.return_value = symbol

        updated = await enricher.apply_symbol_context(enriched, symbols)

        eh = updated[0].enriched_hunks[0]
        assert eh == enriched[0].enriched_hunks[0]
        assert (eh.start_line, eh.end_line) == (5, 11)

    @pytest.mark.asyncio
    async def test_symbol_miss_keeps_line_context(self):
        changes = parse_git_diff(ONE_LINE_DIFF)
        enricher = ContextEnricher(StubSource("\n".join(file_lines(40))), context_lines=3)
        enriched = await enricher.enrich(changes, "feature")

        symbols = AsyncMock()
        symbols.find_enclosing_symbol.return_value = None

        updated = await enricher.apply_symbol_context(enriched, symbols)

        assert updated[0].enriched_hunks == enriched[0].enriched_hunks

    @pytest.mark.asyncio
    async def test_symbol_error_keeps_line_context(self):
        changes = parse_git_diff(ONE_LINE_DIFF)
        enricher = ContextEnricher(StubSource("\n".join(file_lines(40))), context_lines=3)
        enriched = await enricher.enrich(changes, "feature")

        symbols = AsyncMock()
        symbols.find_enclosing_symbol.side_effect = SymbolProviderError("timeout")

        updated = await enricher.apply_symbol_context(enriched, symbols)

        assert updated[0].enriched_hunks[0].context_before == ["line 5", "line 6", "line 7"]
