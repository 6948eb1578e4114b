"""
Branch Review Pipeline

Two-pass review of a branch against its base:

1. Walkthrough: one completion over abbreviated diffs of every file
2. Detailed review: one completion per token-bounded batch of enriched files

When the enriched diff does not fit the token budget, symbol-level context
replaces line windows if a symbol provider is available; otherwise the whole
run restarts once with the context window reduced to the configured floor.
"""

from contextlib import AsyncExitStack
from pathlib import Path
from typing import Callable, Protocol

import structlog

from ..config import ReviewConfig
from ..diffparse.context import ContextEnricher, SymbolLookup, total_tokens
from ..diffparse.models import FileChange
from ..diffparse.parser import filter_by_path, filter_text_changes, parse_git_diff
from ..errors import DiffParseError, GitError, PipelineError, SymbolProviderError
from ..git import GitRepository
from ..guidelines import build_guidelines_section
from ..log_config import configure_logging
from ..symbols.serena import SerenaLauncher, resolve_serena_launcher
from .batcher import batch_files
from .categorizer import categorize_changes
from .completion import CompletionProvider, complete_review
from .models import (
    BranchReviewResult,
    CategorizedFile,
    FileBatch,
    FileReviewResult,
    WalkthroughResult,
)
from .prompts import build_file_review_prompt, build_walkthrough_prompt
from .response_parser import filter_by_severity, parse_review

logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[str, int, int], None]


class Repository(Protocol):
    """Source of diffs and file content for a review run."""

    async def get_branch_diff(self, base_branch: str, target_branch: str) -> str: ...

    async def get_diff_stat(self, base_branch: str, target_branch: str) -> str: ...

    async def read_file(self, ref: str, path: str) -> str | None: ...


class SymbolProvider(SymbolLookup, Protocol):
    async def close(self) -> None: ...


class SymbolLauncher(Protocol):
    async def launch(self) -> SymbolProvider: ...


def _no_progress(stage: str, current: int, total: int) -> None:
    pass


def parse_walkthrough(content: str) -> WalkthroughResult:
    """Split a walkthrough completion into summary text and a changes table.

    The summary is everything before the first table line, or before the first
    heading once some summary text has accumulated. The table is the run of
    ``|`` lines, ended by a blank line.
    """
    summary_lines: list[str] = []
    table_lines: list[str] = []
    in_table = False
    in_summary = True

    for line in content.split("\n"):
        stripped = line.strip()

        if stripped.startswith("| File") or stripped.startswith("|---"):
            in_table = True
            in_summary = False

        if in_table:
            if stripped.startswith("|"):
                table_lines.append(line)
            elif not stripped and table_lines:
                in_table = False
        elif in_summary:
            if stripped.startswith("#") and summary_lines:
                in_summary = False
                continue
            summary_lines.append(line)

    return WalkthroughResult(
        summary="\n".join(summary_lines).strip(),
        changes_table="\n".join(table_lines),
        raw_content=content,
    )


class BranchReviewPipeline:
    """Orchestrates a two-pass branch review."""

    def __init__(
        self,
        completion: CompletionProvider,
        repository: Repository,
        config: ReviewConfig | None = None,
        symbol_launcher: SymbolLauncher | None = None,
        repo_path: str | Path = ".",
    ):
        """
        Initialize the pipeline.

        Args:
            completion: Language model used for both passes
            repository: Diff and file content source
            config: Review configuration (defaults when omitted)
            symbol_launcher: Starts a symbol provider per run; None disables
                symbol-level context
            repo_path: Repository root, used to build symbol lookup paths
        """
        self.completion = completion
        self.repository = repository
        self.config = config or ReviewConfig()
        self.symbol_launcher = symbol_launcher
        self.repo_path = Path(repo_path)

    def _context_attempts(self) -> list[int]:
        attempts = [self.config.context_lines]
        if (
            self.symbol_launcher is None
            and self.config.context_lines > self.config.min_context_lines
        ):
            attempts.append(self.config.min_context_lines)
        return attempts

    async def run(
        self,
        branch_name: str,
        base_branch: str,
        on_progress: ProgressCallback | None = None,
    ) -> BranchReviewResult:
        """Review ``branch_name`` against ``base_branch``.

        Raises:
            PipelineError: A fatal stage failed; ``stage`` names it.
        """
        progress = on_progress or _no_progress
        attempts = self._context_attempts()

        for index, context_lines in enumerate(attempts):
            result = await self._run_once(
                branch_name,
                base_branch,
                context_lines,
                progress,
                allow_reduction=index < len(attempts) - 1,
            )
            if result is not None:
                return result

            logger.info(
                "Enriched diff over budget, retrying with reduced context",
                context_lines=attempts[index + 1],
                max_batch_tokens=self.config.max_batch_tokens,
            )

        # The last attempt never returns None
        raise PipelineError("enrich", "context reduction did not converge")

    async def _run_once(
        self,
        branch_name: str,
        base_branch: str,
        context_lines: int,
        progress: ProgressCallback,
        allow_reduction: bool,
    ) -> BranchReviewResult | None:
        """One pass through every stage.

        Returns None when the enriched diff is over budget and a reduced
        context window should be tried instead.
        """
        changes = await self._load_changes(branch_name, base_branch, progress)

        async with AsyncExitStack() as stack:
            symbols = await self._start_symbols(stack, progress)

            progress("Enriching context", 0, 0)
            enricher = ContextEnricher(
                self.repository, context_lines=context_lines, repo_path=self.repo_path
            )
            enriched = await enricher.enrich(changes, branch_name)

            tokens = total_tokens(enriched)
            if tokens > self.config.max_batch_tokens:
                if symbols is not None:
                    logger.info("Enriched diff over budget, using symbol context", tokens=tokens)
                    enriched = await enricher.apply_symbol_context(enriched, symbols)
                elif allow_reduction:
                    return None

        categorized = categorize_changes(enriched)
        diff_stat = await self._diff_stat(branch_name, base_branch)

        walkthrough = await self._walkthrough(branch_name, base_branch, categorized, diff_stat, progress)
        batches = batch_files(categorized, self.config.max_batch_tokens)
        file_reviews = await self._review_batches(batches, categorized, walkthrough, branch_name, progress)

        return BranchReviewResult(
            branch_name=branch_name,
            base_branch=base_branch,
            walkthrough=walkthrough,
            file_reviews=file_reviews,
            total_files=len(changes),
            total_additions=sum(c.stats.additions for c in changes),
            total_deletions=sum(c.stats.deletions for c in changes),
        )

    async def _load_changes(
        self, branch_name: str, base_branch: str, progress: ProgressCallback
    ) -> list[FileChange]:
        progress("Getting diff", 0, 0)
        try:
            raw_diff = await self.repository.get_branch_diff(base_branch, branch_name)
        except GitError as e:
            raise PipelineError("retrieve diff", e) from e
        if not raw_diff.strip():
            raise PipelineError(
                "retrieve diff", f"no differences found between {base_branch} and {branch_name}"
            )

        progress("Parsing diff", 0, 0)
        try:
            changes = parse_git_diff(raw_diff)
        except DiffParseError as e:
            raise PipelineError("parse diff", e) from e

        changes = filter_by_path(changes, self.config.path_filter)
        changes = filter_text_changes(changes)
        if not changes:
            raise PipelineError(
                "filter",
                f"no reviewable text changes found between {base_branch} and {branch_name}",
            )

        logger.info("Parsed branch diff", files=len(changes), branch=branch_name, base=base_branch)
        return changes

    async def _start_symbols(
        self, stack: AsyncExitStack, progress: ProgressCallback
    ) -> SymbolLookup | None:
        """Launch the symbol provider for this run; the stack closes it."""
        if self.symbol_launcher is None:
            progress("Symbol context: off (line-based context)", 0, 0)
            return None

        try:
            client = await self.symbol_launcher.launch()
        except SymbolProviderError as e:
            raise PipelineError("symbol provider", e) from e

        stack.push_async_callback(client.close)
        progress("Symbol context: active", 0, 0)
        return client

    async def _diff_stat(self, branch_name: str, base_branch: str) -> str:
        try:
            return await self.repository.get_diff_stat(base_branch, branch_name)
        except GitError as e:
            logger.debug("Diff stat unavailable", error=str(e))
            return ""

    async def _complete(self, stage: str, prompt: str) -> str:
        try:
            return await complete_review(
                self.completion, prompt, timeout=self.config.completion_timeout
            )
        except Exception as e:
            raise PipelineError(stage, e) from e

    async def _walkthrough(
        self,
        branch_name: str,
        base_branch: str,
        categorized: list[CategorizedFile],
        diff_stat: str,
        progress: ProgressCallback,
    ) -> WalkthroughResult:
        progress("AI walkthrough", 0, 0)
        prompt = build_walkthrough_prompt(
            branch_name,
            base_branch,
            categorized,
            diff_stat,
            self.config.strictness,
            self.config.guidelines,
        )
        logger.debug("Walkthrough prompt built", chars=len(prompt))

        content = await self._complete("walkthrough", prompt)
        return parse_walkthrough(content)

    async def _review_batches(
        self,
        batches: list[FileBatch],
        categorized: list[CategorizedFile],
        walkthrough: WalkthroughResult,
        branch_name: str,
        progress: ProgressCallback,
    ) -> list[FileReviewResult]:
        """Run pass 2 and group comments per file.

        Reviews follow the original file order; comments on paths outside the
        diff get their own entries afterwards, in first-seen order.
        """
        reviews = {f.path: FileReviewResult(file_path=f.path) for f in categorized}

        for number, batch in enumerate(batches, start=1):
            progress("Reviewing files", number, len(batches))
            prompt = build_file_review_prompt(
                batch,
                walkthrough.summary,
                branch_name,
                self.config.strictness,
                self.config.guidelines,
            )
            logger.debug(
                "Review prompt built",
                batch=number,
                batches=len(batches),
                files=len(batch.files),
                chars=len(prompt),
            )

            content = await self._complete(f"review batch {number}", prompt)
            parsed = parse_review(content)

            for comment in filter_by_severity(parsed.comments, self.config.strictness):
                review = reviews.get(comment.file_path)
                if review is None:
                    review = reviews[comment.file_path] = FileReviewResult(file_path=comment.file_path)
                review.comments.append(comment)

            for path, summary in parsed.file_summaries.items():
                if path in reviews and not reviews[path].comments:
                    reviews[path].summary = summary

        return list(reviews.values())


async def create_branch_review_pipeline(
    completion: CompletionProvider,
    repo_path: str | Path | None = None,
    config: ReviewConfig | None = None,
    repository: Repository | None = None,
) -> BranchReviewPipeline:
    """Build a pipeline for a local repository.

    Decides once whether symbol context is available and loads repository
    guidelines when the config carries none.

    Raises:
        PipelineError: Symbol context is required but unavailable.
    """
    config = config or ReviewConfig()
    if config.debug:
        configure_logging(debug=True)
    root = Path(repo_path) if repo_path else Path.cwd()

    try:
        launcher: SerenaLauncher | None = await resolve_serena_launcher(config.serena_mode)
    except SymbolProviderError as e:
        raise PipelineError("symbol provider", e) from e

    if not config.guidelines:
        config.guidelines = build_guidelines_section(root)

    return BranchReviewPipeline(
        completion=completion,
        repository=repository or GitRepository(root),
        config=config,
        symbol_launcher=launcher,
        repo_path=root,
    )
