"""
Exception hierarchy for the review pipeline.

Fatal errors abort a review invocation; everything else is handled locally by
the stage that raised it.
"""


class ReviewError(Exception):
    """Base class for all prev-review errors."""


class DiffParseError(ReviewError):
    """Non-empty diff text produced no file changes."""


class GitError(ReviewError):
    """A git subprocess failed."""

    def __init__(self, args: list[str], stderr: str, returncode: int | None = None):
        self.git_args = args
        self.stderr = stderr
        self.returncode = returncode
        super().__init__(f"git {' '.join(args)} failed: {stderr.strip() or 'no output'}")


class SymbolProviderError(ReviewError):
    """The symbol-context server failed to start or answer."""


class SymbolProviderUnavailable(SymbolProviderError):
    """Symbol context was required but the server is not installed."""


class CompletionTimeout(ReviewError):
    """A completion call exceeded its wall-clock budget."""


class PipelineError(ReviewError):
    """A fatal pipeline failure, tagged with the stage that failed."""

    def __init__(self, stage: str, cause: BaseException | str):
        self.stage = stage
        self.cause = cause
        super().__init__(f"{stage} failed: {cause}")
