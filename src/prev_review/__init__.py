"""
prev-review - two-pass AI review of git branches.

Parses a branch diff, enriches hunks with surrounding source, asks a language
model for a walkthrough and then a batched file-by-file review, and renders
the result as markdown.
"""

__version__ = "0.1.0"

from .config import ReviewConfig
from .errors import (
    CompletionTimeout,
    DiffParseError,
    GitError,
    PipelineError,
    ReviewError,
    SymbolProviderError,
    SymbolProviderUnavailable,
)
from .git import GitRepository
from .log_config import configure_logging
from .review.output import format_branch_review
from .review.pipeline import (
    BranchReviewPipeline,
    create_branch_review_pipeline,
    parse_walkthrough,
)

__all__ = [
    "__version__",
    "ReviewConfig",
    "CompletionTimeout",
    "DiffParseError",
    "GitError",
    "PipelineError",
    "ReviewError",
    "SymbolProviderError",
    "SymbolProviderUnavailable",
    "GitRepository",
    "configure_logging",
    "format_branch_review",
    "BranchReviewPipeline",
    "create_branch_review_pipeline",
    "parse_walkthrough",
]
