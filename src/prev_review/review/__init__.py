"""
Branch review.

Categorizes enriched changes, packs them into batches, builds the two review
prompts, parses completion output and renders the final report. The pipeline
that drives these lives in ``prev_review.review.pipeline``.
"""

from .batcher import batch_files
from .categorizer import FileCategorizer, categorize_changes
from .completion import CompletionProvider, Message, Role, complete_review
from .models import (
    BranchReviewResult,
    CategorizedFile,
    ChangeCategory,
    CommentKind,
    FileBatch,
    FileComment,
    FileGroup,
    FileReviewResult,
    ReviewResponse,
    Severity,
    Strictness,
    WalkthroughResult,
)
from .output import format_branch_review
from .prompts import build_file_review_prompt, build_walkthrough_prompt
from .response_parser import (
    filter_by_severity,
    parse_review,
    parse_review_response,
    parse_review_response_json,
)

__all__ = [
    "batch_files",
    "FileCategorizer",
    "categorize_changes",
    "CompletionProvider",
    "Message",
    "Role",
    "complete_review",
    "BranchReviewResult",
    "CategorizedFile",
    "ChangeCategory",
    "CommentKind",
    "FileBatch",
    "FileComment",
    "FileGroup",
    "FileReviewResult",
    "ReviewResponse",
    "Severity",
    "Strictness",
    "WalkthroughResult",
    "format_branch_review",
    "build_file_review_prompt",
    "build_walkthrough_prompt",
    "filter_by_severity",
    "parse_review",
    "parse_review_response",
    "parse_review_response_json",
]
