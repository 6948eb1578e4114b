"""Configuration for the branch review pipeline."""

import os
from dataclasses import dataclass

from .review.completion import DEFAULT_COMPLETION_TIMEOUT
from .review.models import Strictness
from .symbols.models import SerenaMode

DEFAULT_CONTEXT_LINES = 10
DEFAULT_MAX_BATCH_TOKENS = 80_000
DEFAULT_MIN_CONTEXT_LINES = 3

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class ReviewConfig:
    """Review pipeline configuration.

    ``min_context_lines`` is the floor used by the one-shot context reduction
    when the enriched diff does not fit ``max_batch_tokens``.
    """

    context_lines: int = DEFAULT_CONTEXT_LINES
    max_batch_tokens: int = DEFAULT_MAX_BATCH_TOKENS
    min_context_lines: int = DEFAULT_MIN_CONTEXT_LINES
    strictness: Strictness = Strictness.NORMAL
    serena_mode: SerenaMode = SerenaMode.AUTO
    path_filter: str = ""
    guidelines: str = ""
    completion_timeout: float = DEFAULT_COMPLETION_TIMEOUT
    debug: bool = False

    def __post_init__(self) -> None:
        if self.context_lines <= 0:
            self.context_lines = DEFAULT_CONTEXT_LINES
        if self.max_batch_tokens <= 0:
            self.max_batch_tokens = DEFAULT_MAX_BATCH_TOKENS
        if self.min_context_lines <= 0:
            self.min_context_lines = DEFAULT_MIN_CONTEXT_LINES
        self.strictness = Strictness.parse(self.strictness)
        self.serena_mode = SerenaMode.parse(self.serena_mode)

    @classmethod
    def from_env(cls) -> "ReviewConfig":
        """Create configuration from environment variables."""
        return cls(
            context_lines=int(os.getenv("PREV_CONTEXT_LINES", str(DEFAULT_CONTEXT_LINES))),
            max_batch_tokens=int(
                os.getenv("PREV_MAX_BATCH_TOKENS", str(DEFAULT_MAX_BATCH_TOKENS))
            ),
            strictness=os.getenv("PREV_STRICTNESS", "normal"),
            serena_mode=os.getenv("PREV_SERENA_MODE", "auto"),
            path_filter=os.getenv("PREV_PATH_FILTER", ""),
            completion_timeout=float(
                os.getenv("PREV_COMPLETION_TIMEOUT", str(DEFAULT_COMPLETION_TIMEOUT))
            ),
            debug=os.getenv("PREV_DEBUG", "").strip().lower() in _TRUTHY,
        )
