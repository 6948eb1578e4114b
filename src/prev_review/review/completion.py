"""
Completion provider seam.

The pipeline talks to a language model only through ``CompletionProvider``.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

import structlog

from ..errors import CompletionTimeout

logger = structlog.get_logger(__name__)

SYSTEM_PROMPT = "You are an expert code reviewer."
DEFAULT_COMPLETION_TIMEOUT = 120.0


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"


@dataclass
class Message:
    role: Role
    content: str


class CompletionProvider(Protocol):
    """Anything that turns role-tagged messages into response text."""

    async def complete(self, messages: list[Message]) -> str: ...


def review_messages(prompt: str) -> list[Message]:
    """System + user message pair sent for every review prompt."""
    return [
        Message(role=Role.SYSTEM, content=SYSTEM_PROMPT),
        Message(role=Role.USER, content=prompt),
    ]


async def complete_review(
    provider: CompletionProvider,
    prompt: str,
    timeout: float = DEFAULT_COMPLETION_TIMEOUT,
) -> str:
    """Run one completion call with a wall-clock limit.

    Raises:
        CompletionTimeout: If the provider does not answer within ``timeout``.
    """
    try:
        return await asyncio.wait_for(provider.complete(review_messages(prompt)), timeout)
    except asyncio.TimeoutError as e:
        logger.warning("Completion timed out", timeout=timeout, prompt_chars=len(prompt))
        raise CompletionTimeout(f"completion exceeded {timeout:g}s") from e
