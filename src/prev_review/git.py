"""
Local git repository accessor.

Fetches branch diffs, diff stats and file content at a revision by shelling
out to git.
"""

import asyncio
from pathlib import Path

import structlog

from .errors import GitError

logger = structlog.get_logger(__name__)

DEFAULT_BASE_BRANCH = "main"


class GitRepository:
    """Read-only access to a local git repository."""

    def __init__(self, repo_path: str | Path | None = None):
        """Initialize with optional repo path (defaults to cwd)."""
        self.repo_path = Path(repo_path) if repo_path else Path.cwd()

    async def get_branch_diff(self, base_branch: str, target_branch: str) -> str:
        """Unified diff of ``target_branch`` against its merge base with ``base_branch``."""
        return await self._run_git(["diff", f"{base_branch}...{target_branch}"])

    async def get_diff_stat(self, base_branch: str, target_branch: str) -> str:
        """``git diff --stat`` summary for the same range."""
        output = await self._run_git(["diff", "--stat", f"{base_branch}...{target_branch}"])
        return output.strip()

    async def read_file(self, ref: str, path: str) -> str | None:
        """File content at ``ref``; None if the file does not exist there."""
        returncode, stdout, stderr = await self._exec(["show", f"{ref}:{path}"])
        if returncode == 0:
            return stdout
        if "does not exist" in stderr or "exists on disk, but not in" in stderr:
            return None
        raise GitError(["show", f"{ref}:{path}"], stderr, returncode)

    async def get_base_branch(self) -> str:
        """Default branch from ``origin/HEAD``, falling back to ``main``."""
        returncode, stdout, _ = await self._exec(
            ["symbolic-ref", "refs/remotes/origin/HEAD", "--short"]
        )
        if returncode != 0 or not stdout.strip():
            return DEFAULT_BASE_BRANCH
        branch = stdout.strip()
        # "origin/main" -> "main"
        return branch.split("/", 1)[1] if "/" in branch else branch

    async def _run_git(self, args: list[str]) -> str:
        """Run a git command and return stdout, raising GitError on failure."""
        returncode, stdout, stderr = await self._exec(args)
        if returncode != 0:
            raise GitError(args, stderr, returncode)
        return stdout

    async def _exec(self, args: list[str]) -> tuple[int, str, str]:
        cmd = ["git", "-C", str(self.repo_path)] + args
        logger.debug("Running git", args=args)
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise GitError(args, str(e)) from e

        stdout, stderr = await proc.communicate()
        return proc.returncode, stdout.decode(errors="replace"), stderr.decode(errors="replace")
