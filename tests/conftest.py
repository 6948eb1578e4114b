"""
Shared fixtures for prev-review tests.

Provides sample diffs, in-memory repositories, scripted completion providers
and throwaway git repositories.
"""

import subprocess
from pathlib import Path
from typing import Generator
from unittest.mock import AsyncMock

import pytest

from prev_review.config import ReviewConfig
from prev_review.symbols.models import SerenaMode


# =============================================================================
# SAMPLE DIFFS
# =============================================================================

MODIFIED_GO_DIFF = """\
diff --git a/internal/server/handler.go b/internal/server/handler.go
index 1234567..abcdefg 100644
--- a/internal/server/handler.go
+++ b/internal/server/handler.go
@@ -10,3 +10,4 @@ func handle() {
 \tctx := context.Background()
+\tdefer cancel()
 \treturn serve(ctx)
 }
"""

NEW_TEST_DIFF = """\
diff --git a/internal/server/handler_test.go b/internal/server/handler_test.go
new file mode 100644
index 0000000..1234567
--- /dev/null
+++ b/internal/server/handler_test.go
@@ -0,0 +1,3 @@
+package server
+
+func TestHandle(t *testing.T) {}
"""

BINARY_DIFF = """\
diff --git a/assets/logo.png b/assets/logo.png
new file mode 100644
index 0000000..1234567
Binary files /dev/null and b/assets/logo.png differ
"""


def handler_source(lines: int = 40) -> str:
    """New-side content of handler.go matching MODIFIED_GO_DIFF."""
    body = [f"// line {n}" for n in range(1, lines + 1)]
    body[9] = "\tctx := context.Background()"
    body[10] = "\tdefer cancel()"
    body[11] = "\treturn serve(ctx)"
    body[12] = "}"
    return "\n".join(body) + "\n"


# =============================================================================
# FAKES
# =============================================================================

class FakeRepository:
    """In-memory repository: a fixed diff plus file contents by path."""

    def __init__(self, diff: str, files: dict[str, str] | None = None, diff_stat: str = ""):
        self.diff = diff
        self.files = files or {}
        self.diff_stat = diff_stat
        self.diff_calls = 0
        self.reads: list[tuple[str, str]] = []

    async def get_branch_diff(self, base_branch: str, target_branch: str) -> str:
        self.diff_calls += 1
        return self.diff

    async def get_diff_stat(self, base_branch: str, target_branch: str) -> str:
        return self.diff_stat

    async def read_file(self, ref: str, path: str) -> str | None:
        self.reads.append((ref, path))
        return self.files.get(path)


@pytest.fixture
def make_repository():
    """Factory for FakeRepository instances."""
    return FakeRepository


@pytest.fixture
def sample_diffs() -> dict[str, str]:
    return {
        "modified_go": MODIFIED_GO_DIFF,
        "new_test": NEW_TEST_DIFF,
        "binary": BINARY_DIFF,
        "handler_source": handler_source(),
    }


@pytest.fixture
def fake_repository() -> FakeRepository:
    """Repository holding one modified Go file and one new test file."""
    return FakeRepository(
        MODIFIED_GO_DIFF + NEW_TEST_DIFF,
        files={
            "internal/server/handler.go": handler_source(),
            "internal/server/handler_test.go": "package server\n\nfunc TestHandle(t *testing.T) {}\n",
        },
        diff_stat=" 2 files changed, 4 insertions(+)",
    )


@pytest.fixture
def mock_completion() -> AsyncMock:
    """
    Completion provider answering the walkthrough, then one review per batch.

    Returns:
        AsyncMock whose ``complete`` returns a walkthrough first and a review
        with one HIGH issue afterwards
    """
    provider = AsyncMock()
    provider.complete.side_effect = [
        "Adds cancellation to the request handler.\n\n"
        "| File | Type | Summary |\n"
        "|------|------|---------|\n"
        "| internal/server/handler.go | Modified | defer cancel |\n",
        "**internal/server/handler.go:11** [HIGH]: cancel is never defined\n",
    ]
    return provider


@pytest.fixture
def review_config() -> ReviewConfig:
    """Line-based config that never launches a symbol provider."""
    return ReviewConfig(serena_mode=SerenaMode.OFF)


# =============================================================================
# GIT REPOSITORY FIXTURES
# =============================================================================

def _git(repo_path: Path, *args: str) -> None:
    subprocess.run(["git", *args], cwd=repo_path, check=True, capture_output=True)


@pytest.fixture
def temp_git_repo(tmp_path: Path) -> Generator[Path, None, None]:
    """
    Create a git repository with a ``main`` branch and a ``feature`` branch.

    ``feature`` modifies ``src/app.py`` and adds ``docs/guide.md``.

    Yields:
        Path to the repository, with ``feature`` checked out
    """
    repo_path = tmp_path / "repo"
    repo_path.mkdir()

    _git(repo_path, "init")
    _git(repo_path, "symbolic-ref", "HEAD", "refs/heads/main")
    _git(repo_path, "config", "user.email", "test@test.com")
    _git(repo_path, "config", "user.name", "Test User")

    (repo_path / "src").mkdir()
    (repo_path / "src" / "app.py").write_text(
        "def main():\n    return 1\n\n\ndef helper():\n    return 2\n"
    )
    _git(repo_path, "add", ".")
    _git(repo_path, "commit", "-m", "Initial commit")

    _git(repo_path, "checkout", "-b", "feature")
    (repo_path / "src" / "app.py").write_text(
        "def main():\n    return 10\n\n\ndef helper():\n    return 2\n"
    )
    (repo_path / "docs").mkdir()
    (repo_path / "docs" / "guide.md").write_text("# Guide\n")
    _git(repo_path, "add", ".")
    _git(repo_path, "commit", "-m", "Feature work")

    yield repo_path
