"""
Repository guideline discovery.

Collects agent/contributor instruction files from a repository and formats
them as a prompt section.
"""

from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)

MAX_FILES = 12
MAX_BYTES_PER_FILE = 1500
MAX_BYTES_TOTAL = 5000
TRUNCATED = "\n...[truncated]"

EXPLICIT_CANDIDATES = [
    "AGENTS.md",
    "CLAUDE.md",
    ".claude/CLAUDE.md",
    ".claude/agents.md",
    ".github/copilot-instructions.md",
    ".copilot-instructions.md",
]

MARKDOWN_DIRS = [".claude", ".github/instructions"]


def discover_guideline_paths(root: Path) -> list[str]:
    """Relative paths of guideline files under ``root``, sorted."""
    found: set[str] = set()

    for rel in EXPLICIT_CANDIDATES:
        if (root / rel).is_file():
            found.add(rel)

    for rel_dir in MARKDOWN_DIRS:
        directory = root / rel_dir
        if not directory.is_dir():
            continue
        for path in directory.rglob("*"):
            if path.is_file() and path.suffix.lower() in (".md", ".markdown"):
                found.add(path.relative_to(root).as_posix())

    return sorted(found)


def build_guidelines_section(repo_root: str | Path | None) -> str:
    """Format discovered guidelines for prompt injection.

    Returns an empty string when no guideline files exist.
    """
    if not repo_root or not str(repo_root).strip():
        return ""
    root = Path(repo_root)

    total = 0
    used = 0
    truncated_any = False
    parts = [
        "## Repository Guidelines\n",
        "Apply these repository rules when reviewing. If a rule conflicts with "
        "correctness or security, call out the conflict and prioritize "
        "correctness/security.\n\n",
    ]

    for rel in discover_guideline_paths(root):
        if used >= MAX_FILES or total >= MAX_BYTES_TOTAL:
            break

        try:
            content = (root / rel).read_text(errors="replace").strip()
        except OSError as e:
            logger.debug("Skipping unreadable guideline file", path=rel, error=str(e))
            continue
        if not content:
            continue

        if len(content) > MAX_BYTES_PER_FILE:
            content = content[:MAX_BYTES_PER_FILE].strip() + TRUNCATED
            truncated_any = True

        remaining = MAX_BYTES_TOTAL - total
        if len(content) > remaining:
            content = content[:remaining].strip() + TRUNCATED
            truncated_any = True

        parts.append(f"### {rel}\n```markdown\n{content}\n```\n\n")
        total += len(content)
        used += 1

    if used == 0:
        return ""
    if truncated_any:
        parts.append("Note: guideline content was truncated to fit prompt budget.\n")

    return "".join(parts).strip()
