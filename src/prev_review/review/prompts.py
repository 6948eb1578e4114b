"""
Prompt builders for the two review passes.

Pass 1 asks for a branch-level walkthrough from abbreviated diffs; pass 2
asks for a detailed review of one batch of fully enriched files.
"""

from ..diffparse.formatting import format_enriched_for_review
from ..diffparse.models import LineType
from .models import CategorizedFile, FileBatch, Strictness

# Diff lines shown per file in the walkthrough prompt
ABBREVIATED_LINES = 20

WALKTHROUGH_TASK = """
## Your Task

Provide:
1. **Summary**: A 2-3 sentence overview of what this branch does and its quality.
2. **Changes Table**: A markdown table with columns: | File | Type | Summary |
   where Summary is a one-line description of what changed in each file.
3. **Sequence Diagram** (optional): If the changes involve interactions between components,
   include a short mermaid sequence diagram.

Respond in Markdown format.
"""

REVIEW_INSTRUCTIONS = """
## Review Instructions

For each file, provide issues in this exact format:

**file.go:42** [SEVERITY]: Description of the issue

Where SEVERITY is one of: CRITICAL, HIGH, MEDIUM, LOW

When you have a code fix, use this format:
**file.go:42** [SEVERITY]: Description
```suggestion
corrected code here
```

If a file has no significant issues, write:
**file.go**: No significant issues found.

Focus on: bugs, security vulnerabilities, race conditions, error handling,
performance issues, and logic errors. Skip trivial style nits unless strictness is "strict".
Prioritize source-code files first.
For text/documentation files (.md/.txt/.rst/.adoc), report typos/spelling/grammar issues only
unless a critical correctness or security issue is present.
For each finding, include hunk-level impact analysis in the same comment:
- Execution impact: what runtime behavior changes at this exact hunk.
- Call-tree impact: likely upstream callers and downstream callees affected.
- Cross-file risk: contracts/interfaces/config/schemas that may break.
- Regression/test risk: which tests should catch this and what gap exists.
Review every changed line in each hunk and then judge the hunk as a whole (not line-by-line in isolation).
Do not over-engineer suggestions; keep fixes short, concise, and surgical.
"""

STRICTNESS_INSTRUCTIONS = {
    Strictness.STRICT: (
        "## Strictness: STRICT\n"
        "Report all issues including style nits and minor improvements. Be thorough.\n"
    ),
    Strictness.NORMAL: (
        "## Strictness: NORMAL\n"
        "Focus on bugs, security vulnerabilities, and significant code quality issues.\n"
        "Skip trivial style nits. Report MEDIUM severity and above.\n"
    ),
    Strictness.LENIENT: (
        "## Strictness: LENIENT\n"
        "Only report CRITICAL and HIGH severity issues. Skip style nits and minor improvements.\n"
    ),
}


def strictness_instruction(strictness: Strictness | str) -> str:
    """Directive block for a strictness level. Unknown levels read as normal."""
    return STRICTNESS_INSTRUCTIONS[Strictness.parse(strictness)]


def _guidelines_block(guidelines: str) -> str:
    if not guidelines.strip():
        return ""
    return f"\n{guidelines}\n"


def _abbreviated_diff(file: CategorizedFile) -> str:
    """First diff lines of a file, with a truncation marker past the limit."""
    lines = []
    count = 0
    for hunk in file.change.hunks:
        for dl in hunk.lines:
            if count >= ABBREVIATED_LINES:
                lines.append("... (truncated)")
                break
            if dl.type == LineType.ADDED:
                lines.append(f"+{dl.content}")
            elif dl.type == LineType.DELETED:
                lines.append(f"-{dl.content}")
            else:
                lines.append(f" {dl.content}")
            count += 1
        if count >= ABBREVIATED_LINES:
            break
    return "".join(f"{line}\n" for line in lines)


def build_walkthrough_prompt(
    branch_name: str,
    base_branch: str,
    files: list[CategorizedFile],
    diff_stat: str = "",
    strictness: Strictness | str = Strictness.NORMAL,
    guidelines: str = "",
) -> str:
    """Build the pass-1 prompt asking for a high-level walkthrough of the branch."""
    parts = [
        "You are an expert code reviewer performing a walkthrough of branch changes.\n\n",
        f"## Branch: {branch_name} → {base_branch}\n\n",
        "## Changed Files\n\n",
        "| File | Type | Group | +/- |\n",
        "|------|------|-------|-----|\n",
    ]
    for f in files:
        stats = f.change.stats
        parts.append(
            f"| {f.path} | {f.category.value} | {f.group.value} "
            f"| +{stats.additions}/-{stats.deletions} |\n"
        )
    parts.append("\n")

    if diff_stat:
        parts.append(f"## Diff Stats\n```\n{diff_stat}\n```\n\n")

    parts.append("## Abbreviated Changes\n\n")
    for f in files:
        if f.change.is_binary:
            continue
        parts.append(f"### {f.path}\n```diff\n")
        parts.append(_abbreviated_diff(f))
        parts.append("```\n\n")

    parts.append(strictness_instruction(strictness))
    parts.append(_guidelines_block(guidelines))
    parts.append(WALKTHROUGH_TASK)
    return "".join(parts)


def build_file_review_prompt(
    batch: FileBatch,
    walkthrough_summary: str,
    branch_name: str,
    strictness: Strictness | str = Strictness.NORMAL,
    guidelines: str = "",
) -> str:
    """Build the pass-2 prompt for a detailed review of one batch."""
    parts = [
        "You are an expert code reviewer performing a detailed file-by-file review.\n\n",
        f"## Branch: {branch_name}\n\n",
    ]
    if walkthrough_summary:
        parts.append(f"## Walkthrough Context\n\n{walkthrough_summary}\n\n")

    parts.append("## Files to Review\n\n")
    for f in batch.files:
        parts.append(format_enriched_for_review(f.enriched))

    parts.append(strictness_instruction(strictness))
    parts.append(_guidelines_block(guidelines))
    parts.append(REVIEW_INSTRUCTIONS)
    return "".join(parts)
