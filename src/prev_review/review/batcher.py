"""
File Batcher

Groups categorized files into completion-sized batches with first-fit
decreasing bin packing.
"""

from .models import CategorizedFile, FileBatch

# Files above this share of the budget are reviewed on their own.
SOLO_THRESHOLD_PERCENT = 80


def batch_files(files: list[CategorizedFile], max_tokens: int) -> list[FileBatch]:
    """Pack files into batches whose token total stays within ``max_tokens``.

    Greedy, not optimal: files are placed largest first into the first open
    batch with room, or start a new batch.
    """
    if not files:
        return []

    solo_limit = max_tokens * SOLO_THRESHOLD_PERCENT // 100
    batches: list[FileBatch] = []

    for file in sorted(files, key=lambda f: f.token_estimate, reverse=True):
        if file.token_estimate > solo_limit:
            batches.append(FileBatch(files=[file], total_tokens=file.token_estimate, solo=True))
            continue

        for batch in batches:
            if not batch.solo and batch.total_tokens + file.token_estimate <= max_tokens:
                batch.files.append(file)
                batch.total_tokens += file.token_estimate
                break
        else:
            batches.append(FileBatch(files=[file], total_tokens=file.token_estimate))

    return batches
