from __future__ import annotations

# Page heuristic used when the parser reports no progress
BASELINE_MS = 10_000
PER_PAGE_MS = 2_000
# Never report less than this while a job is still running
FLOOR_MS = 1_000


def estimate_remaining_ms(
    elapsed_ms: float,
    *,
    progress: float | None = None,
    page_count: int | None = None,
) -> int:
    """Estimate the time left for a running job.

    With a progress value the total is extrapolated linearly from the elapsed
    time; otherwise it is max(BASELINE_MS, PER_PAGE_MS * page_count).
    Progress above 1 is read as a percentage.
    """
    if progress is not None and progress > 1:
        progress = progress / 100

    if progress is not None and progress >= 1:
        return 0

    if progress is not None and progress > 0:
        total = elapsed_ms / progress
    else:
        total = max(BASELINE_MS, PER_PAGE_MS * (page_count or 0))

    return max(int(total - elapsed_ms), FLOOR_MS)
