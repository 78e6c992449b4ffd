from __future__ import annotations

from collections.abc import Iterable

from app.schemas.resources import LearningResource, LearningStats


def _percent(part: int, whole: int) -> float:
    if whole <= 0:
        return 0.0
    return round(part / whole * 100, 1)


def filter_resources(
    resources: Iterable[LearningResource],
    *,
    status: str | None = None,
    type: str | None = None,
    tag: str | None = None,
    query: str | None = None,
) -> list[LearningResource]:
    """Apply the list filters; `None`, empty and "all" mean no filter on that field."""
    status = None if status in (None, "", "all") else status
    type = None if type in (None, "", "all") else type
    tag = (tag or "").strip() or None
    q = (query or "").strip().lower()

    out: list[LearningResource] = []
    for r in resources:
        if status is not None and r.status != status:
            continue
        if type is not None and r.type != type:
            continue
        if tag is not None and tag not in r.tags:
            continue
        if q and not (
            q in r.title.lower()
            or q in r.notes.lower()
            or any(q in t.lower() for t in r.tags)
        ):
            continue
        out.append(r)
    return out


def collect_tags(resources: Iterable[LearningResource]) -> list[str]:
    return sorted({t for r in resources for t in r.tags})


def compute_learning_stats(resources: Iterable[LearningResource]) -> LearningStats:
    items = list(resources)
    total = len(items)
    not_started = sum(1 for r in items if r.status == "not-started")
    in_progress = sum(1 for r in items if r.status == "in-progress")
    completed = sum(1 for r in items if r.status == "completed")
    return LearningStats(
        total=total,
        not_started=not_started,
        in_progress=in_progress,
        completed=completed,
        total_time_spent=sum(r.time_spent for r in items),
        completion_percentage=_percent(completed, total),
        progress_percentage=_percent(in_progress + completed, total),
    )
