"""Read-side project analytics, recomputed from the store on every request."""
from __future__ import annotations

import math
from collections import Counter, defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _utc_day(ts: datetime) -> str:
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.date().isoformat()


def mean_score(scores: Iterable[Optional[int]]) -> int:
    """Mean of the non-null scores, rounded; 0 when there are none."""
    present = [s for s in scores if s is not None]
    if not present:
        return 0
    return round_half_up(sum(present) / len(present))


def summarize_project(optimizations: Iterable[Any]) -> Dict[str, Any]:
    """
    Aggregate a project's optimizations. Each item needs ``quality_score``,
    ``created_at`` and ``refinements`` (objects with a ``category``).
    The result does not depend on input order.
    """
    optimizations = list(optimizations)
    categories: Counter = Counter()
    by_day: Dict[str, List[int]] = defaultdict(list)
    total_refinements = 0

    for opt in optimizations:
        refinements = list(opt.refinements or [])
        total_refinements += len(refinements)
        categories.update(r.category for r in refinements)
        if opt.quality_score is not None:
            by_day[_utc_day(opt.created_at)].append(opt.quality_score)

    top = sorted(categories.items(), key=lambda kv: (-kv[1], kv[0]))
    return {
        "totalOptimizations": len(optimizations),
        "totalRefinements": total_refinements,
        "avgQualityScore": mean_score(o.quality_score for o in optimizations),
        "topFeedbackCategories": [{"name": name, "count": count} for name, count in top],
        "qualityTrend": [{"date": day, "score": mean_score(scores)} for day, scores in sorted(by_day.items())],
    }
