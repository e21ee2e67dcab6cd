# services/ballot_engine/selection.py
# Picks which items a session presents. Pure presentation logic: scoring never depends on it.

import random
import math
from typing import Iterable, List, Optional, Sequence

from .models import AssessmentItem, Axis, Vignette

def _rng(rng: Optional[random.Random]) -> random.Random:
    return rng if rng is not None else random.Random()

def _filter_items(
    items: Sequence[AssessmentItem],
    exclude_ids: Iterable[str],
    level: Optional[str],
    tags: Optional[Sequence[str]],
) -> List[AssessmentItem]:
    excluded = set(exclude_ids)
    return [
        item for item in items
        if item.id not in excluded
        and (level is None or item.level == level)
        and (not tags or any(tag in item.tags for tag in tags))
    ]

def select_random_items(
    items: Sequence[AssessmentItem],
    count: int,
    rng: Optional[random.Random] = None,
    exclude_ids: Iterable[str] = (),
    level: Optional[str] = None,
    tags: Optional[Sequence[str]] = None,
) -> List[AssessmentItem]:
    """
    Up to `count` distinct items in random order.

    Optionally restricted to one government level and/or to items carrying
    any of `tags`; `exclude_ids` are never returned.
    """
    if count <= 0:
        return []
    pool = _filter_items(items, exclude_ids, level, tags)
    _rng(rng).shuffle(pool)
    return pool[:count]

def select_balanced_items(
    items: Sequence[AssessmentItem],
    axes: Sequence[Axis],
    count: int,
    rng: Optional[random.Random] = None,
    exclude_ids: Iterable[str] = (),
    level: Optional[str] = None,
    tags: Optional[Sequence[str]] = None,
) -> List[AssessmentItem]:
    """
    Up to `count` items spread evenly across axes.

    The level/tag filters narrow the pool first, as in select_random_items.
    Each axis, in catalog order, contributes up to ceil(count / n_axes) of its
    not-yet-selected items, drawn at random. An item keyed to several axes is
    taken at most once. The pooled selection is shuffled and trimmed to `count`.
    """
    if count <= 0 or not axes:
        return []
    rng = _rng(rng)
    pool = _filter_items(items, exclude_ids, level, tags)
    per_axis = math.ceil(count / len(axes))
    selected_ids = set()
    selected: List[AssessmentItem] = []

    for axis in axes:
        candidates = [i for i in pool if axis.id in i.axis_keys and i.id not in selected_ids]
        rng.shuffle(candidates)
        for item in candidates[:per_axis]:
            selected.append(item)
            selected_ids.add(item.id)

    rng.shuffle(selected)
    return selected[:count]

def shuffle_vignettes(
    vignettes: Sequence[Vignette],
    rng: Optional[random.Random] = None,
    shuffle_options: bool = True,
) -> List[Vignette]:
    """Copies of the vignettes in random order, optionally with their options shuffled too."""
    rng = _rng(rng)
    shuffled = [v.model_copy(deep=True) for v in vignettes]
    rng.shuffle(shuffled)
    if shuffle_options:
        for vignette in shuffled:
            rng.shuffle(vignette.options)
    return shuffled
