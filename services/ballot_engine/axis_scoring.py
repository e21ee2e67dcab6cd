# services/ballot_engine/axis_scoring.py
# Aggregates normalized contributions into per-axis scores with shrinkage toward neutral.

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from .models import AssessmentSpec, AxisScore, InvalidSubmissionError, ResponseEvent
from .normalizer import normalize

logger = logging.getLogger(__name__)

@dataclass
class _AxisTally:
    raw_sum: float = 0.0
    n_answered: int = 0
    n_unsure: int = 0
    max_possible: float = 0.0
    drivers: List[Tuple[str, float]] = field(default_factory=list) # (item_id, contribution) in answer order

def dedupe_latest(responses: Iterable[ResponseEvent]) -> List[ResponseEvent]:
    """
    Keeps only the latest response per item.

    A later timestamp wins; on equal timestamps the response that appears later
    in the input wins. The surviving responses keep the position of the winning
    event, so downstream tie-breaks follow the order the user answered in.
    """
    latest: Dict[str, Tuple[int, ResponseEvent]] = {}
    for position, event in enumerate(responses):
        current = latest.get(event.item_id)
        if current is None or event.timestamp >= current[1].timestamp:
            latest[event.item_id] = (position, event)
    return [event for _, event in sorted(latest.values(), key=lambda pair: pair[0])]

def score_axes(
    responses: Iterable[ResponseEvent],
    spec: AssessmentSpec,
    shrinkage_k: Optional[float] = None,
) -> List[AxisScore]:
    """
    Scores every axis of the assessment from a user's responses.

    Args:
        responses: Response events, possibly containing superseded answers.
        spec: Loaded assessment content (axes, items, vignettes, scoring constants).
        shrinkage_k: Overrides spec.scoring.shrinkage_k when given.

    Returns:
        One AxisScore per axis, in spec order. Axes without answers come back
        neutral with confidence 0.

    Malformed responses (unknown item, wrong modality, out-of-range value) are
    logged and skipped; they never abort scoring of the remaining responses.
    """
    k = spec.scoring.shrinkage_k if shrinkage_k is None else shrinkage_k
    if k <= 0:
        raise ValueError(f"shrinkage_k must be positive, got {k}")
    per_item_max = spec.scoring.max_item_contribution

    targets = {item.id: item for item in spec.items}
    targets.update({vignette.id: vignette for vignette in spec.vignettes})
    tallies = {axis.id: _AxisTally() for axis in spec.axes}

    for event in dedupe_latest(responses):
        target = targets.get(event.item_id)
        if target is None:
            logger.warning(f"Skipping response for unknown item '{event.item_id}'")
            continue
        try:
            contributions = normalize(target, event.value, spec.scoring, known_axes=tallies.keys())
        except InvalidSubmissionError as e:
            logger.warning(f"Skipping invalid response for item '{event.item_id}': {e}")
            continue

        for contribution in contributions:
            tally = tallies[contribution.axis_id]
            if contribution.unsure:
                tally.n_unsure += 1
                continue
            tally.raw_sum += contribution.value
            tally.n_answered += 1
            tally.max_possible += per_item_max
            tally.drivers.append((event.item_id, contribution.value))

    return [
        _finalize(axis_id, tally, k, spec.scoring.top_driver_count)
        for axis_id, tally in tallies.items()
    ]

def _finalize(axis_id: str, tally: _AxisTally, k: float, top_n: int) -> AxisScore:
    normalized = tally.raw_sum / tally.max_possible if tally.max_possible > 0 else 0.0
    normalized = max(-1.0, min(1.0, normalized))
    confidence = tally.n_answered / (tally.n_answered + k)
    # sorted() is stable, so equal magnitudes stay in answer order
    ranked = sorted(tally.drivers, key=lambda driver: -abs(driver[1]))
    return AxisScore(
        axis_id=axis_id,
        raw_sum=tally.raw_sum,
        n_answered=tally.n_answered,
        n_unsure=tally.n_unsure,
        max_possible=tally.max_possible,
        normalized=normalized,
        shrunk=normalized * confidence,
        confidence=confidence,
        top_driver_item_ids=[item_id for item_id, _ in ranked[:top_n]],
    )

def ipsatize(axis_scores: List[AxisScore]) -> Tuple[Dict[str, float], float]:
    """
    Centers answered axes on the respondent's own mean normalized score.

    Used for value inventories where people tend to rate everything high or
    low; the centered scores show relative priorities. Unanswered axes are 0.

    Returns:
        ({axis_id: centered score}, individual mean)
    """
    answered = [s for s in axis_scores if s.n_answered > 0]
    if not answered:
        return {s.axis_id: 0.0 for s in axis_scores}, 0.0
    mean = sum(s.normalized for s in answered) / len(answered)
    centered = {
        s.axis_id: (s.normalized - mean) if s.n_answered > 0 else 0.0
        for s in axis_scores
    }
    return centered, mean
