# services/ballot_engine/value_framing.py
# Deterministic value language built from meta-dimension scores.

import logging
from typing import Dict, List, Optional, Sequence

from .definitions import (
    BALANCED_SUMMARY,
    IMPORTANCE_LABELS,
    MODERATE_THRESHOLD,
    STRONG_THRESHOLD,
)
from .meta_dimensions import stance
from .models import AssessmentSpec, MetaDimensionDef, PolicyFraming, SpectrumReading, ValueFraming

logger = logging.getLogger(__name__)

NEUTRAL_THRESHOLD = 0.1 # |score| at or below this is treated as balanced

def _pole(score: float) -> str:
    return "negative" if score < 0 else "positive"

def _find(framings: Sequence[ValueFraming], meta_dimension: str, pole: str) -> Optional[ValueFraming]:
    return next((f for f in framings if f.meta_dimension == meta_dimension and f.pole == pole), None)

def get_value_framing(
    meta_dimension: str,
    score: float,
    framings: Sequence[ValueFraming] = (),
) -> Optional[ValueFraming]:
    """Framing for the user's dominant pole on one dimension, or None when neutral or uncatalogued."""
    if abs(score) <= NEUTRAL_THRESHOLD:
        return None
    return _find(framings, meta_dimension, _pole(score))

def frame(
    meta_scores: Dict[str, float],
    framings: Sequence[ValueFraming] = (),
) -> List[ValueFraming]:
    """One framing per non-neutral dimension, in the order the scores are given."""
    result = []
    for meta_dimension, score in meta_scores.items():
        framing = get_value_framing(meta_dimension, score, framings)
        if framing is not None:
            result.append(framing)
    return result

def _value_label(
    meta_dimension: str,
    score: float,
    framings: Sequence[ValueFraming],
    metas: Dict[str, MetaDimensionDef],
) -> str:
    framing = get_value_framing(meta_dimension, score, framings)
    if framing is not None:
        return framing.core_value_label
    meta = metas.get(meta_dimension)
    if meta is not None:
        return meta.pole_label(_pole(score)).lower()
    return meta_dimension.replace("_", " ")

def generate_value_summary(
    meta_scores: Dict[str, float],
    framings: Sequence[ValueFraming] = (),
    meta_dimensions: Sequence[MetaDimensionDef] = (),
    lead: str = "Your civic perspective",
) -> str:
    """
    One sentence naming the values behind every non-neutral dimension.

    Each dimension reads as its framing's core value label, falling back to
    the dimension's pole label when no framing covers it, so a dimension
    without authored copy still counts toward the summary.
    """
    metas = {m.id: m for m in meta_dimensions}
    labels = [
        _value_label(meta_dimension, score, framings, metas)
        for meta_dimension, score in meta_scores.items()
        if abs(score) > NEUTRAL_THRESHOLD
    ]

    if not labels:
        return BALANCED_SUMMARY
    if len(labels) == 1:
        return f"{lead} centers on {labels[0]}."
    if len(labels) == 2:
        return f"{lead} emphasizes {labels[0]} and {labels[1]}."
    return f"{lead} weaves together {', '.join(labels[:-1])}, and {labels[-1]}."

def generate_policy_framing(
    meta_scores: Dict[str, float],
    policy_alignment: Dict[str, float],
    framings: Sequence[ValueFraming] = (),
) -> PolicyFraming:
    """
    Explains why a policy may resonate with, or pull against, the user's values.

    For each dimension where the user is non-neutral and the policy has a
    direction, the user's own framing supplies an alignment phrase when both
    point to the same pole and a tension phrase otherwise.
    """
    result = PolicyFraming()
    for meta_dimension, user_score in meta_scores.items():
        policy_score = policy_alignment.get(meta_dimension)
        if policy_score is None or policy_score == 0 or abs(user_score) <= NEUTRAL_THRESHOLD:
            continue
        framing = _find(framings, meta_dimension, _pole(user_score))
        if framing is None:
            continue
        if _pole(user_score) == _pole(policy_score):
            result.resonance.append(framing.fragments.alignment_phrase)
        else:
            result.tension.append(framing.fragments.tension_phrase)
    return result

def derive_policy_meta_alignment(yes_axis_effects: Dict[str, float], spec: AssessmentSpec) -> Dict[str, float]:
    """
    Direction a YES vote pushes each meta-dimension.

    A negative yes effect moves an axis toward pole A, which is a positive
    stance, so each mapped axis contributes -effect times its mapping weight,
    averaged over the absolute weights. Dimensions with no mapped axis among
    the effects are omitted.
    """
    result = {}
    for meta in spec.meta_dimensions:
        mapped = [m for m in meta.axes if m.axis_id in yes_axis_effects]
        if mapped:
            num = sum(-yes_axis_effects[m.axis_id] * m.weight for m in mapped)
            result[meta.id] = num / sum(abs(m.weight) for m in mapped)
    return result

def spectrum_reading(meta: MetaDimensionDef, score: float) -> SpectrumReading:
    """
    Splits a meta-dimension score into a two-sided percentage bar with a graduated label.

    The winning side's share picks the label: at or above STRONG_THRESHOLD the pole
    label, at or above MODERATE_THRESHOLD the moderate label, otherwise balanced.
    """
    clamped = max(-1.0, min(1.0, score))
    positive_pct = int(round((1 + clamped) / 2 * 100))
    negative_pct = 100 - positive_pct

    if positive_pct >= negative_pct:
        winner_pct, strong, moderate = positive_pct, meta.positive_label, meta.positive_moderate_label
    else:
        winner_pct, strong, moderate = negative_pct, meta.negative_label, meta.negative_moderate_label

    if winner_pct >= STRONG_THRESHOLD:
        label = strong
    elif winner_pct >= MODERATE_THRESHOLD:
        label = moderate or f"Leans {strong}"
    else:
        label = meta.balanced_label

    return SpectrumReading(
        meta_dimension=meta.id,
        negative_pct=negative_pct,
        positive_pct=positive_pct,
        label=label,
    )

def spectrum_label(value_0_10: float, meta: MetaDimensionDef) -> str:
    """Spectrum label for a 0-10 slider position (0 reads as the positive pole)."""
    return spectrum_reading(meta, stance(value_0_10)).label

def get_importance_label(importance_0_10: float) -> str:
    for upper_bound, label in IMPORTANCE_LABELS:
        if importance_0_10 <= upper_bound:
            return label
    return IMPORTANCE_LABELS[-1][1]
