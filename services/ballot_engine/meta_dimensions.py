# services/ballot_engine/meta_dimensions.py
# Builds the blueprint profile from axis scores and rolls axis stances up into
# meta-dimensions, overall confidence and the nearest archetype.

import logging
import math
from typing import Dict, List, Optional

import numpy as np

from .models import (
    ArchetypeMatch,
    ArchetypeResult,
    AssessmentSpec,
    AxisPosition,
    AxisScore,
    BlueprintProfile,
    DomainProfile,
    LearningMode,
)

logger = logging.getLogger(__name__)

DEFAULT_IMPORTANCE = 5.0
DEFAULT_PROFILE_CONFIDENCE = 0.5 # Midpoint prior when no axis has evidence yet
DAMPENED_PREVIOUS_WEIGHT = 0.8

# Lower bound (inclusive) of each confidence band, highest first
CONFIDENCE_BANDS = [
    (0.70, "High"),
    (0.35, "Medium"),
    (0.0, "Low"),
]

def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))

def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))

def shrunk_to_value(shrunk: float) -> float:
    """Maps a shrunk axis score in [-1, 1] onto the 0-10 slider (+1 -> 0, pole A)."""
    return _clamp(5 - 5 * shrunk, 0.0, 10.0)

def stance(value_0_10: float) -> float:
    """Rescales a 0-10 position to an orientation in [-1, 1]; 0 -> +1, 5 -> 0, 10 -> -1."""
    return (5 - _clamp(value_0_10, 0.0, 10.0)) / 5

def _learn_position(
    axis_id: str,
    score: Optional[AxisScore],
    previous: Optional[AxisPosition],
    mode: Optional[LearningMode] = None,
) -> AxisPosition:
    if score is None or score.n_answered == 0:
        position = previous.model_copy() if previous else AxisPosition(axis_id=axis_id)
        if mode is not None:
            position.learning_mode = mode
        return position

    learned = shrunk_to_value(score.shrunk)
    mode = mode or (previous.learning_mode if previous else "normal")
    user_edited = previous is not None and previous.source == "user_edited"

    if previous is not None and mode == "frozen":
        value = previous.value_0_10
    elif previous is not None and (mode == "dampened" or user_edited):
        # A user edit is never replaced outright, only nudged
        value = _round_half_up(DAMPENED_PREVIOUS_WEIGHT * previous.value_0_10 + (1 - DAMPENED_PREVIOUS_WEIGHT) * learned)
    else:
        value = _round_half_up(learned)

    return AxisPosition(
        axis_id=axis_id,
        value_0_10=value,
        confidence_0_1=score.confidence,
        source="user_edited" if user_edited else "learned_from_swipes",
        locked=previous.locked if previous else False,
        learning_mode=mode,
        learned_value=learned,
        n_items_answered=score.n_answered,
        n_unsure=score.n_unsure,
        top_driver_item_ids=list(score.top_driver_item_ids),
    )

def build_profile(
    axis_scores: List[AxisScore],
    spec: AssessmentSpec,
    previous: Optional[BlueprintProfile] = None,
    learning_modes: Optional[Dict[str, LearningMode]] = None,
    importance: Optional[Dict[str, float]] = None,
) -> BlueprintProfile:
    """
    Projects axis scores onto the 0-10 blueprint profile.

    Args:
        axis_scores: Output of score_axes.
        spec: Assessment content; defines the domain/axis layout of the profile.
        previous: Earlier profile. Its learning modes, locks and user edits are honoured:
                  'frozen' keeps the old value, 'dampened' moves 20% of the way toward
                  the learned value, 'normal' takes the learned value. User-edited
                  positions are always at least dampened.
        learning_modes: Optional {axis_id: mode} overriding the modes stored in `previous`.
        importance: Optional {domain_id: 0..10} overriding stored domain importance.

    Returns:
        A new BlueprintProfile; `previous` is left untouched.
    """
    scores = {s.axis_id: s for s in axis_scores}
    previous_positions = previous.positions() if previous else {}
    previous_importance = {d.domain_id: d.importance for d in previous.domains} if previous else {}
    learning_modes = learning_modes or {}
    importance = importance or {}

    domains = []
    for domain in spec.domains:
        positions = [
            _learn_position(axis.id, scores.get(axis.id), previous_positions.get(axis.id), learning_modes.get(axis.id))
            for axis in spec.axes
            if axis.domain_id == domain.id
        ]
        weight = importance.get(domain.id, previous_importance.get(domain.id, DEFAULT_IMPORTANCE))
        domains.append(DomainProfile(domain_id=domain.id, importance=_clamp(weight, 0.0, 10.0), axes=positions))
    return BlueprintProfile(domains=domains)

def apply_user_edit(profile: BlueprintProfile, axis_id: str, value_0_10: float) -> BlueprintProfile:
    """Records a manual slider edit; later scoring dampens (or, when locked, freezes) it."""
    updated = profile.model_copy(deep=True)
    position = updated.positions().get(axis_id)
    if position is None:
        raise KeyError(f"Axis '{axis_id}' is not part of this profile")
    position.value_0_10 = _clamp(value_0_10, 0.0, 10.0)
    position.source = "user_edited"
    position.learning_mode = "frozen" if position.locked else "dampened"
    return updated

def toggle_lock(profile: BlueprintProfile, axis_id: str) -> BlueprintProfile:
    updated = profile.model_copy(deep=True)
    position = updated.positions().get(axis_id)
    if position is None:
        raise KeyError(f"Axis '{axis_id}' is not part of this profile")
    position.locked = not position.locked
    if position.locked:
        position.learning_mode = "frozen"
    else:
        position.learning_mode = "dampened" if position.source == "user_edited" else "normal"
    return updated

def derive_meta_dimensions(profile: BlueprintProfile, spec: AssessmentSpec) -> Dict[str, float]:
    """
    Weighted mean of axis stances per meta-dimension.

    Only axes with evidence (learned or user-edited) contribute. Each axis is
    weighted by its mapping weight times its domain importance / 10; a negative
    mapping weight makes the axis pull toward the negative pole, and the mean is
    taken over absolute weights. A dimension with no contributing axis is 0,
    never an error.
    """
    positions = profile.positions()
    importance = profile.importance_by_axis()
    result = {}
    for meta in spec.meta_dimensions:
        num = 0.0
        den = 0.0
        for mapping in meta.axes:
            position = positions.get(mapping.axis_id)
            if position is None or not position.has_evidence:
                continue
            weight = mapping.weight * importance.get(mapping.axis_id, DEFAULT_IMPORTANCE) / 10
            num += stance(position.value_0_10) * weight
            den += abs(weight)
        result[meta.id] = num / den if den > 0 else 0.0
    return result

def compute_confidence(profile: BlueprintProfile) -> float:
    confidences = [p.confidence_0_1 for p in profile.positions().values() if p.confidence_0_1 is not None]
    if not confidences:
        return DEFAULT_PROFILE_CONFIDENCE
    return sum(confidences) / len(confidences)

def get_confidence_label(confidence: float) -> str:
    for lower_bound, label in CONFIDENCE_BANDS:
        if confidence >= lower_bound:
            return label
    return "Low"

def compute_archetype(profile: BlueprintProfile, spec: AssessmentSpec) -> Optional[ArchetypeResult]:
    """
    Nearest-centroid classification in meta-dimension space.

    Primary is the closest archetype, secondary the runner-up; equal distances
    resolve to catalog order. Returns None when the assessment has no archetype catalog.
    """
    if not spec.archetypes:
        return None

    meta = derive_meta_dimensions(profile, spec)
    dims = [m.id for m in spec.meta_dimensions]
    user_point = np.array([meta[d] for d in dims], dtype=float)
    centroids = np.array([[a.centroid[d] for d in dims] for a in spec.archetypes], dtype=float)
    distances = np.linalg.norm(centroids - user_point, axis=1)

    order = np.argsort(distances, kind="stable")
    ranked = [
        ArchetypeMatch(
            id=spec.archetypes[i].id,
            name=spec.archetypes[i].name,
            emoji=spec.archetypes[i].emoji,
            traits=list(spec.archetypes[i].traits),
            summary=spec.archetypes[i].summary,
            distance=float(distances[i]),
        )
        for i in order
    ]
    primary = ranked[0]
    secondary = ranked[1] if len(ranked) > 1 else None
    margin = secondary.distance - primary.distance if secondary else 1.0

    logger.debug(f"Archetype {primary.id} (margin {margin:.3f}) for meta {meta}")
    return ArchetypeResult(
        primary=primary,
        secondary=secondary,
        margin=margin,
        confidence=compute_confidence(profile),
        meta=meta,
    )
