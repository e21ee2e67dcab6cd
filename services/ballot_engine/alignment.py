# services/ballot_engine/alignment.py
# Compares a user's blueprint profile or axis scores with candidate and measure positions.

import logging
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from .meta_dimensions import DEFAULT_IMPORTANCE, compute_confidence, stance
from .models import (
    AlignmentCategory,
    AssessmentSpec,
    Axis,
    AxisBreakdown,
    AxisComparison,
    AxisScore,
    BlueprintProfile,
    Contest,
    MatchResult,
    Measure,
    MeasureRecommendation,
    PositionVector,
)
from .vectors import calculate_user_vector, cosine_similarity, similarity_to_percent

logger = logging.getLogger(__name__)

CLOSE_CALL_EXPLANATION = "This is a close call based on your current values."

class AlignmentPolicy(BaseModel):
    """Thresholds and presentation caps shared by every match/recommendation call site."""
    strong_max_difference: float = Field(2.0, ge=0)
    moderate_max_difference: float = Field(3.0, ge=0)
    max_key_agreements: int = Field(2, ge=0)
    max_key_disagreements: int = Field(1, ge=0)
    min_confidence: float = Field(0.2, ge=0, le=1)
    best_match_threshold: float = 50.0
    factor_threshold: float = 0.15

    @model_validator(mode="after")
    def _bands_ordered(self):
        if self.moderate_max_difference < self.strong_max_difference:
            raise ValueError("moderate_max_difference must not be below strong_max_difference")
        return self

    def categorize(self, difference: float) -> AlignmentCategory:
        if difference <= self.strong_max_difference:
            return "strong"
        if difference <= self.moderate_max_difference:
            return "moderate"
        return "disagree"

DEFAULT_POLICY = AlignmentPolicy()

def get_stance_label(value: float, pole_a: str, pole_b: str) -> str:
    if value <= 2:
        return f'Strongly toward "{pole_a}"'
    if value <= 4:
        return f'Lean toward "{pole_a}"'
    if value >= 8:
        return f'Strongly toward "{pole_b}"'
    if value >= 6:
        return f'Lean toward "{pole_b}"'
    return "Balanced / Mixed"

def _axis_lookup(spec: AssessmentSpec) -> Dict[str, Axis]:
    return {axis.id: axis for axis in spec.axes}

def match_entity(
    profile: BlueprintProfile,
    position: PositionVector,
    spec: AssessmentSpec,
    policy: AlignmentPolicy = DEFAULT_POLICY,
    entity_name: str = "",
) -> MatchResult:
    """
    Scores how closely an entity's stances track the user's profile.

    Only axes present in the entity's vector on which the user has evidence are
    compared. Each comparison is |user - entity| on the 0-10 scale; the match
    percent is 100 * (1 - importance-weighted mean difference / 10), floored at 0.
    With no comparable axis the result is 0% and flagged insufficient_data.
    """
    axes = _axis_lookup(spec)
    positions = profile.positions()
    importance = profile.importance_by_axis()

    comparisons: List[AxisComparison] = []
    weighted_diff = 0.0
    total_weight = 0.0
    for axis_id, entity_stance in position.stances.items():
        user_position = positions.get(axis_id)
        axis = axes.get(axis_id)
        if user_position is None or axis is None or not user_position.has_evidence:
            continue
        difference = abs(user_position.value_0_10 - entity_stance)
        weight = importance.get(axis_id, DEFAULT_IMPORTANCE) / 10
        weighted_diff += difference * weight
        total_weight += weight
        comparisons.append(AxisComparison(
            axis_id=axis_id,
            axis_name=axis.name,
            user_stance=user_position.value_0_10,
            entity_stance=entity_stance,
            difference=difference,
            alignment_category=policy.categorize(difference),
            user_label=get_stance_label(user_position.value_0_10, axis.pole_a_label, axis.pole_b_label),
            entity_label=get_stance_label(entity_stance, axis.pole_a_label, axis.pole_b_label),
        ))

    if not comparisons:
        return MatchResult(
            entity_id=position.entity_id,
            entity_name=entity_name,
            match_percent=0,
            insufficient_data=True,
            confidence=0.0,
        )

    if total_weight > 0:
        mean_diff = weighted_diff / total_weight
    else:
        # Every compared domain has importance 0; fall back to an unweighted mean
        mean_diff = sum(c.difference for c in comparisons) / len(comparisons)
    match_percent = int(round(max(0.0, (1 - mean_diff / 10) * 100)))

    by_difference = sorted(comparisons, key=lambda c: c.difference)
    agreements = [c.axis_name for c in by_difference if c.alignment_category == "strong"]
    disagreements = [c.axis_name for c in reversed(by_difference) if c.alignment_category == "disagree"]

    compared = [positions[c.axis_id].confidence_0_1 for c in comparisons]
    known = [c for c in compared if c is not None]
    confidence = sum(known) / len(known) if known else compute_confidence(profile)

    return MatchResult(
        entity_id=position.entity_id,
        entity_name=entity_name,
        match_percent=match_percent,
        insufficient_data=False,
        confidence=confidence,
        per_axis_comparison=comparisons,
        key_agreements=agreements[:policy.max_key_agreements],
        key_disagreements=disagreements[:policy.max_key_disagreements],
    )

def rank_candidates(
    profile: BlueprintProfile,
    contest: Contest,
    spec: AssessmentSpec,
    policy: AlignmentPolicy = DEFAULT_POLICY,
) -> List[MatchResult]:
    """
    Matches every candidate in a contest, best first (ties keep ballot order).

    The top result is flagged best match only when it clears the policy's
    percent threshold, has data behind it, and the user's profile is confident
    enough to back a recommendation.
    """
    candidates = sorted(contest.candidates, key=lambda c: c.ballot_order)
    matches = [
        match_entity(profile, candidate.position_vector(), spec, policy, entity_name=candidate.name)
        for candidate in candidates
    ]
    matches.sort(key=lambda m: -m.match_percent)

    if matches:
        top = matches[0]
        if (
            not top.insufficient_data
            and top.match_percent > policy.best_match_threshold
            and compute_confidence(profile) >= policy.min_confidence
        ):
            top.is_best_match = True
    return matches

def match_entity_by_similarity(
    axis_scores: List[AxisScore],
    position: PositionVector,
    spec: AssessmentSpec,
    policy: AlignmentPolicy = DEFAULT_POLICY,
    entity_name: str = "",
) -> MatchResult:
    """
    Scores an entity by the direction of its stances rather than their distance.

    Works straight from axis scores, so it needs no blueprint profile. Both
    sides become vectors over the axes the user answered and the entity takes
    a stance on: the user's shrunk scores, and the entity's 0-10 stances mapped
    to [-1, 1] with pole A positive. The match percent is their cosine
    similarity rescaled to 0-100. Agreements are axes where both lean the same
    way, strongest first; disagreements lean opposite ways.
    """
    axes = _axis_lookup(spec)
    answered = {s.axis_id: s for s in axis_scores if s.n_answered > 0}
    shared = [axis_id for axis_id in position.stances if axis_id in answered and axis_id in axes]

    if not shared:
        return MatchResult(
            entity_id=position.entity_id,
            entity_name=entity_name,
            match_percent=0,
            insufficient_data=True,
            confidence=0.0,
        )

    user_vector = calculate_user_vector(axis_scores, shared)
    entity_vector = [stance(position.stances[axis_id]) for axis_id in shared]
    match_percent = similarity_to_percent(cosine_similarity(user_vector, entity_vector))

    comparisons: List[AxisComparison] = []
    products: Dict[str, float] = {}
    for axis_id, user_value, entity_value in zip(shared, user_vector, entity_vector):
        axis = axes[axis_id]
        user_stance = 5 - 5 * user_value
        entity_stance = position.stances[axis_id]
        difference = abs(user_stance - entity_stance)
        products[axis.name] = user_value * entity_value
        comparisons.append(AxisComparison(
            axis_id=axis_id,
            axis_name=axis.name,
            user_stance=user_stance,
            entity_stance=entity_stance,
            difference=difference,
            alignment_category=policy.categorize(difference),
            user_label=get_stance_label(user_stance, axis.pole_a_label, axis.pole_b_label),
            entity_label=get_stance_label(entity_stance, axis.pole_a_label, axis.pole_b_label),
        ))

    agreements = sorted((name for name, p in products.items() if p > 0), key=lambda name: -products[name])
    disagreements = sorted((name for name, p in products.items() if p < 0), key=lambda name: products[name])
    confidence = sum(answered[axis_id].confidence for axis_id in shared) / len(shared)

    return MatchResult(
        entity_id=position.entity_id,
        entity_name=entity_name,
        match_percent=match_percent,
        insufficient_data=False,
        confidence=confidence,
        per_axis_comparison=comparisons,
        key_agreements=agreements[:policy.max_key_agreements],
        key_disagreements=disagreements[:policy.max_key_disagreements],
    )

def rank_candidates_by_similarity(
    axis_scores: List[AxisScore],
    contest: Contest,
    spec: AssessmentSpec,
    policy: AlignmentPolicy = DEFAULT_POLICY,
) -> List[MatchResult]:
    """Similarity counterpart of rank_candidates; the best-match gate uses the match's own confidence."""
    candidates = sorted(contest.candidates, key=lambda c: c.ballot_order)
    matches = [
        match_entity_by_similarity(axis_scores, candidate.position_vector(), spec, policy, entity_name=candidate.name)
        for candidate in candidates
    ]
    matches.sort(key=lambda m: -m.match_percent)

    if matches:
        top = matches[0]
        if (
            not top.insufficient_data
            and top.match_percent > policy.best_match_threshold
            and top.confidence >= policy.min_confidence
        ):
            top.is_best_match = True
    return matches

def _axis_leaning(value: float, yes_effect: float) -> str:
    if yes_effect < 0:
        if value <= 4:
            return "yes"
        if value >= 6:
            return "no"
    else:
        if value >= 6:
            return "yes"
        if value <= 4:
            return "no"
    return "neutral"

def recommend_measure(
    profile: BlueprintProfile,
    measure: Measure,
    spec: AssessmentSpec,
    policy: AlignmentPolicy = DEFAULT_POLICY,
) -> MeasureRecommendation:
    """
    Suggests a YES/NO vote on a measure from the user's axis positions.

    user_preference = (value - 5) / 5 puts pole A at -1; a negative yes effect
    moves policy toward pole A, so their product is positive when YES fits the
    user. Contributions are importance weighted and normalized by the total
    effect magnitude. When the resulting confidence is below the policy
    minimum, no vote is asserted.
    """
    axes = _axis_lookup(spec)
    positions = profile.positions()
    importance = profile.importance_by_axis()

    alignment_score = 0.0
    total_weight = 0.0
    factors: List[str] = []
    breakdown: List[AxisBreakdown] = []

    for axis_id, yes_effect in measure.yes_axis_effects.items():
        user_position = positions.get(axis_id)
        axis = axes.get(axis_id)
        if user_position is None or axis is None or not user_position.has_evidence:
            continue

        value = user_position.value_0_10
        user_preference = (value - 5) / 5
        weight = importance.get(axis_id, DEFAULT_IMPORTANCE) / 10

        breakdown.append(AxisBreakdown(
            axis_id=axis_id,
            axis_name=axis.name,
            user_value=value,
            user_stance_label=get_stance_label(value, axis.pole_a_label, axis.pole_b_label),
            yes_aligns_with=axis.pole_a_label if yes_effect < 0 else axis.pole_b_label,
            no_aligns_with=axis.pole_b_label if yes_effect < 0 else axis.pole_a_label,
            alignment=_axis_leaning(value, yes_effect),
        ))

        alignment = yes_effect * user_preference
        alignment_score += alignment * weight
        total_weight += abs(yes_effect) * weight
        if abs(alignment) > policy.factor_threshold:
            factors.append(axis.name)

    if not breakdown:
        logger.info(f"No evidence on any axis of measure '{measure.id}'; returning no recommendation")
        return MeasureRecommendation(
            measure_id=measure.id,
            insufficient_data=True,
            explanation=CLOSE_CALL_EXPLANATION,
        )

    normalized_score = alignment_score / total_weight if total_weight > 0 else 0.0
    confidence = min(abs(normalized_score) * 1.2, 1.0)

    vote: Optional[str] = None
    if confidence >= policy.min_confidence:
        if normalized_score > 0:
            vote = "yes"
        elif normalized_score < 0:
            vote = "no"

    on_factors = f" on {' and '.join(factors[:2])}" if factors else ""
    if vote == "yes":
        explanation = f"Voting YES aligns with your values{on_factors}."
    elif vote == "no":
        explanation = f"Voting NO better matches your priorities{on_factors}."
    else:
        explanation = CLOSE_CALL_EXPLANATION

    return MeasureRecommendation(
        measure_id=measure.id,
        vote=vote,
        normalized_score=normalized_score,
        confidence=confidence,
        explanation=explanation,
        factors=factors,
        breakdown=breakdown,
    )
