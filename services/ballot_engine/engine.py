import logging
import random
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from .alignment import (
    AlignmentPolicy,
    DEFAULT_POLICY,
    rank_candidates,
    rank_candidates_by_similarity,
    recommend_measure,
)
from .axis_scoring import score_axes
from .loader import load_assessment_spec_from_file, load_ballot_from_file
from .meta_dimensions import (
    build_profile,
    compute_archetype,
    compute_confidence,
    derive_meta_dimensions,
    get_confidence_label,
)
from .models import (
    AssessmentItem,
    AssessmentSpec,
    Ballot,
    BlueprintProfile,
    Contest,
    InvalidSubmissionError,
    LearningMode,
    MatchResult,
    Measure,
    MeasureRecommendation,
    ResponseEvent,
    UnknownEntityError,
    ValueFraming,
    Vignette,
)
from .normalizer import normalize
from .selection import select_balanced_items, select_random_items, shuffle_vignettes
from .value_framing import (
    derive_policy_meta_alignment,
    frame,
    generate_policy_framing,
    generate_value_summary,
    spectrum_reading,
)

logger = logging.getLogger(__name__)

class ValueEngine:
    """
    Loads assessment and ballot content once and runs the scoring pipeline on it.

    The loaded content is an immutable snapshot; every method is a pure function
    of its arguments and that snapshot, so one instance can serve concurrent requests.
    """
    def __init__(
        self,
        spec_path: str = "assets/civic_axes.yml",
        ballot_path: Optional[str] = None,
        policy: AlignmentPolicy = DEFAULT_POLICY,
        shrinkage_k: Optional[float] = None,
    ):
        """
        Args:
            spec_path: Path to the assessment YAML (axes, items, meta-dimensions, archetypes).
            ballot_path: Optional path to the ballot YAML (contests and measures).
            policy: Alignment thresholds used for matches and recommendations.
            shrinkage_k: Overrides the assessment's shrinkage constant.
        """
        self.spec_path = Path(spec_path)
        if not self.spec_path.is_file():
            raise FileNotFoundError(f"Assessment spec not found at {spec_path}")

        self.spec: AssessmentSpec = load_assessment_spec_from_file(str(self.spec_path))
        self.ballot: Optional[Ballot] = None
        if ballot_path is not None:
            if not Path(ballot_path).is_file():
                raise FileNotFoundError(f"Ballot not found at {ballot_path}")
            self.ballot = load_ballot_from_file(ballot_path, self.spec)

        self.policy = policy
        self.shrinkage_k = shrinkage_k
        self._build_lookup_maps()

    def _build_lookup_maps(self):
        """Builds dictionaries for quick lookup of response targets, contests and measures."""
        self.targets: Dict[str, Union[AssessmentItem, Vignette]] = {i.id: i for i in self.spec.items}
        self.targets.update({v.id: v for v in self.spec.vignettes})
        self.contests: Dict[str, Contest] = {c.id: c for c in self.ballot.contests} if self.ballot else {}
        self.measures: Dict[str, Measure] = {m.id: m for m in self.ballot.measures} if self.ballot else {}
        self.framings: List[ValueFraming] = self.spec.value_framings()

    # --- Session composition ---

    def get_items(
        self,
        count: int,
        balanced: bool = True,
        rng: Optional[random.Random] = None,
        exclude_ids: Sequence[str] = (),
        level: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
    ) -> List[AssessmentItem]:
        """Items for an assessment session, optionally narrowed to one level and/or a set of tags."""
        if balanced:
            return select_balanced_items(self.spec.items, self.spec.axes, count, rng, exclude_ids, level, tags)
        return select_random_items(self.spec.items, count, rng, exclude_ids, level, tags)

    def get_vignettes(self, rng: Optional[random.Random] = None, randomize: bool = True) -> List[Vignette]:
        if not randomize:
            return [v.model_copy(deep=True) for v in self.spec.vignettes]
        return shuffle_vignettes(self.spec.vignettes, rng)

    # --- Scoring ---

    def validate(self, responses: Sequence[ResponseEvent]) -> None:
        """
        Strict check used before responses are stored.

        Scoring itself skips bad responses; this raises on the first one instead.

        Raises:
            InvalidSubmissionError: For an unknown item or a response that does not fit its item.
        """
        for event in responses:
            target = self.targets.get(event.item_id)
            if target is None:
                raise InvalidSubmissionError(f"Unknown item '{event.item_id}'")
            normalize(target, event.value, self.spec.scoring)

    def score(self, responses: Sequence[ResponseEvent]):
        return score_axes(responses, self.spec, self.shrinkage_k)

    def profile(
        self,
        responses: Sequence[ResponseEvent],
        previous: Optional[BlueprintProfile] = None,
        learning_modes: Optional[Dict[str, LearningMode]] = None,
        importance: Optional[Dict[str, float]] = None,
    ) -> BlueprintProfile:
        return build_profile(self.score(responses), self.spec, previous=previous, learning_modes=learning_modes, importance=importance)

    def assess(
        self,
        responses: Sequence[ResponseEvent],
        previous: Optional[BlueprintProfile] = None,
        learning_modes: Optional[Dict[str, LearningMode]] = None,
        importance: Optional[Dict[str, float]] = None,
    ) -> Dict[str, Any]:
        """
        Runs the full pipeline: axis scores, blueprint profile, meta-dimensions,
        archetype and value framing.

        Returns:
            A dictionary of pydantic models and plain values, ready for a response schema.
        """
        axis_scores = self.score(responses)
        profile = build_profile(axis_scores, self.spec, previous=previous, learning_modes=learning_modes, importance=importance)
        meta = derive_meta_dimensions(profile, self.spec)
        confidence = compute_confidence(profile)
        answered = sum(1 for s in axis_scores if s.n_answered > 0)
        logger.info(f"Assessed {len(responses)} responses: {answered}/{len(axis_scores)} axes with evidence")

        return {
            "axis_scores": axis_scores,
            "profile": profile,
            "meta_dimensions": meta,
            "spectrum": [spectrum_reading(m, meta[m.id]) for m in self.spec.meta_dimensions],
            "archetype": compute_archetype(profile, self.spec),
            "confidence": confidence,
            "confidence_label": get_confidence_label(confidence),
            "value_summary": generate_value_summary(
                meta, self.framings, self.spec.meta_dimensions, lead=self.spec.summary_lead
            ),
            "value_framings": frame(meta, self.framings),
        }

    # --- Ballot ---

    def get_contest(self, contest_id: str) -> Contest:
        contest = self.contests.get(contest_id)
        if contest is None:
            raise UnknownEntityError(f"Unknown contest '{contest_id}'")
        return contest

    def get_measure(self, measure_id: str) -> Measure:
        measure = self.measures.get(measure_id)
        if measure is None:
            raise UnknownEntityError(f"Unknown measure '{measure_id}'")
        return measure

    def match_contest(self, contest_id: str, profile: BlueprintProfile) -> List[MatchResult]:
        return rank_candidates(profile, self.get_contest(contest_id), self.spec, self.policy)

    def recommend(self, measure_id: str, profile: BlueprintProfile) -> MeasureRecommendation:
        """Measure recommendation with resonance/tension phrases from the user's meta-dimensions."""
        measure = self.get_measure(measure_id)
        recommendation = recommend_measure(profile, measure, self.spec, self.policy)
        policy_framing = generate_policy_framing(
            derive_meta_dimensions(profile, self.spec),
            derive_policy_meta_alignment(measure.yes_axis_effects, self.spec),
            self.framings,
        )
        return recommendation.model_copy(update={
            "resonance": policy_framing.resonance,
            "tension": policy_framing.tension,
        })

    def match_contest_by_values(self, contest_id: str, responses: Sequence[ResponseEvent]) -> List[MatchResult]:
        """
        Ranks a contest's candidates straight from raw responses by value-vector
        similarity. No stored profile is needed, which suits assessments whose
        results are not kept as a blueprint.
        """
        contest = self.get_contest(contest_id)
        return rank_candidates_by_similarity(self.score(responses), contest, self.spec, self.policy)
