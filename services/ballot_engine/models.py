from datetime import datetime, timezone
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

Direction = Literal[-1, 1]
ItemKind = Literal["binary", "likert", "slider"]
GovernmentLevel = Literal["local", "state", "national", "international", "general"]
AlignmentCategory = Literal["strong", "moderate", "disagree"]
LearningMode = Literal["normal", "dampened", "frozen"]
PositionSource = Literal["default", "learned_from_swipes", "user_edited"]
Pole = Literal["negative", "positive"]
Vote = Literal["yes", "no"]

# --- Assessment content ---

class Domain(BaseModel):
    id: str
    name: str
    description: str = ""

class Axis(BaseModel):
    id: str
    domain_id: str
    name: str
    pole_a_label: str
    pole_b_label: str
    question: Optional[str] = None

class AssessmentItem(BaseModel):
    id: str
    text: str
    kind: ItemKind = "binary"
    axis_keys: Dict[str, Direction] # {axis_id: +1 when "agree" supports pole A, -1 for pole B}
    level: GovernmentLevel = "general"
    tags: List[str] = Field(default_factory=list)
    tradeoff: Optional[str] = None

class VignetteOption(BaseModel):
    id: str
    text: str
    axis_effects: Dict[str, float] # Authored signed weight per axis, in [-1, 1]

class Vignette(BaseModel):
    id: str
    prompt: str
    options: List[VignetteOption]

class ResponseScale(BaseModel):
    agree: float = 2.0
    disagree: float = -2.0

class ScoringConfig(BaseModel):
    shrinkage_k: float = Field(5.0, gt=0)
    max_item_contribution: float = Field(2.0, gt=0)
    top_driver_count: int = Field(5, ge=0)
    response_scale: ResponseScale = Field(default_factory=ResponseScale)
    reliability_alpha_threshold: float = 0.7

class MetaAxisWeight(BaseModel):
    axis_id: str
    weight: float = 1.0 # Negative weights count the axis toward the negative pole

    @field_validator("weight")
    @classmethod
    def _nonzero(cls, value: float) -> float:
        if value == 0:
            raise ValueError("Meta-dimension axis weight must be non-zero")
        return value

class FramingFragments(BaseModel):
    you_value_phrase: str
    this_matters_phrase: str
    alignment_phrase: str
    tension_phrase: str

class PoleFraming(BaseModel):
    """Value language for one pole of a meta-dimension."""
    core_value_label: str
    short_phrase: str
    resonance_framing: str
    tradeoff_framing: str
    fragments: FramingFragments

class MetaDimensionDef(BaseModel):
    id: str
    name: str
    positive_label: str # Label of the pole a +1 score points to
    negative_label: str
    positive_moderate_label: Optional[str] = None
    negative_moderate_label: Optional[str] = None
    balanced_label: str = "Balanced"
    axes: List[MetaAxisWeight]
    framing: Dict[Pole, PoleFraming] = Field(default_factory=dict)

    def pole_label(self, pole: str) -> str:
        return self.positive_label if pole == "positive" else self.negative_label

class ArchetypeDef(BaseModel):
    id: str
    emoji: str = ""
    name: str
    traits: List[str]
    centroid: Dict[str, float] # {meta_dimension_id: coordinate}
    summary: str

class AssessmentSpec(BaseModel):
    version: str
    name: str = ""
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    domains: List[Domain]
    axes: List[Axis]
    items: List[AssessmentItem]
    vignettes: List[Vignette] = Field(default_factory=list)
    meta_dimensions: List[MetaDimensionDef] = Field(default_factory=list)
    archetypes: List[ArchetypeDef] = Field(default_factory=list)
    summary_lead: str = "Your civic perspective" # Subject of the generated value summary

    def value_framings(self) -> List["ValueFraming"]:
        """Flattens the per-dimension framing content, dimensions in catalog order."""
        return [
            ValueFraming(meta_dimension=meta.id, pole=pole, **entry.model_dump())
            for meta in self.meta_dimensions
            for pole, entry in meta.framing.items()
        ]

# --- Ballot content ---

Stance = Annotated[float, Field(ge=0, le=10)]
YesEffect = Annotated[float, Field(ge=-1, le=1)]

class PositionVector(BaseModel):
    entity_id: str
    stances: Dict[str, float] # {axis_id: 0..10}, low values lean toward pole A

class Candidate(BaseModel):
    id: str
    name: str
    party: Optional[str] = None
    incumbency_status: Optional[Literal["incumbent", "challenger", "open_seat"]] = None
    ballot_order: int = 0
    positions: List[str] = Field(default_factory=list)
    axis_stances: Dict[str, Stance]
    profile_summary: str = ""

    def position_vector(self) -> PositionVector:
        return PositionVector(entity_id=self.id, stances=dict(self.axis_stances))

class Contest(BaseModel):
    id: str
    office: str
    voting_for: int = 1
    term_info: Optional[str] = None
    candidates: List[Candidate]

class MeasureOutcomes(BaseModel):
    yes: str
    no: str

class Measure(BaseModel):
    id: str
    title: str
    short_title: str = ""
    description: str
    yes_axis_effects: Dict[str, YesEffect] # Negative = YES moves toward pole A
    outcomes: MeasureOutcomes
    explanation: str = ""
    supporters: List[str] = Field(default_factory=list)
    opponents: List[str] = Field(default_factory=list)

class Ballot(BaseModel):
    version: str
    contests: List[Contest] = Field(default_factory=list)
    measures: List[Measure] = Field(default_factory=list)

# --- Responses ---

class BinaryResponse(BaseModel):
    kind: Literal["binary"] = "binary"
    answer: Literal["agree", "disagree", "unsure"]

class LikertResponse(BaseModel):
    kind: Literal["likert"] = "likert"
    value: int # 1..5, range checked by the normalizer

class SliderResponse(BaseModel):
    kind: Literal["slider"] = "slider"
    tick: int # 0..10, range checked by the normalizer

class VignetteSelection(BaseModel):
    kind: Literal["vignette"] = "vignette"
    vignette_id: str
    option_id: str

ResponseValue = Annotated[
    Union[BinaryResponse, LikertResponse, SliderResponse, VignetteSelection],
    Field(discriminator="kind"),
]

class ResponseEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    item_id: str # Vignette id for vignette selections
    value: ResponseValue
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

# --- Derived results ---

class AxisContribution(BaseModel):
    axis_id: str
    value: float
    unsure: bool = False

class AxisScore(BaseModel):
    axis_id: str
    raw_sum: float = 0.0
    n_answered: int = 0
    n_unsure: int = 0
    max_possible: float = 0.0
    normalized: float = 0.0
    shrunk: float = 0.0
    confidence: float = 0.0
    top_driver_item_ids: List[str] = Field(default_factory=list)

class AxisPosition(BaseModel):
    axis_id: str
    value_0_10: float = 5.0 # Displayed position, 0 = pole A, 10 = pole B
    confidence_0_1: Optional[float] = None # None until there is evidence from responses
    source: PositionSource = "default"
    locked: bool = False
    learning_mode: LearningMode = "normal"
    learned_value: Optional[float] = None # Unrounded 5 - 5 * shrunk from the last scoring pass
    n_items_answered: int = 0
    n_unsure: int = 0
    top_driver_item_ids: List[str] = Field(default_factory=list)

    @property
    def has_evidence(self) -> bool:
        return self.source != "default"

class DomainProfile(BaseModel):
    domain_id: str
    importance: float = Field(5.0, ge=0, le=10)
    axes: List[AxisPosition] = Field(default_factory=list)

class BlueprintProfile(BaseModel):
    domains: List[DomainProfile] = Field(default_factory=list)

    def positions(self) -> Dict[str, AxisPosition]:
        return {a.axis_id: a for d in self.domains for a in d.axes}

    def importance_by_axis(self) -> Dict[str, float]:
        return {a.axis_id: d.importance for d in self.domains for a in d.axes}

class ArchetypeMatch(BaseModel):
    id: str
    name: str
    emoji: str = ""
    traits: List[str] = Field(default_factory=list)
    summary: str = ""
    distance: float

class ArchetypeResult(BaseModel):
    primary: ArchetypeMatch
    secondary: Optional[ArchetypeMatch] = None
    margin: float = 0.0
    confidence: float
    meta: Dict[str, float]

class AxisComparison(BaseModel):
    axis_id: str
    axis_name: str
    user_stance: float
    entity_stance: float
    difference: float
    alignment_category: AlignmentCategory
    user_label: str = ""
    entity_label: str = ""

class MatchResult(BaseModel):
    entity_id: str
    entity_name: str = ""
    match_percent: int = 0
    insufficient_data: bool = False
    confidence: float = 0.0
    per_axis_comparison: List[AxisComparison] = Field(default_factory=list)
    key_agreements: List[str] = Field(default_factory=list)
    key_disagreements: List[str] = Field(default_factory=list)
    is_best_match: bool = False

class AxisBreakdown(BaseModel):
    axis_id: str
    axis_name: str
    user_value: float
    user_stance_label: str
    yes_aligns_with: str
    no_aligns_with: str
    alignment: Literal["yes", "no", "neutral"]

class MeasureRecommendation(BaseModel):
    measure_id: str
    vote: Optional[Vote] = None
    normalized_score: float = 0.0
    confidence: float = 0.0
    insufficient_data: bool = False
    explanation: str = ""
    factors: List[str] = Field(default_factory=list)
    breakdown: List[AxisBreakdown] = Field(default_factory=list)
    resonance: List[str] = Field(default_factory=list)
    tension: List[str] = Field(default_factory=list)

class ValueFraming(BaseModel):
    meta_dimension: str
    pole: Pole
    core_value_label: str
    short_phrase: str
    resonance_framing: str
    tradeoff_framing: str
    fragments: FramingFragments

class PolicyFraming(BaseModel):
    resonance: List[str] = Field(default_factory=list)
    tension: List[str] = Field(default_factory=list)

class SpectrumReading(BaseModel):
    meta_dimension: str
    negative_pct: int
    positive_pct: int
    label: str

# Custom Error Classes
class InvalidSubmissionError(ValueError):
    """Raised for a response that cannot be applied to its item (bad kind, out-of-range value, unknown option)."""
    pass

class VectorMismatchError(ValueError):
    """Raised when similarity is requested for empty or differently sized vectors."""
    pass

class UnknownEntityError(ValueError):
    """Raised when a contest, candidate or measure id is not on the loaded ballot."""
    pass
