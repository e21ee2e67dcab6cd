from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from services.ballot_engine.models import (
    ArchetypeResult,
    AssessmentItem,
    AxisScore,
    BlueprintProfile,
    LearningMode,
    MatchResult,
    ResponseEvent,
    SpectrumReading,
    ValueFraming,
)

class ItemsResponse(BaseModel):
    count: int
    items: List[AssessmentItem]

class ScoreRequest(BaseModel):
    responses: List[ResponseEvent]
    previous: Optional[BlueprintProfile] = None # Earlier profile carrying user edits and locks
    learning_modes: Optional[Dict[str, LearningMode]] = None # axis_id -> mode
    importance: Optional[Dict[str, float]] = None # domain_id -> 0..10

class AssessmentResponse(BaseModel):
    axis_scores: List[AxisScore]
    profile: BlueprintProfile
    meta_dimensions: Dict[str, float]
    spectrum: List[SpectrumReading]
    archetype: Optional[ArchetypeResult] = None
    confidence: float
    confidence_label: str
    value_summary: str
    value_framings: List[ValueFraming]

class RecordResponsesRequest(BaseModel):
    responses: List[ResponseEvent] = Field(..., min_length=1)

class RecordResponsesResult(BaseModel):
    user_id: str
    stored: int # Events kept; stale events (older than what is stored) are dropped
    total: int # Responses now held for the user

class ClearResponsesResult(BaseModel):
    user_id: str
    deleted: int

class ProfileRequest(BaseModel):
    profile: BlueprintProfile

class ContestMatchesResponse(BaseModel):
    contest_id: str
    office: str
    matches: List[MatchResult]

class ValueMatchRequest(BaseModel):
    responses: List[ResponseEvent]
