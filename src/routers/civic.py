from fastapi import APIRouter, HTTPException, Depends, Query
from typing import Optional
import logging
import random

from src.core.config import EngineSettings, get_settings
from src.core.dependencies import get_value_engine
from src.repository.response_store import ResponseRepository, get_response_repository
from src.schemas.ballot import (
    AssessmentResponse,
    ClearResponsesResult,
    ItemsResponse,
    RecordResponsesRequest,
    RecordResponsesResult,
    ScoreRequest,
)
from services.ballot_engine.engine import ValueEngine
from services.ballot_engine.models import GovernmentLevel, InvalidSubmissionError

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/civic/items", response_model=ItemsResponse)
async def get_civic_items(
    count: Optional[int] = Query(None, ge=1, le=200),
    seed: Optional[int] = None,
    balanced: bool = True,
    level: Optional[GovernmentLevel] = None,
    engine: ValueEngine = Depends(get_value_engine),
    settings: EngineSettings = Depends(get_settings),
):
    """
    Items for a new assessment session. `balanced` spreads them evenly across
    axes; `seed` makes the selection reproducible.
    """
    try:
        rng = random.Random(seed) if seed is not None else None
        items = engine.get_items(count or settings.default_session_size, balanced=balanced, rng=rng, level=level)
        return ItemsResponse(count=len(items), items=items)
    except Exception as e:
        logger.exception(f"Unexpected error selecting items: {e}")
        raise HTTPException(status_code=500, detail="Internal Server Error")

@router.post("/civic/score", response_model=AssessmentResponse)
async def score_civic_responses(
    request: ScoreRequest,
    engine: ValueEngine = Depends(get_value_engine),
):
    """
    Scores a batch of responses: axis scores, blueprint profile, meta-dimensions,
    archetype and value framing. Malformed responses are skipped, not rejected.
    """
    try:
        result = engine.assess(
            request.responses,
            previous=request.previous,
            learning_modes=request.learning_modes,
            importance=request.importance,
        )
        return AssessmentResponse(**result)
    except InvalidSubmissionError as e:
        logger.error(f"Invalid submission: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception(f"Unexpected error during civic scoring: {e}")
        raise HTTPException(status_code=500, detail="Internal Server Error")

@router.post("/civic/responses/{user_id}", response_model=RecordResponsesResult)
async def record_civic_responses(
    user_id: str,
    request: RecordResponsesRequest,
    engine: ValueEngine = Depends(get_value_engine),
    repository: ResponseRepository = Depends(get_response_repository),
):
    """Stores responses for a user; the whole batch is rejected if any response cannot be scored."""
    try:
        engine.validate(request.responses)
        stored = repository.record(user_id, request.responses)
        total = len(repository.list_for_user(user_id))
        logger.info(f"Stored {stored}/{len(request.responses)} responses", extra={"user_id": user_id})
        return RecordResponsesResult(user_id=user_id, stored=stored, total=total)
    except InvalidSubmissionError as e:
        logger.error(f"Invalid submission: {e}", extra={"user_id": user_id})
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception(f"Unexpected error storing responses: {e}", extra={"user_id": user_id})
        raise HTTPException(status_code=500, detail="Internal Server Error")

@router.get("/civic/responses/{user_id}/score", response_model=AssessmentResponse)
async def score_stored_responses(
    user_id: str,
    engine: ValueEngine = Depends(get_value_engine),
    repository: ResponseRepository = Depends(get_response_repository),
):
    """Scores whatever is stored for the user; a user with nothing stored gets a neutral result."""
    try:
        responses = repository.list_for_user(user_id)
        logger.info(f"Scoring {len(responses)} stored responses", extra={"user_id": user_id})
        result = engine.assess(responses)
        return AssessmentResponse(**result)
    except Exception as e:
        logger.exception(f"Unexpected error scoring stored responses: {e}", extra={"user_id": user_id})
        raise HTTPException(status_code=500, detail="Internal Server Error")

@router.delete("/civic/responses/{user_id}", response_model=ClearResponsesResult)
async def clear_civic_responses(
    user_id: str,
    repository: ResponseRepository = Depends(get_response_repository),
):
    try:
        deleted = repository.clear_user(user_id)
        logger.info(f"Cleared {deleted} stored responses", extra={"user_id": user_id})
        return ClearResponsesResult(user_id=user_id, deleted=deleted)
    except Exception as e:
        logger.exception(f"Unexpected error clearing responses: {e}", extra={"user_id": user_id})
        raise HTTPException(status_code=500, detail="Internal Server Error")
