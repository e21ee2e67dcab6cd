from fastapi import APIRouter, HTTPException, Depends
import logging

from src.core.dependencies import get_value_engine
from src.schemas.ballot import ContestMatchesResponse, ProfileRequest, ValueMatchRequest
from services.ballot_engine.engine import ValueEngine
from services.ballot_engine.models import MeasureRecommendation, UnknownEntityError

router = APIRouter()
logger = logging.getLogger(__name__)

@router.post("/ballot/contests/{contest_id}/matches", response_model=ContestMatchesResponse)
async def match_contest(
    contest_id: str,
    request: ProfileRequest,
    engine: ValueEngine = Depends(get_value_engine),
):
    """Ranks a contest's candidates against the user's blueprint profile, best match first."""
    try:
        contest = engine.get_contest(contest_id)
        matches = engine.match_contest(contest_id, request.profile)
        return ContestMatchesResponse(contest_id=contest.id, office=contest.office, matches=matches)
    except UnknownEntityError as e:
        logger.error(f"Unknown contest: {e}", extra={"contest_id": contest_id})
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.exception(f"Unexpected error matching contest: {e}", extra={"contest_id": contest_id})
        raise HTTPException(status_code=500, detail="Internal Server Error")

@router.post("/ballot/contests/{contest_id}/value-matches", response_model=ContestMatchesResponse)
async def match_contest_by_values(
    contest_id: str,
    request: ValueMatchRequest,
    engine: ValueEngine = Depends(get_value_engine),
):
    """Ranks a contest's candidates by how closely their stances point the same way as the user's answers."""
    try:
        contest = engine.get_contest(contest_id)
        matches = engine.match_contest_by_values(contest_id, request.responses)
        logger.info(f"Matched {len(matches)} candidates by value similarity", extra={"contest_id": contest_id})
        return ContestMatchesResponse(contest_id=contest.id, office=contest.office, matches=matches)
    except UnknownEntityError as e:
        logger.error(f"Unknown contest: {e}", extra={"contest_id": contest_id})
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.exception(f"Unexpected error matching contest by values: {e}", extra={"contest_id": contest_id})
        raise HTTPException(status_code=500, detail="Internal Server Error")

@router.post("/ballot/measures/{measure_id}/recommendation", response_model=MeasureRecommendation)
async def recommend_on_measure(
    measure_id: str,
    request: ProfileRequest,
    engine: ValueEngine = Depends(get_value_engine),
):
    """
    YES/NO suggestion for a measure, with the axes behind it and the value
    phrases it resonates or conflicts with. `vote` is null for a close call.
    """
    try:
        return engine.recommend(measure_id, request.profile)
    except UnknownEntityError as e:
        logger.error(f"Unknown measure: {e}", extra={"measure_id": measure_id})
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.exception(f"Unexpected error recommending on measure: {e}", extra={"measure_id": measure_id})
        raise HTTPException(status_code=500, detail="Internal Server Error")
