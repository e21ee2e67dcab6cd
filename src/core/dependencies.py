import logging
from functools import lru_cache

from services.ballot_engine.engine import ValueEngine
from src.core.config import get_settings

logger = logging.getLogger(__name__)

@lru_cache()
def get_value_engine() -> ValueEngine:
    """
    Process-wide engine. Content is loaded on first use and never mutated,
    so the same instance serves every request.
    """
    settings = get_settings()
    logger.info(f"Loading value engine from {settings.axes_spec_path} (ballot: {settings.ballot_path})")
    return ValueEngine(
        spec_path=settings.axes_spec_path,
        ballot_path=settings.ballot_path,
        policy=settings.alignment_policy(),
        shrinkage_k=settings.shrinkage_k,
    )
