from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
import os

from services.ballot_engine.alignment import AlignmentPolicy

# Load .env file if it exists, for local development
# In production, environment variables should be set directly.
if os.path.exists(".env"):
    from dotenv import load_dotenv
    load_dotenv()

class EngineSettings(BaseSettings):
    axes_spec_path: str = "assets/civic_axes.yml"
    ballot_path: Optional[str] = "assets/ballot.yml"
    shrinkage_k: Optional[float] = Field(None, gt=0) # Overrides the assessment's scoring.shrinkage_k

    strong_max_difference: float = 2.0
    moderate_max_difference: float = 3.0
    max_key_agreements: int = 2
    max_key_disagreements: int = 1
    min_confidence: float = 0.2

    default_session_size: int = Field(20, gt=0)
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix='BALLOT_')

    def alignment_policy(self) -> AlignmentPolicy:
        return AlignmentPolicy(
            strong_max_difference=self.strong_max_difference,
            moderate_max_difference=self.moderate_max_difference,
            max_key_agreements=self.max_key_agreements,
            max_key_disagreements=self.max_key_disagreements,
            min_confidence=self.min_confidence,
        )

@lru_cache()
def get_settings() -> EngineSettings:
    return EngineSettings()
