import os
import logging
from pydantic import BaseModel, Field
from typing import List, Optional
from dotenv import load_dotenv

load_dotenv()


def _optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else None


class ReviewAgentSettings(BaseModel):
    # Only staff rows with this person type are visible in the directory view
    active_person_type_id: int = Field(default=int(os.getenv("REVIEW_ACTIVE_PERSON_TYPE_ID", "1120")))
    pm_grade: str = "41"
    governor_keyword: str = "GOVERNOR"
    default_self_weight: float = Field(default=float(os.getenv("REVIEW_DEFAULT_SELF_WEIGHT", "30")))
    default_supervisor_weight: float = Field(default=float(os.getenv("REVIEW_DEFAULT_SUPERVISOR_WEIGHT", "70")))
    # Seed for the reviewer selection generator; unset means OS entropy
    random_seed: Optional[int] = Field(default_factory=lambda: _optional_int("REVIEW_RANDOM_SEED"))


class Config(BaseModel):
    app_name: str = "Competency Review Engine"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./database.db")

    # Enterprise Architecture
    version: str = "1.0.0"
    build_id: str = os.getenv("BUILD_ID", "local")
    commit_hash: str = os.getenv("COMMIT_HASH", "HEAD")
    request_id_header: str = "X-Request-ID"

    # CORS, comma-separated origins loaded from env
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:3000,http://localhost:3001,"
                "http://127.0.0.1:3000,http://127.0.0.1:3001",
            ).split(",")
            if o.strip()
        ]
    )

    # Review agent
    review_agent: ReviewAgentSettings = ReviewAgentSettings()


settings = Config()

# --- Startup Validation ---
_logger = logging.getLogger(__name__)
_weights_total = settings.review_agent.default_self_weight + settings.review_agent.default_supervisor_weight
if _weights_total != 100:
    _logger.warning(
        f"Default review weights add up to {_weights_total}, not 100. "
        "Technical averages will be scaled accordingly."
    )
