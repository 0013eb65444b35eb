import os
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: Optional[str] = Field(None, alias="STUDY_PLANNER_DATABASE_URL")
    database_pool_size: int = Field(10, alias="STUDY_PLANNER_DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(10, alias="STUDY_PLANNER_DATABASE_MAX_OVERFLOW")
    database_echo: bool = Field(False, alias="STUDY_PLANNER_DATABASE_ECHO")
    inventory_workers: int = Field(4, ge=1, alias="STUDY_PLANNER_INVENTORY_WORKERS")
    phase1_buffer_weeks: int = Field(2, ge=0, alias="STUDY_PLANNER_PHASE1_BUFFER_WEEKS")
    default_preferred_days: List[int] = Field(
        default_factory=lambda: [1, 2, 3, 4, 5],
        alias="STUDY_PLANNER_DEFAULT_PREFERRED_DAYS",
    )
    review_session_size: int = Field(20, ge=1, alias="STUDY_PLANNER_REVIEW_SESSION_SIZE")
    log_level: str = Field("INFO", alias="STUDY_PLANNER_LOG_LEVEL")
    telemetry_log_level: str = Field("INFO", alias="STUDY_PLANNER_TELEMETRY_LOG_LEVEL")
    log_sql: bool = Field(False, alias="STUDY_PLANNER_LOG_SQL")
    host: str = Field("0.0.0.0", alias="STUDY_PLANNER_HOST")
    port: int = Field(8000, ge=1, le=65535, alias="STUDY_PLANNER_PORT")

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    try:
        return Settings()  # type: ignore[call-arg]
    except ValidationError as exc:
        raise RuntimeError(f"Invalid study planner configuration: {exc}") from exc
