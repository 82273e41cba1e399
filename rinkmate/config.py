"""Application configuration."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from rinkmate.matching.scoring import ScoringPolicy


class Settings(BaseSettings):
    """Environment-driven settings validated at startup."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    openrouter_api_key: str = Field(..., alias="OPENROUTER_API_KEY")
    openrouter_model: str = Field(..., alias="OPENROUTER_MODEL")
    openrouter_base_url: str = Field(
        default="https://openrouter.ai/api/v1",
        alias="OPENROUTER_BASE_URL",
    )
    # Model used for search-augmented completions; falls back to OPENROUTER_MODEL.
    openrouter_search_model: str | None = Field(default=None, alias="OPENROUTER_SEARCH_MODEL")
    web_search_backend: str = Field(default="openrouter", alias="WEB_SEARCH_BACKEND")
    database_path: Path = Field(default=Path("rinkmate.db"), alias="DATABASE_PATH")
    request_timeout_seconds: float = Field(default=60.0, alias="REQUEST_TIMEOUT_SECONDS")
    max_tool_iterations: int = Field(default=5, alias="MAX_TOOL_ITERATIONS")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    dev_user_id: str | None = Field(default=None, alias="DEV_USER_ID")

    smtp_host: str = Field(default="smtp.gmail.com", alias="SMTP_HOST")
    smtp_port: int = Field(default=587, alias="SMTP_PORT")
    smtp_user: str | None = Field(default=None, alias="SMTP_USER")
    smtp_password: str | None = Field(default=None, alias="SMTP_PASSWORD")
    smtp_from: str | None = Field(default=None, alias="SMTP_FROM")
    smtp_starttls: bool = Field(default=True, alias="SMTP_STARTTLS")

    match_rating_weight: float = Field(default=0.4, alias="MATCH_RATING_WEIGHT")
    match_distance_weight: float = Field(default=0.35, alias="MATCH_DISTANCE_WEIGHT")
    match_schedule_weight: float = Field(default=0.25, alias="MATCH_SCHEDULE_WEIGHT")
    match_rating_band: int = Field(default=3, alias="MATCH_RATING_BAND")
    match_replay_penalty: float = Field(default=0.7, alias="MATCH_REPLAY_PENALTY")
    match_discovery_batch_size: int = Field(default=3, alias="MATCH_DISCOVERY_BATCH_SIZE")

    def scoring_policy(self) -> ScoringPolicy:
        """Build the opponent scoring policy from the match settings."""
        return ScoringPolicy(
            rating_weight=self.match_rating_weight,
            distance_weight=self.match_distance_weight,
            schedule_weight=self.match_schedule_weight,
            rating_band=self.match_rating_band,
            replay_penalty=self.match_replay_penalty,
        )

    def search_model(self) -> str:
        return self.openrouter_search_model or self.openrouter_model


def load_settings() -> Settings:
    """Load and validate settings."""

    return Settings()
