"""
Configuration settings for the abacus practice engine.

Uses Pydantic Settings for environment variable management with .env file support.
The engine itself only sees the EngineConfig built from these settings.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from abacus_engine.core.config import (
    BktConfig,
    ComfortConfig,
    EngineConfig,
    GenerationConfig,
    ReadinessThresholds,
    RetryConfig,
    SlotDistributionConfig,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="ABACUS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    # ========================================
    # Problem Generation
    # ========================================
    generation_max_attempts: int = Field(
        default=100,
        description="Attempt budget per generated problem",
    )
    generation_candidate_sample_size: int = Field(
        default=24,
        description="Candidate term magnitudes sampled per step",
    )

    # ========================================
    # BKT
    # ========================================
    bkt_confidence_threshold: float = Field(
        default=0.3,
        description="Minimum confidence before a skill is classified",
    )
    bkt_confidence_saturation: float = Field(
        default=10.0,
        description="Opportunities scale k in confidence = 1 - exp(-n/k)",
    )

    # ========================================
    # Readiness Thresholds
    # ========================================
    readiness_mastery_p_known: float = Field(
        default=0.85,
        description="pKnown required for the mastery dimension",
    )
    readiness_mastery_confidence: float = Field(
        default=0.5,
        description="BKT confidence required for the mastery dimension",
    )
    readiness_min_opportunities: int = Field(
        default=20,
        description="Qualifying attempts required for the volume dimension",
    )
    readiness_min_sessions: int = Field(
        default=3,
        description="Distinct sessions required for the volume dimension",
    )
    readiness_max_seconds_per_term: float = Field(
        default=4.0,
        description="Median seconds per term allowed by the speed dimension",
    )

    # ========================================
    # Sessions
    # ========================================
    comfort_default: float = Field(
        default=0.3,
        description="Comfort level used when no BKT evidence exists",
    )
    avg_time_per_problem_seconds: float = Field(
        default=30.0,
        description="Expected seconds per problem when sizing sessions",
    )
    default_session_minutes: float = Field(
        default=10.0,
        description="Session length used by the CLI when none is given",
    )
    max_retry_epochs: int = Field(
        default=2,
        description="Retry rounds for missed problems",
    )

    # ========================================
    # Helper Methods
    # ========================================
    def to_engine_config(self) -> EngineConfig:
        """Build the engine configuration from these settings."""
        return EngineConfig(
            bkt=BktConfig(
                confidence_threshold=self.bkt_confidence_threshold,
                confidence_saturation=self.bkt_confidence_saturation,
            ),
            readiness=ReadinessThresholds(
                mastery_p_known=self.readiness_mastery_p_known,
                mastery_confidence=self.readiness_mastery_confidence,
                min_opportunities=self.readiness_min_opportunities,
                min_sessions=self.readiness_min_sessions,
                max_seconds_per_term=self.readiness_max_seconds_per_term,
            ),
            comfort=ComfortConfig(default_comfort=self.comfort_default),
            slots=SlotDistributionConfig(default_avg_time_per_problem_seconds=self.avg_time_per_problem_seconds),
            retry=RetryConfig(max_retry_epochs=self.max_retry_epochs),
            generation=GenerationConfig(
                max_attempts=self.generation_max_attempts,
                candidate_sample_size=self.generation_candidate_sample_size,
            ),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
