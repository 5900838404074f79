from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .search import SearchConfig


class Settings(BaseSettings):
    """Solver settings, read from DAGSCHED_* environment variables"""

    # Search Configuration
    symmetry_pruning: bool = Field(
        default=True, description="Try only the first processor for the root placement"
    )
    use_lower_bounds: bool = Field(
        default=False,
        description="Prune branches whose bottom-level lower bound reaches the incumbent",
    )
    parallelism: int = Field(
        default=1, ge=1, description="Number of workers exploring top-level branches"
    )
    max_branches: int | None = Field(
        default=None, gt=0, description="Abort the search after this many placements"
    )

    # CP-SAT cross-check
    cpsat_max_time_in_seconds: float = Field(
        default=10.0, gt=0, description="Time limit for the CP-SAT reference model"
    )

    # Logging
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR)$")

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Accept log levels in any case"""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    def search_config(self) -> SearchConfig:
        return SearchConfig(
            symmetry_pruning=self.symmetry_pruning,
            use_lower_bounds=self.use_lower_bounds,
            max_branches=self.max_branches,
        )

    model_config = SettingsConfigDict(
        env_prefix="DAGSCHED_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance"""
    return Settings()
