"""
Application settings.

Values come from keyword arguments, ``INAT_PHYLO_*`` environment variables,
or a local ``.env`` file, in that order of precedence.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for the pipeline."""

    model_config = SettingsConfigDict(
        env_prefix="INAT_PHYLO_",
        env_file=".env",
        extra="ignore",
    )

    app_name: str = "inat-phylo"
    app_env: Literal["development", "production", "test"] = "development"
    debug: bool = False

    # iNaturalist retrieval
    inat_api_base: str = "https://api.inaturalist.org/v1"
    per_page: int = Field(default=200, ge=1, le=200)
    max_requests: int = Field(default=50, ge=1)
    requests_per_second: float = Field(default=0.5, gt=0)
    request_timeout: float = Field(default=30.0, gt=0)
    page_error_policy: Literal["ignore", "warn"] = "ignore"
    strict_retrieval: bool = True

    # Open Tree of Life
    otol_api_base: str = "https://api.opentreeoflife.org/v3"
    min_match_score: float = Field(default=0.9, ge=0, le=1)
    label_format: Literal["name", "id", "name_and_id"] = "name"

    # Outputs
    output_dir: Path = Path("output")
    output_stem: str = "observed_tree"


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings (cached after first call)."""
    return Settings()
