"""Application configuration.

Configuration is loaded from environment variables. For local development, you can provide a
`.env` file and set `RIVALSCOPE_ENV_FILE` to point to it.

Pipeline tunables (quotas, thresholds, concurrency caps) live in explicit pydantic models so
callers and tests can override them per run instead of patching module globals.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_SHORTLIST_QUOTAS: dict[str, int] = {
    "pricing": 2,
    "docs": 2,
    "reviews": 2,
    "changelog": 1,
    "jobs": 1,
    "status": 1,
}

# Global shortlist cap; open quota slots are backfilled up to this many pages.
DEFAULT_SHORTLIST_MAX_TOTAL = 9


class HarvestConfig(BaseModel):
    """Harvester tunables."""

    limit_per_category: int = Field(default=5, ge=1, le=50)
    concurrency: int = Field(default=3, ge=1, le=32)
    max_excerpt_chars: int = Field(default=400, ge=40, le=4000)
    # Over-request so per-category dedup still leaves `limit_per_category` items.
    results_per_query_multiplier: int = Field(default=2, ge=1, le=10)
    query_timeout_s: float | None = Field(default=None, gt=0.0)


class FetchConfig(BaseModel):
    """Parallel fetcher tunables."""

    concurrency: int = Field(default=8, ge=1, le=64)
    timeout_s: float = Field(default=15.0, gt=0.0)
    budget_s: float | None = Field(default=None, ge=0.0)
    stale_after_days: int = Field(default=7, ge=0)


class ShortlistQuota(BaseModel):
    """Per-category deep-read quotas for the shortlist."""

    per_category: dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_SHORTLIST_QUOTAS))
    max_total: int | None = Field(default=DEFAULT_SHORTLIST_MAX_TOTAL, ge=0)

    @property
    def target_total(self) -> int:
        total = sum(max(0, n) for n in self.per_category.values())
        if self.max_total is not None:
            return min(total, self.max_total)
        return total


class TriageConfig(BaseModel):
    """Pass A triage tunables."""

    concurrency: int = Field(default=4, ge=1, le=32)
    summary_version: str = Field(default="v1")
    max_text_chars: int = Field(default=6000, ge=200)


class DeepReadConfig(BaseModel):
    """Pass B deep extraction tunables."""

    concurrency: int = Field(default=2, ge=1, le=16)
    max_claims_per_page: int = Field(default=6, ge=1, le=50)
    max_text_chars: int = Field(default=20000, ge=500)


class DedupConfig(BaseModel):
    """Near-duplicate detection tunables."""

    similarity_threshold: float = Field(default=0.85, ge=0.0, le=1.0)


class RankConfig(BaseModel):
    """Ranking weights."""

    category_weights: dict[str, float] = Field(
        default_factory=lambda: {
            "pricing": 1.0,
            "docs": 1.0,
            "changelog": 1.0,
            "security": 0.9,
            "reviews": 0.8,
            "jobs": 0.8,
            "community": 0.6,
            "blog": 0.5,
            "other": 0.3,
        }
    )
    confidence_weights: dict[str, float] = Field(
        default_factory=lambda: {"low": 0.5, "med": 0.75, "high": 1.0}
    )
    first_party_multiplier: float = Field(default=1.2, ge=1.0)
    undated_recency_bonus: float = Field(default=0.5, ge=0.0, le=1.0)


class CoverageConfig(BaseModel):
    """Coverage scorer tunables."""

    mvc_rule: Literal["core", "breadth"] = Field(default="core")
    density_threshold: float = Field(default=3.0, gt=0.0)
    density_boost: float = Field(default=0.05, ge=0.0, le=0.4)
    max_gaps: int | None = Field(default=None, ge=0)


class PipelineConfig(BaseModel):
    """Aggregate of every pipeline tunable, passed explicitly through the pipeline."""

    harvest: HarvestConfig = Field(default_factory=HarvestConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    shortlist: ShortlistQuota = Field(default_factory=ShortlistQuota)
    triage: TriageConfig = Field(default_factory=TriageConfig)
    deep_read: DeepReadConfig = Field(default_factory=DeepReadConfig)
    dedup: DedupConfig = Field(default_factory=DedupConfig)
    rank: RankConfig = Field(default_factory=RankConfig)
    coverage: CoverageConfig = Field(default_factory=CoverageConfig)


class Settings(BaseSettings):
    """Rivalscope settings.

    All fields are environment-configurable. Prefix is `RIVALSCOPE_`.
    """

    model_config = SettingsConfigDict(
        env_prefix="RIVALSCOPE_",
        env_file=None,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core
    app_env: Literal["dev", "prod"] = Field(default="dev")
    log_level: str = Field(default="INFO")

    # LLM (triage + deep read)
    openai_api_key: str | None = Field(default=None)
    openai_base_url: str | None = Field(default=None)
    openai_model: str = Field(default="gpt-4o-mini")
    openai_timeout_s: float = Field(default=60.0)

    # Search
    search_provider: Literal["tavily", "duckduckgo"] = Field(default="tavily")

    tavily_api_key: str | None = Field(default=None)
    tavily_api_base_url: str = Field(default="https://api.tavily.com")
    tavily_search_depth: Literal["basic", "advanced"] = Field(default="basic")
    tavily_timeout_s: float = Field(default=30.0, ge=1.0, le=300.0)
    tavily_max_retries: int = Field(default=2, ge=0, le=10)
    tavily_retry_backoff_s: float = Field(default=0.75, ge=0.0, le=30.0)
    tavily_retry_max_backoff_s: float = Field(default=8.0, ge=0.0, le=120.0)

    # Cache storage
    redis_enabled: bool = Field(default=False)
    redis_url: str = Field(default="redis://localhost:6379/0")
    redis_key_prefix: str = Field(default="rivalscope")

    # Harvest / fetch defaults
    harvest_limit_per_category: int = Field(default=5, ge=1, le=50)
    harvest_concurrency: int = Field(default=3, ge=1, le=32)
    fetch_concurrency: int = Field(default=8, ge=1, le=64)
    fetch_timeout_s: float = Field(default=15.0, gt=0.0)
    fetch_budget_s: float | None = Field(default=90.0, ge=0.0)
    cache_stale_after_days: int = Field(default=7, ge=0)
    shortlist_max_total: int | None = Field(default=DEFAULT_SHORTLIST_MAX_TOTAL, ge=0)
    coverage_mvc_rule: Literal["core", "breadth"] = Field(default="core")

    # Networking
    http_timeout_s: float = Field(default=15.0)
    http_user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/120.0.0.0 Safari/537.36"
        )
    )
    page_max_chars: int = Field(default=25_000, ge=1000)

    # Artifacts
    artifacts_dir: Path = Field(default=Path("artifacts"))

    def pipeline_config(self) -> PipelineConfig:
        """Build the explicit pipeline configuration from env-level defaults."""

        return PipelineConfig(
            harvest=HarvestConfig(
                limit_per_category=self.harvest_limit_per_category,
                concurrency=self.harvest_concurrency,
            ),
            fetch=FetchConfig(
                concurrency=self.fetch_concurrency,
                timeout_s=self.fetch_timeout_s,
                budget_s=self.fetch_budget_s,
                stale_after_days=self.cache_stale_after_days,
            ),
            shortlist=ShortlistQuota(max_total=self.shortlist_max_total),
            coverage=CoverageConfig(mvc_rule=self.coverage_mvc_rule),
        )


def load_settings() -> Settings:
    """Load settings from env.

    Returns:
        Settings: Parsed settings.
    """

    env_file_override = os.getenv("RIVALSCOPE_ENV_FILE")
    if env_file_override:
        env_path = Path(env_file_override)
        return Settings(_env_file=env_path)

    default_env = Path.cwd() / ".env"
    if default_env.exists():
        return Settings(_env_file=default_env)

    return Settings()
