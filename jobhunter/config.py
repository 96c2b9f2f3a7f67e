"""
Configuration management for JobHunter.
"""

import logging

from pydantic_settings import BaseSettings

DEFAULT_USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:121.0) Gecko/20100101 Firefox/121.0",
)


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Logging
    log_level: str = "INFO"

    # Run budget
    run_timeout: float = 30.0
    max_results: int = 20

    # Source selection caps
    max_source_groups: int = 3
    max_sources_per_group: int = 3

    # Tier policy
    fast_tier_concurrency: int = 10
    fast_tier_timeout: float = 5.0
    medium_tier_timeout: float = 5.0
    slow_tier_timeout: float = 20.0
    fast_tier_retries: int = 1
    medium_tier_retries: int = 1
    slow_tier_retries: int = 3
    medium_tier_delay: float = 0.1
    slow_tier_delay: float = 1.0

    # Politeness (seconds), keyed by source type
    request_delays: dict[str, float] = {
        "government": 3.0,
        "gig": 2.0,
        "ats": 2.5,
        "niche": 2.0,
        "company": 2.0,
    }
    aggressive_delay: float = 10.0
    user_agents: tuple[str, ...] = DEFAULT_USER_AGENTS

    # Extraction caps
    max_feed_items: int = 10
    max_api_items: int = 5

    # Dev/demo only: placeholder jobs when the pipeline blows up
    allow_synthetic_fallback: bool = False

    default_countries: tuple[str, ...] = ("US", "UK", "CA")
    catalog_path: str = ""

    # API
    cors_origins: str = "http://localhost:5173"

    class Config:
        env_prefix = "JOBHUNTER_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra env vars
        frozen = True

    def delay_for(self, source_type: str) -> float:
        """Base backoff delay for a source type (niche delay when unlisted)."""
        return self.request_delays.get(source_type, self.request_delays.get("niche", 2.0))


def configure_logging(level: str | None = None) -> None:
    """Set up root logging once for the API process or the CLI."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


settings = Settings()
