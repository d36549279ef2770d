"""
Project-wide configuration using Pydantic Settings.
Upstream endpoints, cache TTLs, and fetch pacing live here.
"""
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings


ROOT_DIR = Path(__file__).resolve().parent.parent


class SourceConfig(BaseSettings):
    historical_base_url: str = "https://api.jolpi.ca/ergast/f1"
    live_base_url: str = "https://api.openf1.org/v1"
    wikipedia_base_url: str = "https://ja.wikipedia.org/wiki"
    timeout: int = 30
    max_retries: int = 3
    backoff_factor: float = 1.0
    rate_limit_delay: float = 0.25  # seconds between requests per client
    user_agent: str = "F1-Calendar-Dashboard/1.0 (+https://github.com/sofardogood/F1-Calendar)"

    model_config = {"env_prefix": "F1_SOURCE_"}


class CacheConfig(BaseSettings):
    short_ttl: int = 5 * 60  # in-progress season
    long_ttl: int = 24 * 60 * 60  # closed seasons, completed rounds
    drivers_ttl: int = 60 * 60
    sweep_interval: float = 10 * 60

    model_config = {"env_prefix": "F1_CACHE_"}


class ReconcileConfig(BaseSettings):
    # None means "current UTC year - 1"
    last_closed_season: Optional[int] = None
    # Seasons assembled from Wikipedia + historical results instead of an API
    # calendar. JSON list in the environment, e.g. F1_RECONCILE_SCRAPED_SEASONS='[2020]'
    scraped_seasons: list[int] = []
    batch_size: int = 5
    batch_delay: float = 0.5
    season_delay: float = 3.0

    model_config = {"env_prefix": "F1_RECONCILE_"}


class PathConfig(BaseSettings):
    root: Path = ROOT_DIR
    logs: Path = ROOT_DIR / "logs"

    def setup(self) -> None:
        """Create all directories if they don't exist."""
        for field_name, path in self.model_dump().items():
            if isinstance(path, Path) and field_name != "root":
                path.mkdir(parents=True, exist_ok=True)

    model_config = {"env_prefix": "F1_PATH_"}


class APIServerConfig(BaseSettings):
    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    log_level: str = "INFO"

    model_config = {"env_prefix": "F1_API_"}


class Config:
    """Unified project configuration."""

    sources: SourceConfig = SourceConfig()
    cache: CacheConfig = CacheConfig()
    reconcile: ReconcileConfig = ReconcileConfig()
    paths: PathConfig = PathConfig()
    server: APIServerConfig = APIServerConfig()


# Singleton instance
cfg = Config()
