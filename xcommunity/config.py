"""Configuration management using Pydantic Settings."""

from enum import Enum

from pydantic import model_validator
from pydantic_settings import BaseSettings

from xcommunity.exceptions import ConfigError


COMMUNITY_URL = "https://x.com/i/communities/1493446837214187523/members"
LOGIN_URL = "https://x.com/i/flow/login"


class UpdatePolicy(str, Enum):
    """What to do when a handle that is already stored is scraped again."""
    SKIP = "skip"
    REPLACE = "replace"


class LogFormat(str, Enum):
    """Log output format."""
    JSON = "json"
    CONSOLE = "console"


class ScraperConfig(BaseSettings):
    """Configuration for the xcommunity scraper."""

    # Browser settings
    headless: bool = True
    browser_timeout_ms: int = 30000
    user_agent: str | None = None
    viewport_width: int = 1400
    viewport_height: int = 1000
    proxy_url: str | None = None

    # Targets and paths
    community_url: str = COMMUNITY_URL
    login_url: str = LOGIN_URL
    session_path: str = "data/cookies.json"
    output_path: str = "public/universe/universe.json"
    pfp_dir: str = "public/pfp"

    # Timings
    hover_timeout_ms: int = 3000
    hover_settle_ms: int = 1200
    dehover_settle_ms: int = 300
    scroll_settle_ms: int = 1000
    login_timeout_s: int = 300
    image_timeout_s: float = 30.0

    # Discovery loop
    stagnation_threshold: int = 5
    max_scrolls: int = 2000
    max_row_attempts: int = 2
    checkpoint_every: int = 25

    # Behaviour
    update_policy: UpdatePolicy = UpdatePolicy.SKIP
    download_images: bool = True

    # Logging
    log_level: str = "INFO"
    log_format: LogFormat = LogFormat.CONSOLE

    model_config = {
        "env_prefix": "XCOMMUNITY_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def _check_loop_limits(self) -> "ScraperConfig":
        for name in ("stagnation_threshold", "max_scrolls", "max_row_attempts", "checkpoint_every"):
            if getattr(self, name) < 1:
                raise ConfigError(f"{name} must be at least 1")
        return self
