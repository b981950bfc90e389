import logging
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)

ANISCHEDULE_BASE_URL = "https://raw.githubusercontent.com/RockinChaos/AniSchedule/master/raw"
ANILIST_API_URL = "https://graphql.anilist.co"

FILTER_MODES = ("all", "dub", "sub", "prefer-dub")
DUB_PREFIX_STYLES = ("icon", "bracket", "icon-only")


class CustomSettings(BaseSettings):
    """Application settings loaded from environment variables.

    Validates configuration at startup to catch misconfiguration early.
    """

    database_path: str = "./data/dub_schedule.db"
    current_schedule_url: str = f"{ANISCHEDULE_BASE_URL}/dub-schedule.json"
    historical_feed_url: str = f"{ANISCHEDULE_BASE_URL}/dub-episode-feed.json"
    anilist_api_url: str = ANILIST_API_URL
    anilist_username: str | None = None
    anilist_token: str | None = None

    refresh_interval_minutes: int = 30
    refresh_misfire_grace_sec: int = 300
    http_timeout_sec: float = 30.0
    http_max_retries: int = 3
    http_backoff_factor: float = 2.0

    projection_interval_days: int = 7
    project_historical_airings: bool = False  # Only live-schedule airings are extrapolated
    display_timezone: str = "UTC"

    default_filter_mode: str = "all"
    default_dub_prefix_style: str = "icon"

    invalidation_webhook_url: str | None = None
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator(
        "current_schedule_url",
        "historical_feed_url",
        "anilist_api_url",
        "invalidation_webhook_url",
    )
    @classmethod
    def validate_http_urls(cls, value: str | None, info) -> str | None:
        """Validate upstream URLs are HTTP/HTTPS."""
        if value is None:
            return value
        if not value.lower().startswith(("http://", "https://")):
            raise ValueError(f"{info.field_name} must be HTTP/HTTPS: {value}")
        return value

    @field_validator("anilist_username", "anilist_token", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        """Treat empty strings from the environment as unset."""
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("database_path")
    @classmethod
    def validate_database_path(cls, value: str) -> str:
        """Validate database path is accessible."""
        path = Path(value)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            return value
        except (OSError, PermissionError) as exc:
            raise ValueError(f"Cannot access database path '{value}': {exc}") from exc

    @field_validator("refresh_interval_minutes", "projection_interval_days", "http_max_retries")
    @classmethod
    def validate_positive_ints(cls, value: int, info) -> int:
        """Ensure integer settings are positive."""
        if value <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return value

    @field_validator("refresh_misfire_grace_sec")
    @classmethod
    def validate_misfire_grace(cls, value: int) -> int:
        """Validate scheduler misfire grace period (seconds)."""
        if value < 0:
            raise ValueError("refresh_misfire_grace_sec must be >= 0")
        return value

    @field_validator("http_timeout_sec")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("http_timeout_sec must be > 0")
        return value

    @field_validator("http_backoff_factor")
    @classmethod
    def validate_backoff_factor(cls, value: float) -> float:
        """Ensure the backoff multiplier is at least 1."""
        if value < 1:
            raise ValueError("http_backoff_factor must be >= 1")
        return value

    @field_validator("display_timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Validate IANA timezone name."""
        if value == "UTC":
            return value
        try:
            ZoneInfo(value)
            return value
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Invalid display_timezone '{value}': {exc}") from exc

    @field_validator("default_filter_mode")
    @classmethod
    def validate_filter_mode(cls, value: str) -> str:
        normalized = value.lower()
        if normalized not in FILTER_MODES:
            raise ValueError(f"default_filter_mode must be one of {list(FILTER_MODES)}")
        return normalized

    @field_validator("default_dub_prefix_style")
    @classmethod
    def validate_prefix_style(cls, value: str) -> str:
        normalized = value.lower()
        if normalized not in DUB_PREFIX_STYLES:
            raise ValueError(f"default_dub_prefix_style must be one of {list(DUB_PREFIX_STYLES)}")
        return normalized

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        normalized = value.upper()
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if normalized not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return normalized

    @model_validator(mode="after")
    def validate_collection_source(self):
        """Validate cross-field configuration."""
        if not self.anilist_username:
            logger.warning(
                "ANILIST_USERNAME not configured - dub schedule refresh cannot resolve any titles"
            )
        return self

    def __init__(self, **data):
        """Initialize settings and log configuration."""
        super().__init__(**data)

        logger.info("Configuration loaded:")
        logger.info("  Database: %s", self.database_path)
        logger.info("  Current Schedule Feed: %s", self.current_schedule_url)
        logger.info("  Historical Feed: %s", self.historical_feed_url)
        logger.info("  AniList User: %s", self.anilist_username or "not configured")
        logger.info("  Refresh Interval: %s minutes", self.refresh_interval_minutes)
        logger.info("  Refresh Misfire Grace: %ss", self.refresh_misfire_grace_sec)
        logger.info(
            "  HTTP: timeout=%.1fs retries=%s backoff=%.1f",
            self.http_timeout_sec,
            self.http_max_retries,
            self.http_backoff_factor,
        )
        logger.info(
            "  Projection: every %s days (historical airings %s)",
            self.projection_interval_days,
            "included" if self.project_historical_airings else "excluded",
        )
        logger.info("  Display Timezone: %s", self.display_timezone)
        logger.info(
            "  Default Preferences: filter=%s prefix=%s",
            self.default_filter_mode,
            self.default_dub_prefix_style,
        )
        logger.info(
            "  Invalidation Webhook: %s",
            "configured" if self.invalidation_webhook_url else "disabled",
        )


settings = CustomSettings()


def setup_logging() -> None:
    """Configure application logging."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
