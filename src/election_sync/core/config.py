"""Application configuration via Pydantic Settings.

All configuration is loaded from environment variables (or a local ``.env``)
following 12-factor principles.
"""

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Source API
    source_token: str = Field(min_length=1, description="Bearer token for the election-reporting API")
    source_per_page: int = Field(
        default=100,
        description="Items requested per page from paginated source endpoints",
        gt=0,
    )
    source_parties_url: str | None = Field(
        default="https://media.election.in.th/api/media/parties",
        description="Party master data endpoint",
    )
    source_provinces_url: str | None = Field(default=None, description="Province master data endpoint")
    source_areas_url: str | None = Field(default=None, description="Election area endpoint (paginated)")
    source_candidates_url: str | None = Field(default=None, description="Candidate endpoint (paginated)")
    source_candidates_static_url: str | None = Field(
        default=None,
        description="Candidate profile endpoint (paginated)",
    )
    source_partylist_url: str | None = Field(default=None, description="Party-list member endpoint (paginated)")
    source_partylist_results_url: str | None = Field(default=None, description="Party-list results endpoint")
    source_referendum_url: str | None = Field(default=None, description="Referendum questions endpoint")
    source_province_statistics_url: str | None = Field(
        default=None,
        description="Realtime per-province statistics endpoint",
    )
    source_score_url: str | None = Field(default=None, description="Realtime candidate score endpoint (paginated)")
    source_national_summary_realtime_url: str | None = Field(
        default=None,
        description="Realtime national party summary endpoint",
    )
    source_national_statistics_url: str | None = Field(
        default=None,
        description="Realtime national statistics endpoint",
    )

    # PocketBase store
    pb_base_url: str = Field(
        default="http://127.0.0.1:8090",
        description="PocketBase base URL",
    )
    pb_email: str = Field(min_length=1, description="PocketBase login identity")
    pb_password: str = Field(min_length=1, description="PocketBase login password")
    pb_user_collection: str = Field(
        default="users",
        description="Auth collection tried first when logging in",
    )
    pb_admin_collection: str = Field(
        default="_superusers",
        description="Elevated auth collection used when the user login fails",
    )

    @field_validator("pb_base_url")
    @classmethod
    def validate_pb_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            msg = "pb_base_url must be an http(s) URL"
            raise ValueError(msg)
        return v.rstrip("/")

    # Collection overrides
    pb_collection_parties: str = Field(default="parties")
    pb_collection_provinces: str = Field(default="provinces")
    pb_collection_areas: str = Field(default="areas")
    pb_collection_candidates: str = Field(default="candidates")
    pb_collection_partylist: str = Field(default="partylist")
    pb_collection_partylist_results: str = Field(default="partylistResults")
    pb_collection_referendum: str = Field(default="referendum")
    pb_collection_national: str = Field(default="national")

    # Sync
    sync_max_pages: int = Field(
        default=1000,
        description="Upper bound on pages fetched in one run",
        gt=0,
    )
    http_timeout: float = Field(
        default=30.0,
        description="HTTP request timeout in seconds for source and store calls",
        gt=0,
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (enables file logging with 24h rotation when set)",
    )

    def source_url(self, setting_name: str) -> str:
        """Return the configured source URL for ``setting_name``.

        Raises:
            ConfigError: If the URL is not configured.
        """
        url = getattr(self, setting_name, None)
        if not url:
            msg = f"{setting_name.upper()} is not configured"
            raise ConfigError(msg)
        return url

    def collection(self, logical_name: str) -> str:
        """Resolve a logical collection name through the ``PB_COLLECTION_*`` overrides."""
        return getattr(self, f"pb_collection_{logical_name}", logical_name)


def get_settings() -> Settings:
    """Create and return application settings.

    Raises:
        ConfigError: If required values are missing or invalid.
    """
    try:
        return Settings()  # type: ignore[call-arg]
    except ValidationError as exc:
        missing = sorted({str(err["loc"][0]).upper() for err in exc.errors() if err.get("loc")})
        msg = f"Invalid configuration: {', '.join(missing) or exc}"
        raise ConfigError(msg) from exc
