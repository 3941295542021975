from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Environment mode: dev or prod
    ENV: Literal["dev", "prod"] = "dev"

    # Database
    DATABASE_URL: str = "sqlite:///./unified_sync.db"
    RUN_MIGRATIONS: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"
    SLACK_WEBHOOK_URL: str | None = None

    # Inbound webhooks
    WEBHOOK_SECRET: str = ""
    WEBHOOK_SIGNATURE_HEADER: str = "X-Webhook-Signature"
    WEBHOOK_WORKERS: int = 4
    WEBHOOK_QUEUE_SIZE: int = 1000
    WEBHOOK_SHUTDOWN_GRACE_SECONDS: float = 30.0

    # Integration platform
    INTEGRATION_API_URL: str = "https://api.nango.dev"
    INTEGRATION_SECRET_KEY: str | None = None
    INTEGRATION_TIMEOUT_SECONDS: float = 30.0

    # Sync passes
    SYNC_PAGE_SIZE: int = 1000
    SYNC_FETCH_TIMEOUT_SECONDS: float = 60.0
    SYNC_RECORD_TIMEOUT_SECONDS: float = 120.0
    SYNC_ALL_INTERVAL_SECONDS: int = 30 * 60
    SYNC_ALL_ENABLED: bool = False

    # Document enrichment
    ENRICHMENT_ENABLED: bool = True
    SUMMARY_MAX_WORDS: int = 150

    # Deep links used by normalizers
    SALESFORCE_INSTANCE_URL: str | None = None
    ZOHO_CRM_DOMAIN: str = "com"
    ZOHO_CRM_ORG_ID: str | None = None

    # Docs Configuration
    DOCS_ENABLED: bool | None = None  # Override docs setting (None = auto based on ENV)

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",  # ignore unrelated keys in local .env
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENV == "prod"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENV == "dev"

    @property
    def debug_enabled(self) -> bool:
        """Debug mode is only enabled in development."""
        return self.is_development

    @property
    def effective_log_level(self) -> str:
        """Return appropriate log level based on environment."""
        if self.is_production:
            return self.LOG_LEVEL if self.LOG_LEVEL.upper() != "DEBUG" else "INFO"
        return self.LOG_LEVEL

    @property
    def docs_enabled(self) -> bool:
        """Swagger/ReDoc docs enabled based on environment or override."""
        if self.DOCS_ENABLED is not None:
            return self.DOCS_ENABLED
        return self.is_development


settings = Settings()
