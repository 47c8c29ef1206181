"""Worker configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Worker settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"

    # Database
    DATABASE_URL: str

    # GCP monitoring (Cloud Logging + Error Reporting)
    GCP_SERVICE_NAME: str = "erasure"
    GCP_PROJECT_ID: str = ""
    GCP_MONITORING_ENABLED: bool = False
    GCP_ERROR_REPORTING_SAMPLE_RATE: float = 1.0

    # Delete job scheduler
    DELETE_JOB_POLL_INTERVAL_SECONDS: float = 10
    DELETE_JOB_STALE_AFTER_MINUTES: int = 60  # 0 disables the stale sweep

    # Calling-layer validation (CLI)
    DELETE_JOB_MIN_REASON_LENGTH: int = 10

    # Audit outbox (pending events kept in memory before delivery)
    AUDIT_OUTBOX_MAX_SIZE: int = 1000

    @property
    def gcp_project_id(self) -> str:
        """Project id for GCP clients (empty lets the client library detect it)."""
        return self.GCP_PROJECT_ID.strip()

    @property
    def stale_sweep_enabled(self) -> bool:
        return self.DELETE_JOB_STALE_AFTER_MINUTES > 0


settings = Settings()
