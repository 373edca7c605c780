"""
Application configuration.
All settings are loaded from environment variables.
Use env.example as a reference for required variables.
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    IMPORTANT: Credentials have no defaults - they MUST be set in .env file.
    """

    # ===========================================
    # APPLICATION
    # ===========================================
    app_env: str = "local"
    # Comma-separated list of allowed origins. Empty = default list in main.py.
    cors_origins: str = ""
    # Public URL of the frontend; checkout success/cancel redirects point here.
    public_base_url: str = "http://localhost:3000"

    # ===========================================
    # DATABASE (PostgreSQL)
    # ===========================================
    database_url: str  # Required, no default
    db_create_tables: bool = True

    # ===========================================
    # REDIS & CELERY
    # ===========================================
    redis_url: str  # Required, no default
    celery_broker_url: str  # Required, no default
    celery_result_backend: str  # Required, no default
    celery_task_retry_delay: int = 30
    celery_task_max_retries: int = 5

    # ===========================================
    # AUTH (identity provider tokens)
    # ===========================================
    auth_jwt_secret: str  # Required, no default
    auth_jwt_algorithms: str = "HS256"
    auth_jwt_audience: str | None = None
    auth_email_claim: str = "email"

    # ===========================================
    # PAYMENTS (Stripe)
    # ===========================================
    stripe_secret_key: str  # Required, no default
    stripe_webhook_secret: str  # Required, no default
    stripe_webhook_tolerance_seconds: int = 300
    ppv_currency: str = "usd"
    checkout_session_ttl_minutes: int = 30

    # ===========================================
    # CMS (event content store)
    # ===========================================
    cms_api_url: str = "http://localhost:1337"
    cms_api_token: str | None = None

    # ===========================================
    # STREAM PROVIDER (Owncast)
    # ===========================================
    owncast_url: str = "http://localhost:8080"
    owncast_admin_user: str = "admin"
    owncast_admin_pass: str = ""

    # ===========================================
    # OUTBOUND CALLS
    # ===========================================
    http_client_timeout: float = 10.0
    # Bounded retry for processor / stream provider / CMS calls
    outbound_retry_max_attempts: int = 3
    outbound_retry_backoff_seconds: float = 0.5

    # ===========================================
    # CIRCUIT BREAKER
    # ===========================================
    cb_failure_threshold: int = 5
    cb_open_seconds: int = 30

    # ===========================================
    # RECONCILIATION
    # ===========================================
    pending_stale_after_hours: int = 24
    grant_reconcile_batch_size: int = 100

    # ===========================================
    # LOGGING
    # ===========================================
    log_level: str = "INFO"
    request_id_header: str = "X-Request-Id"
    log_file: str | None = None
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    @field_validator("ppv_currency")
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        """Stripe expects lower-case ISO 4217 codes."""
        v = v.strip().lower()
        if len(v) != 3 or not v.isalpha():
            raise ValueError("ppv_currency must be a 3-letter ISO currency code")
        return v

    @field_validator("auth_jwt_secret")
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        """Ensure token secret is reasonably secure."""
        if len(v) < 16:
            raise ValueError("auth_jwt_secret must be at least 16 characters")
        if v in ("changeme", "secret", "password"):
            raise ValueError("auth_jwt_secret is too weak, please change it")
        return v

    @field_validator("checkout_session_ttl_minutes")
    @classmethod
    def validate_checkout_ttl(cls, v: int) -> int:
        # Stripe accepts expires_at between 30 minutes and 24 hours from creation.
        if not 30 <= v <= 24 * 60:
            raise ValueError("checkout_session_ttl_minutes must be between 30 and 1440")
        return v

    @property
    def auth_jwt_algorithms_list(self) -> list[str]:
        return [a.strip() for a in self.auth_jwt_algorithms.split(",") if a.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
