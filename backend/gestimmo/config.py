# backend/gestimmo/config.py
from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    app_version: str = "2026.10"
    database_url: str = "sqlite:///./gestimmo.db"
    # Create missing tables at startup (alembic owns the schema in prod).
    auto_create_tables: bool = True

    # Elevated path used where global visibility is required (occupancy projection).
    admin_database_url: str | None = None

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = ["*"]

    # ---- Auth ----
    jwt_secret: str = "dev-change-me"
    jwt_exp_minutes: int = 60
    jwt_refresh_exp_minutes: int = 60 * 24 * 30
    password_min_length: int = 6

    # ---- Cron ----
    cron_secret: str | None = None

    # ---- Billing rules ----
    grace_period_days: int = 5
    late_fee_rate: float = 0.05
    default_payment_day: int = 1
    month_label_locale: str = "fr_FR"

    # ---- Lists ----
    pagination_default_limit: int = 25
    pagination_max_limit: int = 200

    # ---- Realtime ----
    realtime_heartbeat_seconds: float = 25.0
    realtime_queue_size: int = 100

    # ---- Object storage ----
    storage_dir: str = "./storage"
    storage_public_base_url: str = "/storage"

    # ---- Celery ----
    celery_broker_url: str = "redis://localhost:6379/0"
    celery_result_backend: str = "redis://localhost:6379/1"
    billing_cron_hour: int = 2

    def model_post_init(self, __context) -> None:
        env = (self.app_env or "local").strip().lower()
        if env not in ("prod", "production"):
            return

        if self.jwt_secret == "dev-change-me":
            raise ValueError("SECURITY: jwt_secret must be set in prod")

        origins = self.cors_allow_origins
        if origins == "*" or origins == ["*"] or (isinstance(origins, str) and "*" in origins):
            raise ValueError("SECURITY: cors_allow_origins wildcard is not allowed in prod")

    @property
    def effective_admin_database_url(self) -> str:
        return self.admin_database_url or self.database_url


settings = Settings()
