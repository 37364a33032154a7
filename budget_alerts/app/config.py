"""
Configuration for the Budget Alert Processor.
Centralized settings with environment variable support.
"""

import os
from typing import Optional
from functools import lru_cache
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_VALID_STORE_BACKENDS = {"bigquery", "memory"}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # GCP
    gcp_project_id: str = Field(default="local-dev-project")
    google_application_credentials: Optional[str] = Field(default=None)
    bigquery_location: str = Field(default="US")

    # BigQuery alert log
    bigquery_dataset: str = Field(default="billing_alerts")
    bigquery_table: str = Field(default="budget_alerts")
    alert_store_backend: str = Field(
        default="bigquery",
        description="Where alert rows live: 'bigquery' or 'memory' (local development only)",
    )

    # Trend detection
    trailing_window_days: int = Field(
        default=10,
        ge=0,
        description="Days before the start of the month included in the percentile window",
    )
    spike_percentile: float = Field(default=0.99, gt=0.0, lt=1.0)
    suppress_repeat_alerts: bool = Field(
        default=False,
        description="Suppress notifications once a threshold fired more than once this month",
    )

    # Google Chat
    google_chat_webhook_url: Optional[str] = Field(default=None)
    chat_card_subtitle: str = Field(default="Billing budget alerts")
    chat_card_image_url: Optional[str] = Field(default=None)
    billing_console_base_url: str = Field(default="https://console.cloud.google.com/billing")

    # Pub/Sub pull worker
    pubsub_subscription: str = Field(default="budget-alerts-sub")
    pubsub_max_messages: int = Field(default=10, ge=1)

    # Application
    app_name: str = Field(default="budget-alert-processor")
    app_version: str = Field(default="1.0.0")
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")

    # API
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8080)

    @field_validator("alert_store_backend")
    @classmethod
    def validate_store_backend(cls, v: str) -> str:
        v = v.lower()
        if v not in _VALID_STORE_BACKENDS:
            raise ValueError(f"alert_store_backend must be one of {sorted(_VALID_STORE_BACKENDS)}")
        return v

    @field_validator("billing_console_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def table_id(self) -> str:
        """Fully qualified alert table id: project.dataset.table"""
        return f"{self.gcp_project_id}.{self.bigquery_dataset}.{self.bigquery_table}"


@lru_cache()
def get_settings() -> Settings:
    settings_instance = Settings()

    # In Cloud Run / Cloud Functions credentials come from the service account, not a file
    if settings_instance.google_application_credentials:
        creds_path = settings_instance.google_application_credentials
        if os.path.exists(creds_path):
            os.environ["GOOGLE_APPLICATION_CREDENTIALS"] = creds_path

    return settings_instance
