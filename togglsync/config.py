"""Application configuration management."""

from typing import Dict, List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if self.debug and self.log_level.upper() != "TRACE":
            self.log_level = "DEBUG"

    # Database
    database_url: str = "sqlite:///./togglsync.db"

    # Security
    secret_key: str = "change-me"
    encryption_key: Optional[str] = None  # Fernet key for the saved Toggl token
    access_token_expire_minutes: int = 1440

    # Admin User
    admin_username: str = "admin"
    admin_password: str = "changeme"

    # Application
    debug: bool = False
    log_level: str = "INFO"
    api_v1_str: str = "/api/v1"
    cors_origins: str = "http://localhost:3000"  # comma-separated

    # Toggl
    toggl_base_url: str = "https://api.track.toggl.com/api/v8"
    toggl_api_token: Optional[str] = None
    created_with: str = "togglsync"

    # Recording
    user_email: str = "me@example.com"
    time_zone: str = "UTC"
    watermark_scope: str = "user"  # 'global' | 'user'
    record_table_name_template: str = "Toggl_Record_{{year}}_{{userName}}"
    calendar_ids: Dict[str, str] = {}  # workspace name -> calendar ID

    # Google Calendar
    google_calendar_base_url: str = "https://www.googleapis.com/calendar/v3"
    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None
    google_refresh_token: Optional[str] = None

    # Auto tagging
    auto_tag_workspace_id: Optional[int] = None
    auto_tags: List[str] = []
    auto_tag_mapping: Dict[int, List[str]] = {}  # workspace ID -> tags
    auto_tag_retry_minutes: int = 5

    # Scheduler
    scheduler_enabled: bool = False
    sync_interval_minutes: int = 15
    rollover_cron: str = "5 0 * * *"
    lock_timeout_minutes: int = 30

    # Notifications
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_tls: bool = True
    notification_email: Optional[str] = None

    @field_validator("watermark_scope")
    @classmethod
    def validate_watermark_scope(cls, v: str) -> str:
        if v not in ("global", "user"):
            raise ValueError(f"Invalid watermark_scope: {v} (expected 'global' or 'user')")
        return v

    @field_validator("time_zone")
    @classmethod
    def validate_time_zone(cls, v: str) -> str:
        """Validate timezone string."""
        try:
            from zoneinfo import ZoneInfo
            ZoneInfo(v)
        except Exception:
            raise ValueError(f"Invalid timezone: {v}")
        return v

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def user_name(self) -> str:
        """Local part of the user e-mail, used as the log actor."""
        return self.user_email.split("@", 1)[0]


# Global settings instance
settings = Settings()
