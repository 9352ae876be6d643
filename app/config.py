"""Application configuration using Pydantic Settings."""
from typing import Optional

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class TimeTrackingConfig(BaseModel):
    """Policy knobs for the time tracking engine."""

    allow_future_clock_in: bool = False
    require_location: bool = False
    max_daily_hours: float = Field(default=16, gt=0)
    overtime_threshold: float = Field(default=8, gt=0)
    double_time_threshold: Optional[float] = Field(default=None, gt=0)
    auto_clock_out_after_hours: float = Field(default=24, gt=0)
    require_approval_for_manual_entry: bool = True
    require_approval_for_correction: bool = True
    max_past_days_for_manual_entry: int = Field(default=30, ge=0)

    @model_validator(mode="after")
    def check_thresholds(self) -> "TimeTrackingConfig":
        """Double time, when configured, must start above overtime."""
        if (
            self.double_time_threshold is not None
            and self.double_time_threshold <= self.overtime_threshold
        ):
            raise ValueError("double_time_threshold must exceed overtime_threshold")
        return self


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # MongoDB
    mongodb_url: str
    mongodb_db_name: str = "hr_time_attendance"

    # JWT
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    jwt_expiration_minutes: int = 480  # one shift

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    # CORS
    cors_origins: str = "http://localhost:3000,http://localhost:8000"

    # Time tracking policy
    time_allow_future_clock_in: bool = False
    time_require_location: bool = False
    time_max_daily_hours: float = 16
    time_overtime_threshold: float = 8
    time_double_time_threshold: Optional[float] = None
    time_auto_clock_out_after_hours: float = 24
    time_require_approval_for_manual_entry: bool = True
    time_require_approval_for_correction: bool = True
    time_max_past_days_for_manual_entry: int = 30

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    def time_tracking_config(self) -> TimeTrackingConfig:
        """Build the engine configuration from the ``time_*`` settings."""
        return TimeTrackingConfig(
            allow_future_clock_in=self.time_allow_future_clock_in,
            require_location=self.time_require_location,
            max_daily_hours=self.time_max_daily_hours,
            overtime_threshold=self.time_overtime_threshold,
            double_time_threshold=self.time_double_time_threshold,
            auto_clock_out_after_hours=self.time_auto_clock_out_after_hours,
            require_approval_for_manual_entry=self.time_require_approval_for_manual_entry,
            require_approval_for_correction=self.time_require_approval_for_correction,
            max_past_days_for_manual_entry=self.time_max_past_days_for_manual_entry,
        )


settings = Settings()
