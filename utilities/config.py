"""
Configuration management using environment variables.
Handles portal, detection, storage, email and logging settings with validation and defaults.
"""

from typing import Dict, Literal, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path


class WatcherConfig(BaseSettings):
    """
    Configuration class for the schedule watcher.
    Uses pydantic BaseSettings for environment variable management.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra fields from .env
    )

    # Portal Configuration
    base_url: str = Field(default="https://dunnes.prd.mykronos.com")
    session_cookies: Dict[str, str] = Field(default_factory=dict)
    schedule_source: Literal["api", "page"] = Field(default="api")
    schedule_events_path: str = Field(default="/myschedule/events")
    schedule_page_path: str = Field(default="/wfd/ess/myschedule")
    timecard_current_path: str = Field(default="/wfd/ess/myTimecard")
    timecard_previous_path: Optional[str] = Field(default="/wfd/ess/myTimecard?timeframe=previous_payperiod")
    calendar_config_id: int = Field(default=3001002)
    request_timeout: int = Field(default=30)
    rate_limit_per_second: float = Field(default=2.0)

    # Detection Windows
    schedule_lookahead_days: int = Field(default=42)
    schedule_page_weeks: int = Field(default=2)
    timecard_window_days: int = Field(default=14)
    discrepancy_threshold_minutes: int = Field(default=50)
    holiday_fallback_name: str = Field(default="Holiday")

    # Snapshot Storage
    data_dir: str = Field(default="data")

    # Email Configuration
    email_enabled: bool = Field(default=True)
    resend_api_key: Optional[str] = Field(default=None)
    email_from: Optional[str] = Field(default=None)
    email_to: Optional[str] = Field(default=None)
    subject_prefix: str = Field(default="Schedule Alert")

    # Logging Configuration
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")
    log_file: Optional[str] = Field(default="logs/watcher.log")

    # Development/Testing
    debug: bool = Field(default=False)

    # Scheduler Configuration
    schedule_hour: int = Field(default=20)
    schedule_minute: int = Field(default=0)
    timezone: str = Field(default="Europe/Dublin")

    @field_validator('request_timeout')
    @classmethod
    def validate_timeout(cls, v):
        """Ensure timeout is reasonable."""
        if v < 5 or v > 300:
            raise ValueError('request_timeout must be between 5 and 300 seconds')
        return v

    @field_validator('rate_limit_per_second')
    @classmethod
    def validate_rate_limit(cls, v):
        """Ensure rate limit is reasonable."""
        if v < 0.1 or v > 10:
            raise ValueError('rate_limit_per_second must be between 0.1 and 10')
        return v

    @field_validator('schedule_lookahead_days')
    @classmethod
    def validate_lookahead(cls, v):
        if v < 1 or v > 90:
            raise ValueError('schedule_lookahead_days must be between 1 and 90')
        return v

    @field_validator('schedule_page_weeks')
    @classmethod
    def validate_page_weeks(cls, v):
        if v < 1 or v > 8:
            raise ValueError('schedule_page_weeks must be between 1 and 8')
        return v

    @field_validator('timecard_window_days')
    @classmethod
    def validate_window(cls, v):
        if v < 1 or v > 60:
            raise ValueError('timecard_window_days must be between 1 and 60')
        return v

    @field_validator('discrepancy_threshold_minutes')
    @classmethod
    def validate_threshold(cls, v):
        """Ensure the discrepancy tolerance is positive and under a day."""
        if v < 1 or v >= 24 * 60:
            raise ValueError('discrepancy_threshold_minutes must be between 1 and 1439')
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'log_level must be one of: {valid_levels}')
        return v.upper()

    @field_validator('log_format')
    @classmethod
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ['json', 'console']
        if v.lower() not in valid_formats:
            raise ValueError(f'log_format must be one of: {valid_formats}')
        return v.lower()

    def get_log_file_path(self) -> Optional[Path]:
        """Get log file path as Path object."""
        if self.log_file:
            return Path(self.log_file)
        return None

    def get_data_dir_path(self) -> Path:
        """Get snapshot directory as Path object."""
        return Path(self.data_dir)

    def email_configured(self) -> bool:
        """Check whether every setting needed to send email is present."""
        return bool(self.email_enabled and self.resend_api_key and self.email_from and self.email_to)

    def get_user_agent(self) -> str:
        """Get user agent string for requests."""
        return "RotaWatch/1.0"

    def get_headers(self) -> dict:
        """Get default headers for HTTP requests."""
        return {
            "User-Agent": self.get_user_agent(),
            "Accept": "application/json, text/html;q=0.9, */*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
        }


# Global configuration instance
config = WatcherConfig()
