"""
Centralized configuration management.
All environment variables and settings are defined here.
"""
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )
    
    # Application
    app_name: str = Field(default="Splitter")
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)
    log_level: str = Field(default="INFO")
    
    # Processing service
    service_base_url: str = Field(default="http://localhost:5000/api")
    service_timeout: int = Field(default=60)
    
    # Workflow
    poll_interval_seconds: float = Field(default=1.0)
    max_poll_attempts: int = Field(default=600, description="0 disables the bound")
    search_debounce_seconds: float = Field(default=0.3)
    
    # Storage
    download_path: str = Field(default="downloads")
    
    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level is one of the standard levels."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v_upper
    
    @field_validator("port")
    @classmethod
    def validate_port(cls, v):
        """Validate port is in valid range."""
        if not (1 <= v <= 65535):
            raise ValueError("Port must be between 1 and 65535")
        return v
    
    @field_validator("service_base_url")
    @classmethod
    def strip_trailing_slash(cls, v):
        """Normalize base URL so endpoint paths can be appended."""
        return v.rstrip("/")
    
    @field_validator("poll_interval_seconds", "search_debounce_seconds")
    @classmethod
    def validate_delay(cls, v):
        """Delays cannot be negative."""
        if v < 0:
            raise ValueError("Delay must not be negative")
        return v
    
    @field_validator("max_poll_attempts")
    @classmethod
    def validate_max_poll_attempts(cls, v):
        """Validate poll bound (0 means unbounded)."""
        if v < 0:
            raise ValueError("Max poll attempts must be 0 or greater")
        return v
    
    def ensure_directories(self) -> None:
        """Ensure required directories exist."""
        Path(self.download_path).mkdir(parents=True, exist_ok=True)


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get application settings singleton.
    
    Returns:
        Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings singleton (useful for testing)."""
    global _settings
    _settings = None
