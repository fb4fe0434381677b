"""Configuration for Taskboard."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(env_prefix="TASKBOARD_")

    api_base_url: str = Field(default="http://localhost:5000/api")
    request_timeout: float = Field(default=15.0, gt=0)  # Seconds, expiry is a network failure
    search_debounce: float = Field(default=0.3, ge=0)  # Seconds between last keystroke and reload
    credentials_path: Path = Field(
        default_factory=lambda: Path.home() / ".taskboard" / "credentials.yaml"
    )
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)
