"""Configuration management for the ATXP prompt CLI.

Supports an optional YAML configuration file, a ``.env`` file and
environment variable overrides. Configuration is loaded once and cached.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_CONFIG_PATH = "config/settings.yaml"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LLMSettings(BaseSettings):
    """Model gateway configuration."""
    provider: str = Field(default="openai_like", description="LLM provider: openai_like, mock")
    model: str = Field(default="gpt-4.1", description="Model identifier on the gateway")
    api_base: str = Field(default="https://llm.atxp.ai/v1", description="OpenAI-compatible base URL")
    api_key: Optional[str] = Field(default=None, description="API key, defaults to the connection string")
    temperature: Optional[float] = Field(default=None, ge=0, le=2)
    max_tokens: Optional[int] = Field(default=None, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="ATXP_LLM_",
        env_file=".env",
        extra="ignore"
    )


class Settings(BaseSettings):
    """Main application settings."""
    connection: str = Field(default="", description="ATXP connection string")
    environment: str = Field(default="development")
    log_level: LogLevel = Field(default="WARNING")
    max_steps: int = Field(default=1, ge=1, description="Maximum model round-trips per run")
    system_prompt: Optional[str] = Field(default=None)

    llm: LLMSettings = Field(default_factory=LLMSettings)

    model_config = SettingsConfigDict(
        env_prefix="ATXP_",
        env_file=".env",
        extra="ignore"
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        data = load_yaml_config(path)
        return cls(**data)

    def gateway_settings(self) -> LLMSettings:
        """LLM settings with the connection string as the fallback API key."""
        if self.llm.api_key:
            return self.llm
        return self.llm.model_copy(update={"api_key": self.connection})


def load_yaml_config(path: str | Path) -> dict[str, Any]:
    """Load a YAML configuration file."""
    path = Path(path)
    if not path.exists():
        return {}

    with open(path) as f:
        return yaml.safe_load(f) or {}


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    config_path = os.environ.get("ATXP_CONFIG_PATH", DEFAULT_CONFIG_PATH)
    return Settings.from_yaml(config_path)
