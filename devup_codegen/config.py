"""
Runtime configuration read from the environment.
"""

import logging
import os
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

FIGMA_API_BASE = "https://api.figma.com/v1"
DEFAULT_TIMEOUT = 30.0
DEFAULT_LOG_LEVEL = "WARNING"


class CodegenSettings(BaseModel):
    """Figma access and logging settings."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    figma_token: Optional[str] = Field(default=None, description="Figma personal access token")
    api_base: str = Field(default=FIGMA_API_BASE, description="Figma REST API base URL")
    request_timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0, description="HTTP timeout in seconds")
    log_level: str = Field(default=DEFAULT_LOG_LEVEL, description="Root logging level")

    @field_validator('api_base')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip('/')

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'CodegenSettings':
        env = os.environ if environ is None else environ
        values = {
            'figma_token': env.get("FIGMA_ACCESS_TOKEN") or env.get("FIGMA_TOKEN") or None,
            'api_base': env.get("FIGMA_API_BASE"),
            'request_timeout': env.get("FIGMA_REQUEST_TIMEOUT"),
            'log_level': env.get("DEVUP_LOG_LEVEL"),
        }
        return cls(**{k: v for k, v in values.items() if v is not None})

    def require_token(self) -> str:
        if not self.figma_token:
            raise ValueError(
                "Figma API token not found. Set FIGMA_ACCESS_TOKEN or FIGMA_TOKEN environment variable. "
                "Get your token from: https://www.figma.com/developers/api#access-tokens"
            )
        return self.figma_token


def configure_logging(settings: CodegenSettings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
