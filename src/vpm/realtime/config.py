"""Configuration for the stream control plane.

StreamConfig is built once at startup (usually via StreamConfig.from_env())
and injected into the DaydreamClient and SessionController. Nothing below this
module reads the environment.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from .errors import MissingCredentialError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.daydream.live/v1"
DEFAULT_PIPELINE = "pip_SD-turbo"
DEFAULT_MODEL_ID = "stabilityai/sdxl-turbo"
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"

API_KEY_ENV_VARS = ("DAYDREAM_API_KEY", "NEXT_PUBLIC_API_KEY")


class StreamConfig(BaseModel):
    """Settings for talking to the Daydream streaming API."""

    api_key: str = Field(..., min_length=1, description="Bearer token")
    base_url: str = Field(default=DEFAULT_BASE_URL)
    pipeline_id: str = Field(default=DEFAULT_PIPELINE)
    model_id: str = Field(default=DEFAULT_MODEL_ID)
    width: int = Field(default=1280, gt=0)
    height: int = Field(default=720, gt=0)
    request_timeout: float = Field(
        default=30.0, gt=0, description="Per-request network timeout in seconds"
    )
    prompt_bank_path: Path | None = Field(
        default=None, description="Optional YAML file overriding the prompt banks"
    )
    gemini_api_key: str | None = None
    gemini_model: str = Field(default=DEFAULT_GEMINI_MODEL)

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> StreamConfig:
        """Build a config from environment variables.

        Environment variables:
            DAYDREAM_API_KEY: Required (NEXT_PUBLIC_API_KEY also accepted)
            DAYDREAM_API_URL: Override the API base URL
            VPM_PIPELINE_ID: Pipeline used when creating streams
            VPM_REQUEST_TIMEOUT: Network timeout in seconds
            VPM_PROMPT_BANK: Path to a YAML prompt bank
            GEMINI_API_KEY: Enables the Gemini prompt helpers

        Raises:
            MissingCredentialError: If no API key is set
        """
        env = os.environ if environ is None else environ

        api_key = next((env[k] for k in API_KEY_ENV_VARS if env.get(k)), None)
        if not api_key:
            raise MissingCredentialError(
                "DAYDREAM_API_KEY must be set to talk to the streaming API"
            )

        values: dict = {"api_key": api_key}
        if base_url := env.get("DAYDREAM_API_URL"):
            values["base_url"] = base_url
        if pipeline_id := env.get("VPM_PIPELINE_ID"):
            values["pipeline_id"] = pipeline_id
        if timeout := env.get("VPM_REQUEST_TIMEOUT"):
            values["request_timeout"] = float(timeout)
        if bank := env.get("VPM_PROMPT_BANK"):
            values["prompt_bank_path"] = Path(bank).expanduser()
        if gemini_key := env.get("GEMINI_API_KEY"):
            values["gemini_api_key"] = gemini_key
        else:
            logger.debug("GEMINI_API_KEY not set - Gemini prompt helpers disabled")

        return cls(**values)
