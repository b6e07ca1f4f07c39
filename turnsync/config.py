"""
Engine configuration.

Defaults suit a local authority. Every field can be overridden from the
environment:

    TURNSYNC_API_BASE          Authority base URL
    TURNSYNC_PLAYER_ID         Local player id (seat detection)
    TURNSYNC_ACCESS_TOKEN      Bearer token
    TURNSYNC_REFRESH_TOKEN     Refresh token (enables refresh-and-retry)
    TURNSYNC_POLL_INTERVAL     Seconds between polls (default: per variant)
    TURNSYNC_PREVIEW_DEBOUNCE  Seconds to wait before a preview request
    TURNSYNC_REQUEST_TIMEOUT   Seconds before a request is abandoned
    TURNSYNC_LOG_LEVEL         Logging level for the CLI
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Mapping
import os

from .api.credentials import (
    CredentialProvider,
    StaticCredentialProvider,
    TokenCredentialProvider,
)

DEFAULT_API_BASE = "http://localhost:8080/api"
ENV_PREFIX = "TURNSYNC_"


@dataclass
class EngineConfig:
    """Settings shared by every engine a manager opens."""
    api_base: str = DEFAULT_API_BASE
    player_id: int | None = None
    access_token: str | None = None
    refresh_token: str | None = None

    # None means the variant's own interval (5s, 8s for the word game)
    poll_interval: float | None = None
    preview_debounce: float = 0.3
    request_timeout: float = 10.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> EngineConfig:
        """
        Build a config from TURNSYNC_* variables.

        Raises:
            ValueError: If a numeric variable does not parse
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> str | None:
            value = env.get(ENV_PREFIX + name)
            return value if value else None

        config = cls()
        config.api_base = get("API_BASE") or config.api_base
        config.access_token = get("ACCESS_TOKEN")
        config.refresh_token = get("REFRESH_TOKEN")
        config.log_level = (get("LOG_LEVEL") or config.log_level).upper()

        if get("PLAYER_ID"):
            config.player_id = int(get("PLAYER_ID"))
        if get("POLL_INTERVAL"):
            config.poll_interval = float(get("POLL_INTERVAL"))
        if get("PREVIEW_DEBOUNCE"):
            config.preview_debounce = float(get("PREVIEW_DEBOUNCE"))
        if get("REQUEST_TIMEOUT"):
            config.request_timeout = float(get("REQUEST_TIMEOUT"))
        return config

    def credentials(self) -> CredentialProvider:
        """Credential provider for these settings."""
        if self.refresh_token:
            return TokenCredentialProvider(
                f"{self.api_base.rstrip('/')}/refresh",
                access_token=self.access_token,
                refresh_token=self.refresh_token,
            )
        return StaticCredentialProvider(self.access_token)
