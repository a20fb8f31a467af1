"""Ride chat configuration.

Loads settings from a single YAML file:
  * ridechat.settings.yaml: client, relay and logging settings

The file location can be overridden with ``RIDECHAT_SETTINGS``.  The chat
endpoint can be overridden per process with ``RIDECHAT_API_URL`` and
``RIDECHAT_PAGE_URL`` (the equivalents of the web client's build-time
``VITE_API_URL`` and ``window.location``).
"""
from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("ridechat.settings.yaml")
SETTINGS_ENV_VAR = "RIDECHAT_SETTINGS"
API_URL_ENV_VAR = "RIDECHAT_API_URL"
PAGE_URL_ENV_VAR = "RIDECHAT_PAGE_URL"


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ChatClientSettings(BaseModel):
    """Where the messaging client connects.

    ``api_url`` empty means "same host the page was served from".
    """
    api_url:      str   = ""
    page_url:     str   = "http://localhost:8000"
    open_timeout: float = 10.0

    @field_validator("open_timeout")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("open_timeout must be positive")
        return value


class RelaySettings(BaseModel):
    """In-memory development relay."""
    host:          str = "127.0.0.1"
    port:          int = 8000
    history_limit: int = Field(default=50, ge=1)
    default_room:  str = "general"


class LoggingSettings(BaseModel):
    level: str = "info"


class AppConfig(BaseModel):
    chat:    ChatClientSettings = Field(default_factory=ChatClientSettings)
    relay:   RelaySettings      = Field(default_factory=RelaySettings)
    logging: LoggingSettings    = Field(default_factory=LoggingSettings)


# ---------------------------------------------------------------------------
# Environment overrides
# ---------------------------------------------------------------------------


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    chat = dict(data.get("chat") or {})
    api_url = os.getenv(API_URL_ENV_VAR)
    if api_url is not None:
        chat["api_url"] = api_url
    page_url = os.getenv(PAGE_URL_ENV_VAR)
    if page_url:
        chat["page_url"] = page_url
    data["chat"] = chat
    return data


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_config(settings_path: Optional[Union[str, Path]] = None) -> AppConfig:
    """Load settings from YAML and apply environment overrides."""
    if settings_path is None:
        settings_path = os.getenv(SETTINGS_ENV_VAR) or SETTINGS_FILE
    settings_data = _apply_env_overrides(_load_yaml(Path(settings_path)))

    config = AppConfig(**settings_data)
    logger.info(
        "Settings loaded (chat.api_url=%r, chat.page_url=%s, relay=%s:%s)",
        config.chat.api_url,
        config.chat.page_url,
        config.relay.host,
        config.relay.port,
    )
    return config


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Return the process-wide configuration, loading it on first use."""
    return load_config()


def configure_logging(level: str = "info") -> None:
    """Configure root logging for an entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    configured_level = getattr(logging, level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)

    # Frame-level chatter from the transport is not useful outside debugging.
    for _noisy in ("websockets", "websockets.client", "uvicorn.access"):
        logging.getLogger(_noisy).setLevel(logging.WARNING)
