from __future__ import annotations

from .integrations import IntegrationsConfig
from .reader_api import ReaderApiConfig
from .redis import RedisConfig
from .settings import AppConfig, RuntimeConfig, Settings, load_config

__all__ = [
    "AppConfig",
    "IntegrationsConfig",
    "ReaderApiConfig",
    "RedisConfig",
    "RuntimeConfig",
    "Settings",
    "load_config",
]
