"""Configuration package for the email ingestion service."""

from .settings import (
    Settings,
    DatabaseSettings,
    EmbeddingSettings,
    IngestionSettings,
    MonitoringSettings,
    get_settings,
)

__all__ = [
    "Settings",
    "DatabaseSettings",
    "EmbeddingSettings",
    "IngestionSettings",
    "MonitoringSettings",
    "get_settings",
]
