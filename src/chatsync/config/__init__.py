"""Configuration: feature flags and environment-driven settings."""
from .settings import SyncConfig, DEFAULT_CONFIG

__all__ = ["SyncConfig", "DEFAULT_CONFIG"]
