"""
Configuration management for qdrant-index-sync

Handles loading, environment overrides and validation.
"""

from .loader import ConfigurationLoader, configure_logging
from .defaults import DEFAULT_SETTINGS

__all__ = ["ConfigurationLoader", "configure_logging", "DEFAULT_SETTINGS"]
