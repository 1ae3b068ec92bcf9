"""
Configuration Management Package

Provides Pydantic-based configuration models and management for feedcel.
"""

from feedcel.core.config.models import AppConfig, FetchConfig, ServerConfig, OutputConfig, FilterConfig
from feedcel.core.config.manager import ConfigManager

__all__ = [
    "AppConfig",
    "FetchConfig",
    "ServerConfig",
    "OutputConfig",
    "FilterConfig",
    "ConfigManager",
]
