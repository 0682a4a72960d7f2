"""
Configuration management module.

Loads configuration from YAML files and provides easy access.
"""

from .loader import ConfigLoader, load_config
from .settings import (
    AnalyzerConfig,
    AppConfig,
    EmailChannelConfig,
    LogLevel,
    NotificationConfig,
    OrchestratorConfig,
    SystemConfig,
)

__all__ = [
    'ConfigLoader',
    'load_config',
    'AppConfig',
    'SystemConfig',
    'AnalyzerConfig',
    'OrchestratorConfig',
    'NotificationConfig',
    'EmailChannelConfig',
    'LogLevel',
]
