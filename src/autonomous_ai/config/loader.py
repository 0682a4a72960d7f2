"""
Configuration loader with YAML + environment variable support.

Supports:
- Loading from a YAML file in the config/ directory
- ${ENV_VAR} and ${ENV_VAR:default} placeholders inside YAML values
- Environment variable overrides for the most common settings
- .env files via python-dotenv
- Pydantic validation and caching
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from .settings import AppConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "app"


class ConfigLoader:
    """
    Configuration loader with YAML + environment variable support.

    Looks for ``<config_dir>/<name>.yaml``; a missing file yields the
    model defaults so the orchestrator can run unconfigured.
    """

    def __init__(self, config_dir: Optional[Path] = None, env_file: Optional[Path] = None):
        """
        Initialize configuration loader.

        Args:
            config_dir: Configuration directory (defaults to ./config)
            env_file: .env file to load (defaults to the config dir's parent)
        """
        self.config_dir = Path(config_dir) if config_dir else Path.cwd() / "config"
        self._cache: Dict[str, AppConfig] = {}

        env_path = Path(env_file) if env_file else self.config_dir.parent / ".env"
        if env_path.exists():
            load_dotenv(env_path)
            logger.debug(f"Loaded environment from {env_path}")

        logger.info(f"ConfigLoader initialized with config_dir: {self.config_dir}")

    def load_yaml(self, config_name: str) -> Dict[str, Any]:
        """
        Load a YAML configuration file.

        Raises:
            FileNotFoundError: If config file doesn't exist
        """
        config_path = self.config_dir / f"{config_name}.yaml"

        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        logger.debug(f"Loading YAML config from: {config_path}")

        with open(config_path, 'r') as f:
            config = yaml.safe_load(f) or {}

        return self._replace_env_vars(config)

    def _replace_env_vars(self, config: Any) -> Any:
        """Recursively replace ${VAR} / ${VAR:default} placeholders."""
        if isinstance(config, dict):
            return {k: self._replace_env_vars(v) for k, v in config.items()}
        elif isinstance(config, list):
            return [self._replace_env_vars(item) for item in config]
        elif isinstance(config, str) and config.startswith("${") and config.endswith("}"):
            env_expr = config[2:-1]

            if ":" in env_expr:
                var_name, default_value = env_expr.split(":", 1)
                return os.getenv(var_name.strip(), default_value.strip())

            var_name = env_expr.strip()
            value = os.getenv(var_name)
            if value is None:
                logger.warning(f"Environment variable {var_name} not set, using empty string")
                return ""
            return value

        return config

    def load_app_config(self, config_name: str = DEFAULT_CONFIG_NAME, use_cache: bool = True) -> AppConfig:
        """
        Load and validate the complete application configuration.

        Raises:
            pydantic.ValidationError: If the merged configuration is invalid
        """
        if use_cache and config_name in self._cache:
            logger.debug("Returning cached app config")
            return self._cache[config_name]

        try:
            config_data = self.load_yaml(config_name)
        except FileNotFoundError:
            logger.warning(f"{config_name}.yaml not found, using defaults")
            config_data = {}

        config_data = self._apply_env_overrides(config_data)

        try:
            app_config = AppConfig(**config_data)
            logger.info("Application configuration loaded and validated successfully")
        except Exception as e:
            logger.error(f"Configuration validation failed: {e}")
            raise

        if use_cache:
            self._cache[config_name] = app_config

        return app_config

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply environment variable overrides.

        LOG_LEVEL, SELECTED_TIMEFRAME, MARKET_TYPE, DECISION_LATENCY_SECONDS,
        DECISION_DEBOUNCE_SECONDS and ALERT_EMAIL are recognised.
        """
        system = config.setdefault("system", {})
        analyzer = config.setdefault("analyzer", {})
        orchestrator = config.setdefault("orchestrator", {})

        if env_val := os.getenv("LOG_LEVEL"):
            system["log_level"] = env_val.upper()

        if env_val := os.getenv("SELECTED_TIMEFRAME"):
            analyzer["selected_timeframe"] = env_val

        if env_val := os.getenv("MARKET_TYPE"):
            analyzer["market_type"] = env_val

        if env_val := os.getenv("DECISION_LATENCY_SECONDS"):
            orchestrator["processing_latency_seconds"] = float(env_val)

        if env_val := os.getenv("DECISION_DEBOUNCE_SECONDS"):
            orchestrator["debounce_seconds"] = float(env_val)

        if env_val := os.getenv("ALERT_EMAIL"):
            notifications = config.setdefault("notifications", {})
            notifications.setdefault("email", {})["to_emails"] = env_val

        return config

    def reload(self, config_name: str = DEFAULT_CONFIG_NAME) -> AppConfig:
        """Reload configuration from disk."""
        logger.info("Reloading configuration from disk")
        self._cache.pop(config_name, None)
        return self.load_app_config(config_name, use_cache=False)


def load_config(config_dir: Optional[Path] = None, config_name: str = DEFAULT_CONFIG_NAME) -> AppConfig:
    """
    Load the application configuration.

    Example:
        >>> config = load_config()
        >>> config.orchestrator.processing_latency_seconds
        1.5
    """
    return ConfigLoader(config_dir).load_app_config(config_name)
