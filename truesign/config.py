"""Configuration management for the submission client."""

from __future__ import annotations

import os
from typing import Any

import yaml
from dotenv import load_dotenv

from .exceptions import ConfigurationError
from .rate_limiting import RateLimitConfig, TimeWindow

ACCESS_TOKEN_ENV = "TRUESIGN_ACCESS_TOKEN"
CONFIG_PATH_ENV = "TRUESIGN_CONFIG"
DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), "config.yaml")


class Configuration:
    """Manages configuration and environment variables for the client."""

    def __init__(self, config_path: str | None = None) -> None:
        """Initialize configuration from YAML and environment variables."""
        self.load_env()  # Load .env for the access token
        self.config_path = (
            config_path or os.getenv(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH
        )
        self._config = self._load_yaml_config(self.config_path)

    @staticmethod
    def load_env() -> None:
        """Load environment variables from .env file."""
        load_dotenv()

    @staticmethod
    def _load_yaml_config(config_path: str) -> dict[str, Any]:
        """Load configuration from YAML file."""
        try:
            with open(config_path) as file:
                config = yaml.safe_load(file)
        except OSError as e:
            raise ConfigurationError(f"Cannot read config file {config_path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(config, dict):
            raise ConfigurationError(
                f"Config file must be YAML dict, got {type(config)}"
            )
        return config

    @property
    def access_token(self) -> str:
        """Get the bearer token for the remote service.

        Raises:
            ConfigurationError: If the token is not set in the environment.
        """
        token = os.getenv(ACCESS_TOKEN_ENV)
        if not token:
            raise ConfigurationError(
                f"Access token '{ACCESS_TOKEN_ENV}' not found in environment variables"
            )
        return token

    def get_api_config(self) -> dict[str, Any]:
        """Get API endpoint configuration.

        Returns:
            Dictionary with base_url and timeout.

        Raises:
            ConfigurationError: If required parameters are missing or invalid.
        """
        api_config = self._config.get("api", {})

        for key in ("base_url", "timeout"):
            if key not in api_config:
                raise ConfigurationError(
                    f"api.{key} must be explicitly configured in config.yaml"
                )

        base_url = api_config["base_url"]
        timeout = api_config["timeout"]

        if not isinstance(base_url, str) or not base_url.startswith(("http://", "https://")):
            raise ConfigurationError("api.base_url must be an http(s) URL")
        if (
            isinstance(timeout, bool)
            or not isinstance(timeout, int | float)
            or timeout <= 0
        ):
            raise ConfigurationError("api.timeout must be a positive number")

        return {"base_url": base_url, "timeout": float(timeout)}

    def get_rate_limit_config(self) -> RateLimitConfig:
        """Get rate limiting configuration.

        Returns:
            Validated RateLimitConfig.

        Raises:
            ConfigurationError: If required parameters are missing or invalid.
        """
        rate_config = self._config.get("rate_limit", {})

        for key in ("request_limit", "time_window"):
            if key not in rate_config:
                raise ConfigurationError(
                    f"rate_limit.{key} must be explicitly configured in config.yaml"
                )

        return RateLimitConfig(
            request_limit=rate_config["request_limit"],
            time_window=TimeWindow.parse(rate_config["time_window"]),
            poll_cap_ms=rate_config.get("poll_cap_ms", 100),
        )

    def get_logging_config(self) -> dict[str, Any]:
        """Get logging configuration from YAML."""
        return self._config.get("logging", {})
