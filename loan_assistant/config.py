"""Configuration management for the loan assistant."""

import copy
import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"
BASE_URL_ENV = "GATEWAY_BASE_URL"


class Configuration:
    """Manages configuration and environment variables for the loan assistant."""

    def __init__(self, config_path: str | Path | None = None) -> None:
        """Initialize configuration from YAML and environment variables."""
        self.load_env()  # Load .env for the gateway credential
        self.config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        self._config = self._load_yaml_config()

    @staticmethod
    def load_env() -> None:
        """Load environment variables from .env file."""
        load_dotenv()

    def _load_yaml_config(self) -> dict[str, Any]:
        """Load configuration from YAML file."""
        with open(self.config_path, encoding="utf-8") as file:
            config = yaml.safe_load(file)
            if not isinstance(config, dict):
                raise ValueError(
                    f"Config file must be YAML dict, got {type(config)}"
                )
            return config

    @property
    def gateway_api_key(self) -> str:
        """Get the bearer credential for the AI gateway.

        Returns:
            The API key as a string.

        Raises:
            ValueError: If the API key is not found in environment variables.
        """
        env_key = self._config.get("gateway", {}).get("api_key_env", "GATEWAY_API_KEY")
        api_key = os.getenv(env_key)
        if not api_key:
            raise ValueError(
                f"API key '{env_key}' not found in environment variables"
            )
        return api_key

    def get_config_dict(self) -> dict[str, Any]:
        """Get the full configuration dictionary."""
        return self._config

    def get_gateway_config(self) -> dict[str, Any]:
        """Get gateway configuration with the base URL resolved from the environment.

        Returns:
            Gateway configuration dictionary including the validated http_client
            section.

        Raises:
            ValueError: If the base URL or an endpoint is not configured.
        """
        gateway_config = self._config.get("gateway", {})

        # Create new dictionary without mutating the original
        result_config = copy.deepcopy(gateway_config)

        base_url = os.getenv(BASE_URL_ENV) or gateway_config.get("base_url")
        if not base_url:
            raise ValueError(
                f"gateway.base_url must be configured in config.yaml "
                f"or through the {BASE_URL_ENV} environment variable"
            )
        result_config["base_url"] = base_url.rstrip("/") + "/"

        endpoints = gateway_config.get("endpoints", {})
        required_endpoints = [
            "chat", "validate_document", "analyze_documents", "generate_sanction_letter"
        ]
        for key in required_endpoints:
            if key not in endpoints:
                raise ValueError(
                    f"gateway.endpoints.{key} must be explicitly configured "
                    "in config.yaml"
                )
        # Relative paths keep the base URL's path prefix
        result_config["endpoints"] = {
            name: str(path).lstrip("/") for name, path in endpoints.items()
        }

        result_config["http_client"] = self.get_http_client_config()
        return result_config

    def get_http_client_config(self) -> dict[str, Any]:
        """Get HTTP client configuration for the gateway.

        Returns:
            HTTP client configuration dictionary with validated values.

        Raises:
            ValueError: If required HTTP client parameters are missing or invalid.
        """
        http_config = self._config.get("gateway", {}).get("http_client", {})

        # Required configuration keys; a null timeout disables that limit
        required_keys = [
            "max_connections", "max_keepalive",
            "connect_timeout", "read_timeout", "write_timeout", "pool_timeout",
        ]
        for key in required_keys:
            if key not in http_config:
                raise ValueError(
                    f"http_client.{key} must be explicitly configured "
                    "under gateway in config.yaml"
                )

        # Validate configuration values
        max_conn = http_config["max_connections"]
        max_keepalive = http_config["max_keepalive"]

        if max_conn < 1:
            raise ValueError("http_client.max_connections must be at least 1")
        if max_keepalive > max_conn:
            raise ValueError("http_client.max_keepalive must be <= max_connections")

        for key in ("connect_timeout", "read_timeout", "write_timeout", "pool_timeout"):
            value = http_config[key]
            if value is not None and value <= 0:
                raise ValueError(f"http_client.{key} must be positive or null")

        return copy.deepcopy(http_config)

    def get_chat_config(self) -> dict[str, Any]:
        """Get chat session configuration from YAML.

        Returns:
            Chat configuration dictionary with validated values.

        Raises:
            ValueError: If required chat parameters are missing or invalid.
        """
        chat_config = self._config.get("chat", {})

        required_keys = ["fallback_message", "approval_keywords", "min_loan_amount", "sanction"]
        for key in required_keys:
            if key not in chat_config:
                raise ValueError(
                    f"chat.{key} must be explicitly configured in config.yaml"
                )

        keywords = chat_config["approval_keywords"]
        if not isinstance(keywords, list) or not keywords:
            raise ValueError("chat.approval_keywords must be a non-empty list")
        if chat_config["min_loan_amount"] < 0:
            raise ValueError("chat.min_loan_amount must be non-negative")

        sanction_config = chat_config["sanction"]
        if "delay_seconds" not in sanction_config:
            raise ValueError(
                "chat.sanction.delay_seconds must be explicitly configured "
                "in config.yaml"
            )
        if sanction_config["delay_seconds"] < 0:
            raise ValueError("chat.sanction.delay_seconds must be non-negative")

        defaults = sanction_config.get("defaults", {})
        defaults_required = [
            "customer_name", "interest_rate", "tenure_months", "purpose", "credit_score"
        ]
        for key in defaults_required:
            if key not in defaults:
                raise ValueError(
                    f"chat.sanction.defaults.{key} must be explicitly configured "
                    "in config.yaml"
                )
        if defaults["tenure_months"] < 1:
            raise ValueError("chat.sanction.defaults.tenure_months must be at least 1")

        return copy.deepcopy(chat_config)

    def get_documents_config(self) -> dict[str, Any]:
        """Get KYC document upload configuration from YAML.

        Returns:
            Documents configuration dictionary.

        Raises:
            ValueError: If required document parameters are missing or invalid.
        """
        documents_config = self._config.get("documents", {})

        required_keys = ["max_file_size_mb", "accepted_types"]
        for key in required_keys:
            if key not in documents_config:
                raise ValueError(
                    f"documents.{key} must be explicitly configured in config.yaml"
                )

        if documents_config["max_file_size_mb"] <= 0:
            raise ValueError("documents.max_file_size_mb must be positive")

        return copy.deepcopy(documents_config)

    def get_onboarding_config(self) -> dict[str, Any]:
        """Get onboarding persistence configuration from YAML.

        Returns:
            Onboarding configuration dictionary.

        Raises:
            ValueError: If the database path is not configured.
        """
        onboarding_config = self._config.get("onboarding", {})
        if "db_path" not in onboarding_config:
            raise ValueError(
                "onboarding.db_path must be explicitly configured in config.yaml"
            )
        return copy.deepcopy(onboarding_config)

    def get_logging_config(self) -> dict[str, Any]:
        """Get logging configuration from YAML.

        Returns:
            Logging configuration dictionary.
        """
        return copy.deepcopy(self._config.get("logging", {}))
