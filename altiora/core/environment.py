"""
Environment configuration.

Detects the deployment environment (test, staging, prod), merges the
per-environment settings, and reads the access-control switches.
"""

import os
from enum import Enum
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv("altiora/.env")


class Environment(Enum):
    """Supported deployment environments"""

    TEST = "test"
    STAGING = "staging"
    PRODUCTION = "prod"


_ENV_ALIASES = {
    "development": Environment.STAGING,
    "dev": Environment.STAGING,
    "staging": Environment.STAGING,
    "production": Environment.PRODUCTION,
    "prod": Environment.PRODUCTION,
    "test": Environment.TEST,
    "testing": Environment.TEST,
}

_CONNECTION_VARS = {
    Environment.TEST: "POSTGRES_TEST",
    Environment.STAGING: "POSTGRES_STAGING",
    Environment.PRODUCTION: "POSTGRES_PROD",
}


def _env_flag(name: str, default: bool) -> bool:
    """Read a boolean flag such as "1", "true" or "no" from the environment."""
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str) -> List[str]:
    value = os.getenv(name, "")
    return [item.strip() for item in value.split(",") if item.strip()]


class EnvironmentConfig:
    """Environment configuration manager"""

    def __init__(self, environment: Optional[str] = None):
        """
        Args:
            environment (str, optional): Force specific environment.
                                       If None, auto-detect from environment variables.
        """
        self._environment = self._detect_environment(environment)
        self._config = self._load_config()

    def _detect_environment(self, force_env: Optional[str] = None) -> Environment:
        """
        Priority:
        1. force_env parameter
        2. PYTEST_RUNNING=1 -> test
        3. APP_ENV environment variable
        4. Default to production
        """
        if force_env:
            return Environment(force_env.lower())

        if os.getenv("PYTEST_RUNNING") == "1":
            return Environment.TEST

        return _ENV_ALIASES.get(os.getenv("APP_ENV", "prod").lower(), Environment.PRODUCTION)

    def _load_config(self) -> Dict[str, Any]:
        base_config = {
            "cors_origins": ["http://localhost:3000"],
            "log_level": "INFO",
            "database_backend": "postgres",
            "rate_limit": os.getenv("ACCESS_RATE_LIMIT", "10/minute"),
            "rate_limit_enabled": _env_flag("ACCESS_RATE_LIMIT_ENABLED", True),
        }

        env_configs = {
            Environment.TEST: {
                "log_level": "DEBUG",
                "cors_origins": ["*"],
                "database_backend": "memory",
            },
            Environment.STAGING: {
                "log_level": "DEBUG",
                "cors_origins": ["http://localhost:3000", "https://staging.altiora.pro"],
            },
            Environment.PRODUCTION: {
                "cors_origins": ["https://altiora.pro", "https://www.altiora.pro"],
            },
        }

        config = {**base_config, **env_configs[self._environment]}

        # e.g. run staging against the in-memory store
        backend_override = os.getenv("DATABASE_BACKEND")
        if backend_override:
            config["database_backend"] = backend_override.lower()

        return config

    @property
    def environment(self) -> Environment:
        return self._environment

    def get(self, key: str, default: Any = None) -> Any:
        return self._config.get(key, default)

    def __repr__(self) -> str:
        return f"EnvironmentConfig(environment={self._environment.value}, config={self._config})"


# Global environment configuration instance
env_config = EnvironmentConfig()


def get_access_control_settings() -> Dict[str, Any]:
    """
    Read access-control switches from the environment.

    Returns:
        Dict[str, Any]: Keyword arguments for AccessControlOptions

    Notes:
        - ACCESS_ADMIN_USER_IDS is comma separated; when non-empty it is the
          only source of admin privilege for access-list management.
    """
    return {
        "enforce_on_registration": _env_flag("ACCESS_ENFORCE_ON_REGISTRATION", True),
        "allow_admin_management": _env_flag("ACCESS_ALLOW_ADMIN_MANAGEMENT", True),
        "allow_waitlist": _env_flag("ACCESS_ALLOW_WAITLIST", True),
        "admin_user_ids": _env_list("ACCESS_ADMIN_USER_IDS"),
    }


def get_status_webhook_url() -> Optional[str]:
    return os.getenv("ACCESS_STATUS_WEBHOOK_URL") or None


def get_database_connection_string(environment: Optional[str] = None) -> str:
    """
    Get the PostgreSQL connection string for an environment.

    Raises:
        ValueError: If the matching POSTGRES_* variable is not set
    """
    env = EnvironmentConfig(environment).environment
    env_var_name = _CONNECTION_VARS[env]

    conn_str = os.getenv(env_var_name)
    if not conn_str:
        raise ValueError(f"Database connection string not found. Set {env_var_name} for environment: {env.value}")

    return conn_str
