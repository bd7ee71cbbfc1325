"""
Configuration management for the ASA donation panel.

This module handles:
- Database location (SQLite file per environment, or an explicit URL)
- Environment-specific configuration (development vs. production)
- Stock defaults that can be tuned per installation

Environment variables:
    ASA_PANEL_ENV: 'production' (default) or 'development'
    ASA_PANEL_DATABASE_URL: SQLAlchemy URL overriding the SQLite file,
        e.g. a hosted PostgreSQL database
    ASA_PANEL_LOW_STOCK_DEFAULT: default min_threshold for new stock items
"""

import logging
import os
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

from .constants import (
    DATABASE_FILENAME,
    DEFAULT_MIN_THRESHOLD,
)

logger = logging.getLogger(__name__)

ENV_VAR_ENVIRONMENT = "ASA_PANEL_ENV"
ENV_VAR_DATABASE_URL = "ASA_PANEL_DATABASE_URL"
ENV_VAR_LOW_STOCK_DEFAULT = "ASA_PANEL_LOW_STOCK_DEFAULT"


class Config:
    """
    Application configuration manager.

    Handles database location, environment settings and stock defaults.
    """

    def __init__(self, environment: str = "production"):
        """
        Initialize configuration.

        Args:
            environment: Environment mode - 'production' or 'development'
        """
        self.environment = environment
        if environment == "development":
            self._base_dir = self._get_project_data_dir()
        else:
            self._base_dir = self._get_user_data_dir()

        self._database_dir = self._base_dir
        self._database_path = self._database_dir / DATABASE_FILENAME
        self._database_url_override = os.environ.get(ENV_VAR_DATABASE_URL) or None
        self._low_stock_default = self._read_low_stock_default()

    def _get_project_data_dir(self) -> Path:
        """
        Get the project's data directory for development.

        Returns:
            Path to project data/ directory
        """
        project_root = Path(__file__).parent.parent.parent.parent
        return project_root / "data"

    def _get_user_data_dir(self) -> Path:
        """
        Get the per-user data directory for production.

        Returns:
            Path to the application's folder under the user's home
        """
        return Path.home() / "Documents" / "AsaPanel"

    def _read_low_stock_default(self) -> Decimal:
        raw = os.environ.get(ENV_VAR_LOW_STOCK_DEFAULT)
        if raw is None or raw.strip() == "":
            return DEFAULT_MIN_THRESHOLD
        try:
            value = Decimal(raw.strip())
        except InvalidOperation:
            value = None
        if value is None or not value.is_finite() or value < 0:
            logger.warning(
                f"Invalid {ENV_VAR_LOW_STOCK_DEFAULT}={raw!r}; "
                f"using default {DEFAULT_MIN_THRESHOLD}"
            )
            return DEFAULT_MIN_THRESHOLD
        return value

    def _ensure_directories(self):
        """Create the database directory if it doesn't exist."""
        self._database_dir.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        """Full path to the SQLite database file."""
        return self._database_path

    @property
    def database_url(self) -> str:
        """
        SQLAlchemy database URL.

        An explicit ASA_PANEL_DATABASE_URL wins; otherwise the SQLite file
        for the current environment is used (its directory is created).

        Returns:
            Database URL string for SQLAlchemy
        """
        if self._database_url_override:
            return self._database_url_override

        self._ensure_directories()
        db_path_str = str(self._database_path).replace("\\", "/")
        return f"sqlite:///{db_path_str}"

    @property
    def uses_external_database(self) -> bool:
        """True when the database URL comes from the environment."""
        return self._database_url_override is not None

    @property
    def low_stock_default(self) -> Decimal:
        """Default min_threshold applied to new stock items."""
        return self._low_stock_default

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    def database_exists(self) -> bool:
        """
        Check if the database exists.

        External databases are assumed to exist; they are provisioned
        outside this application.

        Returns:
            True if database exists, False otherwise
        """
        if self.uses_external_database:
            return True
        return self._database_path.exists()

    def __repr__(self) -> str:
        """String representation of config."""
        return f"Config(environment='{self.environment}', database_path='{self._database_path}')"


_config_instance: Optional[Config] = None


def get_config(environment: Optional[str] = None) -> Config:
    """
    Get the global configuration instance.

    Once created, the singleton's environment cannot be changed by passing
    a different environment argument; this prevents switching databases
    mid-session.

    Args:
        environment: Optional environment for initial creation. If None, uses
                    ASA_PANEL_ENV or defaults to production. Ignored if
                    singleton already exists.

    Returns:
        Config instance
    """
    global _config_instance

    if _config_instance is None:
        if environment is None:
            environment = os.environ.get(ENV_VAR_ENVIRONMENT, "production")
        _config_instance = Config(environment)
    elif environment is not None and environment != _config_instance.environment:
        logger.warning(
            f"get_config() called with environment='{environment}' but singleton "
            f"already exists with environment='{_config_instance.environment}'. "
            f"Returning existing singleton to prevent database switching."
        )

    return _config_instance


def reset_config():
    """
    Reset the global configuration instance.

    Useful for testing.
    """
    global _config_instance
    _config_instance = None
