"""Configuration management for Mortgage CRM.

Loads configuration from environment variables and .env file.
Provides validation and sensible defaults.

Usage:
    from mortgage_crm.core.config import get_config, validate_config

    config = get_config()
    issues = validate_config(config)
    if issues:
        for issue in issues:
            print(f"Config issue: {issue}")
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from mortgage_crm.core.exceptions import ConfigurationError

# Default paths (defined once, used by both Config and load_config)
DEFAULT_DB_PATH = Path.home() / ".mortgage_crm" / "mortgage_crm.db"
DEFAULT_LOG_PATH = Path.home() / ".mortgage_crm" / "logs"
DEFAULT_BACKUP_PATH = Path.home() / ".mortgage_crm" / "backups"
DEFAULT_STORAGE_KEY = "mortgage_crm_v2"
DEFAULT_AGING_DAYS = 30


@dataclass
class Config:
    """Application configuration.

    Attributes:
        db_path: Path to the SQLite key-value store file
        log_path: Directory for log files
        backup_path: Directory for store backups
        storage_key: Key the deal snapshot is saved under
        aging_days: Days an active lead waits before moving to old leads
        debug: Enable debug mode
    """

    db_path: Path = field(default_factory=lambda: DEFAULT_DB_PATH)
    log_path: Path = field(default_factory=lambda: DEFAULT_LOG_PATH)
    backup_path: Path = field(default_factory=lambda: DEFAULT_BACKUP_PATH)
    storage_key: str = DEFAULT_STORAGE_KEY
    aging_days: int = DEFAULT_AGING_DAYS

    debug: bool = False


def load_env_file(path: Path) -> dict[str, str]:
    """Parse .env file.

    Handles:
        - KEY=VALUE format
        - Comments (lines starting with #)
        - Blank lines
        - Quoted values

    Args:
        path: Path to .env file

    Returns:
        Dictionary of environment variables
    """
    env_vars: dict[str, str] = {}

    if not path.exists():
        return env_vars

    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()

            if not line or line.startswith("#"):
                continue

            if "=" in line:
                key, _, value = line.partition("=")
                key = key.strip()
                value = value.strip()

                if value and value[0] in ('"', "'") and value[-1] == value[0]:
                    value = value[1:-1]

                if key:
                    env_vars[key] = value

    return env_vars


def _get_path(key: str, default: Path, env_vars: dict[str, str]) -> Path:
    """Get path from environment, expanding ~ and resolving."""
    value = os.environ.get(key) or env_vars.get(key)
    if value:
        return Path(value).expanduser().resolve()
    return default


def _get_str(key: str, default: str, env_vars: dict[str, str]) -> str:
    """Get string from environment."""
    return os.environ.get(key) or env_vars.get(key) or default


def _get_int(key: str, default: int, env_vars: dict[str, str]) -> int:
    """Get integer from environment.

    Raises:
        ConfigurationError: If the value is not an integer
    """
    value = os.environ.get(key) or env_vars.get(key)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(f"{key} must be an integer, got {value!r}") from e


def _get_bool(key: str, default: bool, env_vars: dict[str, str]) -> bool:
    """Get boolean from environment."""
    value = os.environ.get(key) or env_vars.get(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def load_config(env_file: Optional[Path] = None) -> Config:
    """Load configuration from environment and .env file.

    Priority:
        1. Environment variables (highest)
        2. .env file
        3. Default values (lowest)

    Args:
        env_file: Path to .env file. Defaults to .env in current directory.

    Returns:
        Loaded configuration
    """
    if env_file is None:
        env_file = Path.cwd() / ".env"

    env_vars = load_env_file(Path(env_file))

    return Config(
        db_path=_get_path("MORTGAGE_CRM_DB_PATH", DEFAULT_DB_PATH, env_vars),
        log_path=_get_path("MORTGAGE_CRM_LOG_PATH", DEFAULT_LOG_PATH, env_vars),
        backup_path=_get_path("MORTGAGE_CRM_BACKUP_PATH", DEFAULT_BACKUP_PATH, env_vars),
        storage_key=_get_str("MORTGAGE_CRM_STORAGE_KEY", DEFAULT_STORAGE_KEY, env_vars),
        aging_days=_get_int("MORTGAGE_CRM_AGING_DAYS", DEFAULT_AGING_DAYS, env_vars),
        debug=_get_bool("MORTGAGE_CRM_DEBUG", False, env_vars),
    )


def validate_config(config: Config) -> list[str]:
    """Validate configuration.

    Checks:
        - Required directories exist or can be created
        - Directories are writable
        - Aging threshold is positive

    Args:
        config: Configuration to validate

    Returns:
        List of issues (empty if valid)
    """
    issues: list[str] = []

    directories = {
        "Database": config.db_path.parent,
        "Log": config.log_path,
        "Backup": config.backup_path,
    }
    for name, directory in directories.items():
        try:
            directory.mkdir(parents=True, exist_ok=True)
            if not os.access(directory, os.W_OK):
                issues.append(f"{name} directory not writable: {directory}")
        except OSError as e:
            issues.append(f"Cannot create {name.lower()} directory {directory}: {e}")

    if config.aging_days <= 0:
        issues.append(
            f"CRITICAL: MORTGAGE_CRM_AGING_DAYS must be positive, got {config.aging_days}"
        )

    if not config.storage_key.strip():
        issues.append("CRITICAL: MORTGAGE_CRM_STORAGE_KEY is blank")

    return issues


# Singleton config
_config: Optional[Config] = None


def get_config() -> Config:
    """Return cached configuration singleton.

    Loads configuration on first call, returns cached version thereafter.
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Reset cached configuration.

    Used primarily for testing.
    """
    global _config
    _config = None
