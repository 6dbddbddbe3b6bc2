"""Configuration for the lock provider and its MongoDB backing store."""

from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any

import yaml
from dotenv import dotenv_values

from mongolock.exceptions import LockConfigError

DEFAULT_COLLECTION_NAME = "MongoLockProviderResourceLocks"
DEFAULT_KEY_PREFIX = "lock_"
DEFAULT_EXPIRATION_DELAY = timedelta(minutes=5)
DEFAULT_RETRY_DELAY = timedelta(milliseconds=300)
MONGO_URI_ENV = "MONGO_URI"


@dataclass
class LockProviderConfig:
    """Acquisition policy shared by all locks handed out by a provider.

    ``max_attempts=None`` means acquisition retries forever.
    """

    default_expiration_delay: timedelta = DEFAULT_EXPIRATION_DELAY
    retry_delay: timedelta = DEFAULT_RETRY_DELAY
    max_attempts: int | None = None
    key_prefix: str = DEFAULT_KEY_PREFIX

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.default_expiration_delay < timedelta(0):
            error_msg = "default_expiration_delay cannot be negative"
            raise LockConfigError(error_msg)
        if self.retry_delay < timedelta(0):
            error_msg = "retry_delay cannot be negative"
            raise LockConfigError(error_msg)
        if self.max_attempts is not None and self.max_attempts < 1:
            error_msg = f"max_attempts must be at least 1, got {self.max_attempts}"
            raise LockConfigError(error_msg)
        if not self.key_prefix:
            error_msg = "key_prefix cannot be empty"
            raise LockConfigError(error_msg)


@dataclass
class MongoStoreConfig:
    """Connection settings for the MongoDB lock collection."""

    uri: str
    database: str
    collection: str = DEFAULT_COLLECTION_NAME

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        for field_name in ("uri", "database", "collection"):
            value = getattr(self, field_name)
            if not value or not str(value).strip():
                error_msg = f"Required field '{field_name}' cannot be empty"
                raise LockConfigError(error_msg)


@dataclass
class AppConfig:
    """Complete configuration as loaded from a YAML file."""

    mongo: MongoStoreConfig
    lock: LockProviderConfig = field(default_factory=LockProviderConfig)


def _load_uri_from_env_file(env_file: Path) -> str:
    if not env_file.exists():
        error_msg = f"Environment file not found: {env_file}"
        raise LockConfigError(error_msg)
    try:
        env_config = dotenv_values(env_file)
    except OSError as e:
        error_msg = f"Failed to load environment file {env_file}: {e}"
        raise LockConfigError(error_msg, original_error=e) from e

    uri = env_config.get(MONGO_URI_ENV)
    if not uri:
        error_msg = f"{MONGO_URI_ENV} is not set in {env_file}"
        raise LockConfigError(error_msg)
    return uri


def parse_lock_section(data: dict[str, Any]) -> LockProviderConfig:
    """Build a ``LockProviderConfig`` from the ``lock:`` section of a config file."""
    max_attempts = data.get("max_attempts")
    key_prefix = data.get("key_prefix")
    if key_prefix is None:
        key_prefix = DEFAULT_KEY_PREFIX
    elif not isinstance(key_prefix, str):
        error_msg = f"key_prefix must be a string, got {key_prefix!r}"
        raise LockConfigError(error_msg)
    try:
        return LockProviderConfig(
            default_expiration_delay=timedelta(
                seconds=float(
                    data.get(
                        "default_expiration_seconds",
                        DEFAULT_EXPIRATION_DELAY.total_seconds(),
                    ),
                ),
            ),
            retry_delay=timedelta(
                milliseconds=float(
                    data.get(
                        "retry_delay_ms",
                        DEFAULT_RETRY_DELAY.total_seconds() * 1000,
                    ),
                ),
            ),
            max_attempts=None if max_attempts is None else int(max_attempts),
            key_prefix=key_prefix,
        )
    except (TypeError, ValueError, OverflowError) as e:
        error_msg = f"Invalid lock configuration: {e}"
        raise LockConfigError(error_msg, original_error=e) from e


def parse_mongo_section(data: dict[str, Any], base_dir: Path) -> MongoStoreConfig:
    """Build a ``MongoStoreConfig`` from the ``mongo:`` section of a config file.

    The connection string comes from ``uri`` or, preferably, from ``MONGO_URI``
    in the file named by ``env_file`` (relative to the config file).
    """
    uri = data.get("uri")
    env_file = data.get("env_file")
    if env_file:
        env_path = Path(env_file)
        if not env_path.is_absolute():
            env_path = base_dir / env_path
        uri = _load_uri_from_env_file(env_path)
    if not uri:
        error_msg = "mongo section needs either 'uri' or 'env_file'"
        raise LockConfigError(error_msg)
    if "database" not in data:
        error_msg = "Missing required configuration field: 'database'"
        raise LockConfigError(error_msg)

    return MongoStoreConfig(
        uri=str(uri),
        database=str(data["database"]),
        collection=str(data.get("collection", DEFAULT_COLLECTION_NAME)),
    )


def load_config(config_path: Path) -> AppConfig:
    """Load and validate configuration from a YAML file.

    Args:
        config_path: Path to the configuration YAML file

    Returns:
        Validated AppConfig instance

    Raises:
        LockConfigError: If the file cannot be loaded or is invalid

    """
    try:
        with config_path.open(encoding="utf-8") as f:
            config_data = yaml.safe_load(f)
    except FileNotFoundError as e:
        error_msg = f"Configuration file not found: {config_path}"
        raise LockConfigError(error_msg, original_error=e) from e
    except yaml.YAMLError as e:
        error_msg = f"Invalid configuration file format: {e}"
        raise LockConfigError(error_msg, original_error=e) from e

    if not isinstance(config_data, dict):
        error_msg = f"Configuration file {config_path} must contain a mapping"
        raise LockConfigError(error_msg)

    mongo_data = config_data.get("mongo")
    if not isinstance(mongo_data, dict):
        error_msg = "Missing required configuration section: 'mongo'"
        raise LockConfigError(error_msg)

    lock_data = config_data.get("lock") or {}
    if not isinstance(lock_data, dict):
        error_msg = "Configuration section 'lock' must be a mapping"
        raise LockConfigError(error_msg)

    return AppConfig(
        mongo=parse_mongo_section(mongo_data, config_path.parent),
        lock=parse_lock_section(lock_data),
    )
