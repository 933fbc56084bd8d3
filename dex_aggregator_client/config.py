"""
Configuration management for DEX Aggregator Client

Settings come from environment variables, with a .env file at the project
root loaded on import. Constructor arguments of SwapClient override them.
"""

import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, TypeVar

from dotenv import load_dotenv

T = TypeVar("T")

# Public pricing endpoint used when nothing is configured
DEFAULT_API_URL = "https://apiv5.paraswap.io"
DEFAULT_API_VERSION = "5"
SUPPORTED_API_VERSIONS = ("5", "6.2")

PACKAGE_LOGGER = "dex_aggregator_client"


def _load_env_file():
    """Load .env from the directory holding the package"""
    env_file = Path(__file__).parent.parent / ".env"
    if env_file.exists():
        load_dotenv(env_file)


_load_env_file()


def _get_env(key: str, default: Optional[str] = "") -> Optional[str]:
    value = os.getenv(key)
    return default if value is None else value


def _parse_env(key: str, default: T, parse: Callable[[str], T]) -> T:
    raw = os.getenv(key)
    if raw is None:
        return default
    try:
        return parse(raw)
    except ValueError:
        logging.getLogger(__name__).warning(
            f"Ignoring {key}='{raw}': not a valid {parse.__name__}, using {default}"
        )
        return default


def _get_env_int(key: str, default: int) -> int:
    return _parse_env(key, default, int)


def _get_env_float(key: str, default: float) -> float:
    return _parse_env(key, default, float)


def _get_env_bool(key: str, default: bool) -> bool:
    raw = os.getenv(key)
    if raw is None:
        return default
    return raw.strip().lower() in ("true", "1", "yes", "on")


@dataclass
class ApiConfig:
    """Pricing service connection"""
    api_url: str = field(default_factory=lambda: _get_env("AGGREGATOR_API_URL", DEFAULT_API_URL))
    chain_id: int = field(default_factory=lambda: _get_env_int("AGGREGATOR_CHAIN_ID", 1))
    version: str = field(default_factory=lambda: _get_env("AGGREGATOR_API_VERSION", DEFAULT_API_VERSION))
    api_key: Optional[str] = field(default_factory=lambda: _get_env("AGGREGATOR_API_KEY", None))
    # Applied to requests sessions only; httpx clients carry their own timeout
    timeout: float = field(default_factory=lambda: _get_env_float("AGGREGATOR_TIMEOUT", 30.0))


@dataclass
class EVMConfig:
    """Node connection used by create_web3() when no URL is passed"""
    rpc_url: str = field(default_factory=lambda: _get_env("EVM_RPC_URL", ""))
    rpc_timeout: float = field(default_factory=lambda: _get_env_float("EVM_RPC_TIMEOUT", 30.0))
    private_key_env: str = field(default_factory=lambda: _get_env("EVM_PRIVATE_KEY_ENV", "EVM_PRIVATE_KEY"))


@dataclass
class LoggingConfig:
    """
    Logging configuration

    Environment variables:
        LOG_FILE: Path to log file (empty disables file output)
        LOG_LEVEL: DEBUG, INFO, WARNING, ERROR, CRITICAL (default: INFO)
        LOG_FORMAT: Format string; %(correlation_id)s is always available
        LOG_CONSOLE: Enable console output (default: true)
        LOG_MAX_BYTES: Max log file size before rotation (default: 10MB)
        LOG_BACKUP_COUNT: Number of rotated files to keep (default: 5)
    """
    log_file: str = field(default_factory=lambda: _get_env("LOG_FILE", ""))
    log_level: str = field(default_factory=lambda: _get_env("LOG_LEVEL", "INFO"))
    log_format: str = field(default_factory=lambda: _get_env(
        "LOG_FORMAT",
        "%(asctime)s - %(name)s - %(levelname)s - [%(correlation_id)s] %(message)s",
    ))
    console_output: bool = field(default_factory=lambda: _get_env_bool("LOG_CONSOLE", True))
    max_bytes: int = field(default_factory=lambda: _get_env_int("LOG_MAX_BYTES", 10 * 1024 * 1024))
    backup_count: int = field(default_factory=lambda: _get_env_int("LOG_BACKUP_COUNT", 5))

    @property
    def level(self) -> int:
        return getattr(logging, self.log_level.upper(), logging.INFO)


@dataclass
class Config:
    """
    Main configuration container

    Usage:
        from dex_aggregator_client.config import config

        print(config.api.api_url)
        print(config.api.chain_id)
    """
    api: ApiConfig = field(default_factory=ApiConfig)
    evm: EVMConfig = field(default_factory=EVMConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def reload(cls) -> "Config":
        """Re-read .env and the environment"""
        _load_env_file()
        return cls()


config = Config()


def get_config() -> Config:
    return config


def reload_config() -> Config:
    global config
    config = Config.reload()
    return config


def _default_log_path() -> str:
    from datetime import datetime, timezone
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    return str(Path(__file__).parent / "log" / f"dex_aggregator_{timestamp}.log")


def setup_logging(
    log_config: Optional[LoggingConfig] = None,
    logger_name: str = PACKAGE_LOGGER,
) -> logging.Logger:
    """
    Attach file and/or console handlers to the package logger.

    Every handler carries a filter that stamps records with the current
    operation's correlation id, so LOG_FORMAT may reference
    %(correlation_id)s. Calling this again replaces the handlers.

    Args:
        log_config: Logging configuration (global config when None)
        logger_name: Logger to configure

    Returns:
        Configured logger
    """
    from .infra.tracing import CorrelationIdFilter

    log_config = log_config or config.logging
    logger = logging.getLogger(logger_name)
    logger.setLevel(log_config.level)

    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)

    handlers: List[logging.Handler] = []

    if log_config.log_file:
        from logging.handlers import RotatingFileHandler

        Path(log_config.log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(
            log_config.log_file,
            maxBytes=log_config.max_bytes,
            backupCount=log_config.backup_count,
            encoding="utf-8",
        ))

    if log_config.console_output:
        handlers.append(logging.StreamHandler())

    formatter = logging.Formatter(log_config.log_format)
    correlation_filter = CorrelationIdFilter()
    for handler in handlers:
        handler.setLevel(log_config.level)
        handler.setFormatter(formatter)
        handler.addFilter(correlation_filter)
        logger.addHandler(handler)

    if log_config.log_file:
        logger.info(f"Logging to {log_config.log_file} at {log_config.log_level}")

    return logger


def enable_file_logging(
    log_file: Optional[str] = None,
    level: str = "INFO",
    console: bool = True,
) -> logging.Logger:
    """
    Quick setup for file logging.

    Args:
        log_file: Path to log file (defaults to dex_aggregator_client/log/<utc timestamp>.log)
        level: Log level name
        console: Also log to the console
    """
    return setup_logging(LoggingConfig(
        log_file=log_file or config.logging.log_file or _default_log_path(),
        log_level=level,
        console_output=console,
    ))
