"""
Config Unit Tests

Tests environment-driven configuration and logging setup.
"""

import logging
import sys
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from dex_aggregator_client.config import (
    DEFAULT_API_URL,
    ApiConfig,
    Config,
    EVMConfig,
    LoggingConfig,
    setup_logging,
)


def test_api_config_defaults(monkeypatch):
    """Test ApiConfig defaults"""
    for key in ("AGGREGATOR_API_URL", "AGGREGATOR_CHAIN_ID", "AGGREGATOR_API_VERSION",
                "AGGREGATOR_API_KEY", "AGGREGATOR_TIMEOUT"):
        monkeypatch.delenv(key, raising=False)

    print("Testing ApiConfig defaults...")

    config = ApiConfig()
    assert config.api_url == DEFAULT_API_URL
    assert config.chain_id == 1
    assert config.version == "5"
    assert config.api_key is None
    assert config.timeout == 30.0

    print("  ApiConfig defaults: PASSED")


def test_api_config_from_env(monkeypatch):
    monkeypatch.setenv("AGGREGATOR_API_URL", "https://api.example.com")
    monkeypatch.setenv("AGGREGATOR_CHAIN_ID", "56")
    monkeypatch.setenv("AGGREGATOR_API_KEY", "secret")
    monkeypatch.setenv("AGGREGATOR_TIMEOUT", "12.5")

    config = ApiConfig()
    assert config.api_url == "https://api.example.com"
    assert config.chain_id == 56
    assert config.api_key == "secret"
    assert config.timeout == 12.5


def test_invalid_numbers_fall_back(monkeypatch):
    """Unparseable numbers use the default"""
    monkeypatch.setenv("AGGREGATOR_CHAIN_ID", "mainnet")
    monkeypatch.setenv("EVM_RPC_TIMEOUT", "soon")

    assert ApiConfig().chain_id == 1
    assert EVMConfig().rpc_timeout == 30.0


def test_config_reload(monkeypatch):
    monkeypatch.setenv("AGGREGATOR_CHAIN_ID", "137")

    config = Config.reload()
    assert config.api.chain_id == 137
    assert isinstance(config.logging, LoggingConfig)


def test_logging_config_level():
    assert LoggingConfig(log_level="debug").level == logging.DEBUG
    assert LoggingConfig(log_level="nonsense").level == logging.INFO


def test_setup_logging_file(tmp_path):
    """Log file directory is created and handlers are attached"""
    log_file = tmp_path / "logs" / "client.log"
    log_config = LoggingConfig(
        log_file=str(log_file),
        log_level="DEBUG",
        console_output=False,
    )

    logger = setup_logging(log_config, logger_name="dex_aggregator_client_test")
    logger.debug("hello")

    assert log_file.parent.exists()
    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG

    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)

    assert "hello" in log_file.read_text()


def test_setup_logging_stamps_correlation_id(tmp_path):
    from dex_aggregator_client.infra.tracing import OperationContext

    log_file = tmp_path / "client.log"
    log_config = LoggingConfig(
        log_file=str(log_file),
        log_level="INFO",
        log_format="[%(correlation_id)s] %(message)s",
        console_output=False,
    )
    logger = setup_logging(log_config, logger_name="dex_aggregator_client_cid_test")

    logger.info("outside")
    with OperationContext("get_rate") as cid:
        logger.info("inside")

    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)

    lines = log_file.read_text().splitlines()
    # First line is the "Logging to ..." banner
    assert lines[-2:] == ["[-] outside", f"[{cid}] inside"]
