"""Tests for settings loading and logging configuration."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
import structlog

from frontier_tester.config import (
    DEFAULT_FUND_AMOUNT,
    DEFAULT_PRIVATE_KEY,
    DEFAULT_RPC_URL,
    NodeSettings,
    load_settings,
)
from frontier_tester.log import configure_logging, get_logger

_ENV_VARS = (
    "FRONTIER_RPC_URL",
    "FRONTIER_PRIVATE_KEY",
    "FRONTIER_CHAIN_ID",
    "FRONTIER_RPC_TIMEOUT",
    "FRONTIER_RECEIPT_TIMEOUT",
    "FRONTIER_POLL_INTERVAL",
    "FRONTIER_ARTIFACTS_DIR",
    "FRONTIER_FUND_AMOUNT",
    "FRONTIER_LOG_LEVEL",
    "FRONTIER_LOG_JSON",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in _ENV_VARS:
        # setenv first so monkeypatch also removes values load_dotenv() adds
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    # Keep a developer's ./.env out of these tests
    monkeypatch.chdir(tmp_path)


class TestLoadSettings:
    """Environment and .env handling."""

    def test_defaults(self) -> None:
        settings = load_settings()
        assert settings.rpc_url == DEFAULT_RPC_URL
        assert settings.private_key == DEFAULT_PRIVATE_KEY
        assert settings.chain_id is None
        assert settings.fund_amount == DEFAULT_FUND_AMOUNT
        assert settings.artifacts_dir == Path("build") / "contracts"
        assert settings.log_json is False

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FRONTIER_RPC_URL", "http://10.0.0.2:8545")
        monkeypatch.setenv("FRONTIER_PRIVATE_KEY", "ab" * 32)
        monkeypatch.setenv("FRONTIER_CHAIN_ID", "0x2a")
        monkeypatch.setenv("FRONTIER_RPC_TIMEOUT", "2.5")
        monkeypatch.setenv("FRONTIER_FUND_AMOUNT", "0.5")
        monkeypatch.setenv("FRONTIER_LOG_JSON", "yes")

        settings = load_settings()

        assert settings.rpc_url == "http://10.0.0.2:8545"
        assert settings.private_key == "0x" + "ab" * 32
        assert settings.chain_id == 42
        assert settings.rpc_timeout == 2.5
        assert settings.fund_amount == 5 * 10**17
        assert settings.log_json is True

    def test_node_managed_account(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FRONTIER_PRIVATE_KEY", "node")
        assert load_settings().private_key is None

    def test_dotenv_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        env_file = tmp_path / "node.env"
        env_file.write_text("FRONTIER_RPC_URL=http://dotenv:9933\nFRONTIER_CHAIN_ID=1281\n", encoding="utf-8")
        monkeypatch.setenv("FRONTIER_CHAIN_ID", "7")

        settings = load_settings(env_file)

        assert settings.rpc_url == "http://dotenv:9933"
        # Real environment wins over the file
        assert settings.chain_id == 7

    def test_bad_number(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FRONTIER_RPC_TIMEOUT", "soon")
        with pytest.raises(ValueError, match="FRONTIER_RPC_TIMEOUT must be a number"):
            load_settings()


class TestNodeSettings:
    """Validation of the settings struct."""

    def test_rejects_websocket_url(self) -> None:
        with pytest.raises(ValueError, match="Only HTTP"):
            NodeSettings(rpc_url="ws://127.0.0.1:9944")

    @pytest.mark.parametrize("field", ["rpc_timeout", "receipt_timeout", "poll_interval"])
    def test_rejects_non_positive_timeouts(self, field: str) -> None:
        with pytest.raises(ValueError, match=field):
            NodeSettings(**{field: 0})

    def test_with_overrides_copies(self) -> None:
        base = NodeSettings()
        changed = base.with_overrides(chain_id=5)
        assert changed.chain_id == 5
        assert base.chain_id is None


class TestLogging:
    """structlog routing through stdlib logging."""

    def test_json_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(json_output=True, level="INFO")
        get_logger("frontier_tester.test").info("scenario_passed", scenario="allowance")
        err = capsys.readouterr().err
        assert '"event": "scenario_passed"' in err
        assert '"scenario": "allowance"' in err

    def test_level_filters_and_noisy_loggers(self) -> None:
        configure_logging(level="ERROR")
        assert logging.getLogger().level == logging.ERROR
        assert logging.getLogger("httpx").level == logging.ERROR

        configure_logging(level="DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_unknown_level(self) -> None:
        with pytest.raises(ValueError, match="Unknown log level"):
            configure_logging(level="CHATTY")

    def teardown_method(self) -> None:
        structlog.reset_defaults()
        logging.getLogger().handlers = []
