"""
Node settings for the harness.

Values come from the environment, optionally seeded from a ``.env`` file.
A settings object is passed explicitly into every context; nothing here
holds a shared account or connection.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .utils import to_wei

DEFAULT_RPC_URL = "http://127.0.0.1:9933"

# Frontier's pre-funded genesis development account.
# Address: 0x6be02d1d3665660d22ff9624b7be0551ee1ac91b
DEFAULT_PRIVATE_KEY = "0x99B3C12287537E38C90A9219D4CB074A89A16E9CDB20BF85728EBD97C343E342"

DEFAULT_RPC_TIMEOUT = 30.0
DEFAULT_RECEIPT_TIMEOUT = 120.0
DEFAULT_POLL_INTERVAL = 0.5
DEFAULT_ARTIFACTS_DIR = Path("build") / "contracts"
DEFAULT_FUND_AMOUNT = to_wei(100, "ether")

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class NodeSettings:
    """
    Connection and account settings for one test context.

    Attributes:
        rpc_url: HTTP JSON-RPC endpoint of the node
        private_key: 0x-prefixed key of the funded account, or None to use
            the node's first managed account (``eth_accounts``)
        chain_id: Chain ID for signing; None means ask the node
        rpc_timeout: Per-request timeout in seconds
        receipt_timeout: Maximum wait for a transaction receipt in seconds
        poll_interval: Receipt polling interval in seconds
        artifacts_dir: Directory holding compiled contract artifacts
        fund_amount: Wei transferred to a freshly created account
        log_level: Log level name
        log_json: Emit JSON logs instead of console output
    """

    rpc_url: str = DEFAULT_RPC_URL
    private_key: Optional[str] = DEFAULT_PRIVATE_KEY
    chain_id: Optional[int] = None
    rpc_timeout: float = DEFAULT_RPC_TIMEOUT
    receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT
    poll_interval: float = DEFAULT_POLL_INTERVAL
    artifacts_dir: Path = DEFAULT_ARTIFACTS_DIR
    fund_amount: int = DEFAULT_FUND_AMOUNT
    log_level: str = "INFO"
    log_json: bool = False

    def __post_init__(self) -> None:
        if self.rpc_timeout <= 0:
            raise ValueError(f"rpc_timeout must be positive, got {self.rpc_timeout}")
        if self.receipt_timeout <= 0:
            raise ValueError(f"receipt_timeout must be positive, got {self.receipt_timeout}")
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {self.poll_interval}")
        if not self.rpc_url.startswith(("http://", "https://")):
            raise ValueError(f"Only HTTP(S) endpoints are supported, got {self.rpc_url!r}")

    def with_overrides(self, **changes: object) -> "NodeSettings":
        return replace(self, **changes)


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _env_int(name: str) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw, 0)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def load_settings(env_path: Optional[Path] = None) -> NodeSettings:
    """
    Build NodeSettings from the environment.

    Args:
        env_path: Optional .env file to load first (default: ./.env if present).
            Variables already set in the environment take precedence.

    Returns:
        NodeSettings instance
    """
    env_path = env_path or Path.cwd() / ".env"
    if env_path.exists():
        load_dotenv(env_path, override=False)

    private_key = os.environ.get("FRONTIER_PRIVATE_KEY", DEFAULT_PRIVATE_KEY)
    if private_key.lower() in ("", "none", "node"):
        private_key = None
    elif not private_key.startswith("0x"):
        private_key = "0x" + private_key

    fund_amount = os.environ.get("FRONTIER_FUND_AMOUNT")

    return NodeSettings(
        rpc_url=os.environ.get("FRONTIER_RPC_URL", DEFAULT_RPC_URL),
        private_key=private_key,
        chain_id=_env_int("FRONTIER_CHAIN_ID"),
        rpc_timeout=_env_float("FRONTIER_RPC_TIMEOUT", DEFAULT_RPC_TIMEOUT),
        receipt_timeout=_env_float("FRONTIER_RECEIPT_TIMEOUT", DEFAULT_RECEIPT_TIMEOUT),
        poll_interval=_env_float("FRONTIER_POLL_INTERVAL", DEFAULT_POLL_INTERVAL),
        artifacts_dir=Path(os.environ.get("FRONTIER_ARTIFACTS_DIR", str(DEFAULT_ARTIFACTS_DIR))),
        fund_amount=to_wei(fund_amount, "ether") if fund_amount else DEFAULT_FUND_AMOUNT,
        log_level=os.environ.get("FRONTIER_LOG_LEVEL", "INFO"),
        log_json=os.environ.get("FRONTIER_LOG_JSON", "").lower() in _TRUTHY,
    )
