"""
Test context provider.

``anon_context`` opens a connection to the node, picks (or creates and
funds) the account a test case sends from, and always disconnects when
the block exits. Each context owns its own client and account, so test
cases running concurrently never share a nonce sequence.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, TypeVar

import httpx
import structlog

from . import accounts
from .accounts import Account
from .chain.abi import load_artifact
from .chain.rpc import RpcClient
from .config import NodeSettings, load_settings
from .contract import ContractFactory
from .errors import NodeConnectionError, RpcError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Plain value transfers cost exactly this much gas
_TRANSFER_GAS = 21_000


@dataclass(frozen=True)
class NodeContext:
    """Everything one test case needs: a connected client and a funded account."""

    client: RpcClient
    account: Account
    settings: NodeSettings

    def load_contract(self, contract_name: str) -> ContractFactory:
        """Factory for a compiled contract from the configured artifacts directory."""
        artifact = load_artifact(contract_name, self.settings.artifacts_dir)
        return ContractFactory.from_artifact(artifact, self.client)


def _select_account(client: RpcClient, settings: NodeSettings) -> Account:
    if settings.private_key:
        return accounts.from_key(settings.private_key)

    managed = client.accounts()
    if not managed:
        raise NodeConnectionError(
            "No private key configured and the node manages no accounts",
            url=settings.rpc_url,
        )
    return accounts.node_managed(managed[0])


def _fund_fresh_account(client: RpcClient, funder: Account, amount: int) -> Account:
    _, fresh = accounts.generate()
    receipt = client.send_transaction(
        {"to": fresh.address, "value": amount, "gas": _TRANSFER_GAS},
        funder,
    )
    if not receipt.succeeded:
        raise RpcError(
            "Funding transfer failed",
            method="fund_account",
            params=[fresh.address, amount],
            tx_hash=receipt.tx_hash,
        )
    logger.info("account_funded", address=fresh.address, amount=amount, funder=funder.address)
    return fresh


@contextmanager
def anon_context(
    settings: Optional[NodeSettings] = None,
    *,
    fresh_account: bool = False,
    transport: Optional[httpx.BaseTransport] = None,
) -> Iterator[NodeContext]:
    """
    Connect to the node and yield a NodeContext.

    Args:
        settings: Node settings (default: load_settings())
        fresh_account: Generate a new key and fund it from the configured
            account instead of sending from the configured account directly
        transport: Custom httpx transport (used for offline testing)

    Yields:
        NodeContext

    Raises:
        NodeConnectionError: If the node is unreachable
    """
    settings = settings or load_settings()
    client = RpcClient(
        settings.rpc_url,
        timeout=settings.rpc_timeout,
        receipt_timeout=settings.receipt_timeout,
        poll_interval=settings.poll_interval,
        chain_id=settings.chain_id,
        transport=transport,
    )
    try:
        chain_id = client.chain_id()
        account = _select_account(client, settings)
        if fresh_account:
            account = _fund_fresh_account(client, account, settings.fund_amount)
        logger.info("context_opened", url=settings.rpc_url, chain_id=chain_id, account=account.address)
        yield NodeContext(client=client, account=account, settings=settings)
    finally:
        client.close()
        logger.debug("context_closed", url=settings.rpc_url)


def with_anon_context(test_body: Callable[[NodeContext], T], **kwargs: object) -> T:
    """Run ``test_body`` inside anon_context and return its result.

    Exceptions from the body propagate after the connection is closed.
    """
    with anon_context(**kwargs) as context:
        return test_body(context)
