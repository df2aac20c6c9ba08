"""Shared fixtures: an in-process fake node plus settings and clients wired to it."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest

from fake_node import CHAIN_ID, GENESIS_KEY, FakeNode, write_artifacts
from frontier_tester.accounts import Account, from_key
from frontier_tester.chain.rpc import RpcClient
from frontier_tester.config import NodeSettings
from frontier_tester.context import NodeContext, anon_context

FAKE_RPC_URL = "http://fake-node:9933"


@pytest.fixture()
def node() -> FakeNode:
    return FakeNode()


@pytest.fixture()
def artifacts_dir(tmp_path: Path) -> Path:
    return write_artifacts(tmp_path / "build" / "contracts")


@pytest.fixture()
def settings(artifacts_dir: Path) -> NodeSettings:
    return NodeSettings(
        rpc_url=FAKE_RPC_URL,
        private_key=GENESIS_KEY,
        rpc_timeout=5.0,
        receipt_timeout=2.0,
        poll_interval=0.01,
        artifacts_dir=artifacts_dir,
    )


@pytest.fixture()
def client(node: FakeNode, settings: NodeSettings) -> Iterator[RpcClient]:
    rpc = RpcClient(
        settings.rpc_url,
        timeout=settings.rpc_timeout,
        receipt_timeout=settings.receipt_timeout,
        poll_interval=settings.poll_interval,
        transport=node.transport(),
    )
    yield rpc
    rpc.close()


@pytest.fixture()
def account() -> Account:
    return from_key(GENESIS_KEY)


@pytest.fixture()
def context(node: FakeNode, settings: NodeSettings) -> Iterator[NodeContext]:
    with anon_context(settings, transport=node.transport()) as ctx:
        yield ctx


@pytest.fixture()
def chain_id() -> int:
    return CHAIN_ID
