"""Tests for ContractFactory / ContractHandle against the fake node."""

from __future__ import annotations

from pathlib import Path

import pytest

from fake_node import ERC20_ABI, ERC20_BYTECODE, USER_ABI, FakeNode
from frontier_tester.accounts import Account
from frontier_tester.chain.abi import load_artifact
from frontier_tester.chain.rpc import Receipt, RpcClient
from frontier_tester.contract import ContractFactory, ContractFunction, ContractHandle
from frontier_tester.errors import AbiError, DeploymentError, RpcError

SPENDER = "0xc0ffee254729296a45a3885639AC7E10F9d54979"


@pytest.fixture()
def erc20_factory(client: RpcClient) -> ContractFactory:
    return ContractFactory(ERC20_ABI, ERC20_BYTECODE, client, name="ERC20")


@pytest.fixture()
def token(erc20_factory: ContractFactory, account: Account) -> ContractHandle:
    return erc20_factory.deploy("Token", "TKN", sender=account)


class TestDeploy:
    """Deployment success and failure modes."""

    def test_deploy_returns_confirmed_handle(self, token: ContractHandle, node: FakeNode, account: Account) -> None:
        assert token.address.lower() in node.contracts
        assert token.default_sender == account
        assert isinstance(token.deploy_receipt, Receipt)
        assert token.deploy_receipt.succeeded
        assert token.deploy_receipt.contract_address == token.address

    def test_constructor_args_reach_the_contract(self, token: ContractHandle, node: FakeNode) -> None:
        deployed = node.contracts[token.address.lower()]
        assert (deployed.name, deployed.symbol) == ("Token", "TKN")

    def test_from_artifact(self, client: RpcClient, artifacts_dir: Path, account: Account) -> None:
        factory = ContractFactory.from_artifact(load_artifact("ContractImpl", artifacts_dir), client)
        handle = factory.deploy(sender=account)
        assert handle.name == "ContractImpl"
        assert handle.doTheThing.call() is True

    def test_constructor_revert(self, client: RpcClient, artifacts_dir: Path, account: Account) -> None:
        factory = ContractFactory.from_artifact(load_artifact("Reverter", artifacts_dir), client)
        with pytest.raises(DeploymentError, match="reverted or ran out of gas") as exc_info:
            factory.deploy(sender=account)
        assert exc_info.value.context["contract"] == "Reverter"

    def test_out_of_gas(self, erc20_factory: ContractFactory, account: Account) -> None:
        with pytest.raises(DeploymentError, match="ran out of gas"):
            erc20_factory.deploy("Token", "TKN", sender=account, gas=21_000)

    def test_no_code_after_deploy(self, client: RpcClient, artifacts_dir: Path, account: Account) -> None:
        factory = ContractFactory.from_artifact(load_artifact("Empty", artifacts_dir), client)
        with pytest.raises(DeploymentError, match="No code"):
            factory.deploy(sender=account)

    def test_malformed_bytecode(self, client: RpcClient, account: Account, node: FakeNode) -> None:
        factory = ContractFactory([], "0xnot-bytecode", client, name="Garbage")
        with pytest.raises(DeploymentError, match="Cannot build deployment of Garbage") as exc_info:
            factory.deploy(sender=account)
        assert isinstance(exc_info.value.__cause__, AbiError)
        assert node.requests == []

    def test_wrong_constructor_args(self, erc20_factory: ContractFactory, account: Account) -> None:
        with pytest.raises(DeploymentError, match="Expected 2 arguments"):
            erc20_factory.deploy("OnlyName", sender=account)

    def test_node_rejects_deployment(self, erc20_factory: ContractFactory, account: Account, node: FakeNode) -> None:
        node.fail_methods["eth_sendRawTransaction"] = (-32010, "pool is full")
        with pytest.raises(DeploymentError, match="pool is full") as exc_info:
            erc20_factory.deploy("Token", "TKN", sender=account)
        assert isinstance(exc_info.value.__cause__, RpcError)

    def test_at_existing_address(self, erc20_factory: ContractFactory, token: ContractHandle) -> None:
        attached = erc20_factory.at(token.address)
        assert attached.address == token.address

    def test_at_empty_address(self, erc20_factory: ContractFactory) -> None:
        with pytest.raises(DeploymentError, match="No ERC20 code"):
            erc20_factory.at("0x" + "66" * 20)


class TestHandle:
    """Mutating and read-only accessors on a deployed contract."""

    def test_transact_then_call(self, token: ContractHandle, account: Account) -> None:
        amount = 10 * 10**18
        receipt = token.approve.transact(SPENDER, amount)
        assert receipt.succeeded
        assert token.allowance.call(account.address, SPENDER) == amount

    def test_call_does_not_mutate_state(self, token: ContractHandle, node: FakeNode, account: Account) -> None:
        nonce_before = node.nonces[account.address.lower()]
        token.allowance.call(account.address, SPENDER)
        assert node.nonces[account.address.lower()] == nonce_before
        assert node.methods_called()[-1] == "eth_call"

    def test_direct_call_dispatches_on_mutability(self, token: ContractHandle, account: Account) -> None:
        assert isinstance(token.approve(SPENDER, 5), Receipt)
        assert token.allowance(account.address, SPENDER) == 5

    def test_function_by_signature(self, token: ContractHandle, account: Account) -> None:
        token.function("approve(address,uint256)").transact(SPENDER, 7)
        assert token.function("allowance(address,address)").call(account.address, SPENDER) == 7

    def test_encode(self, token: ContractHandle) -> None:
        assert token.approve.encode(SPENDER, 1).startswith("0x095ea7b3")

    def test_unknown_attribute(self, token: ContractHandle) -> None:
        assert isinstance(token.approve, ContractFunction)
        assert token.function_names == ["allowance", "approve"]
        with pytest.raises(AttributeError, match="no function 'transferFrom'"):
            token.transferFrom
        with pytest.raises(AbiError):
            token.function("transferFrom(address,address,uint256)")

    def test_reverted_transaction(self, token: ContractHandle, account: Account) -> None:
        # approve() is not payable
        with pytest.raises(RpcError, match=r"ERC20.approve\(address,uint256\) reverted") as exc_info:
            token.approve.transact(SPENDER, 1, value=1, gas=100_000)
        assert exc_info.value.method == "approve(address,uint256)"
        assert exc_info.value.params == [SPENDER, 1]
        assert "tx_hash" in exc_info.value.context

    def test_rejected_transaction_keeps_function_context(
        self, token: ContractHandle, node: FakeNode
    ) -> None:
        node.fail_methods["eth_sendRawTransaction"] = (-32010, "insufficient funds")
        with pytest.raises(RpcError, match="rejected: RPC error: insufficient funds") as exc_info:
            token.approve.transact(SPENDER, 1)
        assert exc_info.value.code == -32010
        assert exc_info.value.__cause__.method == "eth_sendRawTransaction"

    def test_reverted_call(self, client: RpcClient, artifacts_dir: Path, account: Account) -> None:
        user = ContractFactory(USER_ABI, load_artifact("IContractUser", artifacts_dir).bytecode, client).deploy(
            sender=account
        )
        with pytest.raises(RpcError, match="doTheThing\\(\\) call failed: RPC error: execution reverted"):
            user.doTheThing.call()

    def test_transact_needs_a_sender(self, client: RpcClient, token: ContractHandle) -> None:
        orphan = ContractHandle("ERC20", token.address, ERC20_ABI, client)
        with pytest.raises(ValueError, match="No sender"):
            orphan.approve.transact(SPENDER, 1)

    def test_call_passes_timeout_to_the_node_request(
        self, token: ContractHandle, account: Account, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        seen = {}
        original = token.client.request

        def recording(method, params, timeout=None):
            seen[method] = timeout
            return original(method, params, timeout=timeout)

        monkeypatch.setattr(token.client, "request", recording)
        assert token.allowance.call(account.address, SPENDER, timeout=0.25) == 0
        assert seen["eth_call"] == 0.25
