"""
Contract deployment helper.

ContractFactory deploys creation bytecode and returns a ContractHandle
once the deployment is confirmed. Every ABI function is reachable on the
handle by name and offers two variants:

- ``transact(*args)`` submits a transaction, waits for it to be mined and
  returns the Receipt (mutates chain state)
- ``call(*args)`` runs eth_call against current state and returns the
  decoded output (never mutates chain state)

Calling the accessor directly picks ``call`` for view/pure functions and
``transact`` otherwise.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog

from .accounts import Account
from .chain.abi import (
    ContractArtifact,
    decode_function_result,
    encode_function_call,
    find_function,
    function_signature,
    functions_named,
    is_read_only,
)
from .chain.rpc import Receipt, RpcClient
from .chain.tx import build_contract_tx, build_deploy_tx
from .errors import AbiError, DeploymentError, RpcError

logger = structlog.get_logger(__name__)


class ContractFunction:
    """One ABI function (or overload set) bound to a deployed contract."""

    def __init__(self, contract: "ContractHandle", name_or_signature: str) -> None:
        self.contract = contract
        self.name = name_or_signature

    def __repr__(self) -> str:
        return f"<ContractFunction {self.contract.name}.{self.name}>"

    def entry(self, arg_count: Optional[int] = None) -> dict[str, Any]:
        return find_function(self.contract.abi, self.name, arg_count)

    def encode(self, *args: Any) -> str:
        return encode_function_call(self.entry(len(args)), list(args))

    def call(
        self,
        *args: Any,
        sender: Optional[Account | str] = None,
        block: str = "latest",
        timeout: Optional[float] = None,
    ) -> Any:
        """
        Execute the function read-only and return its decoded output.

        Args:
            *args: Function arguments
            sender: ``from`` for the call (default: the contract's default sender)
            block: Block tag to execute against
            timeout: Request timeout in seconds (default: client timeout)
        """
        entry = self.entry(len(args))
        signature = function_signature(entry)
        sender = sender if sender is not None else self.contract.default_sender
        sender_address = sender.address if isinstance(sender, Account) else sender

        try:
            data = self.contract.client.call(
                self.contract.address,
                encode_function_call(entry, list(args)),
                sender=sender_address,
                block=block,
                timeout=timeout,
            )
        except RpcError as exc:
            raise RpcError(
                f"{self.contract.name}.{signature} call failed: {exc.message}",
                method=signature,
                params=list(args),
                code=exc.code,
                data=exc.data,
                contract=self.contract.address,
            ) from exc

        return decode_function_result(entry, data)

    def transact(
        self,
        *args: Any,
        sender: Optional[Account] = None,
        value: int = 0,
        gas: Optional[int] = None,
        gas_price: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> Receipt:
        """
        Send the function as a transaction and wait for it to be mined.

        Raises:
            RpcError: If the node rejects the transaction or it is mined
                with status 0
        """
        entry = self.entry(len(args))
        signature = function_signature(entry)
        sender = sender or self.contract.default_sender
        if sender is None:
            raise ValueError(f"No sender for {self.contract.name}.{signature}")

        tx = build_contract_tx(
            self.contract.address, entry, list(args), value=value, gas=gas, gas_price=gas_price
        )
        try:
            receipt = self.contract.client.send_transaction(tx, sender, timeout=timeout)
        except RpcError as exc:
            raise RpcError(
                f"{self.contract.name}.{signature} rejected: {exc.message}",
                method=signature,
                params=list(args),
                code=exc.code,
                data=exc.data,
                contract=self.contract.address,
            ) from exc

        if not receipt.succeeded:
            raise RpcError(
                f"{self.contract.name}.{signature} reverted",
                method=signature,
                params=list(args),
                contract=self.contract.address,
                tx_hash=receipt.tx_hash,
                gas_used=receipt.gas_used,
            )

        logger.debug(
            "contract_transaction",
            contract=self.contract.name,
            function=signature,
            tx_hash=receipt.tx_hash,
            gas_used=receipt.gas_used,
        )
        return receipt

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        if is_read_only(self.entry(len(args))):
            return self.call(*args, **kwargs)
        return self.transact(*args, **kwargs)


class ContractHandle:
    """
    A deployed contract.

    Only built from a confirmed deployment (ContractFactory.deploy) or an
    address already holding code (ContractFactory.at).
    """

    def __init__(
        self,
        name: str,
        address: str,
        abi: list[dict[str, Any]],
        client: RpcClient,
        default_sender: Optional[Account] = None,
        deploy_receipt: Optional[Receipt] = None,
    ) -> None:
        self.name = name
        self.address = address
        self.abi = abi
        self.client = client
        self.default_sender = default_sender
        self.deploy_receipt = deploy_receipt

    def __repr__(self) -> str:
        return f"<ContractHandle {self.name} at {self.address}>"

    @property
    def function_names(self) -> list[str]:
        return sorted({e["name"] for e in self.abi if e.get("type", "function") == "function"})

    def function(self, name_or_signature: str) -> ContractFunction:
        """Look up a function by name, or by full signature for overloads."""
        # Fail fast on unknown names; overload resolution happens per call
        name = name_or_signature.split("(", 1)[0]
        if not functions_named(self.abi, name):
            raise AbiError(f"Function {name_or_signature} not found in {self.name} ABI")
        return ContractFunction(self, name_or_signature)

    def __getattr__(self, name: str) -> ContractFunction:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self.function(name)
        except AbiError:
            raise AttributeError(f"{self.name} has no function {name!r}") from None


class ContractFactory:
    """Deploys one compiled contract."""

    def __init__(
        self,
        abi: list[dict[str, Any]],
        bytecode: str,
        client: RpcClient,
        name: str = "Contract",
    ) -> None:
        self.abi = abi
        self.bytecode = bytecode
        self.client = client
        self.name = name

    @classmethod
    def from_artifact(cls, artifact: ContractArtifact, client: RpcClient) -> "ContractFactory":
        return cls(artifact.abi, artifact.bytecode, client, name=artifact.name)

    def deploy(
        self,
        *constructor_args: Any,
        sender: Account,
        value: int = 0,
        gas: Optional[int] = None,
        gas_price: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> ContractHandle:
        """
        Deploy the contract and wait for confirmation.

        Args:
            *constructor_args: Constructor arguments
            sender: Deploying account (also the handle's default sender)
            value: Value in wei sent to the constructor
            gas: Gas limit (default: estimated)
            gas_price: Gas price in wei (default: node's eth_gasPrice)
            timeout: Overall limit in seconds for submission and confirmation

        Returns:
            ContractHandle for the confirmed deployment

        Raises:
            DeploymentError: On malformed bytecode, node rejection, revert,
                out-of-gas, or a missing contract at the reported address
        """
        try:
            tx = build_deploy_tx(
                self.abi,
                self.bytecode,
                list(constructor_args),
                value=value,
                gas=gas,
                gas_price=gas_price,
            )
        except AbiError as exc:
            raise DeploymentError(
                f"Cannot build deployment of {self.name}: {exc}",
                contract=self.name,
                constructor_args=list(constructor_args),
            ) from exc

        logger.info("deploying_contract", contract=self.name, sender=sender.address)
        try:
            receipt = self.client.send_transaction(tx, sender, timeout=timeout)
        except RpcError as exc:
            raise DeploymentError(
                f"Node rejected deployment of {self.name}: {exc.message}",
                contract=self.name,
                constructor_args=list(constructor_args),
                code=exc.code,
            ) from exc

        if not receipt.succeeded:
            raise DeploymentError(
                f"Deployment of {self.name} reverted or ran out of gas",
                contract=self.name,
                tx_hash=receipt.tx_hash,
                gas_used=receipt.gas_used,
            )
        if not receipt.contract_address:
            raise DeploymentError(
                f"Receipt for {self.name} deployment has no contract address",
                contract=self.name,
                tx_hash=receipt.tx_hash,
            )
        if not self.client.get_code(receipt.contract_address):
            raise DeploymentError(
                f"No code at {self.name} address after deployment",
                contract=self.name,
                address=receipt.contract_address,
                tx_hash=receipt.tx_hash,
            )

        logger.info(
            "contract_deployed",
            contract=self.name,
            address=receipt.contract_address,
            gas_used=receipt.gas_used,
        )
        return ContractHandle(
            self.name,
            receipt.contract_address,
            self.abi,
            self.client,
            default_sender=sender,
            deploy_receipt=receipt,
        )

    def at(self, address: str, default_sender: Optional[Account] = None) -> ContractHandle:
        """Attach to an already deployed instance after checking it has code."""
        if not self.client.get_code(address):
            raise DeploymentError(
                f"No {self.name} code at {address}", contract=self.name, address=address
            )
        return ContractHandle(self.name, address, self.abi, self.client, default_sender=default_sender)
