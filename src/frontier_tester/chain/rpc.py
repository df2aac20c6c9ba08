"""
JSON-RPC client for the node under test.

Lightweight alternative to web3.py: uses httpx for HTTP + eth-abi for encoding.
Supports balance queries, read-only calls, transaction submission (locally
signed or node-signed) and bounded transaction receipt polling.
"""

from __future__ import annotations

import itertools
import time
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx
import structlog

from ..accounts import Account
from ..errors import NodeConnectionError, RpcError, RpcTimeoutError
from ..utils import hex_to_bytes, hex_to_int, int_to_hex, to_checksum_address
from .abi import encode_function_signature as _encode_function_signature

logger = structlog.get_logger(__name__)

# Numeric transaction fields that eth_sendTransaction / eth_estimateGas expect as hex quantities
_QUANTITY_FIELDS = ("value", "gas", "gasPrice", "nonce", "maxFeePerGas", "maxPriorityFeePerGas")


@dataclass(frozen=True)
class Receipt:
    """
    Confirmation record of a mined transaction.

    Attributes:
        tx_hash: Transaction hash (0x-prefixed hex)
        status: 1 on success, 0 on revert / out-of-gas
        gas_used: Gas consumed by this transaction
        effective_gas_price: Price actually paid per gas, when the node reports it
        contract_address: Address created by a deployment, else None
        block_number: Block the transaction was mined in
        logs: Raw log entries
    """

    tx_hash: str
    status: int
    gas_used: int
    effective_gas_price: Optional[int] = None
    contract_address: Optional[str] = None
    block_number: Optional[int] = None
    logs: tuple[dict[str, Any], ...] = ()
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def from_rpc(cls, payload: dict[str, Any]) -> "Receipt":
        """
        Build a Receipt from an eth_getTransactionReceipt result.

        Raises:
            RpcError: If a required field is missing or not a valid quantity
        """
        try:
            price = payload.get("effectiveGasPrice")
            block = payload.get("blockNumber")
            contract_address = payload.get("contractAddress")
            return cls(
                tx_hash=payload["transactionHash"],
                # Pre-Byzantium receipts carry a state root instead of a status
                status=hex_to_int(payload.get("status", "0x1")),
                gas_used=hex_to_int(payload["gasUsed"]),
                effective_gas_price=hex_to_int(price) if price is not None else None,
                contract_address=to_checksum_address(contract_address) if contract_address else None,
                block_number=hex_to_int(block) if block is not None else None,
                logs=tuple(payload.get("logs") or ()),
                raw=payload,
            )
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise RpcError(
                f"Malformed transaction receipt: {exc!r}",
                method="eth_getTransactionReceipt",
                tx_hash=payload.get("transactionHash") if isinstance(payload, dict) else None,
            ) from exc

    @property
    def succeeded(self) -> bool:
        return self.status == 1


class RpcClient:
    """
    Blocking JSON-RPC client over one HTTP connection pool.

    Every request carries a timeout; receipt polling is bounded by
    ``receipt_timeout`` unless the caller passes its own.
    """

    def __init__(
        self,
        rpc_url: str,
        timeout: float = 30.0,
        receipt_timeout: float = 120.0,
        poll_interval: float = 0.5,
        chain_id: Optional[int] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.timeout = timeout
        self.receipt_timeout = receipt_timeout
        self.poll_interval = poll_interval
        self._chain_id = chain_id
        self._ids = itertools.count(1)
        self._http = httpx.Client(timeout=timeout, transport=transport)
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._http.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "RpcClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def request(self, method: str, params: list, timeout: Optional[float] = None) -> Any:
        """
        Make a JSON-RPC call.

        Args:
            method: RPC method name (e.g., "eth_call")
            params: RPC parameters
            timeout: Request timeout in seconds (default: client timeout)

        Returns:
            Result field from the RPC response

        Raises:
            NodeConnectionError: If the node cannot be reached
            RpcTimeoutError: If the node does not answer in time
            RpcError: If the node returns an error or a malformed response
        """
        if self._closed:
            raise NodeConnectionError("RPC client is closed", method=method, url=self.rpc_url)

        request_timeout = timeout if timeout is not None else self.timeout
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": next(self._ids),
        }
        logger.debug("rpc_request", method=method, id=payload["id"])

        try:
            response = self._http.post(self.rpc_url, json=payload, timeout=request_timeout)
        except httpx.TimeoutException as exc:
            raise RpcTimeoutError(
                f"{method} timed out after {request_timeout}s",
                method=method,
                params=params,
                url=self.rpc_url,
            ) from exc
        except httpx.TransportError as exc:
            raise NodeConnectionError(
                f"Cannot reach node: {exc}", method=method, url=self.rpc_url
            ) from exc

        if response.status_code >= 400:
            raise RpcError(
                f"HTTP {response.status_code} from node", method=method, params=params
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise RpcError("Malformed JSON-RPC response", method=method, params=params) from exc

        if not isinstance(data, dict):
            raise RpcError("Malformed JSON-RPC response", method=method, params=params)

        if data.get("error") is not None:
            error = data["error"]
            if isinstance(error, dict):
                raise RpcError(
                    f"RPC error: {error.get('message', error)}",
                    method=method,
                    params=params,
                    code=error.get("code"),
                    data=error.get("data"),
                )
            raise RpcError(f"RPC error: {error}", method=method, params=params)

        if "result" not in data:
            raise RpcError("JSON-RPC response has no result", method=method, params=params)

        return data["result"]

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def chain_id(self, timeout: Optional[float] = None) -> int:
        if self._chain_id is None:
            self._chain_id = hex_to_int(self.request("eth_chainId", [], timeout=timeout))
        return self._chain_id

    def accounts(self) -> list[str]:
        return list(self.request("eth_accounts", []) or [])

    def gas_price(self, timeout: Optional[float] = None) -> int:
        return hex_to_int(self.request("eth_gasPrice", [], timeout=timeout))

    def block_number(self) -> int:
        return hex_to_int(self.request("eth_blockNumber", []))

    def get_balance(
        self, address: str, block: str = "latest", timeout: Optional[float] = None
    ) -> int:
        """
        Get the balance of an address.

        Returns:
            Balance in wei
        """
        result = self.request("eth_getBalance", [address, block], timeout=timeout)
        return hex_to_int(result)

    def get_transaction_count(
        self, address: str, block: str = "latest", timeout: Optional[float] = None
    ) -> int:
        return hex_to_int(
            self.request("eth_getTransactionCount", [address, block], timeout=timeout)
        )

    def get_code(
        self, address: str, block: str = "latest", timeout: Optional[float] = None
    ) -> bytes:
        return hex_to_bytes(self.request("eth_getCode", [address, block], timeout=timeout) or "0x")

    def encode_function_signature(self, signature: str) -> bytes:
        """4-byte selector of ``signature``; computed locally, no request is made."""
        return _encode_function_signature(signature)

    def call(
        self,
        to: str,
        data: str,
        sender: Optional[str] = None,
        block: str = "latest",
        timeout: Optional[float] = None,
    ) -> bytes:
        """
        Execute a read-only call (eth_call) against current state.

        Args:
            to: Contract address
            data: 0x-prefixed calldata
            sender: Optional ``from`` address
            block: Block tag

        Returns:
            Raw return data
        """
        call_obj: dict[str, Any] = {"to": to, "data": data}
        if sender is not None:
            call_obj["from"] = sender
        result = self.request("eth_call", [call_obj, block], timeout=timeout)
        return hex_to_bytes(result or "0x")

    def estimate_gas(self, tx: dict[str, Any], timeout: Optional[float] = None) -> int:
        return hex_to_int(self.request("eth_estimateGas", [_to_rpc_tx(tx)], timeout=timeout))

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def send_raw_transaction(self, raw_tx: str, timeout: Optional[float] = None) -> str:
        """
        Send a signed raw transaction.

        Returns:
            Transaction hash (0x-prefixed hex)
        """
        return self.request("eth_sendRawTransaction", [raw_tx], timeout=timeout)

    def send_transaction(
        self,
        tx: dict[str, Any],
        account: Account,
        timeout: Optional[float] = None,
    ) -> Receipt:
        """
        Submit a transaction from ``account`` and wait until it is mined.

        Missing nonce, gas price, gas limit and chain ID are filled in from
        the node. Local accounts sign here; node-managed accounts go
        through eth_sendTransaction.

        Args:
            tx: Transaction fields (to, value, data, gas, gasPrice, nonce...)
            account: Sending account
            timeout: Overall limit in seconds, covering the requests that
                fill in missing fields, the submission and the receipt wait
                (default: client timeout per request, receipt_timeout for
                the wait)

        Returns:
            Receipt of the mined transaction (status is not checked here)

        Raises:
            RpcTimeoutError: If the limit runs out before the receipt arrives
        """
        deadline = time.monotonic() + timeout if timeout is not None else None

        def remaining(method: str) -> Optional[float]:
            if deadline is None:
                return None
            left = deadline - time.monotonic()
            if left <= 0:
                raise RpcTimeoutError(
                    f"send_transaction timed out after {timeout}s before {method}",
                    method=method,
                    sender=account.address,
                )
            return left

        tx = dict(tx)
        tx.setdefault("value", 0)
        tx.setdefault("data", "0x")
        if tx.get("to"):
            tx["to"] = to_checksum_address(tx["to"])
        else:
            tx.pop("to", None)

        if account.is_local:
            if "nonce" not in tx:
                tx["nonce"] = self.get_transaction_count(
                    account.address, "pending", timeout=remaining("eth_getTransactionCount")
                )
            if "chainId" not in tx:
                tx["chainId"] = self.chain_id(timeout=remaining("eth_chainId"))
            if "gasPrice" not in tx and "maxFeePerGas" not in tx:
                tx["gasPrice"] = self.gas_price(timeout=remaining("eth_gasPrice"))
            if "gas" not in tx:
                tx["gas"] = self.estimate_gas(
                    {**tx, "from": account.address}, timeout=remaining("eth_estimateGas")
                )
            tx_hash = self.send_raw_transaction(
                account.sign_transaction(tx), timeout=remaining("eth_sendRawTransaction")
            )
        else:
            tx_hash = self.request(
                "eth_sendTransaction",
                [_to_rpc_tx({**tx, "from": account.address})],
                timeout=remaining("eth_sendTransaction"),
            )

        logger.debug("transaction_sent", tx_hash=tx_hash, sender=account.address, to=tx.get("to"))
        return self.wait_for_receipt(tx_hash, timeout=remaining("eth_getTransactionReceipt"))

    def wait_for_receipt(
        self,
        tx_hash: str,
        timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
    ) -> Receipt:
        """
        Wait for a transaction receipt.

        Args:
            tx_hash: Transaction hash
            timeout: Maximum wait time in seconds
            poll_interval: Polling interval in seconds

        Returns:
            Receipt

        Raises:
            RpcTimeoutError: If receipt not found within timeout
        """
        timeout = timeout if timeout is not None else self.receipt_timeout
        poll_interval = poll_interval if poll_interval is not None else self.poll_interval
        deadline = time.monotonic() + timeout

        while True:
            remaining = deadline - time.monotonic()
            receipt = self.request(
                "eth_getTransactionReceipt",
                [tx_hash],
                timeout=max(min(self.timeout, remaining), 0.001),
            )
            if receipt is not None:
                return Receipt.from_rpc(receipt)
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            time.sleep(min(poll_interval, remaining))

        raise RpcTimeoutError(
            f"Transaction {tx_hash} not confirmed within {timeout}s",
            method="eth_getTransactionReceipt",
            tx_hash=tx_hash,
        )


def _to_rpc_tx(tx: dict[str, Any]) -> dict[str, Any]:
    """Convert integer quantities to the hex form JSON-RPC expects."""
    rpc_tx: dict[str, Any] = {}
    for key, value in tx.items():
        if key == "chainId":
            continue
        if key in _QUANTITY_FIELDS and isinstance(value, int):
            rpc_tx[key] = int_to_hex(value)
        else:
            rpc_tx[key] = value
    return rpc_tx
