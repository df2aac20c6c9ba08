"""
Transaction builders - assemble unsigned transactions for contract calls
and deployments.

Signing and submission happen in RpcClient.send_transaction; the dicts
built here only carry the fields the caller pinned down.
"""

from __future__ import annotations

from typing import Any, Optional

from .abi import encode_constructor_args, encode_function_call, normalize_bytecode


def _with_optional(tx: dict[str, Any], gas: Optional[int], gas_price: Optional[int]) -> dict[str, Any]:
    if gas is not None:
        tx["gas"] = gas
    if gas_price is not None:
        tx["gasPrice"] = gas_price
    return tx


def build_contract_tx(
    contract_address: str,
    entry: dict[str, Any],
    args: list,
    value: int = 0,
    gas: Optional[int] = None,
    gas_price: Optional[int] = None,
) -> dict[str, Any]:
    """
    Build a contract call transaction (unsigned).

    Args:
        contract_address: 0x-prefixed contract address
        entry: ABI function entry
        args: Function arguments
        value: Value in wei (default: 0)
        gas: Gas limit (default: estimated by the client)
        gas_price: Gas price in wei (default: node's eth_gasPrice)

    Returns:
        Unsigned transaction dict
    """
    tx = {
        "to": contract_address,
        "data": encode_function_call(entry, args),
        "value": value,
    }
    return _with_optional(tx, gas, gas_price)


def build_raw_call_tx(
    to: str,
    data: bytes | str,
    value: int = 0,
    gas: Optional[int] = None,
    gas_price: Optional[int] = None,
) -> dict[str, Any]:
    """Build a transaction with caller-supplied calldata (no ABI involved)."""
    if isinstance(data, bytes):
        data = "0x" + data.hex()
    tx = {"to": to, "data": data, "value": value}
    return _with_optional(tx, gas, gas_price)


def build_deploy_tx(
    abi: list[dict[str, Any]],
    bytecode: str,
    constructor_args: Optional[list] = None,
    value: int = 0,
    gas: Optional[int] = None,
    gas_price: Optional[int] = None,
) -> dict[str, Any]:
    """
    Build a contract creation transaction (no ``to``).

    Appends ABI-encoded constructor args to the creation bytecode.

    Raises:
        AbiError: If the bytecode is malformed or args do not match the constructor
    """
    deploy_data = normalize_bytecode(bytecode)
    encoded_args = encode_constructor_args(abi, list(constructor_args or []))
    tx = {"data": deploy_data + encoded_args.hex(), "value": value}
    return _with_optional(tx, gas, gas_price)
