"""
ABI Loader - Loads compiled contract artifacts and encodes/decodes calls.

Artifacts are JSON files carrying ``abi`` and the creation bytecode in one
of the common layouts:

- Truffle: ``<dir>/<Name>.json`` with ``bytecode`` or ``unlinked_binary``
- Foundry: ``<dir>/<Name>.sol/<Name>.json`` with ``bytecode.object``
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError, EncodingError

from ..errors import AbiError
from ..utils import hex_to_bytes, keccak256, to_checksum_address

_READ_ONLY_MUTABILITY = ("view", "pure")


@dataclass(frozen=True)
class ContractArtifact:
    """
    A compiled contract.

    Attributes:
        name: Contract name
        abi: ABI as a list of dicts
        bytecode: Creation bytecode as found in the artifact (may be unprefixed)
    """

    name: str
    abi: list[dict[str, Any]]
    bytecode: str


def parse_artifact(payload: dict[str, Any], name: str = "<inline>") -> ContractArtifact:
    """
    Build a ContractArtifact from a parsed artifact JSON object.

    Raises:
        AbiError: If the ABI or bytecode is missing
    """
    abi = payload.get("abi")
    if not isinstance(abi, list):
        raise AbiError(f"Artifact {name} has no 'abi' array")

    bytecode = payload.get("bytecode")
    if isinstance(bytecode, dict):
        bytecode = bytecode.get("object")
    if not bytecode:
        bytecode = payload.get("unlinked_binary")
    if not isinstance(bytecode, str) or not bytecode:
        raise AbiError(f"Artifact {name} has no 'bytecode' or 'unlinked_binary'")

    return ContractArtifact(name=name, abi=abi, bytecode=bytecode)


def _artifact_path(contract_name: str, artifacts_dir: Path) -> Path:
    candidates = [
        artifacts_dir / f"{contract_name}.json",
        artifacts_dir / f"{contract_name}.sol" / f"{contract_name}.json",
    ]
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    raise FileNotFoundError(
        f"Artifact not found for {contract_name} in {artifacts_dir}. "
        f"Compile the contracts/ sources or set FRONTIER_ARTIFACTS_DIR."
    )


@lru_cache(maxsize=32)
def _load_artifact_cached(contract_name: str, artifacts_dir: str) -> ContractArtifact:
    path = _artifact_path(contract_name, Path(artifacts_dir))
    with path.open("r", encoding="utf-8") as f:
        payload = json.load(f)
    return parse_artifact(payload, name=contract_name)


def load_artifact(contract_name: str, artifacts_dir: Path) -> ContractArtifact:
    """
    Load a contract artifact by name.

    Args:
        contract_name: Contract name (e.g., "ERC20", "FallbackContract")
        artifacts_dir: Directory holding Truffle or Foundry output

    Returns:
        ContractArtifact

    Raises:
        FileNotFoundError: If no artifact file exists for the name
        AbiError: If the file lacks an ABI or bytecode
    """
    return _load_artifact_cached(contract_name, str(Path(artifacts_dir).resolve()))


def normalize_bytecode(bytecode: str) -> str:
    """
    Validate creation bytecode and return it 0x-prefixed and lowercase.

    Raises:
        AbiError: If the bytecode is empty, not hex, or still has
            unresolved library link placeholders
    """
    body = bytecode[2:] if bytecode.startswith("0x") else bytecode
    if not body:
        raise AbiError("Bytecode is empty")
    if "__" in body:
        raise AbiError("Bytecode contains unresolved library placeholders")
    if len(body) % 2:
        raise AbiError("Bytecode has an odd number of hex digits")
    try:
        bytes.fromhex(body)
    except ValueError:
        raise AbiError("Bytecode is not valid hex") from None
    return "0x" + body.lower()


def _canonical_type(param: dict[str, Any]) -> str:
    typ = param["type"]
    if typ.startswith("tuple"):
        inner = ",".join(_canonical_type(c) for c in param.get("components", []))
        return f"({inner}){typ[len('tuple'):]}"
    return typ


def input_types(entry: dict[str, Any]) -> list[str]:
    return [_canonical_type(p) for p in entry.get("inputs", [])]


def output_types(entry: dict[str, Any]) -> list[str]:
    return [_canonical_type(p) for p in entry.get("outputs", [])]


def function_signature(entry: dict[str, Any]) -> str:
    """Canonical signature, e.g. ``approve(address,uint256)``."""
    return f"{entry['name']}({','.join(input_types(entry))})"


def encode_function_signature(signature: str) -> bytes:
    """
    Compute the 4-byte function selector for a canonical signature.

    Args:
        signature: e.g. "myMethod()" or "transfer(address,uint256)"

    Returns:
        First 4 bytes of keccak256(signature)
    """
    return keccak256(signature.replace(" ", "").encode("utf-8"))[:4]


def is_read_only(entry: dict[str, Any]) -> bool:
    if "stateMutability" in entry:
        return entry["stateMutability"] in _READ_ONLY_MUTABILITY
    # Pre-0.5 ABIs only carry the "constant" flag
    return bool(entry.get("constant", False))


def functions_named(abi: list[dict[str, Any]], name: str) -> list[dict[str, Any]]:
    return [e for e in abi if e.get("type", "function") == "function" and e.get("name") == name]


def find_function(
    abi: list[dict[str, Any]],
    name_or_signature: str,
    arg_count: Optional[int] = None,
) -> dict[str, Any]:
    """
    Resolve an ABI function entry.

    Args:
        abi: Contract ABI
        name_or_signature: Function name, or full signature for overloads
        arg_count: Number of positional arguments, used to pick an overload

    Raises:
        AbiError: If no entry matches or the overload is ambiguous
    """
    if "(" in name_or_signature:
        wanted = name_or_signature.replace(" ", "")
        name = wanted.split("(", 1)[0]
        for entry in functions_named(abi, name):
            if function_signature(entry) == wanted:
                return entry
        raise AbiError(f"Function {name_or_signature} not found in ABI")

    candidates = functions_named(abi, name_or_signature)
    if not candidates:
        raise AbiError(f"Function {name_or_signature} not found in ABI")
    if len(candidates) > 1 and arg_count is not None:
        candidates = [e for e in candidates if len(e.get("inputs", [])) == arg_count]
    if len(candidates) != 1:
        signatures = ", ".join(function_signature(e) for e in functions_named(abi, name_or_signature))
        raise AbiError(
            f"Ambiguous call to {name_or_signature} with {arg_count} args; "
            f"use one of: {signatures}"
        )
    return candidates[0]


def _prepare_args(types: list[str], args: list[Any]) -> list[Any]:
    prepared = []
    for typ, arg in zip(types, args):
        if typ == "address" and isinstance(arg, str):
            arg = to_checksum_address(arg)
        prepared.append(arg)
    return prepared


def encode_arguments(types: list[str], args: list[Any]) -> bytes:
    if len(types) != len(args):
        raise AbiError(f"Expected {len(types)} arguments ({','.join(types)}), got {len(args)}")
    if not types:
        return b""
    try:
        return encode(types, _prepare_args(types, list(args)))
    except (EncodingError, TypeError, ValueError, OverflowError) as exc:
        raise AbiError(f"Cannot encode {args!r} as ({','.join(types)}): {exc}") from exc


def encode_function_call(entry: dict[str, Any], args: list[Any]) -> str:
    """
    ABI-encode a function call.

    Returns:
        0x-prefixed hex encoded calldata
    """
    selector = encode_function_signature(function_signature(entry))
    encoded_args = encode_arguments(input_types(entry), args)
    return "0x" + selector.hex() + encoded_args.hex()


def decode_function_result(entry: dict[str, Any], data: bytes | str) -> Any:
    """
    ABI-decode a function call result.

    Returns:
        None for functions without outputs, the single value for one
        output, otherwise a tuple
    """
    types = output_types(entry)
    if not types:
        return None

    raw = hex_to_bytes(data) if isinstance(data, str) else data
    try:
        decoded = decode(types, raw)
    except DecodingError as exc:
        raise AbiError(
            f"Cannot decode {function_signature(entry)} output {raw.hex() or '<empty>'}: {exc}"
        ) from exc

    if len(decoded) == 1:
        return decoded[0]
    return decoded


def _constructor(abi: list[dict[str, Any]]) -> Optional[dict[str, Any]]:
    return next((e for e in abi if e.get("type") == "constructor"), None)


def constructor_input_types(abi: list[dict[str, Any]]) -> list[str]:
    constructor = _constructor(abi)
    return input_types(constructor) if constructor else []


def encode_constructor_args(abi: list[dict[str, Any]], args: list[Any]) -> bytes:
    """ABI-encode constructor arguments (empty when there are none)."""
    constructor = _constructor(abi)
    if constructor is None:
        if args:
            raise AbiError("Constructor not found in ABI, but constructor args were provided")
        return b""
    return encode_arguments(input_types(constructor), list(args))
