from __future__ import annotations

from decimal import Decimal
from typing import Union

from eth_hash.auto import keccak

WEI_PER_ETHER = 10**18

_UNITS = {
    "wei": 1,
    "kwei": 10**3,
    "mwei": 10**6,
    "gwei": 10**9,
    "szabo": 10**12,
    "finney": 10**15,
    "ether": WEI_PER_ETHER,
}


def keccak256(data: bytes) -> bytes:
    # Keccak-256 != SHA3-256 (NIST). Never use hashlib.sha3_256 here.
    return keccak(data)


def to_wei(amount: Union[int, str, Decimal], unit: str = "ether") -> int:
    try:
        multiplier = _UNITS[unit.lower()]
    except KeyError:
        raise ValueError(f"Unknown unit: {unit}") from None
    wei = Decimal(str(amount)) * multiplier
    if wei != wei.to_integral_value():
        raise ValueError(f"{amount} {unit} is not a whole number of wei")
    return int(wei)


def hex_to_int(value: Union[str, int, None]) -> int:
    if value is None:
        return 0
    if isinstance(value, int):
        return value
    return int(value, 16) if value.startswith("0x") else int(value)


def int_to_hex(value: int) -> str:
    return hex(value)


def hex_to_bytes(value: str) -> bytes:
    stripped = value[2:] if value.startswith("0x") else value
    return bytes.fromhex(stripped)


def bytes_to_hex(value: bytes) -> str:
    return "0x" + value.hex()


def is_address(value: str) -> bool:
    if not isinstance(value, str) or not value.startswith("0x") or len(value) != 42:
        return False
    try:
        bytes.fromhex(value[2:])
    except ValueError:
        return False
    return True


def to_checksum_address(address: str) -> str:
    """Convert an address to EIP-55 checksummed format.

    eth-account requires checksummed addresses in transaction fields.
    """
    if not is_address(address):
        raise ValueError(f"Invalid address: {address!r}")
    addr = address.lower()[2:]
    addr_hash = keccak256(addr.encode("utf-8")).hex()
    result = "0x"
    for i, c in enumerate(addr):
        if c in "abcdef":
            result += c.upper() if int(addr_hash[i], 16) >= 8 else c
        else:
            result += c
    return result
