"""
Accounts used to send transactions to the node under test.

An account is either backed by a local secp256k1 key (transactions are
signed here and submitted with eth_sendRawTransaction) or managed by the
node itself (submitted unsigned with eth_sendTransaction).

Dependencies: eth-account (no full web3.py needed)
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from typing import Any, Optional

from eth_account import Account as _EthAccount
from eth_account.signers.local import LocalAccount

from .utils import bytes_to_hex, to_checksum_address


@dataclass(frozen=True)
class Account:
    """
    An address plus signing capability.

    Attributes:
        address: 0x-prefixed checksummed address
        signer: Local key for signing, or None for a node-managed account
    """

    address: str
    signer: Optional[LocalAccount] = field(default=None, repr=False, compare=False)

    @property
    def is_local(self) -> bool:
        return self.signer is not None

    def sign_transaction(self, tx: dict[str, Any]) -> str:
        """
        Sign a fully populated transaction dict.

        Args:
            tx: Transaction with nonce, gas, gasPrice, chainId, value, data
                and (except for creations) a checksummed ``to``

        Returns:
            0x-prefixed hex encoded signed transaction
        """
        if self.signer is None:
            raise ValueError(f"Account {self.address} has no local key; the node must sign")
        signed = self.signer.sign_transaction(tx)
        return bytes_to_hex(bytes(signed.raw_transaction))


def from_key(private_key: str) -> Account:
    """
    Build an Account from a private key.

    Args:
        private_key: Hex private key, with or without 0x prefix

    Returns:
        Account holding a local signer
    """
    if not private_key.startswith("0x"):
        private_key = "0x" + private_key
    signer = _EthAccount.from_key(private_key)
    return Account(address=signer.address, signer=signer)


def node_managed(address: str) -> Account:
    """Wrap an address whose key is held (and unlocked) by the node."""
    return Account(address=to_checksum_address(address))


def generate() -> tuple[str, Account]:
    """
    Generate a new ECDSA/secp256k1 keypair.

    Returns:
        Tuple of (private_key_hex, account)
    """
    private_key = "0x" + secrets.token_hex(32)
    return private_key, from_key(private_key)
