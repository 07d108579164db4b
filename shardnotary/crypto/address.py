"""
Shard Notary Address Module

Notaries, coinbases and receipt parties are Ethereum-style 20-byte
accounts. Internally every principal is held as canonical bytes;
checksum strings are only produced for display and serialization.
"""

from typing import Optional, Union

from eth_utils import (
    is_address,
    is_canonical_address,
    to_canonical_address,
    to_checksum_address,
)

ZERO_ADDRESS = b'\x00' * 20

AddressLike = Union[bytes, str]


def normalize_address(address: AddressLike) -> bytes:
    """
    Convert an address in any accepted form to canonical 20-byte form.

    Args:
        address: Canonical bytes, or a hex string (checksummed or not)

    Returns:
        20-byte canonical address

    Raises:
        ValueError: If the address is malformed
    """
    if isinstance(address, (bytes, bytearray)):
        if is_canonical_address(bytes(address)):
            return bytes(address)
        raise ValueError(f"Expected 20-byte canonical address, got {len(address)} bytes")
    if isinstance(address, str) and is_address(address):
        return to_canonical_address(address)
    raise ValueError(f"Invalid address: {address!r}")


def display_address(address: Optional[bytes]) -> Optional[str]:
    """Checksum form of a canonical address, None passes through."""
    if address is None:
        return None
    return to_checksum_address(address)
