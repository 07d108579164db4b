"""
Shard Notary Hashing Module

Provides the hash functions used throughout the notary system:
- keccak256: header digests, proposer selection seeds, block hashes
"""

from typing import Union

from eth_hash.auto import keccak as _keccak
from eth_utils import decode_hex, encode_hex

ZERO_HASH32 = b'\x00' * 32


def keccak256(data: Union[bytes, str]) -> bytes:
    """
    Compute Keccak-256 hash (Ethereum standard).

    Args:
        data: Input bytes or 0x-prefixed hex string

    Returns:
        32-byte hash
    """
    if isinstance(data, str):
        data = decode_hex(data)
    return _keccak(data)


def keccak256_hex(data: Union[bytes, str]) -> str:
    """
    Compute Keccak-256 hash and return as hex string.

    Returns:
        Hex string with 0x prefix
    """
    return encode_hex(keccak256(data))
