"""
Shard Notary Crypto Module

Primitives shared by the notary system:
- Hash functions (keccak256)
- Fixed-width word encoding and the packed header record
- Address normalization
"""

from .hashing import keccak256, keccak256_hex, ZERO_HASH32
from .encoding import (
    int_to_word,
    uint_to_word,
    word_to_uint,
    to_hash32,
    address_to_word,
    truncate_header_hash,
    pack_header_record,
    unpack_header_record,
    unpack_score,
)
from .address import normalize_address, display_address, ZERO_ADDRESS

__all__ = [
    # Hashing
    "keccak256",
    "keccak256_hex",
    "ZERO_HASH32",
    # Encoding
    "int_to_word",
    "uint_to_word",
    "word_to_uint",
    "to_hash32",
    "address_to_word",
    "truncate_header_hash",
    "pack_header_record",
    "unpack_header_record",
    "unpack_score",
    # Address
    "normalize_address",
    "display_address",
    "ZERO_ADDRESS",
]
