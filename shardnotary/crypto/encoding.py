"""
Shard Notary Word Encoding

Fixed-width 32-byte word encoding shared by header digests, selection
seeds and the packed header record.

Packed header record (one 256-bit word, big-endian):

    bit 255                        bit 48 bit 47          bit 0
    +------------------------------------+-----------------+
    |  parent header hash, low 208 bits  |  score mod 2^48 |
    +------------------------------------+-----------------+

Header keys are the low 208 bits of the keccak256 header digest, carried
as a 32-byte value whose six most significant bytes are zero.
"""

from typing import Tuple, Union

from eth_utils import big_endian_to_int, decode_hex

from ..constants import HASH_BITS, HEADER_KEY_BITS, SCORE_BITS

WORD_SIZE = 32

UINT256_MODULUS = 2 ** HASH_BITS
INT128_MIN = -(2 ** 127)
INT128_MAX = 2 ** 127 - 1

HEADER_KEY_MODULUS = 2 ** HEADER_KEY_BITS
SCORE_MODULUS = 2 ** SCORE_BITS


def int_to_word(value: int) -> bytes:
    """
    Encode a signed 128-bit integer as a 32-byte two's complement word.

    Raises:
        TypeError: If value is not an int
        ValueError: If value does not fit in int128
    """
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"Expected int, got {type(value).__name__}")
    if not INT128_MIN <= value <= INT128_MAX:
        raise ValueError(f"Value out of int128 range: {value}")
    return (value % UINT256_MODULUS).to_bytes(WORD_SIZE, 'big')


def uint_to_word(value: int) -> bytes:
    """Encode an unsigned integer below 2**256 as a 32-byte word."""
    if not 0 <= value < UINT256_MODULUS:
        raise ValueError(f"Value out of uint256 range: {value}")
    return value.to_bytes(WORD_SIZE, 'big')


def word_to_uint(word: bytes) -> int:
    return big_endian_to_int(word)


def to_hash32(value: Union[bytes, str]) -> bytes:
    """
    Normalize a 32-byte hash given as bytes or 0x-prefixed hex.

    Raises:
        ValueError: If the value is not exactly 32 bytes
    """
    if isinstance(value, str):
        value = decode_hex(value)
    if not isinstance(value, (bytes, bytearray)):
        raise TypeError(f"Expected bytes or hex string, got {type(value).__name__}")
    if len(value) != WORD_SIZE:
        raise ValueError(f"Expected 32-byte hash, got {len(value)} bytes")
    return bytes(value)


def address_to_word(address: bytes) -> bytes:
    """Left-pad a 20-byte canonical address to a 32-byte word."""
    return address.rjust(WORD_SIZE, b'\x00')


def truncate_header_hash(digest: bytes) -> bytes:
    """Keep the low 208 bits of a digest as a 32-byte header key."""
    return uint_to_word(word_to_uint(digest) % HEADER_KEY_MODULUS)


def pack_header_record(parent_hash: bytes, score: int) -> bytes:
    """
    Pack (parent hash, score) into one 256-bit word.

    The parent hash is shifted left by 48 bits; whatever overflows the
    word is dropped, so only its low 208 bits survive.
    """
    parent = word_to_uint(to_hash32(parent_hash))
    packed = (parent * SCORE_MODULUS + score % SCORE_MODULUS) % UINT256_MODULUS
    return uint_to_word(packed)


def unpack_header_record(word: bytes) -> Tuple[bytes, int]:
    """
    Split a packed header word.

    Returns:
        (parent header key as a 32-byte value, score)
    """
    value = word_to_uint(word)
    return uint_to_word(value // SCORE_MODULUS), value % SCORE_MODULUS


def unpack_score(word: bytes) -> int:
    return word_to_uint(word) % SCORE_MODULUS
