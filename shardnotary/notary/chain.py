"""
Main Chain View

The sharding manager reads two things from the host chain: the number of
the block currently being processed and the hashes of recent blocks.
Both follow EVM semantics: `block_number` is the block under
construction, and `get_block_hash` answers only for the 256 most recent
sealed blocks, returning the zero hash otherwise.
"""

from abc import ABC, abstractmethod
from typing import List

from ..constants import BLOCKHASH_WINDOW
from ..crypto.hashing import keccak256, ZERO_HASH32
from ..logger import get_logger

logger = get_logger(__name__)


class MainChain(ABC):
    """Read-only view of the host chain."""

    @property
    @abstractmethod
    def block_number(self) -> int:
        """Number of the block currently being processed."""

    @abstractmethod
    def get_block_hash(self, number: int) -> bytes:
        """Hash of a sealed block, zero hash when out of reach."""

    def current_period(self, period_length: int) -> int:
        return self.block_number // period_length


class LocalMainChain(MainChain):
    """
    In-memory host chain with deterministic block hashes.

    Block k's hash is keccak256(parent_hash || k), the genesis parent being
    keccak256(seed). Used for simulation and tests.
    """

    def __init__(self, seed: bytes = b'shardnotary-genesis'):
        self._genesis_parent = keccak256(seed)
        self._hashes: List[bytes] = []

    @property
    def block_number(self) -> int:
        return len(self._hashes)

    def get_block_hash(self, number: int) -> bytes:
        if number < 0 or number >= self.block_number:
            return ZERO_HASH32
        if number < self.block_number - BLOCKHASH_WINDOW:
            return ZERO_HASH32
        return self._hashes[number]

    def mine(self, count: int = 1) -> int:
        """
        Seal `count` blocks.

        Returns:
            The new pending block number
        """
        if count < 0:
            raise ValueError("count must not be negative")
        for _ in range(count):
            parent = self._hashes[-1] if self._hashes else self._genesis_parent
            number = len(self._hashes)
            self._hashes.append(keccak256(parent + number.to_bytes(32, 'big')))
        return self.block_number

    def mine_to(self, block_number: int) -> int:
        """Seal blocks until `block_number` is the pending block."""
        if block_number < self.block_number:
            raise ValueError(
                f"Chain already at block {self.block_number}, cannot rewind to {block_number}"
            )
        return self.mine(block_number - self.block_number)

    def mine_to_period(self, period: int, period_length: int) -> int:
        """Seal blocks until the pending block is the first of `period`."""
        return self.mine_to(period * period_length)
