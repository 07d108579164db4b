"""
Notary Proposer Selection

Picks the notary allowed to submit a header for a (shard, period) pair.

Selection algorithm:
1. Seed = hash of the main chain block at (period - lookahead) * period_length
2. index = keccak256(seed || shard_id as 32-byte word) mod pool width
3. Proposer = occupant of that pool slot (may be empty)

The pool width counts vacated slots too, so an index can land on a gap
and the period then has no proposer. Selection is not stake-weighted and
the seed is only as unpredictable as a block hash; verifiers must be able
to recompute it, so no other randomness source may be mixed in.
"""

from typing import Optional

from eth_utils import encode_hex

from ..crypto.encoding import int_to_word, word_to_uint
from ..crypto.hashing import keccak256
from ..logger import get_logger
from .chain import MainChain
from .config import NotaryConfig
from .slots import SlotTable
from .types import PeriodTooSoonError, NoActiveNotariesError

logger = get_logger(__name__)


def compute_proposer_index(seed_hash: bytes, shard_id: int, pool_width: int) -> int:
    """
    Pure selection step.

    Args:
        seed_hash: 32-byte main chain block hash
        shard_id: Shard being proposed for
        pool_width: Number of pool slots, occupied or not

    Returns:
        Slot index in [0, pool_width)
    """
    if pool_width <= 0:
        raise ValueError("pool_width must be positive")
    digest = keccak256(seed_hash + int_to_word(shard_id))
    return word_to_uint(digest) % pool_width


class ProposerSelector:
    """
    Proposer lookup over the live notary pool.

    Reads the main chain and the slot table, never mutates either.
    """

    def __init__(self, config: NotaryConfig, chain: MainChain, slots: SlotTable):
        self.config = config
        self.chain = chain
        self.slots = slots

    def seed_block_number(self, period: int) -> int:
        return (period - self.config.lookahead_length) * self.config.period_length

    def get_eligible_proposer(self, shard_id: int, period: int) -> Optional[bytes]:
        """
        Select the proposer for a shard and period.

        Returns:
            Canonical address of the proposer, None if the chosen slot is empty

        Raises:
            PeriodTooSoonError: Seed block does not exist yet
            NoActiveNotariesError: Pool is empty
        """
        if period < self.config.lookahead_length:
            raise PeriodTooSoonError(
                period,
                f"lookahead is {self.config.lookahead_length} periods",
            )
        seed_block = self.seed_block_number(period)
        if seed_block >= self.chain.block_number:
            raise PeriodTooSoonError(
                period,
                f"seed block {seed_block} not sealed (current block {self.chain.block_number})",
            )
        if self.slots.active_count == 0:
            raise NoActiveNotariesError()

        seed_hash = self.chain.get_block_hash(seed_block)
        index = compute_proposer_index(seed_hash, shard_id, self.slots.width)
        proposer = self.slots.occupant(index)

        logger.debug(
            f"[shard {shard_id}] period {period}: seed {encode_hex(seed_hash)[:18]}... "
            f"-> slot {index} ({'empty' if proposer is None else encode_hex(proposer)})"
        )
        return proposer
