"""
Collation Header Chain

Per-shard light header chain. Each accepted header is stored as one
packed 256-bit word, (parent key << 48) | score, under the low 208 bits
of its keccak256 digest. Scores count headers back to the zero-hash
genesis, and each shard accepts at most one header per period.
"""

from typing import Dict, Optional

from eth_utils import encode_hex

from ..crypto.address import display_address
from ..crypto.encoding import (
    pack_header_record,
    truncate_header_hash,
    unpack_header_record,
    unpack_score,
)
from ..crypto.hashing import ZERO_HASH32
from ..logger import get_logger
from .chain import MainChain
from .config import NotaryConfig
from .fork_choice import ForkChoiceTracker
from .selection import ProposerSelector
from .types import (
    AddHeaderResult,
    CollationHeader,
    ShardChainState,
    InvalidShardError,
    BootstrapPeriodError,
    WrongPeriodError,
    StaleAnchorError,
    PeriodAlreadyFinalizedError,
    UnknownParentError,
    NoEligibleProposerError,
    NotAuthorizedProposerError,
    ScoreMismatchError,
)

logger = get_logger(__name__)


class CollationHeaderChain:
    """
    Header store and validator for every shard.

    `add_header` runs all checks before touching storage, so a rejected
    header leaves records, period heads and shard heads untouched.
    """

    def __init__(self, config: NotaryConfig, chain: MainChain, selector: ProposerSelector):
        self.config = config
        self.chain = chain
        self.selector = selector

        # shard_id -> header key -> packed word
        self._records: Dict[int, Dict[bytes, bytes]] = {}
        self._period_heads: Dict[int, int] = {}
        self.fork_choice = ForkChoiceTracker(self.get_score)

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_record(self, shard_id: int, header_hash: bytes) -> bytes:
        """Packed word for a header, zero word if unknown."""
        return self._records.get(shard_id, {}).get(header_hash, ZERO_HASH32)

    def get_score(self, shard_id: int, header_hash: bytes) -> int:
        """Score of a header, 0 if unknown."""
        return unpack_score(self.get_record(shard_id, header_hash))

    def get_parent_hash(self, shard_id: int, header_hash: bytes) -> bytes:
        """Parent key of a header, zero hash if unknown."""
        parent_hash, _ = unpack_header_record(self.get_record(shard_id, header_hash))
        return parent_hash

    def period_head(self, shard_id: int) -> int:
        return self._period_heads.get(shard_id, 0)

    def shard_head(self, shard_id: int) -> bytes:
        return self.fork_choice.head(shard_id)

    def shard_state(self, shard_id: int) -> ShardChainState:
        return ShardChainState(
            period_head=self.period_head(shard_id),
            head_hash=self.shard_head(shard_id),
        )

    def header_count(self, shard_id: Optional[int] = None) -> int:
        if shard_id is not None:
            return len(self._records.get(shard_id, {}))
        return sum(len(r) for r in self._records.values())

    # =========================================================================
    # SUBMISSION
    # =========================================================================

    def add_header(self, sender: bytes, header: CollationHeader) -> AddHeaderResult:
        """
        Validate and store a collation header.

        Args:
            sender: Canonical address submitting the header
            header: Header fields

        Returns:
            AddHeaderResult with the header key, its score and whether it became head

        Raises:
            CollationError subclasses for every rejected precondition,
            SelectionError subclasses when no proposer can be computed
        """
        shard_id = header.shard_id
        period_length = self.config.period_length
        block_number = self.chain.block_number

        if not 0 <= shard_id < self.config.shard_count:
            raise InvalidShardError(shard_id, self.config.shard_count)
        if block_number < period_length:
            raise BootstrapPeriodError(block_number, period_length)

        current_period = block_number // period_length
        if header.expected_period_number != current_period:
            raise WrongPeriodError(header.expected_period_number, current_period)

        anchor = self.chain.get_block_hash(header.expected_period_number * period_length - 1)
        if header.period_start_prevhash != anchor:
            raise StaleAnchorError(header.period_start_prevhash, anchor)

        period_head = self.period_head(shard_id)
        if period_head >= header.expected_period_number:
            raise PeriodAlreadyFinalizedError(shard_id, period_head, header.expected_period_number)

        header_hash = truncate_header_hash(header.digest)

        parent_score = self.get_score(shard_id, header.parent_hash)
        if header.parent_hash != ZERO_HASH32 and parent_score <= 0:
            raise UnknownParentError(shard_id, header.parent_hash)

        proposer = self.selector.get_eligible_proposer(shard_id, current_period)
        if proposer is None:
            raise NoEligibleProposerError(shard_id, current_period)
        if sender != proposer:
            raise NotAuthorizedProposerError(sender, proposer)

        score = parent_score + 1
        if header.number != score:
            raise ScoreMismatchError(header.number, score)

        # All checks passed
        self._records.setdefault(shard_id, {})[header_hash] = pack_header_record(
            header.parent_hash, score
        )
        self._period_heads[shard_id] = header.expected_period_number
        is_new_head = self.fork_choice.consider(shard_id, header_hash, score)

        logger.info(
            f"[shard {shard_id}] period {header.expected_period_number}: header "
            f"{encode_hex(header_hash)} score {score} by {display_address(sender)}"
            f"{' (new head)' if is_new_head else ''}"
        )
        return AddHeaderResult(header_hash=header_hash, score=score, is_new_head=is_new_head)

    def revert(self, shard_id: int, header_hash: bytes, previous: ShardChainState) -> None:
        """
        Undo the most recent `add_header` on a shard.

        Args:
            shard_id: Shard the header was added to
            header_hash: Key returned by `add_header`
            previous: `shard_state(shard_id)` taken before the header was added
        """
        self._records.get(shard_id, {}).pop(header_hash, None)
        if previous.period_head:
            self._period_heads[shard_id] = previous.period_head
        else:
            self._period_heads.pop(shard_id, None)
        self.fork_choice.reset(shard_id, previous.head_hash)
        logger.warning(f"[shard {shard_id}] header {encode_hex(header_hash)} reverted")

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def iter_records(self):
        """Yield (shard_id, header_hash, word) for every stored header."""
        for shard_id, records in self._records.items():
            for header_hash, word in records.items():
                yield shard_id, header_hash, word

    def period_heads(self) -> Dict[int, int]:
        return dict(self._period_heads)

    def restore(self, records, period_heads: Dict[int, int], heads: Dict[int, bytes]) -> None:
        self._records = {}
        for shard_id, header_hash, word in records:
            self._records.setdefault(shard_id, {})[header_hash] = word
        self._period_heads = dict(period_heads)
        self.fork_choice.restore(heads)
