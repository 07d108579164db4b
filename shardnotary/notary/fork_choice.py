"""
Shard Head Fork Choice

Each shard's head is the highest-scored header seen so far. A new header
replaces the head only with a strictly greater score, so among equal
scores the first one accepted stays the head. This is O(1) per header;
there is no subtree weighing and no reorganization bookkeeping.
"""

from typing import Callable, Dict

from eth_utils import encode_hex

from ..crypto.hashing import ZERO_HASH32
from ..logger import get_logger

logger = get_logger(__name__)


class ForkChoiceTracker:
    """
    Per-shard head pointers.

    Args:
        score_of: Callable (shard_id, header_hash) -> score, 0 for unknown
    """

    def __init__(self, score_of: Callable[[int, bytes], int]):
        self._score_of = score_of
        self._heads: Dict[int, bytes] = {}

    def head(self, shard_id: int) -> bytes:
        """Head key of a shard, zero hash before its first header."""
        return self._heads.get(shard_id, ZERO_HASH32)

    def head_score(self, shard_id: int) -> int:
        return self._score_of(shard_id, self.head(shard_id))

    def is_new_head(self, shard_id: int, score: int) -> bool:
        return score > self.head_score(shard_id)

    def consider(self, shard_id: int, header_hash: bytes, score: int) -> bool:
        """
        Offer a freshly stored header as head candidate.

        Returns:
            True if it became the head
        """
        if not self.is_new_head(shard_id, score):
            return False

        self._heads[shard_id] = header_hash
        logger.debug(
            f"[shard {shard_id}] new head {encode_hex(header_hash)} at score {score}"
        )
        return True

    def reset(self, shard_id: int, header_hash: bytes) -> None:
        """Point a shard back at an earlier head (zero hash clears it)."""
        if header_hash == ZERO_HASH32:
            self._heads.pop(shard_id, None)
        else:
            self._heads[shard_id] = header_hash

    def heads(self) -> Dict[int, bytes]:
        return dict(self._heads)

    def restore(self, heads: Dict[int, bytes]) -> None:
        self._heads = dict(heads)
