"""
Shard Notary Types and Exceptions

Core data types for the notary committee and the per-shard header chains.
"""

from dataclasses import dataclass
from typing import Optional

from eth_utils import encode_hex

from ..crypto.address import display_address, normalize_address
from ..crypto.encoding import (
    int_to_word,
    address_to_word,
    to_hash32,
)
from ..crypto.hashing import keccak256
from ..exceptions import ShardNotaryException, InvariantViolation


# =============================================================================
# MEMBERSHIP ERRORS
# =============================================================================

class NotaryError(ShardNotaryException):
    """Base exception for notary membership operations."""
    pass


class AlreadyRegisteredError(NotaryError):
    """Raised when a record already exists for the principal."""
    def __init__(self, address: bytes):
        self.address = address
        super().__init__(f"Notary {display_address(address)} is already registered")


class InsufficientDepositError(NotaryError):
    """Raised when the registration deposit is below the minimum."""
    def __init__(self, required: int, actual: int):
        self.required = required
        self.actual = actual
        super().__init__(
            f"Insufficient deposit: {actual} wei (required: {required} wei)"
        )


class NotRegisteredError(NotaryError):
    """Raised when no record exists for the principal."""
    def __init__(self, address: bytes, message: str = None):
        self.address = address
        super().__init__(message or f"Notary {display_address(address)} is not registered")


class AlreadyDeregisteredError(NotRegisteredError):
    """
    Raised when deregistering a notary whose slot was already freed.

    Subclasses NotRegisteredError since the notary has no live slot; catch
    this class first (or read `deregistered_period`) to tell a locked-up
    notary from an unknown one.
    """
    def __init__(self, address: bytes, deregistered_period: int):
        self.deregistered_period = deregistered_period
        super().__init__(
            address,
            f"Notary {display_address(address)} already deregistered "
            f"at period {deregistered_period}",
        )


class DeregistrationTooEarlyError(NotaryError):
    """Raised when deregistering in period 0, which reads as 'still active'."""
    def __init__(self, address: bytes):
        self.address = address
        super().__init__(
            f"Notary {display_address(address)} cannot deregister before period 1"
        )


class NotDeregisteredError(NotaryError):
    """Raised when releasing a notary that never deregistered."""
    def __init__(self, address: bytes):
        self.address = address
        super().__init__(f"Notary {display_address(address)} has not deregistered")


class LockupNotElapsedError(NotaryError):
    """Raised when releasing before the lockup has passed."""
    def __init__(self, address: bytes, current_period: int, release_period: int):
        self.address = address
        self.current_period = current_period
        self.release_period = release_period
        super().__init__(
            f"Deposit of {display_address(address)} locked until period "
            f"{release_period} (current period {current_period})"
        )


class SlotTableCorruptedError(InvariantViolation):
    """Raised when the slot table and the registry disagree."""
    pass


# =============================================================================
# SELECTION ERRORS
# =============================================================================

class SelectionError(ShardNotaryException):
    """Base exception for proposer selection."""
    pass


class PeriodTooSoonError(SelectionError):
    """Raised when the seed block for a period is not final yet."""
    def __init__(self, period: int, reason: str):
        self.period = period
        super().__init__(f"Cannot select proposer for period {period}: {reason}")


class NoActiveNotariesError(SelectionError):
    """Raised when the committee has no active member."""
    def __init__(self):
        super().__init__("No active notaries in the pool")


# =============================================================================
# COLLATION ERRORS
# =============================================================================

class CollationError(ShardNotaryException):
    """Base exception for collation header submission."""
    pass


class InvalidShardError(CollationError):
    def __init__(self, shard_id: int, shard_count: int):
        self.shard_id = shard_id
        super().__init__(f"Shard id {shard_id} outside [0, {shard_count})")


class BootstrapPeriodError(CollationError):
    def __init__(self, block_number: int, period_length: int):
        self.block_number = block_number
        super().__init__(
            f"Headers are accepted from block {period_length} on "
            f"(current block {block_number})"
        )


class WrongPeriodError(CollationError):
    def __init__(self, expected_period: int, current_period: int):
        self.expected_period = expected_period
        self.current_period = current_period
        super().__init__(
            f"Header is for period {expected_period}, current period is {current_period}"
        )


class StaleAnchorError(CollationError):
    def __init__(self, period_start_prevhash: bytes, canonical: bytes):
        self.period_start_prevhash = period_start_prevhash
        self.canonical = canonical
        super().__init__(
            f"period_start_prevhash {encode_hex(period_start_prevhash)} does not match "
            f"main chain {encode_hex(canonical)}"
        )


class PeriodAlreadyFinalizedError(CollationError):
    def __init__(self, shard_id: int, period_head: int, expected_period: int):
        self.shard_id = shard_id
        self.period_head = period_head
        super().__init__(
            f"Shard {shard_id} already has a header for period {period_head} "
            f"(submitted period {expected_period})"
        )


class UnknownParentError(CollationError):
    """Raised when the parent header is unknown or has a zero score."""
    def __init__(self, shard_id: int, parent_hash: bytes):
        self.shard_id = shard_id
        self.parent_hash = parent_hash
        super().__init__(
            f"Unknown or zero-score parent {encode_hex(parent_hash)} on shard {shard_id}"
        )


class NoEligibleProposerError(CollationError):
    def __init__(self, shard_id: int, period: int):
        self.shard_id = shard_id
        self.period = period
        super().__init__(f"No eligible proposer for shard {shard_id} in period {period}")


class NotAuthorizedProposerError(CollationError):
    def __init__(self, sender: bytes, proposer: bytes):
        self.sender = sender
        self.proposer = proposer
        super().__init__(
            f"{display_address(sender)} is not the eligible proposer "
            f"({display_address(proposer)})"
        )


class ScoreMismatchError(CollationError):
    def __init__(self, declared: int, computed: int):
        self.declared = declared
        self.computed = computed
        super().__init__(f"Declared collation number {declared}, expected {computed}")


# =============================================================================
# RECEIPT ERRORS
# =============================================================================

class ReceiptError(ShardNotaryException):
    """Base exception for cross-shard receipts."""
    pass


class NotReceiptOwnerError(ReceiptError):
    def __init__(self, receipt_id: int, sender: bytes):
        self.receipt_id = receipt_id
        self.sender = sender
        super().__init__(
            f"{display_address(sender)} does not own receipt {receipt_id}"
        )


class ReceiptDataTooLargeError(ReceiptError):
    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"Receipt data is {size} bytes (limit {limit})")


# =============================================================================
# DATA TYPES
# =============================================================================

@dataclass
class NotaryRecord:
    """
    A notary's entry in the registry.

    Attributes:
        address: Canonical 20-byte principal
        deposit: Locked deposit in wei
        pool_index: Slot held (or last held) in the notary pool
        deregistered: 0 while active, else the period of deregistration
    """
    address: bytes
    deposit: int
    pool_index: int
    deregistered: int = 0

    @property
    def is_active(self) -> bool:
        return self.deregistered == 0

    def to_dict(self) -> dict:
        return {
            'address': display_address(self.address),
            'deposit': str(self.deposit),
            'pool_index': self.pool_index,
            'deregistered': self.deregistered,
        }


@dataclass(frozen=True)
class CollationHeader:
    """
    A collation header as submitted to the header chain.

    Hashes are 32-byte values, addresses canonical 20-byte values. The
    header itself is never stored, only its key and packed record.
    """
    shard_id: int
    expected_period_number: int
    period_start_prevhash: bytes
    parent_hash: bytes
    transaction_root: bytes
    coinbase: bytes
    state_root: bytes
    receipt_root: bytes
    number: int

    def __post_init__(self):
        # Normalize once so hashing never sees hex strings
        for name in ('period_start_prevhash', 'parent_hash', 'transaction_root',
                     'state_root', 'receipt_root'):
            object.__setattr__(self, name, to_hash32(getattr(self, name)))
        object.__setattr__(self, 'coinbase', normalize_address(self.coinbase))

    def encode(self) -> bytes:
        """Nine 32-byte words in canonical field order."""
        return b''.join((
            int_to_word(self.shard_id),
            int_to_word(self.expected_period_number),
            self.period_start_prevhash,
            self.parent_hash,
            self.transaction_root,
            address_to_word(self.coinbase),
            self.state_root,
            self.receipt_root,
            int_to_word(self.number),
        ))

    @property
    def digest(self) -> bytes:
        """Full keccak256 digest of the encoded header."""
        return keccak256(self.encode())

    def to_dict(self) -> dict:
        return {
            'shard_id': self.shard_id,
            'expected_period_number': self.expected_period_number,
            'period_start_prevhash': encode_hex(self.period_start_prevhash),
            'parent_hash': encode_hex(self.parent_hash),
            'transaction_root': encode_hex(self.transaction_root),
            'coinbase': display_address(self.coinbase),
            'state_root': encode_hex(self.state_root),
            'receipt_root': encode_hex(self.receipt_root),
            'number': self.number,
        }


@dataclass
class ShardChainState:
    """
    Per-shard header chain pointers.

    Attributes:
        period_head: Last period with an accepted header (strictly increasing)
        head_hash: Key of the highest-scored header, zero hash before the first
    """
    period_head: int = 0
    head_hash: bytes = b'\x00' * 32


@dataclass(frozen=True)
class AddHeaderResult:
    """Outcome of an accepted header."""
    header_hash: bytes
    score: int
    is_new_head: bool
