"""
Shard Notary Module

Notary committee and collation header registry for a sharded chain.

Components:
- ShardingManager: Single owner of all state, entry point for every operation
- NotaryRegistry: Membership, deposits and the deregistration lockup
- SlotTable: Notary pool with free-slot recycling
- ProposerSelector: Deterministic per-(shard, period) proposer lookup
- CollationHeaderChain: Per-shard header validation and storage
- ForkChoiceTracker: Highest-score head per shard
- ReceiptLog: Cross-shard receipts
- EventLog: Typed log of committed state changes
- NotaryStateDB: aiosqlite persistence

Usage:
    from shardnotary.notary import ShardingManager, NotaryConfig

    config = NotaryConfig.from_file("config.toml")
    manager = ShardingManager(config, db_path="notary.db")
    await manager.open_db()
    await manager.register_notary(address, config.notary_deposit)
"""

from .config import NotaryConfig
from .chain import MainChain, LocalMainChain
from .slots import SlotTable
from .registry import NotaryRegistry
from .selection import ProposerSelector, compute_proposer_index
from .fork_choice import ForkChoiceTracker
from .headers import CollationHeaderChain
from .receipts import Receipt, ReceiptLog
from .events import (
    EventType,
    EventLog,
    RegisterNotary,
    DeregisterNotary,
    ReleaseNotary,
    CollationAdded,
    TxToShard,
)
from .storage import NotaryStateDB, StoredState
from .manager import ShardingManager
from .types import (
    NotaryRecord,
    CollationHeader,
    ShardChainState,
    AddHeaderResult,
    NotaryError,
    AlreadyRegisteredError,
    InsufficientDepositError,
    NotRegisteredError,
    AlreadyDeregisteredError,
    DeregistrationTooEarlyError,
    NotDeregisteredError,
    LockupNotElapsedError,
    SlotTableCorruptedError,
    SelectionError,
    PeriodTooSoonError,
    NoActiveNotariesError,
    CollationError,
    InvalidShardError,
    BootstrapPeriodError,
    WrongPeriodError,
    StaleAnchorError,
    PeriodAlreadyFinalizedError,
    UnknownParentError,
    NoEligibleProposerError,
    NotAuthorizedProposerError,
    ScoreMismatchError,
    ReceiptError,
    NotReceiptOwnerError,
    ReceiptDataTooLargeError,
)

__all__ = [
    # Manager
    "ShardingManager",
    "NotaryConfig",
    # Components
    "MainChain",
    "LocalMainChain",
    "SlotTable",
    "NotaryRegistry",
    "ProposerSelector",
    "compute_proposer_index",
    "ForkChoiceTracker",
    "CollationHeaderChain",
    "Receipt",
    "ReceiptLog",
    "NotaryStateDB",
    "StoredState",
    # Events
    "EventType",
    "EventLog",
    "RegisterNotary",
    "DeregisterNotary",
    "ReleaseNotary",
    "CollationAdded",
    "TxToShard",
    # Types
    "NotaryRecord",
    "CollationHeader",
    "ShardChainState",
    "AddHeaderResult",
    # Exceptions
    "NotaryError",
    "AlreadyRegisteredError",
    "InsufficientDepositError",
    "NotRegisteredError",
    "AlreadyDeregisteredError",
    "DeregistrationTooEarlyError",
    "NotDeregisteredError",
    "LockupNotElapsedError",
    "SlotTableCorruptedError",
    "SelectionError",
    "PeriodTooSoonError",
    "NoActiveNotariesError",
    "CollationError",
    "InvalidShardError",
    "BootstrapPeriodError",
    "WrongPeriodError",
    "StaleAnchorError",
    "PeriodAlreadyFinalizedError",
    "UnknownParentError",
    "NoEligibleProposerError",
    "NotAuthorizedProposerError",
    "ScoreMismatchError",
    "ReceiptError",
    "NotReceiptOwnerError",
    "ReceiptDataTooLargeError",
]
