"""
Sharding Manager Events

Typed records of committed state changes, kept in memory for the life
of a manager. The log is not persisted: after a restart it starts empty
while notary and header state is restored from the database.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Type, Union

from eth_utils import encode_hex

from ..crypto.address import display_address
from ..logger import get_logger
from .types import CollationHeader

logger = get_logger(__name__)


class EventType(Enum):
    """Event names as emitted by the sharding manager."""
    REGISTER_NOTARY = "RegisterNotary"
    DEREGISTER_NOTARY = "DeregisterNotary"
    RELEASE_NOTARY = "ReleaseNotary"
    COLLATION_ADDED = "CollationAdded"
    TX_TO_SHARD = "TxToShard"


# =============================================================================
# EVENT TYPES
# =============================================================================

@dataclass(frozen=True)
class RegisterNotary:
    block_number: int
    index_in_notary_pool: int
    notary: bytes

    event_type = EventType.REGISTER_NOTARY

    def to_dict(self) -> Dict[str, Any]:
        return {
            'event': self.event_type.value,
            'block_number': self.block_number,
            'index_in_notary_pool': self.index_in_notary_pool,
            'notary': display_address(self.notary),
        }


@dataclass(frozen=True)
class DeregisterNotary:
    block_number: int
    index_in_notary_pool: int
    notary: bytes
    deregistered_period: int

    event_type = EventType.DEREGISTER_NOTARY

    def to_dict(self) -> Dict[str, Any]:
        return {
            'event': self.event_type.value,
            'block_number': self.block_number,
            'index_in_notary_pool': self.index_in_notary_pool,
            'notary': display_address(self.notary),
            'deregistered_period': self.deregistered_period,
        }


@dataclass(frozen=True)
class ReleaseNotary:
    block_number: int
    index_in_notary_pool: int
    notary: bytes
    deposit: int

    event_type = EventType.RELEASE_NOTARY

    def to_dict(self) -> Dict[str, Any]:
        return {
            'event': self.event_type.value,
            'block_number': self.block_number,
            'index_in_notary_pool': self.index_in_notary_pool,
            'notary': display_address(self.notary),
            'deposit': str(self.deposit),
        }


@dataclass(frozen=True)
class CollationAdded:
    block_number: int
    header: CollationHeader
    header_hash: bytes
    is_new_head: bool
    score: int

    event_type = EventType.COLLATION_ADDED

    @property
    def shard_id(self) -> int:
        return self.header.shard_id

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'event': self.event_type.value,
            'block_number': self.block_number,
        }
        data.update(self.header.to_dict())
        data.update({
            'collation_number': data.pop('number'),
            'collation_coinbase': data.pop('coinbase'),
            'header_hash': encode_hex(self.header_hash),
            'is_new_head': self.is_new_head,
            'score': self.score,
        })
        return data


@dataclass(frozen=True)
class TxToShard:
    block_number: int
    receipt_id: int
    to: bytes
    shard_id: int

    event_type = EventType.TX_TO_SHARD

    def to_dict(self) -> Dict[str, Any]:
        return {
            'event': self.event_type.value,
            'block_number': self.block_number,
            'receipt_id': self.receipt_id,
            'to': display_address(self.to),
            'shard_id': self.shard_id,
        }


Event = Union[RegisterNotary, DeregisterNotary, ReleaseNotary, CollationAdded, TxToShard]


class EventLog:
    """
    In-order record of emitted events.

    Filtering mirrors a log query: by event class, by shard (for events
    that carry one) and by an inclusive block range.
    """

    def __init__(self):
        self._events: List[Event] = []

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[Event]:
        return iter(list(self._events))

    def emit(self, event: Event) -> Event:
        self._events.append(event)
        logger.debug(f"{event.event_type.value} at block {event.block_number}")
        return event

    def get_logs(
        self,
        event_class: Optional[Type] = None,
        shard_id: Optional[int] = None,
        from_block: int = 0,
        to_block: Optional[int] = None,
    ) -> List[Event]:
        """Return events matching every given filter, oldest first."""
        result = []
        for event in self._events:
            if event_class is not None and not isinstance(event, event_class):
                continue
            if shard_id is not None and getattr(event, 'shard_id', None) != shard_id:
                continue
            if event.block_number < from_block:
                continue
            if to_block is not None and event.block_number > to_block:
                continue
            result.append(event)
        return result

    def to_json(self) -> str:
        return json.dumps([e.to_dict() for e in self._events])
