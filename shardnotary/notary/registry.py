"""
Notary Registry

Owns notary identities, deposits and deregistration periods, and keeps
the slot table in step with them.

Lifecycle of a record:
    register   -> record created, slot allocated
    deregister -> slot freed immediately, record kept with its deposit
    release    -> after the lockup, record deleted and deposit returned

The slot is freed at deregistration, not at release: a new notary can take
the index while the old deposit is still locked.
"""

from typing import Dict, Iterator, List, Optional, Tuple

from ..crypto.address import display_address
from ..logger import get_logger
from .slots import SlotTable
from .types import (
    NotaryRecord,
    AlreadyRegisteredError,
    InsufficientDepositError,
    NotRegisteredError,
    AlreadyDeregisteredError,
    DeregistrationTooEarlyError,
    NotDeregisteredError,
    LockupNotElapsedError,
    SlotTableCorruptedError,
)

logger = get_logger(__name__)


class NotaryRegistry:
    """
    Membership registry backed by a SlotTable.

    Every operation validates all preconditions before writing anything,
    so a rejected call leaves no trace.
    """

    def __init__(self, min_deposit: int, lockup_length: int):
        self.min_deposit = min_deposit
        self.lockup_length = lockup_length
        self.slots = SlotTable()
        self._records: Dict[bytes, NotaryRecord] = {}

    # =========================================================================
    # QUERIES
    # =========================================================================

    def does_notary_exist(self, address: bytes) -> bool:
        return address in self._records

    def get_notary_info(self, address: bytes) -> Tuple[int, int]:
        """
        Return (deregistered, pool_index) for a notary.

        Unknown notaries read as (0, 0), matching an empty storage slot.
        """
        record = self._records.get(address)
        if record is None:
            return 0, 0
        return record.deregistered, record.pool_index

    def get_record(self, address: bytes) -> Optional[NotaryRecord]:
        """Copy of a notary's record, None if unknown."""
        record = self._records.get(address)
        if record is None:
            return None
        return NotaryRecord(
            address=record.address,
            deposit=record.deposit,
            pool_index=record.pool_index,
            deregistered=record.deregistered,
        )

    def records(self) -> Iterator[NotaryRecord]:
        for address in list(self._records):
            yield self.get_record(address)

    @property
    def total_deposits(self) -> int:
        """Wei held for active and locked-up notaries."""
        return sum(r.deposit for r in self._records.values())

    def release_period(self, address: bytes) -> Optional[int]:
        """First period in which a deregistered notary may release."""
        record = self._records.get(address)
        if record is None or record.is_active:
            return None
        return record.deregistered + self.lockup_length + 1

    # =========================================================================
    # MEMBERSHIP
    # =========================================================================

    def register(self, address: bytes, deposit: int) -> int:
        """
        Register a notary.

        Args:
            address: Canonical principal
            deposit: Deposit in wei

        Returns:
            Slot index assigned

        Raises:
            AlreadyRegisteredError: A record exists, even if deregistered
            InsufficientDepositError: deposit below the minimum
        """
        if address in self._records:
            raise AlreadyRegisteredError(address)
        if deposit < self.min_deposit:
            raise InsufficientDepositError(self.min_deposit, deposit)

        pool_index = self.slots.allocate(address)
        self._records[address] = NotaryRecord(
            address=address,
            deposit=deposit,
            pool_index=pool_index,
        )

        logger.info(
            f"Notary {display_address(address)} registered in slot {pool_index} "
            f"(pool size {self.slots.active_count})"
        )
        return pool_index

    def deregister(self, address: bytes, current_period: int) -> int:
        """
        Leave the committee; the deposit stays locked.

        Returns:
            Slot index vacated

        Raises:
            NotRegisteredError: No record
            AlreadyDeregisteredError: Slot already freed
            DeregistrationTooEarlyError: current_period is 0
        """
        record = self._records.get(address)
        if record is None:
            raise NotRegisteredError(address)
        if not record.is_active:
            raise AlreadyDeregisteredError(address, record.deregistered)
        if current_period < 1:
            raise DeregistrationTooEarlyError(address)

        if self.slots.occupant(record.pool_index) != address:
            logger.critical(
                f"Slot {record.pool_index} does not hold {display_address(address)}"
            )
            raise SlotTableCorruptedError(
                f"Record of {display_address(address)} points at slot "
                f"{record.pool_index} which it does not occupy"
            )

        self.slots.release(record.pool_index)
        record.deregistered = current_period

        logger.info(
            f"Notary {display_address(address)} deregistered from slot "
            f"{record.pool_index} at period {current_period}"
        )
        return record.pool_index

    def release(self, address: bytes, current_period: int) -> NotaryRecord:
        """
        Delete a deregistered notary after its lockup and hand back the deposit.

        Returns:
            The deleted record (its deposit is the amount to return)

        Raises:
            NotRegisteredError: No record
            NotDeregisteredError: Still active
            LockupNotElapsedError: current_period <= deregistered + lockup
        """
        record = self._records.get(address)
        if record is None:
            raise NotRegisteredError(address)
        if record.is_active:
            raise NotDeregisteredError(address)
        if current_period <= record.deregistered + self.lockup_length:
            raise LockupNotElapsedError(
                address,
                current_period,
                record.deregistered + self.lockup_length + 1,
            )

        del self._records[address]

        logger.info(
            f"Notary {display_address(address)} released at period {current_period}, "
            f"returning {record.deposit} wei"
        )
        return record

    # =========================================================================
    # PERSISTENCE / INTEGRITY
    # =========================================================================

    def snapshot(self) -> Tuple[List[NotaryRecord], List[Optional[bytes]], List[int]]:
        """Copies of (records, slots, free_stack), accepted by `restore`."""
        slots, free_stack = self.slots.snapshot()
        return list(self.records()), slots, free_stack

    def restore(self, records, slots, free_stack) -> None:
        """Load persisted records and slot table, then verify them together."""
        self._records = {r.address: r for r in records}
        self.slots.restore(slots, free_stack)
        self.check_invariants()

    def check_invariants(self) -> None:
        """
        Verify that slots and records agree one-to-one.

        Raises:
            SlotTableCorruptedError: If they do not
        """
        self.slots.check_invariants()
        for index, address in self.slots.occupied():
            record = self._records.get(address)
            if record is None or not record.is_active or record.pool_index != index:
                raise SlotTableCorruptedError(
                    f"Slot {index} holds {display_address(address)} without a matching active record"
                )
        active = sum(1 for r in self._records.values() if r.is_active)
        if active != self.slots.active_count:
            raise SlotTableCorruptedError(
                f"{active} active records but {self.slots.active_count} occupied slots"
            )
