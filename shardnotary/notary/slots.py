"""
Notary Pool Slot Table

A growable array of notary slots plus a LIFO stack of vacated indices.
Allocation always prefers a recycled index over growing the table, so
the index space stays as small as the peak committee size.
"""

from typing import Iterator, List, Optional, Tuple

from ..logger import get_logger
from .types import SlotTableCorruptedError

logger = get_logger(__name__)


class SlotTable:
    """
    Dense notary pool with free-list recycling.

    Invariants:
    - active_count equals the number of occupied slots
    - active_count + len(free_stack) == len(slots)
    - every index on the free stack points at an empty slot
    """

    def __init__(self):
        self._slots: List[Optional[bytes]] = []
        self._free_stack: List[int] = []
        self._active_count = 0

    @property
    def active_count(self) -> int:
        """Number of occupied slots."""
        return self._active_count

    @property
    def width(self) -> int:
        """Allocation high-water mark: occupied plus vacated slots."""
        return len(self._slots)

    @property
    def free_depth(self) -> int:
        return len(self._free_stack)

    def occupant(self, index: int) -> Optional[bytes]:
        """Address in a slot, None if the slot is empty or was never allocated."""
        if 0 <= index < len(self._slots):
            return self._slots[index]
        return None

    def free_entry(self, position: int) -> Optional[int]:
        """Index stored at a free-stack position (0 is the bottom)."""
        if 0 <= position < len(self._free_stack):
            return self._free_stack[position]
        return None

    def allocate(self, address: bytes) -> int:
        """
        Place an address in the pool.

        Returns:
            Slot index assigned
        """
        if self._free_stack:
            index = self._free_stack.pop()
            if self._slots[index] is not None:
                raise SlotTableCorruptedError(
                    f"Free stack returned occupied slot {index}"
                )
            self._slots[index] = address
        else:
            index = len(self._slots)
            self._slots.append(address)

        self._active_count += 1
        return index

    def release(self, index: int) -> None:
        """Empty a slot and push its index for reuse."""
        if not 0 <= index < len(self._slots) or self._slots[index] is None:
            raise SlotTableCorruptedError(f"Slot {index} is not occupied")

        self._slots[index] = None
        self._free_stack.append(index)
        self._active_count -= 1

    def occupied(self) -> Iterator[Tuple[int, bytes]]:
        """Yield (index, address) for every occupied slot."""
        for index, address in enumerate(self._slots):
            if address is not None:
                yield index, address

    def snapshot(self) -> Tuple[List[Optional[bytes]], List[int]]:
        """Copies of (slots, free_stack) for persistence."""
        return list(self._slots), list(self._free_stack)

    def restore(self, slots: List[Optional[bytes]], free_stack: List[int]) -> None:
        """Replace contents with persisted state and re-check invariants."""
        self._slots = list(slots)
        self._free_stack = list(free_stack)
        self._active_count = sum(1 for s in self._slots if s is not None)
        self.check_invariants()

    def check_invariants(self) -> None:
        """
        Verify the table's internal accounting.

        Raises:
            SlotTableCorruptedError: If any invariant is broken
        """
        occupied = sum(1 for s in self._slots if s is not None)
        if occupied != self._active_count:
            raise SlotTableCorruptedError(
                f"active_count {self._active_count} != occupied slots {occupied}"
            )
        if self._active_count + len(self._free_stack) != len(self._slots):
            raise SlotTableCorruptedError(
                f"active_count {self._active_count} + free {len(self._free_stack)} "
                f"!= width {len(self._slots)}"
            )
        if len(set(self._free_stack)) != len(self._free_stack):
            raise SlotTableCorruptedError("Duplicate index on free stack")
        for index in self._free_stack:
            if not 0 <= index < len(self._slots) or self._slots[index] is not None:
                raise SlotTableCorruptedError(f"Free stack index {index} is not an empty slot")
