"""
Notary Slot Table and Registry Tests
"""

import random

import pytest

from shardnotary.notary import (
    SlotTable,
    NotaryRegistry,
    AlreadyRegisteredError,
    InsufficientDepositError,
    NotRegisteredError,
    AlreadyDeregisteredError,
    DeregistrationTooEarlyError,
    NotDeregisteredError,
    LockupNotElapsedError,
    SlotTableCorruptedError,
)

from conftest import ALICE, BOB, CAROL, DEPOSIT, LOCKUP


def _address(i):
    return i.to_bytes(20, 'big')


@pytest.fixture
def registry():
    return NotaryRegistry(min_deposit=DEPOSIT, lockup_length=LOCKUP)


# =============================================================================
# SLOT TABLE
# =============================================================================

class TestSlotTable:

    def test_allocate_grows(self):
        table = SlotTable()
        assert table.allocate(ALICE) == 0
        assert table.allocate(BOB) == 1
        assert table.width == 2
        assert table.active_count == 2
        assert table.free_depth == 0

    def test_release_then_reuse_lifo(self):
        table = SlotTable()
        for i in range(4):
            table.allocate(_address(i + 1))
        table.release(1)
        table.release(3)

        assert table.free_entry(0) == 1
        assert table.free_entry(1) == 3
        assert table.occupant(1) is None

        # Last vacated is reused first
        assert table.allocate(_address(10)) == 3
        assert table.allocate(_address(11)) == 1
        assert table.allocate(_address(12)) == 4

    def test_release_empty_slot_is_corruption(self):
        table = SlotTable()
        table.allocate(ALICE)
        table.release(0)
        with pytest.raises(SlotTableCorruptedError):
            table.release(0)
        with pytest.raises(SlotTableCorruptedError):
            table.release(5)

    def test_out_of_range_reads(self):
        table = SlotTable()
        assert table.occupant(0) is None
        assert table.free_entry(0) is None

    def test_invariants_under_churn(self):
        rng = random.Random(1234)
        table = SlotTable()
        members = {}
        next_id = 1

        for _ in range(500):
            if members and rng.random() < 0.45:
                address = rng.choice(sorted(members))
                width_before = table.width
                table.release(members.pop(address))
                assert table.width == width_before
            else:
                address = _address(next_id)
                next_id += 1
                expected = table.free_entry(table.free_depth - 1)
                index = table.allocate(address)
                if expected is not None:
                    assert index == expected
                members[address] = index

            table.check_invariants()
            assert table.active_count == len(members)
            assert table.active_count + table.free_depth == table.width
            for address, index in members.items():
                assert table.occupant(index) == address

    def test_restore_rejects_inconsistent_state(self):
        table = SlotTable()
        with pytest.raises(SlotTableCorruptedError):
            table.restore([ALICE, None], [])
        with pytest.raises(SlotTableCorruptedError):
            table.restore([ALICE, None], [0])

    def test_snapshot_restore(self):
        table = SlotTable()
        table.allocate(ALICE)
        table.allocate(BOB)
        table.release(0)

        other = SlotTable()
        other.restore(*table.snapshot())
        assert other.occupant(1) == BOB
        assert other.active_count == 1
        assert other.allocate(CAROL) == 0


# =============================================================================
# REGISTRY
# =============================================================================

class TestRegister:

    def test_register(self, registry):
        assert registry.register(ALICE, DEPOSIT) == 0
        assert registry.register(BOB, DEPOSIT * 2) == 1
        assert registry.does_notary_exist(ALICE)
        assert registry.get_notary_info(BOB) == (0, 1)
        assert registry.total_deposits == DEPOSIT * 3

    def test_insufficient_deposit(self, registry):
        with pytest.raises(InsufficientDepositError) as exc:
            registry.register(ALICE, DEPOSIT - 1)
        assert exc.value.required == DEPOSIT
        assert exc.value.actual == DEPOSIT - 1
        assert not registry.does_notary_exist(ALICE)
        assert registry.slots.width == 0

    def test_double_register(self, registry):
        registry.register(ALICE, DEPOSIT)
        with pytest.raises(AlreadyRegisteredError):
            registry.register(ALICE, DEPOSIT)
        assert registry.slots.active_count == 1

    def test_already_registered_checked_before_deposit(self, registry):
        registry.register(ALICE, DEPOSIT)
        with pytest.raises(AlreadyRegisteredError):
            registry.register(ALICE, 0)

    def test_register_while_deregistered(self, registry):
        registry.register(ALICE, DEPOSIT)
        registry.deregister(ALICE, 1)
        with pytest.raises(AlreadyRegisteredError):
            registry.register(ALICE, DEPOSIT)

    def test_unknown_notary_info(self, registry):
        assert registry.get_notary_info(ALICE) == (0, 0)
        assert registry.get_record(ALICE) is None


class TestDeregister:

    def test_deregister_frees_slot(self, registry):
        registry.register(ALICE, DEPOSIT)
        registry.register(BOB, DEPOSIT)

        assert registry.deregister(ALICE, 10) == 0
        assert registry.slots.occupant(0) is None
        assert registry.slots.free_entry(0) == 0
        assert registry.slots.active_count == 1
        assert registry.get_notary_info(ALICE) == (10, 0)
        # Deposit stays locked
        assert registry.total_deposits == DEPOSIT * 2

    def test_deregister_unknown(self, registry):
        with pytest.raises(NotRegisteredError):
            registry.deregister(ALICE, 1)

    def test_deregister_twice(self, registry):
        registry.register(ALICE, DEPOSIT)
        registry.deregister(ALICE, 2)
        with pytest.raises(AlreadyDeregisteredError) as exc:
            registry.deregister(ALICE, 3)
        assert exc.value.deregistered_period == 2
        assert isinstance(exc.value, NotRegisteredError)
        assert registry.slots.free_depth == 1

    def test_deregister_unknown_is_not_locked_up(self, registry):
        with pytest.raises(NotRegisteredError) as exc:
            registry.deregister(BOB, 1)
        assert not isinstance(exc.value, AlreadyDeregisteredError)
        assert exc.value.address == BOB

    def test_registry_snapshot_restore(self, registry):
        registry.register(ALICE, DEPOSIT)
        before = registry.snapshot()
        registry.register(BOB, DEPOSIT)
        registry.deregister(ALICE, 1)

        registry.restore(*before)

        assert registry.get_record(ALICE).is_active
        assert not registry.does_notary_exist(BOB)
        assert registry.slots.active_count == 1
        assert registry.slots.free_depth == 0

    def test_deregister_in_period_zero(self, registry):
        registry.register(ALICE, DEPOSIT)
        with pytest.raises(DeregistrationTooEarlyError):
            registry.deregister(ALICE, 0)
        assert registry.get_record(ALICE).is_active

    def test_slot_mismatch_is_corruption(self, registry):
        registry.register(ALICE, DEPOSIT)
        registry.slots.release(0)
        registry.slots.allocate(BOB)
        with pytest.raises(SlotTableCorruptedError):
            registry.deregister(ALICE, 1)


class TestRelease:

    def test_release_boundary(self, registry):
        registry.register(ALICE, DEPOSIT + 5)
        registry.deregister(ALICE, 4)

        with pytest.raises(LockupNotElapsedError) as exc:
            registry.release(ALICE, 4 + LOCKUP)
        assert exc.value.release_period == 4 + LOCKUP + 1
        assert registry.does_notary_exist(ALICE)

        record = registry.release(ALICE, 4 + LOCKUP + 1)
        assert record.deposit == DEPOSIT + 5
        assert not registry.does_notary_exist(ALICE)
        assert registry.total_deposits == 0

        with pytest.raises(NotRegisteredError):
            registry.release(ALICE, 100)

    def test_release_active(self, registry):
        registry.register(ALICE, DEPOSIT)
        with pytest.raises(NotDeregisteredError):
            registry.release(ALICE, 100)

    def test_release_period(self, registry):
        registry.register(ALICE, DEPOSIT)
        assert registry.release_period(ALICE) is None
        registry.deregister(ALICE, 7)
        assert registry.release_period(ALICE) == 7 + LOCKUP + 1

    def test_reregister_after_release(self, registry):
        registry.register(ALICE, DEPOSIT)
        registry.register(BOB, DEPOSIT)
        registry.deregister(ALICE, 1)
        registry.release(ALICE, 1 + LOCKUP + 1)
        assert registry.register(ALICE, DEPOSIT) == 0


class TestRegistryInvariants:

    def test_invariants_under_churn(self, registry):
        rng = random.Random(99)
        period = 1
        addresses = [_address(i + 1) for i in range(30)]

        for _ in range(400):
            address = rng.choice(addresses)
            record = registry.get_record(address)
            if record is None:
                registry.register(address, DEPOSIT)
            elif record.is_active:
                registry.deregister(address, period)
            elif period > record.deregistered + LOCKUP:
                registry.release(address, period)
            period += rng.choice((0, 1))

            registry.check_invariants()
            slots = registry.slots
            assert slots.active_count + slots.free_depth == slots.width

    def test_detects_orphan_slot(self, registry):
        registry.register(ALICE, DEPOSIT)
        registry.slots.allocate(BOB)
        with pytest.raises(SlotTableCorruptedError):
            registry.check_invariants()
