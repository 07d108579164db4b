"""
Proposer Selection and Main Chain Tests
"""

import pytest

from eth_hash.auto import keccak

from shardnotary.crypto import ZERO_HASH32
from shardnotary.notary import (
    LocalMainChain,
    NotaryConfig,
    ProposerSelector,
    SlotTable,
    compute_proposer_index,
    PeriodTooSoonError,
    NoActiveNotariesError,
)

from conftest import ALICE, BOB, CAROL, PERIOD_LENGTH


@pytest.fixture
def slots():
    return SlotTable()


@pytest.fixture
def selector(config, chain, slots):
    return ProposerSelector(config, chain, slots)


class TestLocalMainChain:

    def test_starts_at_genesis(self, chain):
        assert chain.block_number == 0
        assert chain.get_block_hash(0) == ZERO_HASH32

    def test_mine(self, chain):
        assert chain.mine(3) == 3
        assert chain.get_block_hash(2) != ZERO_HASH32
        # Pending block has no hash yet
        assert chain.get_block_hash(3) == ZERO_HASH32

    def test_deterministic(self):
        a, b = LocalMainChain(), LocalMainChain()
        a.mine(10)
        b.mine(10)
        assert a.get_block_hash(9) == b.get_block_hash(9)

    def test_seed_changes_hashes(self):
        a, b = LocalMainChain(), LocalMainChain(seed=b'other')
        a.mine(1)
        b.mine(1)
        assert a.get_block_hash(0) != b.get_block_hash(0)

    def test_blockhash_window(self, chain):
        chain.mine(300)
        assert chain.get_block_hash(300 - 256) != ZERO_HASH32
        assert chain.get_block_hash(300 - 257) == ZERO_HASH32
        assert chain.get_block_hash(-1) == ZERO_HASH32

    def test_mine_to_period(self, chain):
        chain.mine_to_period(3, PERIOD_LENGTH)
        assert chain.block_number == 3 * PERIOD_LENGTH
        assert chain.current_period(PERIOD_LENGTH) == 3
        with pytest.raises(ValueError):
            chain.mine_to(0)


class TestComputeProposerIndex:

    def test_matches_definition(self):
        seed = keccak(b'seed')
        for shard_id in range(5):
            expected = int.from_bytes(keccak(seed + shard_id.to_bytes(32, 'big')), 'big') % 7
            assert compute_proposer_index(seed, shard_id, 7) == expected

    def test_pure(self):
        seed = keccak(b'seed')
        assert compute_proposer_index(seed, 3, 10) == compute_proposer_index(seed, 3, 10)

    def test_width_one(self):
        assert compute_proposer_index(keccak(b'any'), 2, 1) == 0

    def test_zero_width(self):
        with pytest.raises(ValueError):
            compute_proposer_index(keccak(b'seed'), 0, 0)


class TestProposerSelector:

    def test_period_before_lookahead(self, selector, slots, chain):
        slots.allocate(ALICE)
        chain.mine(20)
        with pytest.raises(PeriodTooSoonError):
            selector.get_eligible_proposer(0, 0)

    def test_seed_block_not_sealed(self, selector, slots, chain):
        slots.allocate(ALICE)
        chain.mine_to_period(1, PERIOD_LENGTH)
        # Period 3 seeds from block 10, chain is at block 5
        with pytest.raises(PeriodTooSoonError):
            selector.get_eligible_proposer(0, 3)

    def test_no_active_notaries(self, selector, slots, chain):
        chain.mine_to_period(2, PERIOD_LENGTH)
        with pytest.raises(NoActiveNotariesError):
            selector.get_eligible_proposer(0, 2)

        slots.allocate(ALICE)
        slots.release(0)
        with pytest.raises(NoActiveNotariesError):
            selector.get_eligible_proposer(0, 2)

    def test_single_notary_always_selected(self, selector, slots, chain):
        slots.allocate(ALICE)
        chain.mine_to_period(3, PERIOD_LENGTH)
        for shard_id in range(4):
            for period in (1, 2, 3):
                assert selector.get_eligible_proposer(shard_id, period) == ALICE

    def test_selection_uses_seed_block(self, selector, slots, chain, config):
        for address in (ALICE, BOB, CAROL):
            slots.allocate(address)
        chain.mine_to_period(2, PERIOD_LENGTH)

        seed = chain.get_block_hash(selector.seed_block_number(2))
        assert selector.seed_block_number(2) == (2 - config.lookahead_length) * PERIOD_LENGTH
        for shard_id in range(4):
            index = compute_proposer_index(seed, shard_id, 3)
            assert selector.get_eligible_proposer(shard_id, 2) == slots.occupant(index)

    def test_empty_slot_yields_none(self, chain):
        config = NotaryConfig(shard_count=100, period_length=PERIOD_LENGTH, lookahead_length=1)
        slots = SlotTable()
        selector = ProposerSelector(config, chain, slots)
        slots.allocate(ALICE)
        slots.allocate(BOB)
        slots.release(1)
        chain.mine_to_period(1, PERIOD_LENGTH)

        seed = chain.get_block_hash(0)
        shard_id = next(s for s in range(100) if compute_proposer_index(seed, s, 2) == 1)
        assert selector.get_eligible_proposer(shard_id, 1) is None

    def test_stable_within_period(self, selector, slots, chain):
        for address in (ALICE, BOB, CAROL):
            slots.allocate(address)
        chain.mine_to_period(2, PERIOD_LENGTH)
        before = [selector.get_eligible_proposer(s, 2) for s in range(4)]
        chain.mine(PERIOD_LENGTH - 1)
        assert [selector.get_eligible_proposer(s, 2) for s in range(4)] == before
