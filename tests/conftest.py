"""
Shared fixtures for the shard notary test suite.
"""

import pytest

from shardnotary.crypto import keccak256, ZERO_HASH32
from shardnotary.notary import (
    CollationHeader,
    LocalMainChain,
    NotaryConfig,
    ShardingManager,
)


ALICE = b'\xa1' * 20
BOB = b'\xb0' * 20
CAROL = b'\xc0' * 20
DAVE = b'\xd0' * 20

DEPOSIT = 1000
LOCKUP = 3
PERIOD_LENGTH = 5


@pytest.fixture
def config():
    """Small parameters so periods and lockups are cheap to mine through."""
    return NotaryConfig(
        shard_count=4,
        period_length=PERIOD_LENGTH,
        lookahead_length=1,
        notary_deposit=DEPOSIT,
        notary_lockup_length=LOCKUP,
    )


@pytest.fixture
def chain():
    return LocalMainChain()


@pytest.fixture
def manager(config, chain):
    return ShardingManager(config, chain)


def make_header(manager, shard_id=0, parent_hash=ZERO_HASH32, number=1, period=None, **overrides):
    """Build a header anchored to the manager's chain for `period` (current by default)."""
    if period is None:
        period = manager.current_period
    fields = dict(
        shard_id=shard_id,
        expected_period_number=period,
        period_start_prevhash=manager.period_start_prevhash(period),
        parent_hash=parent_hash,
        transaction_root=keccak256(b'transactions'),
        coinbase=DAVE,
        state_root=keccak256(b'state'),
        receipt_root=keccak256(b'receipts'),
        number=number,
    )
    fields.update(overrides)
    return CollationHeader(**fields)


def mine_to_period(manager, period):
    manager.chain.mine_to_period(period, manager.config.period_length)
