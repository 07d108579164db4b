"""
Cross-Shard Receipt and Event Log Tests
"""

import json

import pytest

from shardnotary.notary import (
    CollationAdded,
    EventLog,
    Receipt,
    ReceiptLog,
    RegisterNotary,
    TxToShard,
    NotReceiptOwnerError,
    ReceiptDataTooLargeError,
)

from conftest import ALICE, BOB, CAROL


def _make_receipt(sender=ALICE, data=b''):
    return Receipt(
        shard_id=2,
        tx_startgas=21000,
        tx_gasprice=10,
        value=5,
        sender=sender,
        to=CAROL,
        data=data,
    )


class TestReceiptLog:

    def test_ids_are_sequential(self):
        log = ReceiptLog(max_data_size=16)
        assert log.record(_make_receipt()) == 0
        assert log.record(_make_receipt(sender=BOB)) == 1
        assert len(log) == 2
        assert log.get(1).sender == BOB
        assert log.get(2) is None
        assert log.get(-1) is None

    def test_data_limit(self):
        log = ReceiptLog(max_data_size=16)
        log.record(_make_receipt(data=b'\x01' * 16))
        with pytest.raises(ReceiptDataTooLargeError) as exc:
            log.record(_make_receipt(data=b'\x01' * 17))
        assert exc.value.size == 17
        assert len(log) == 1

    def test_update_gas_price(self):
        log = ReceiptLog(max_data_size=16)
        receipt_id = log.record(_make_receipt())
        log.update_gas_price(receipt_id, ALICE, 99)
        assert log.get(receipt_id).tx_gasprice == 99

    def test_update_gas_price_by_other_sender(self):
        log = ReceiptLog(max_data_size=16)
        receipt_id = log.record(_make_receipt())
        with pytest.raises(NotReceiptOwnerError):
            log.update_gas_price(receipt_id, BOB, 99)
        assert log.get(receipt_id).tx_gasprice == 10

    def test_update_unknown_receipt(self):
        log = ReceiptLog(max_data_size=16)
        with pytest.raises(NotReceiptOwnerError):
            log.update_gas_price(0, ALICE, 1)

    def test_get_returns_copy(self):
        log = ReceiptLog(max_data_size=16)
        receipt_id = log.record(_make_receipt())
        log.get(receipt_id).tx_gasprice = 500
        assert log.get(receipt_id).tx_gasprice == 10


class TestEventLog:

    def test_filters(self):
        log = EventLog()
        log.emit(RegisterNotary(block_number=1, index_in_notary_pool=0, notary=ALICE))
        log.emit(TxToShard(block_number=2, receipt_id=0, to=CAROL, shard_id=3))
        log.emit(TxToShard(block_number=5, receipt_id=1, to=CAROL, shard_id=1))

        assert len(log) == 3
        assert len(log.get_logs(TxToShard)) == 2
        assert [e.receipt_id for e in log.get_logs(shard_id=1)] == [1]
        assert [e.block_number for e in log.get_logs(from_block=2, to_block=4)] == [2]
        assert log.get_logs(CollationAdded) == []

    def test_to_json(self):
        log = EventLog()
        log.emit(RegisterNotary(block_number=1, index_in_notary_pool=0, notary=ALICE))
        data = json.loads(log.to_json())
        assert data[0]['event'] == 'RegisterNotary'
        assert data[0]['notary'].lower() == '0x' + ALICE.hex()
