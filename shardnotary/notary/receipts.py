"""
Cross-Shard Receipt Log

Append-only record of requests to move value into a shard during a
future collation. Receipts are numbered from 0; only the gas price can
change after creation, and only by the original sender.
"""

from dataclasses import dataclass, replace
from typing import List, Optional

from eth_utils import encode_hex

from ..crypto.address import display_address
from ..logger import get_logger
from .types import NotReceiptOwnerError, ReceiptDataTooLargeError

logger = get_logger(__name__)


@dataclass
class Receipt:
    """
    A cross-shard transfer request.

    Attributes:
        shard_id: Destination shard
        tx_startgas: Gas limit for the shard transaction
        tx_gasprice: Gas price offered (mutable by sender)
        value: Wei sent with the request
        sender: Canonical address that created the receipt
        to: Destination account on the shard
        data: Opaque payload
    """
    shard_id: int
    tx_startgas: int
    tx_gasprice: int
    value: int
    sender: bytes
    to: bytes
    data: bytes = b''

    def to_dict(self) -> dict:
        return {
            'shard_id': self.shard_id,
            'tx_startgas': self.tx_startgas,
            'tx_gasprice': self.tx_gasprice,
            'value': str(self.value),
            'sender': display_address(self.sender),
            'to': display_address(self.to),
            'data': encode_hex(self.data),
        }


class ReceiptLog:
    """Ordered receipt storage keyed by position."""

    def __init__(self, max_data_size: int):
        self.max_data_size = max_data_size
        self._receipts: List[Receipt] = []

    def __len__(self) -> int:
        return len(self._receipts)

    def record(self, receipt: Receipt) -> int:
        """
        Append a receipt.

        Returns:
            The new receipt id
        """
        if len(receipt.data) > self.max_data_size:
            raise ReceiptDataTooLargeError(len(receipt.data), self.max_data_size)

        receipt_id = len(self._receipts)
        self._receipts.append(receipt)

        logger.debug(
            f"[shard {receipt.shard_id}] receipt {receipt_id} from "
            f"{display_address(receipt.sender)} to {display_address(receipt.to)}"
        )
        return receipt_id

    def _get(self, receipt_id: int) -> Optional[Receipt]:
        if 0 <= receipt_id < len(self._receipts):
            return self._receipts[receipt_id]
        return None

    def get(self, receipt_id: int) -> Optional[Receipt]:
        """Copy of a receipt, None if unknown."""
        receipt = self._get(receipt_id)
        return None if receipt is None else replace(receipt)

    def update_gas_price(self, receipt_id: int, sender: bytes, tx_gasprice: int) -> None:
        """
        Change the gas price of a receipt.

        Raises:
            NotReceiptOwnerError: Receipt unknown or owned by someone else
        """
        receipt = self._get(receipt_id)
        if receipt is None or receipt.sender != sender:
            raise NotReceiptOwnerError(receipt_id, sender)
        receipt.tx_gasprice = tx_gasprice

    def discard_last(self) -> None:
        """Drop the most recent receipt."""
        self._receipts.pop()

    def all(self) -> List[Receipt]:
        return [replace(r) for r in self._receipts]

    def restore(self, receipts: List[Receipt]) -> None:
        self._receipts = list(receipts)
