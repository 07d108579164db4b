"""
Sharding Manager State Database

Persists the sharding manager to SQLite through aiosqlite so a restart
resumes with the same notary pool, header chains and receipts.

Header records are stored as their packed 32-byte big-endian words,
byte for byte, so a database can be compared against (or seeded from)
any other store using the same layout.
"""

import json
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import aiosqlite

from ..exceptions import ConfigurationError
from ..logger import get_logger
from .config import NotaryConfig
from .receipts import Receipt
from .types import NotaryRecord, SlotTableCorruptedError

logger = get_logger(__name__)


@dataclass
class StoredState:
    """Everything read back from the database."""
    records: List[NotaryRecord] = field(default_factory=list)
    slots: List[Optional[bytes]] = field(default_factory=list)
    free_stack: List[int] = field(default_factory=list)
    headers: List[Tuple[int, bytes, bytes]] = field(default_factory=list)
    period_heads: Dict[int, int] = field(default_factory=dict)
    heads: Dict[int, bytes] = field(default_factory=dict)
    receipts: List[Receipt] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.records or self.slots or self.headers or self.receipts)


class NotaryStateDB:
    """
    aiosqlite-backed store for the sharding manager.

    Each save_* call writes one committed operation in a single
    transaction.
    """

    _SCHEMA = """
    CREATE TABLE IF NOT EXISTS metadata (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL
    );
    CREATE TABLE IF NOT EXISTS notary_registry (
        address BLOB PRIMARY KEY,
        deposit TEXT NOT NULL,
        pool_index INTEGER NOT NULL,
        deregistered INTEGER NOT NULL DEFAULT 0
    );
    CREATE TABLE IF NOT EXISTS notary_pool (
        pool_index INTEGER PRIMARY KEY,
        address BLOB
    );
    CREATE TABLE IF NOT EXISTS empty_slots_stack (
        position INTEGER PRIMARY KEY,
        pool_index INTEGER NOT NULL
    );
    CREATE TABLE IF NOT EXISTS collation_headers (
        shard_id INTEGER NOT NULL,
        header_hash BLOB NOT NULL,
        record BLOB NOT NULL,
        PRIMARY KEY (shard_id, header_hash)
    );
    CREATE TABLE IF NOT EXISTS shard_state (
        shard_id INTEGER PRIMARY KEY,
        period_head INTEGER NOT NULL,
        head_hash BLOB NOT NULL
    );
    CREATE TABLE IF NOT EXISTS receipts (
        receipt_id INTEGER PRIMARY KEY,
        shard_id INTEGER NOT NULL,
        tx_startgas TEXT NOT NULL,
        tx_gasprice TEXT NOT NULL,
        value TEXT NOT NULL,
        sender BLOB NOT NULL,
        recipient BLOB NOT NULL,
        data BLOB NOT NULL
    );
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._db: Optional[aiosqlite.Connection] = None

    @property
    def is_open(self) -> bool:
        return self._db is not None

    async def open(self) -> None:
        """Open the database and create tables if needed."""
        self._db = await aiosqlite.connect(self.db_path)
        for stmt in self._SCHEMA.strip().split(";"):
            stmt = stmt.strip()
            if stmt:
                await self._db.execute(stmt)
        await self._db.commit()
        logger.info(f"Notary state DB opened: {self.db_path}")

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    async def check_config(self, config: NotaryConfig) -> None:
        """
        Bind the database to one set of protocol parameters.

        Raises:
            ConfigurationError: If the database was created with different ones
        """
        current = json.dumps(config.to_dict(), sort_keys=True)
        cursor = await self._db.execute("SELECT value FROM metadata WHERE key = 'config'")
        row = await cursor.fetchone()
        if row is None:
            await self._db.execute(
                "INSERT INTO metadata (key, value) VALUES ('config', ?)", (current,)
            )
            await self._db.commit()
            return
        if row[0] != current:
            raise ConfigurationError(
                f"{self.db_path} was created with different notary parameters: {row[0]}"
            )

    # =========================================================================
    # LOAD
    # =========================================================================

    async def load(self) -> StoredState:
        """Read the full persisted state."""
        state = StoredState()

        cursor = await self._db.execute(
            "SELECT address, deposit, pool_index, deregistered FROM notary_registry"
        )
        for address, deposit, pool_index, deregistered in await cursor.fetchall():
            state.records.append(NotaryRecord(
                address=bytes(address),
                deposit=int(deposit),
                pool_index=pool_index,
                deregistered=deregistered,
            ))

        cursor = await self._db.execute(
            "SELECT pool_index, address FROM notary_pool ORDER BY pool_index"
        )
        for pool_index, address in await cursor.fetchall():
            if pool_index != len(state.slots):
                raise SlotTableCorruptedError(f"Gap in persisted notary pool at index {len(state.slots)}")
            state.slots.append(bytes(address) if address is not None else None)

        cursor = await self._db.execute(
            "SELECT pool_index FROM empty_slots_stack ORDER BY position"
        )
        state.free_stack = [row[0] for row in await cursor.fetchall()]

        cursor = await self._db.execute(
            "SELECT shard_id, header_hash, record FROM collation_headers"
        )
        state.headers = [
            (shard_id, bytes(header_hash), bytes(record))
            for shard_id, header_hash, record in await cursor.fetchall()
        ]

        cursor = await self._db.execute(
            "SELECT shard_id, period_head, head_hash FROM shard_state"
        )
        for shard_id, period_head, head_hash in await cursor.fetchall():
            state.period_heads[shard_id] = period_head
            state.heads[shard_id] = bytes(head_hash)

        cursor = await self._db.execute(
            "SELECT shard_id, tx_startgas, tx_gasprice, value, sender, recipient, data "
            "FROM receipts ORDER BY receipt_id"
        )
        for shard_id, startgas, gasprice, value, sender, recipient, data in await cursor.fetchall():
            state.receipts.append(Receipt(
                shard_id=shard_id,
                tx_startgas=int(startgas),
                tx_gasprice=int(gasprice),
                value=int(value),
                sender=bytes(sender),
                to=bytes(recipient),
                data=bytes(data),
            ))

        logger.info(
            f"Notary state restored: {len(state.records)} notaries, "
            f"{len(state.headers)} headers, {len(state.receipts)} receipts"
        )
        return state

    # =========================================================================
    # SAVE
    # =========================================================================

    async def save_membership(
        self,
        address: bytes,
        record: Optional[NotaryRecord],
        pool_index: int,
        occupant: Optional[bytes],
        free_stack: List[int],
    ) -> None:
        """
        Persist one membership change.

        Args:
            address: Notary whose record changed
            record: New record, None when the record was deleted
            pool_index: Slot touched by the change
            occupant: New content of that slot
            free_stack: Full free stack after the change
        """
        try:
            if record is None:
                await self._db.execute(
                    "DELETE FROM notary_registry WHERE address = ?", (address,)
                )
            else:
                await self._db.execute("""
                    INSERT INTO notary_registry (address, deposit, pool_index, deregistered)
                    VALUES (?,?,?,?)
                    ON CONFLICT(address) DO UPDATE SET
                        deposit=excluded.deposit,
                        pool_index=excluded.pool_index,
                        deregistered=excluded.deregistered
                """, (address, str(record.deposit), record.pool_index, record.deregistered))

            await self._db.execute("""
                INSERT INTO notary_pool (pool_index, address) VALUES (?,?)
                ON CONFLICT(pool_index) DO UPDATE SET address=excluded.address
            """, (pool_index, occupant))

            await self._db.execute("DELETE FROM empty_slots_stack")
            await self._db.executemany(
                "INSERT INTO empty_slots_stack (position, pool_index) VALUES (?,?)",
                list(enumerate(free_stack)),
            )
            await self._db.commit()
        except Exception:
            await self._db.rollback()
            raise

    async def save_header(
        self,
        shard_id: int,
        header_hash: bytes,
        record: bytes,
        period_head: int,
        head_hash: bytes,
    ) -> None:
        """Persist one accepted header and its shard's pointers."""
        try:
            await self._db.execute(
                "INSERT INTO collation_headers (shard_id, header_hash, record) VALUES (?,?,?)",
                (shard_id, header_hash, record),
            )
            await self._db.execute("""
                INSERT INTO shard_state (shard_id, period_head, head_hash) VALUES (?,?,?)
                ON CONFLICT(shard_id) DO UPDATE SET
                    period_head=excluded.period_head,
                    head_hash=excluded.head_hash
            """, (shard_id, period_head, head_hash))
            await self._db.commit()
        except Exception:
            await self._db.rollback()
            raise

    async def save_receipt(self, receipt_id: int, receipt: Receipt) -> None:
        """Insert or update one receipt."""
        try:
            await self._db.execute("""
                INSERT INTO receipts (
                    receipt_id, shard_id, tx_startgas, tx_gasprice,
                    value, sender, recipient, data
                ) VALUES (?,?,?,?,?,?,?,?)
                ON CONFLICT(receipt_id) DO UPDATE SET tx_gasprice=excluded.tx_gasprice
            """, (
                receipt_id, receipt.shard_id, str(receipt.tx_startgas), str(receipt.tx_gasprice),
                str(receipt.value), receipt.sender, receipt.to, receipt.data,
            ))
            await self._db.commit()
        except Exception:
            await self._db.rollback()
            raise
