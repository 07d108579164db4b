"""
Sharding Manager

Single owner of the notary pool, the per-shard header chains and the
cross-shard receipt log, and the only entry point that mutates them.

Mutations are serialised by one asyncio lock: each call either commits
completely or raises with state unchanged. When a database is open, a
change is applied in memory, written in one transaction, and undone in
memory if the write fails; its event is emitted only after the write.
Queries are synchronous and read committed state only.
"""

import asyncio
from contextlib import contextmanager
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Union

from eth_utils import encode_hex

from ..crypto.address import AddressLike, normalize_address
from ..crypto.encoding import to_hash32
from ..exceptions import InvariantViolation, ShardNotaryException
from ..logger import get_logger
from .chain import LocalMainChain, MainChain
from .config import NotaryConfig
from .events import (
    CollationAdded,
    DeregisterNotary,
    EventLog,
    RegisterNotary,
    ReleaseNotary,
    TxToShard,
)
from .headers import CollationHeaderChain
from .receipts import Receipt, ReceiptLog
from .registry import NotaryRegistry
from .selection import ProposerSelector
from .storage import NotaryStateDB
from .types import AddHeaderResult, CollationHeader, NotaryRecord

logger = get_logger(__name__)

HashLike = Union[bytes, str]


@contextmanager
def _rejections(operation: str):
    """Log rejected operations before the error reaches the caller."""
    try:
        yield
    except InvariantViolation as e:
        logger.critical(f"{operation} hit corrupted state: {e}")
        raise
    except ShardNotaryException as e:
        logger.debug(f"{operation} rejected: {e}")
        raise


class ShardingManager:
    """
    Notary committee and collation header registry.

    Usage:
        manager = ShardingManager(NotaryConfig(), LocalMainChain())
        index = await manager.register_notary(address, manager.config.notary_deposit)
    """

    def __init__(
        self,
        config: Optional[NotaryConfig] = None,
        chain: Optional[MainChain] = None,
        db_path: Optional[str] = None,
    ):
        """
        Args:
            config: Protocol parameters, fixed for the manager's lifetime
            chain: Host chain view (an in-memory chain if omitted)
            db_path: Optional SQLite path; state is in-memory only without it
        """
        self.config = config or NotaryConfig()
        self.chain = chain or LocalMainChain()

        self.registry, self.selector, self.headers, self.receipts = self._new_state()
        self.events = EventLog()

        self._lock = asyncio.Lock()
        self._db = NotaryStateDB(db_path) if db_path else None

    def _new_state(self) -> Tuple[NotaryRegistry, ProposerSelector, CollationHeaderChain, ReceiptLog]:
        registry = NotaryRegistry(
            min_deposit=self.config.notary_deposit,
            lockup_length=self.config.notary_lockup_length,
        )
        selector = ProposerSelector(self.config, self.chain, registry.slots)
        headers = CollationHeaderChain(self.config, self.chain, selector)
        receipts = ReceiptLog(self.config.max_receipt_data_size)
        return registry, selector, headers, receipts

    # =========================================================================
    # DATABASE
    # =========================================================================

    async def open_db(self) -> None:
        """
        Open the state database and restore any persisted state.

        Persisted state is rebuilt into fresh components and swapped in only
        once it passes every invariant check. On any failure the connection
        is closed again and in-memory state is left as it was.

        Raises:
            ConfigurationError: Database bound to different protocol parameters
            SlotTableCorruptedError: Persisted pool and registry disagree
        """
        if self._db is None:
            logger.warning("No db_path provided - sharding manager state is in-memory only")
            return

        async with self._lock:
            await self._db.open()
            try:
                await self._db.check_config(self.config)
                state = await self._db.load()
                if state.is_empty:
                    return

                registry, selector, headers, receipts = self._new_state()
                registry.restore(state.records, state.slots, state.free_stack)
                headers.restore(state.headers, state.period_heads, state.heads)
                receipts.restore(state.receipts)
                registry.check_invariants()
            except Exception as e:
                logger.error(f"Could not restore state from {self._db.db_path}: {e}")
                await self._db.close()
                raise

            self.registry, self.selector, self.headers, self.receipts = (
                registry, selector, headers, receipts
            )

    async def close_db(self) -> None:
        if self._db:
            await self._db.close()

    @property
    def is_persisting(self) -> bool:
        """True while committed operations are written to the database."""
        return self._db is not None and self._db.is_open

    async def _persist(self, operation: str, save: Callable[[], Awaitable[None]], undo: Callable[[], None]) -> None:
        """
        Write an in-memory change to the database, undoing it if the write fails.

        Args:
            operation: Name used in the log line
            save: Coroutine function performing the write
            undo: Restores in-memory state as it was before the change
        """
        if not self.is_persisting:
            return
        try:
            await save()
        except Exception as e:
            logger.error(f"{operation} not persisted, reverting: {e}")
            undo()
            raise

    async def _persist_membership(self, operation: str, address: bytes, pool_index: int, before: Optional[tuple]) -> None:
        await self._persist(
            operation,
            lambda: self._db.save_membership(
                address,
                self.registry.get_record(address),
                pool_index,
                self.registry.slots.occupant(pool_index),
                self.registry.slots.snapshot()[1],
            ),
            lambda: self.registry.restore(*before),
        )

    # =========================================================================
    # TIME
    # =========================================================================

    @property
    def block_number(self) -> int:
        return self.chain.block_number

    @property
    def current_period(self) -> int:
        return self.chain.current_period(self.config.period_length)

    # =========================================================================
    # NOTARY MEMBERSHIP
    # =========================================================================

    async def register_notary(self, sender: AddressLike, value: int) -> int:
        """
        Join the notary pool with a deposit.

        Args:
            sender: Registering account
            value: Deposit in wei

        Returns:
            Pool index assigned
        """
        address = normalize_address(sender)
        async with self._lock:
            before = self.registry.snapshot() if self.is_persisting else None
            with _rejections("register_notary"):
                pool_index = self.registry.register(address, value)

            await self._persist_membership("register_notary", address, pool_index, before)
            self.events.emit(RegisterNotary(
                block_number=self.block_number,
                index_in_notary_pool=pool_index,
                notary=address,
            ))
            return pool_index

    async def deregister_notary(self, sender: AddressLike) -> int:
        """
        Leave the notary pool. The slot is freed now, the deposit stays locked.

        Returns:
            Period recorded as the deregistration period
        """
        address = normalize_address(sender)
        async with self._lock:
            period = self.current_period
            before = self.registry.snapshot() if self.is_persisting else None
            with _rejections("deregister_notary"):
                pool_index = self.registry.deregister(address, period)

            await self._persist_membership("deregister_notary", address, pool_index, before)
            self.events.emit(DeregisterNotary(
                block_number=self.block_number,
                index_in_notary_pool=pool_index,
                notary=address,
                deregistered_period=period,
            ))
            return period

    async def release_notary(self, sender: AddressLike) -> int:
        """
        Withdraw the deposit after the lockup.

        Returns:
            Amount returned to the notary, in wei
        """
        address = normalize_address(sender)
        async with self._lock:
            before = self.registry.snapshot() if self.is_persisting else None
            with _rejections("release_notary"):
                record = self.registry.release(address, self.current_period)

            await self._persist_membership("release_notary", address, record.pool_index, before)
            self.events.emit(ReleaseNotary(
                block_number=self.block_number,
                index_in_notary_pool=record.pool_index,
                notary=address,
                deposit=record.deposit,
            ))
            return record.deposit

    # =========================================================================
    # COLLATION HEADERS
    # =========================================================================

    async def add_header(self, sender: AddressLike, header: CollationHeader) -> AddHeaderResult:
        """
        Submit a collation header as the eligible proposer.

        Returns:
            AddHeaderResult (header key, score, whether it became head)
        """
        address = normalize_address(sender)
        shard_id = header.shard_id
        async with self._lock:
            with _rejections(f"add_header [shard {shard_id}]"):
                before = self.headers.shard_state(shard_id)
                result = self.headers.add_header(address, header)

            await self._persist(
                f"add_header [shard {shard_id}]",
                lambda: self._db.save_header(
                    shard_id,
                    result.header_hash,
                    self.headers.get_record(shard_id, result.header_hash),
                    self.headers.period_head(shard_id),
                    self.headers.shard_head(shard_id),
                ),
                lambda: self.headers.revert(shard_id, result.header_hash, before),
            )
            self.events.emit(CollationAdded(
                block_number=self.block_number,
                header=header,
                header_hash=result.header_hash,
                is_new_head=result.is_new_head,
                score=result.score,
            ))
            return result

    # =========================================================================
    # CROSS-SHARD RECEIPTS
    # =========================================================================

    async def tx_to_shard(
        self,
        sender: AddressLike,
        to: AddressLike,
        shard_id: int,
        tx_startgas: int,
        tx_gasprice: int,
        data: bytes = b'',
        value: int = 0,
    ) -> int:
        """
        Record a request to deposit `value` to `to` on shard `shard_id`.

        Returns:
            Receipt id
        """
        receipt = Receipt(
            shard_id=shard_id,
            tx_startgas=tx_startgas,
            tx_gasprice=tx_gasprice,
            value=value,
            sender=normalize_address(sender),
            to=normalize_address(to),
            data=bytes(data),
        )
        async with self._lock:
            with _rejections("tx_to_shard"):
                receipt_id = self.receipts.record(receipt)

            await self._persist(
                "tx_to_shard",
                lambda: self._db.save_receipt(receipt_id, receipt),
                self.receipts.discard_last,
            )
            self.events.emit(TxToShard(
                block_number=self.block_number,
                receipt_id=receipt_id,
                to=receipt.to,
                shard_id=shard_id,
            ))
            return receipt_id

    async def update_gasprice(self, sender: AddressLike, receipt_id: int, tx_gasprice: int) -> None:
        """Change the gas price of a receipt created by `sender`."""
        address = normalize_address(sender)
        async with self._lock:
            with _rejections("update_gasprice"):
                previous = self.receipts.get(receipt_id)
                self.receipts.update_gas_price(receipt_id, address, tx_gasprice)

            await self._persist(
                "update_gasprice",
                lambda: self._db.save_receipt(receipt_id, self.receipts.get(receipt_id)),
                lambda: self.receipts.update_gas_price(receipt_id, address, previous.tx_gasprice),
            )

    # =========================================================================
    # QUERIES
    # =========================================================================

    def does_notary_exist(self, address: AddressLike) -> bool:
        return self.registry.does_notary_exist(normalize_address(address))

    def get_notary_info(self, address: AddressLike) -> Tuple[int, int]:
        """(deregistered period, pool index); (0, 0) for unknown notaries."""
        return self.registry.get_notary_info(normalize_address(address))

    def get_notary(self, address: AddressLike) -> Optional[NotaryRecord]:
        return self.registry.get_record(normalize_address(address))

    def notary_pool(self, index: int) -> Optional[bytes]:
        return self.registry.slots.occupant(index)

    def notary_pool_len(self) -> int:
        """Number of active notaries."""
        return self.registry.slots.active_count

    def notary_pool_width(self) -> int:
        """Slots ever allocated, occupied or vacated."""
        return self.registry.slots.width

    def empty_slots_stack_top(self) -> int:
        """Depth of the free-slot stack."""
        return self.registry.slots.free_depth

    def empty_slots_stack(self, position: int) -> Optional[int]:
        return self.registry.slots.free_entry(position)

    def total_deposits(self) -> int:
        return self.registry.total_deposits

    def get_eligible_proposer(self, shard_id: int, period: Optional[int] = None) -> Optional[bytes]:
        """Proposer for a shard in `period` (the current period by default)."""
        if period is None:
            period = self.current_period
        return self.selector.get_eligible_proposer(shard_id, period)

    def get_collation_header_score(self, shard_id: int, header_hash: HashLike) -> int:
        return self.headers.get_score(shard_id, to_hash32(header_hash))

    def get_collation_header_parent_hash(self, shard_id: int, header_hash: HashLike) -> bytes:
        return self.headers.get_parent_hash(shard_id, to_hash32(header_hash))

    def shard_head(self, shard_id: int) -> bytes:
        return self.headers.shard_head(shard_id)

    def period_head(self, shard_id: int) -> int:
        return self.headers.period_head(shard_id)

    def get_collation_gas_limit(self) -> int:
        return self.config.collation_gas_limit

    def get_receipt(self, receipt_id: int) -> Optional[Receipt]:
        return self.receipts.get(receipt_id)

    def period_start_prevhash(self, period: Optional[int] = None) -> bytes:
        """Main chain hash a header for `period` must anchor to."""
        if period is None:
            period = self.current_period
        return self.chain.get_block_hash(period * self.config.period_length - 1)

    def check_invariants(self) -> None:
        """Raise SlotTableCorruptedError if the pool and registry disagree."""
        self.registry.check_invariants()

    def get_status(self) -> Dict[str, Any]:
        """Summary of the manager's state."""
        return {
            'block_number': self.block_number,
            'current_period': self.current_period,
            'config': self.config.to_dict(),
            'notaries': {
                'active': self.notary_pool_len(),
                'pool_width': self.notary_pool_width(),
                'free_slots': self.empty_slots_stack_top(),
                'total_deposits': str(self.total_deposits()),
            },
            'shards': {
                shard_id: {
                    'head': encode_hex(head),
                    'score': self.headers.get_score(shard_id, head),
                    'period_head': self.headers.period_head(shard_id),
                }
                for shard_id, head in sorted(self.headers.fork_choice.heads().items())
            },
            'headers': self.headers.header_count(),
            'receipts': len(self.receipts),
            'events': len(self.events),
        }

    def __repr__(self) -> str:
        return (
            f"ShardingManager(block={self.block_number}, period={self.current_period}, "
            f"notaries={self.notary_pool_len()})"
        )
