"""
herbtrace_ledger/sealer.py - Block Sealing

The ONLY place blocks are born.

Responsibilities:
- Snapshot the pending pool
- Search nonces until the block digest meets the difficulty
- Append the block, then drain exactly the sealed events

The shared lock is held from snapshot to drain. Admissions wait for the
seal to finish; they never land between snapshot and drain, so no event
is lost or sealed twice.
"""
import logging
import threading
from typing import Optional

from herbtrace_sdk import hashing

from .chain import LedgerChain
from .clock import LedgerClock
from .errors import LedgerException, empty_pool, seal_cancelled
from .models import Block
from .pool import TransactionPool

logger = logging.getLogger(__name__)


class SealEngine:
    def __init__(
        self,
        chain: LedgerChain,
        pool: TransactionPool,
        clock: LedgerClock,
        lock: threading.RLock,
        cancel_check_interval: int = 1000,
    ):
        self._chain = chain
        self._pool = pool
        self._clock = clock
        self._lock = lock
        self._cancel_check_interval = cancel_check_interval

    def seal(self, sealer_id: str, cancel: Optional[threading.Event] = None) -> Block:
        """
        Seal every pending event into a new block.

        Args:
            sealer_id: Identity recorded on the block
            cancel: Optional event; once set, the nonce search stops

        Raises:
            LedgerException: EMPTY_POOL if nothing is pending,
                SEAL_CANCELLED if `cancel` was set. In both cases the chain
                and the pool are unchanged.
        """
        with self._lock:
            events = self._pool.snapshot()
            if not events:
                raise LedgerException(empty_pool())

            index = len(self._chain)
            timestamp = self._clock.now_ms()
            previous_digest = self._chain.tip_digest
            event_dicts = [e.to_dict() for e in events]

            nonce = 0
            while True:
                digest = hashing.block_digest(index, timestamp, event_dicts, previous_digest, nonce)
                if hashing.meets_difficulty(digest, self._chain.difficulty):
                    break
                nonce += 1
                if (cancel is not None and nonce % self._cancel_check_interval == 0
                        and cancel.is_set()):
                    logger.warning("Seal of block %d cancelled after %d attempts", index, nonce)
                    raise LedgerException(seal_cancelled(index, nonce))

            block = Block(
                index=index,
                timestamp=timestamp,
                events=events,
                previous_digest=previous_digest,
                sealer_id=sealer_id,
                nonce=nonce,
                digest=digest,
            )
            self._chain.append(block)
            self._pool.drain(len(events))

        logger.info(
            "Block sealed: index=%d events=%d nonce=%d digest=%s",
            index, len(events), nonce, digest,
        )
        return block
