"""
herbtrace_ledger/chain.py - Ledger Chain

Append-only list of sealed blocks.

Invariants:
- Block 0 is the genesis block and is never removed
- block.index == position in the chain
- block.previous_digest == digest of the block before it
- every non-genesis digest recomputes from the block's own fields and
  starts with `difficulty` zero characters

Only the SealEngine appends. Read accessors hand out copies.
"""
import copy
import logging
import uuid
from dataclasses import replace
from typing import List, Optional, Tuple

from herbtrace_sdk import hashing
from herbtrace_sdk.events import EventKind, GenesisPayload, payload_to_dict

from .clock import LedgerClock
from .errors import LedgerException, chain_link_invalid, not_found
from .models import Block, ContractOutcome, Event, LedgerStats

logger = logging.getLogger(__name__)

GENESIS_PREVIOUS_DIGEST = "0"
GENESIS_NODE_ID = "SYSTEM"
GENESIS_MESSAGE = "Ayurvedic Herb Traceability Ledger Genesis"


def make_genesis_block(timestamp: int) -> Block:
    payload = GenesisPayload(message=GENESIS_MESSAGE, node_id=GENESIS_NODE_ID)
    event_id = str(uuid.uuid4())
    event = Event(
        event_id=event_id,
        kind=EventKind.GENESIS,
        node_id=GENESIS_NODE_ID,
        payload=payload,
        timestamp=timestamp,
        digest=hashing.event_digest(
            event_id, EventKind.GENESIS.value, payload_to_dict(payload), timestamp, GENESIS_NODE_ID
        ),
        validation=ContractOutcome(
            valid=True,
            contract_digest=hashing.contract_digest(
                event_id, timestamp, EventKind.GENESIS.value, GENESIS_NODE_ID
            ),
        ),
    )
    block = Block(
        index=0,
        timestamp=timestamp,
        events=(event,),
        previous_digest=GENESIS_PREVIOUS_DIGEST,
        sealer_id=GENESIS_NODE_ID,
        nonce=0,
    )
    return replace(block, digest=block.compute_digest())


class LedgerChain:
    def __init__(self, clock: LedgerClock, difficulty: int = 2, genesis: Optional[Block] = None):
        self._clock = clock
        self.difficulty = difficulty
        self._blocks: List[Block] = [genesis or make_genesis_block(clock.now_ms())]

    def append(self, block: Block) -> None:
        """Sealer only. Rejects a block that does not extend the current tip."""
        expected = len(self._blocks)
        if block.index != expected:
            raise LedgerException(chain_link_invalid(expected, block.index, "index out of sequence"))
        if block.previous_digest != self._blocks[-1].digest:
            raise LedgerException(chain_link_invalid(expected, block.index, "previous digest mismatch"))
        self._blocks.append(block)

    def first_invalid_index(self) -> Optional[int]:
        """Index of the first block failing digest, difficulty or link checks; None if intact."""
        for i in range(1, len(self._blocks)):
            current = self._blocks[i]
            previous = self._blocks[i - 1]

            if current.index != i:
                return i
            if current.digest != current.compute_digest():
                return i
            if not hashing.meets_difficulty(current.digest, self.difficulty):
                return i
            if current.previous_digest != previous.digest:
                return i
        return None

    def validate(self) -> bool:
        bad = self.first_invalid_index()
        if bad is not None:
            logger.warning("Chain validation failed at block %d", bad)
            return False
        return True

    # --- read accessors ---

    def get(self, index: int) -> Block:
        if index < 0 or index >= len(self._blocks):
            raise LedgerException(not_found("Block", index))
        return copy.deepcopy(self._blocks[index])

    def last(self) -> Block:
        return copy.deepcopy(self._blocks[-1])

    def all(self) -> Tuple[Block, ...]:
        return tuple(copy.deepcopy(self._blocks))

    def history(self) -> Tuple[Event, ...]:
        """Every sealed event, uncopied. For rule evaluation, which never mutates."""
        return tuple(e for b in self._blocks for e in b.events)

    @property
    def tip_digest(self) -> str:
        return self._blocks[-1].digest

    def __len__(self) -> int:
        return len(self._blocks)

    def stats(self, node_count: int, pending_count: int) -> LedgerStats:
        return LedgerStats(
            block_count=len(self._blocks),
            event_count=sum(len(b.events) for b in self._blocks),
            node_count=node_count,
            pending_count=pending_count,
            is_valid=self.validate(),
            latest_block_timestamp=self._blocks[-1].timestamp,
            difficulty=self.difficulty,
        )
