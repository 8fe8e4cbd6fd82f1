"""
herbtrace_ledger/ledger.py - SupplyLedger facade

The single entry point a request layer calls into. Wires registry, rule
engine, pool, chain and sealer around one shared ledger lock.

Every operation either returns a value or raises LedgerException; a failed
operation leaves the ledger unchanged.
"""
import copy
import logging
import threading
from typing import Any, Dict, List, Optional, Tuple, Union

from herbtrace_sdk.events import EventKind, PayloadBase

from .chain import LedgerChain
from .clock import LedgerClock
from .config import LedgerSettings, settings as default_settings
from .errors import LedgerException, not_found
from .models import Block, Event, LedgerStats, Node, Role
from .pool import TransactionPool
from .registry import NodeRegistry
from .rules import RuleBook, RuleEngine, batch_exists
from .sealer import SealEngine

logger = logging.getLogger(__name__)


class SupplyLedger:
    def __init__(
        self,
        settings: Optional[LedgerSettings] = None,
        rulebook: Optional[RuleBook] = None,
        clock: Optional[LedgerClock] = None,
    ):
        self.settings = settings or default_settings
        self.clock = clock or LedgerClock()
        self.rulebook = rulebook or RuleBook.load(self.settings.resolved_rules_path())

        # Guards pool contents, chain append and the history used by rules
        self._lock = threading.RLock()

        self._registry = NodeRegistry(self.clock.now_ms)
        self._engine = RuleEngine(self.rulebook)
        self._chain = LedgerChain(self.clock, difficulty=self.settings.difficulty)
        self._pool = TransactionPool(
            self._registry, self._engine, self._chain, self.clock, self._lock
        )
        self._sealer = SealEngine(
            self._chain,
            self._pool,
            self.clock,
            self._lock,
            cancel_check_interval=self.settings.cancel_check_interval,
        )

        logger.info(
            "Ledger started: authority=%s difficulty=%d rules=%s (config_hash=%s)",
            self.settings.authority_id,
            self.settings.difficulty,
            self.rulebook.version,
            self.rulebook.config_hash,
        )

    # --- writes ---

    def register_node(
        self,
        node_id: str,
        role: Union[Role, str],
        public_key: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Node:
        return self._registry.register(node_id, role, public_key, metadata)

    def submit_event(
        self,
        node_id: str,
        kind: Union[EventKind, str],
        payload: Union[Dict[str, Any], PayloadBase],
    ) -> Event:
        return copy.deepcopy(self._pool.submit(node_id, kind, payload))

    def seal_block(
        self,
        sealer_id: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
    ) -> Block:
        """Seal the pool into a new block. sealer_id defaults to the ledger authority."""
        block = self._sealer.seal(sealer_id or self.settings.authority_id, cancel=cancel)
        return copy.deepcopy(block)

    # --- reads ---

    def get_chain(self) -> Tuple[Block, ...]:
        with self._lock:
            return self._chain.all()

    def get_block(self, index: int) -> Block:
        with self._lock:
            return self._chain.get(index)

    def get_event_by_id(self, event_id: str) -> Event:
        with self._lock:
            for event in self._chain.history():
                if event.event_id == event_id:
                    return copy.deepcopy(event)
            event = self._pool.find(event_id)
        if event is None:
            raise LedgerException(not_found("Event", event_id))
        return copy.deepcopy(event)

    def get_events_by_batch(self, batch_id: str) -> List[Event]:
        """Sealed then pooled events that are the batch or reference it, in chain order."""
        with self._lock:
            history = self._chain.history() + self._pool.snapshot()
            matches = [e for e in history if e.event_id == batch_id or e.batch_id == batch_id]
        if not matches:
            raise LedgerException(not_found("Batch", batch_id))
        return copy.deepcopy(matches)

    def batch_exists(self, batch_id: str) -> bool:
        with self._lock:
            return batch_exists(batch_id, self._chain.history() + self._pool.snapshot())

    def validate_chain(self) -> bool:
        with self._lock:
            return self._chain.validate()

    def first_invalid_block(self) -> Optional[int]:
        with self._lock:
            return self._chain.first_invalid_index()

    def get_stats(self) -> LedgerStats:
        with self._lock:
            return self._chain.stats(len(self._registry), len(self._pool))

    def get_node(self, node_id: str) -> Node:
        return self._registry.get(node_id)

    def list_nodes(self) -> Tuple[Node, ...]:
        return self._registry.all()

    def pending_events(self) -> Tuple[Event, ...]:
        return copy.deepcopy(self._pool.pending())

    def export(self) -> List[Dict[str, Any]]:
        """Plain-dict form of every sealed block, genesis first."""
        with self._lock:
            return [b.to_dict() for b in self._chain.all()]
