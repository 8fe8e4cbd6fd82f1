"""
herbtrace_ledger/pool.py - Transaction Pool and Admission

Admission is the only way into the pool:
1. Node must exist and be active
2. Node must hold the capability the event kind requires
3. Payload must match the kind's schema
4. The contract (RuleEngine) must pass against sealed + pooled history

Any failure raises before the pool is touched. Admissions and seals share
one lock, so a seal always drains a final snapshot and no admission lands
in a snapshot that has already been taken.
"""
import logging
import threading
import uuid
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import ValidationError

from herbtrace_sdk import hashing
from herbtrace_sdk.events import EventKind, PayloadBase, parse_payload, payload_to_dict

from .chain import LedgerChain
from .clock import LedgerClock
from .errors import (
    LedgerException,
    forbidden,
    inactive_node,
    invalid_payload,
    unknown_node,
)
from .models import Event, KIND_CAPABILITY
from .registry import NodeRegistry
from .rules import RuleEngine

logger = logging.getLogger(__name__)


class TransactionPool:
    def __init__(
        self,
        registry: NodeRegistry,
        engine: RuleEngine,
        chain: LedgerChain,
        clock: LedgerClock,
        lock: threading.RLock,
    ):
        self._registry = registry
        self._engine = engine
        self._chain = chain
        self._clock = clock
        self._lock = lock
        self._pending: List[Event] = []

    def submit(
        self,
        node_id: str,
        kind: Union[EventKind, str],
        payload: Union[Dict[str, Any], PayloadBase],
    ) -> Event:
        """
        Admit an event into the pool.

        Returns:
            The admitted Event with its validation outcome attached.

        Raises:
            LedgerException: UNKNOWN_NODE, INACTIVE_NODE, FORBIDDEN,
                INVALID_PAYLOAD or CONTRACT_VIOLATION. On any of these the
                pool is unchanged.
        """
        # 1. Node
        node = self._registry.find(node_id)
        if node is None:
            raise LedgerException(unknown_node(node_id))
        if not node.active:
            raise LedgerException(inactive_node(node_id))

        # 2. Capability
        try:
            kind = EventKind(kind)
        except ValueError:
            raise LedgerException(forbidden(node_id, str(kind), None))
        required = KIND_CAPABILITY.get(kind)
        if required is None or not node.can(required):
            raise LedgerException(forbidden(node_id, kind.value, required.value if required else None))

        # 3. Payload
        try:
            parsed = parse_payload(kind, payload)
        except ValidationError as e:
            errors = [
                {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
                for err in e.errors()
            ]
            raise LedgerException(invalid_payload(kind.value, errors))
        except TypeError as e:
            raise LedgerException(invalid_payload(kind.value, [{"msg": str(e)}]))
        parsed = parsed.model_copy(deep=True, update={"node_id": node_id, "node_role": node.role.value})

        with self._lock:
            event_id = str(uuid.uuid4())
            timestamp = self._clock.now_ms()

            # 4. Placeholder signature
            try:
                digest = hashing.event_digest(
                    event_id, kind.value, payload_to_dict(parsed), timestamp, node_id
                )
            except (TypeError, ValueError) as e:
                raise LedgerException(invalid_payload(kind.value, [{"msg": str(e)}]))
            candidate = Event(
                event_id=event_id,
                kind=kind,
                node_id=node_id,
                payload=parsed,
                timestamp=timestamp,
                digest=digest,
            )

            # 5. Contract
            history = self._chain.history() + tuple(self._pending)
            try:
                outcome = self._engine.evaluate(candidate, history)
            except LedgerException as e:
                logger.warning(
                    "Event rejected: node=%s kind=%s rule=%s reason=%s",
                    node_id,
                    kind.value,
                    (e.error.details or {}).get("rule"),
                    (e.error.details or {}).get("reason"),
                )
                raise

            # 6. Pool
            event = replace(candidate, validation=outcome)
            self._pending.append(event)

        logger.info("Event admitted: %s (%s) from %s", event.event_id, kind.value, node_id)
        return event

    def pending(self) -> Tuple[Event, ...]:
        with self._lock:
            return tuple(self._pending)

    def find(self, event_id: str) -> Optional[Event]:
        with self._lock:
            for event in self._pending:
                if event.event_id == event_id:
                    return event
        return None

    def __len__(self) -> int:
        return len(self._pending)

    # Sealing only. Callers must hold the shared lock across both calls.

    def snapshot(self) -> Tuple[Event, ...]:
        return tuple(self._pending)

    def drain(self, count: int) -> None:
        """Remove the first `count` events, which the caller has just sealed."""
        del self._pending[:count]
