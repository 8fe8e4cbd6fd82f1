"""
herbtrace_ledger/models.py - Ledger records

Node, Event and Block are frozen: once a record is admitted or sealed it is
never mutated. Every record serializes to a plain dict and back without
losing field presence.
"""
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from herbtrace_sdk import hashing
from herbtrace_sdk.events import EventKind, PayloadBase, parse_payload, payload_to_dict


class Role(str, Enum):
    HARVESTER = "harvester"
    PROCESSOR = "processor"
    TESTER = "tester"
    MANUFACTURER = "manufacturer"
    REGULATOR = "regulator"


class Capability(str, Enum):
    SUBMIT_COLLECTION = "submit-collection"
    SUBMIT_PROCESSING = "submit-processing"
    SUBMIT_QUALITY_TEST = "submit-quality-test"
    SUBMIT_MANUFACTURING = "submit-manufacturing"
    SUBMIT_COMPLIANCE = "submit-compliance"
    READ_OWN = "read-own"
    READ_BATCH = "read-batch"
    READ_ALL = "read-all"
    GENERATE_QR = "generate-qr"
    FLAG = "flag"


ROLE_CAPABILITIES: Mapping[Role, FrozenSet[Capability]] = MappingProxyType({
    Role.HARVESTER: frozenset({Capability.SUBMIT_COLLECTION, Capability.READ_OWN}),
    Role.PROCESSOR: frozenset({Capability.SUBMIT_PROCESSING, Capability.READ_BATCH}),
    Role.TESTER: frozenset({Capability.SUBMIT_QUALITY_TEST, Capability.READ_BATCH}),
    Role.MANUFACTURER: frozenset({Capability.SUBMIT_MANUFACTURING, Capability.GENERATE_QR}),
    Role.REGULATOR: frozenset({Capability.READ_ALL, Capability.SUBMIT_COMPLIANCE, Capability.FLAG}),
})

# Genesis is deliberately absent: no node may submit it
KIND_CAPABILITY: Mapping[EventKind, Capability] = MappingProxyType({
    EventKind.COLLECTION: Capability.SUBMIT_COLLECTION,
    EventKind.PROCESSING: Capability.SUBMIT_PROCESSING,
    EventKind.QUALITY_TEST: Capability.SUBMIT_QUALITY_TEST,
    EventKind.MANUFACTURING: Capability.SUBMIT_MANUFACTURING,
    EventKind.COMPLIANCE: Capability.SUBMIT_COMPLIANCE,
})


@dataclass(frozen=True)
class Node:
    """A registered participant."""
    node_id: str
    role: Role
    public_key: str
    metadata: Mapping[str, Any]
    capabilities: FrozenSet[Capability]
    registered_at: int
    active: bool = True

    def can(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def to_dict(self) -> Dict[str, Any]:
        return {
            "node_id": self.node_id,
            "role": self.role.value,
            "public_key": self.public_key,
            "metadata": dict(self.metadata),
            "capabilities": sorted(c.value for c in self.capabilities),
            "registered_at": self.registered_at,
            "active": self.active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Node":
        return cls(
            node_id=data["node_id"],
            role=Role(data["role"]),
            public_key=data["public_key"],
            metadata=MappingProxyType(dict(data.get("metadata") or {})),
            capabilities=frozenset(Capability(c) for c in data["capabilities"]),
            registered_at=data["registered_at"],
            active=data.get("active", True),
        )


@dataclass(frozen=True)
class RuleCheck:
    rule: str
    passed: bool
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"rule": self.rule, "passed": self.passed}
        if self.reason is not None:
            out["reason"] = self.reason
        return out


@dataclass(frozen=True)
class ContractOutcome:
    """Result of running the rule engine on one event."""
    valid: bool
    contract_digest: str
    checks: Tuple[RuleCheck, ...] = ()

    @property
    def rules(self) -> Dict[str, bool]:
        return {c.rule: c.passed for c in self.checks}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "contract_digest": self.contract_digest,
            "checks": [c.to_dict() for c in self.checks],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContractOutcome":
        return cls(
            valid=data["valid"],
            contract_digest=data["contract_digest"],
            checks=tuple(
                RuleCheck(rule=c["rule"], passed=c["passed"], reason=c.get("reason"))
                for c in data.get("checks", [])
            ),
        )


@dataclass(frozen=True)
class Event:
    """A supply-chain record. Immutable once admitted."""
    event_id: str
    kind: EventKind
    node_id: str
    payload: PayloadBase
    timestamp: int
    digest: str
    validation: Optional[ContractOutcome] = None

    @property
    def batch_id(self) -> Optional[str]:
        return self.payload.batch_id

    def signed_digest(self) -> str:
        """Recompute the placeholder signature from the event's own fields."""
        return hashing.event_digest(
            self.event_id, self.kind.value, payload_to_dict(self.payload), self.timestamp, self.node_id
        )

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "event_id": self.event_id,
            "kind": self.kind.value,
            "node_id": self.node_id,
            "payload": payload_to_dict(self.payload),
            "timestamp": self.timestamp,
            "digest": self.digest,
        }
        if self.validation is not None:
            out["validation"] = self.validation.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Event":
        kind = EventKind(data["kind"])
        validation = data.get("validation")
        return cls(
            event_id=data["event_id"],
            kind=kind,
            node_id=data["node_id"],
            payload=parse_payload(kind, data["payload"]),
            timestamp=data["timestamp"],
            digest=data["digest"],
            validation=ContractOutcome.from_dict(validation) if validation is not None else None,
        )


@dataclass(frozen=True)
class Block:
    """A sealed, hash-linked batch of events."""
    index: int
    timestamp: int
    events: Tuple[Event, ...]
    previous_digest: str
    sealer_id: str
    nonce: int = 0
    digest: str = ""

    def compute_digest(self, nonce: Optional[int] = None) -> str:
        return hashing.block_digest(
            self.index,
            self.timestamp,
            [e.to_dict() for e in self.events],
            self.previous_digest,
            self.nonce if nonce is None else nonce,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "timestamp": self.timestamp,
            "events": [e.to_dict() for e in self.events],
            "previous_digest": self.previous_digest,
            "sealer_id": self.sealer_id,
            "nonce": self.nonce,
            "digest": self.digest,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Block":
        return cls(
            index=data["index"],
            timestamp=data["timestamp"],
            events=tuple(Event.from_dict(e) for e in data["events"]),
            previous_digest=data["previous_digest"],
            sealer_id=data["sealer_id"],
            nonce=data["nonce"],
            digest=data["digest"],
        )


@dataclass(frozen=True)
class LedgerStats:
    block_count: int
    event_count: int
    node_count: int
    pending_count: int
    is_valid: bool
    latest_block_timestamp: int
    difficulty: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "block_count": self.block_count,
            "event_count": self.event_count,
            "node_count": self.node_count,
            "pending_count": self.pending_count,
            "is_valid": self.is_valid,
            "latest_block_timestamp": self.latest_block_timestamp,
            "difficulty": self.difficulty,
        }
