"""
rules.py - The herb traceability contract

Decides whether a candidate event may be admitted to the pool.

PURITY:
1. RuleEngine.evaluate() is a pure function of (event, history, rulebook)
2. No clock reads, no I/O, no mutation of its inputs
3. Fail-fast: the first failing rule raises CONTRACT_VIOLATION naming that
   rule; later rules are not evaluated
4. Kinds without rules pass with no checks recorded (default-allow)

Rule tables live in a RuleBook, loaded once from YAML and never changed.
"""

from __future__ import annotations

import hashlib
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, FrozenSet, Mapping, Optional, Sequence, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field

from herbtrace_sdk import hashing
from herbtrace_sdk.events import (
    CollectionPayload,
    EventKind,
    ProcessingPayload,
    QualityTestPayload,
)

from .clock import calendar_day, utc_datetime
from .errors import LedgerException, contract_violation
from .models import ContractOutcome, Event, RuleCheck

logger = logging.getLogger(__name__)


# --- RULE TABLES ---

class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class GeoBox(_Frozen):
    region: str
    lat: Tuple[float, float]
    lon: Tuple[float, float]

    def contains(self, latitude: float, longitude: float) -> bool:
        return (
            self.lat[0] <= latitude <= self.lat[1]
            and self.lon[0] <= longitude <= self.lon[1]
        )


class QualityThresholds(_Frozen):
    moisture_max: Optional[float] = None
    active_compound_min: Optional[float] = None
    pesticide_max: Optional[float] = None
    heavy_metals_max: Optional[float] = None


class ProcessingLimits(_Frozen):
    drying_max_temperature: float = 60.0
    grinding_min_mesh_size: float = 80.0


class RuleBook(_Frozen):
    """Immutable rule tables. Build with RuleBook.load() or from_mapping()."""

    version: str = "0.0.0"
    geo_fences: Dict[str, Tuple[GeoBox, ...]] = Field(default_factory=dict)
    seasons: Dict[str, FrozenSet[int]] = Field(default_factory=dict)
    daily_limits_kg: Dict[str, float] = Field(default_factory=dict)
    quality_thresholds: Dict[str, QualityThresholds] = Field(default_factory=dict)
    processing: ProcessingLimits = ProcessingLimits()
    certified_labs: FrozenSet[str] = frozenset()
    config_hash: str = ""

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "RuleBook":
        if not isinstance(raw, Mapping):
            raise ValueError("Rule tables must be a mapping")
        canonical = json.dumps(dict(raw), sort_keys=True, separators=(",", ":"))
        config_hash = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
        return cls.model_validate({**raw, "config_hash": config_hash})

    @classmethod
    def load(cls, path: str | Path) -> "RuleBook":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Rule tables not found: {path}")

        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise ValueError(f"Rule tables are not a valid YAML mapping: {path}")

        book = cls.from_mapping(raw)
        logger.info(
            "Rule tables loaded: version=%s, config_hash=%s", book.version, book.config_hash
        )
        return book


# --- RULES ---

class Rule(ABC):
    """
    One named business rule.

    check() returns None when the event passes and a human-readable reason
    when it fails. It must not mutate anything.
    """

    name: str

    def applies(self, event: Event) -> bool:
        return True

    @abstractmethod
    def check(self, event: Event, history: Sequence[Event], book: RuleBook) -> Optional[str]:
        ...


class GeoFenceRule(Rule):
    name = "geo_fence"

    def check(self, event, history, book):
        p: CollectionPayload = event.payload
        boxes = book.geo_fences.get(p.species)
        if not boxes:
            return f"No approved collection zones registered for {p.species}"
        if not any(box.contains(p.gps.latitude, p.gps.longitude) for box in boxes):
            return (
                f"GPS location {p.gps.latitude}, {p.gps.longitude} "
                f"is outside approved zones for {p.species}"
            )
        return None


class SeasonRule(Rule):
    name = "season"

    def check(self, event, history, book):
        p: CollectionPayload = event.payload
        months = book.seasons.get(p.species)
        if not months:
            return f"No collection season registered for {p.species}"
        month = utc_datetime(event.timestamp).month
        if month not in months:
            return f"{p.species} cannot be collected in month {month}"
        return None


class DailyLimitRule(Rule):
    name = "daily_limit"

    def check(self, event, history, book):
        p: CollectionPayload = event.payload
        limit = book.daily_limits_kg.get(p.species)
        if limit is None:
            return f"No daily collection limit registered for {p.species}"

        day = calendar_day(event.timestamp)
        collected = sum(
            e.payload.quantity
            for e in history
            if e.kind == EventKind.COLLECTION
            and e.payload.species == p.species
            and e.payload.farmer_id == p.farmer_id
            and calendar_day(e.timestamp) == day
        )
        if collected + p.quantity > limit:
            return (
                f"Daily limit exceeded for farmer {p.farmer_id}: "
                f"{collected + p.quantity:g} kg of {p.species} on {day} (limit {limit:g} kg)"
            )
        return None


class QualityRule(Rule):
    name = "quality"

    def applies(self, event):
        return event.payload.quality_metrics is not None

    def check(self, event, history, book):
        p: CollectionPayload = event.payload
        t = book.quality_thresholds.get(p.species)
        if t is None:
            return f"No quality rules defined for {p.species}"

        m = p.quality_metrics
        if m.moisture is not None and t.moisture_max is not None and m.moisture > t.moisture_max:
            return f"Moisture content {m.moisture:g}% exceeds maximum {t.moisture_max:g}%"
        if (m.active_compound is not None and t.active_compound_min is not None
                and m.active_compound < t.active_compound_min):
            return (
                f"Active compound content {m.active_compound:g}% "
                f"below minimum {t.active_compound_min:g}%"
            )
        if m.pesticide is not None and t.pesticide_max is not None and m.pesticide > t.pesticide_max:
            return f"Pesticide residue {m.pesticide:g} exceeds maximum {t.pesticide_max:g}"
        if (m.heavy_metals is not None and t.heavy_metals_max is not None
                and m.heavy_metals > t.heavy_metals_max):
            return f"Heavy metals {m.heavy_metals:g} exceed maximum {t.heavy_metals_max:g}"
        return None


class BatchTraceabilityRule(Rule):
    name = "batch_traceability"

    def check(self, event, history, book):
        batch_id = event.payload.batch_id
        if not batch_exists(batch_id, history):
            return f"Batch {batch_id} not found in ledger"
        return None


class ProcessingConditionsRule(Rule):
    name = "processing_conditions"

    def check(self, event, history, book):
        p: ProcessingPayload = event.payload
        c = p.conditions
        limits = book.processing
        if (p.processing_type == "drying" and c.temperature is not None
                and c.temperature > limits.drying_max_temperature):
            return (
                f"Drying temperature {c.temperature:g}C above {limits.drying_max_temperature:g}C "
                "may degrade active compounds"
            )
        if (p.processing_type == "grinding" and c.mesh_size is not None
                and c.mesh_size < limits.grinding_min_mesh_size):
            return (
                f"Mesh size {c.mesh_size:g} too coarse for pharmaceutical grade "
                f"(minimum {limits.grinding_min_mesh_size:g})"
            )
        return None


class LabCertificationRule(Rule):
    name = "lab_certification"

    def check(self, event, history, book):
        p: QualityTestPayload = event.payload
        if p.lab_id not in book.certified_labs:
            return f"Lab {p.lab_id} is not certified for testing"
        return None


def batch_exists(batch_id: str, history: Sequence[Event]) -> bool:
    """A batch exists if any recorded event has that id or embeds it as batch_id."""
    return any(e.event_id == batch_id or e.batch_id == batch_id for e in history)


KIND_RULES: Mapping[EventKind, Tuple[Rule, ...]] = {
    EventKind.COLLECTION: (GeoFenceRule(), SeasonRule(), DailyLimitRule(), QualityRule()),
    EventKind.PROCESSING: (BatchTraceabilityRule(), ProcessingConditionsRule()),
    EventKind.QUALITY_TEST: (BatchTraceabilityRule(), LabCertificationRule()),
}


# --- ENGINE ---

class RuleEngine:
    """
    Runs the rules for an event's kind, in order, against the full history.

    The engine holds nothing but its RuleBook, so one instance can serve
    any number of concurrent callers.
    """

    def __init__(self, rulebook: RuleBook) -> None:
        self._book = rulebook

    @property
    def rulebook(self) -> RuleBook:
        return self._book

    def evaluate(self, event: Event, history: Sequence[Event]) -> ContractOutcome:
        """
        Evaluate `event` against `history` (every sealed and pooled event).

        Returns:
            ContractOutcome listing each evaluated rule, in order.

        Raises:
            LedgerException: CONTRACT_VIOLATION for the first failing rule.
        """
        checks = []
        for rule in KIND_RULES.get(event.kind, ()):
            if not rule.applies(event):
                continue
            reason = rule.check(event, history, self._book)
            if reason is not None:
                raise LedgerException(contract_violation(rule.name, reason))
            checks.append(RuleCheck(rule=rule.name, passed=True))

        return ContractOutcome(
            valid=True,
            contract_digest=hashing.contract_digest(
                event.event_id, event.timestamp, event.kind.value, event.node_id
            ),
            checks=tuple(checks),
        )
