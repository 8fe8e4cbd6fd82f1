"""Primitives shared by the herbtrace ledger engine and the offline verifier."""
from .events import (
    EventKind,
    PAYLOAD_MODELS,
    CollectionPayload,
    CompliancePayload,
    GenesisPayload,
    GpsPoint,
    ManufacturingPayload,
    PayloadBase,
    ProcessingConditions,
    ProcessingPayload,
    QualityMetrics,
    QualityTestPayload,
    WeatherConditions,
    parse_payload,
    payload_to_dict,
)

__all__ = [
    "EventKind",
    "PAYLOAD_MODELS",
    "CollectionPayload",
    "CompliancePayload",
    "GenesisPayload",
    "GpsPoint",
    "ManufacturingPayload",
    "PayloadBase",
    "ProcessingConditions",
    "ProcessingPayload",
    "QualityMetrics",
    "QualityTestPayload",
    "WeatherConditions",
    "parse_payload",
    "payload_to_dict",
]
