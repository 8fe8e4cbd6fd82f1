"""
herbtrace_sdk/events.py - Event kinds and per-kind payload models

Payloads are a closed union keyed by EventKind: each kind has exactly one
frozen model and unknown fields are rejected.
"""
import copy
from enum import Enum
from typing import Any, Dict, List, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field


class EventKind(str, Enum):
    COLLECTION = "CollectionEvent"
    PROCESSING = "ProcessingStep"
    QUALITY_TEST = "QualityTest"
    MANUFACTURING = "ManufacturingRecord"
    COMPLIANCE = "ComplianceReport"
    # Only ever written by the ledger itself into block 0
    GENESIS = "Genesis"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", allow_inf_nan=False)


class PayloadBase(_Frozen):
    """Fields every payload may carry. node_id/node_role are stamped at admission."""
    batch_id: Optional[str] = None
    node_id: Optional[str] = None
    node_role: Optional[str] = None


class GpsPoint(_Frozen):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    accuracy: Optional[float] = None


class QualityMetrics(_Frozen):
    moisture: Optional[float] = None
    active_compound: Optional[float] = None
    pesticide: Optional[float] = None
    heavy_metals: Optional[float] = None
    appearance: Optional[str] = None
    odor: Optional[str] = None


class WeatherConditions(_Frozen):
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    rainfall: Optional[str] = None


class CollectionPayload(PayloadBase):
    farmer_id: str
    species: str
    quantity: float = Field(gt=0)
    unit: str = "kg"
    gps: GpsPoint
    quality_metrics: Optional[QualityMetrics] = None
    harvest_method: Optional[str] = None
    weather_conditions: Optional[WeatherConditions] = None


class ProcessingConditions(_Frozen):
    temperature: Optional[float] = None
    mesh_size: Optional[float] = None
    humidity: Optional[float] = None
    duration_hours: Optional[float] = None


class ProcessingPayload(PayloadBase):
    batch_id: str
    processing_type: str
    conditions: ProcessingConditions = ProcessingConditions()
    output_quantity: Optional[float] = None


class QualityTestPayload(PayloadBase):
    batch_id: str
    lab_id: str
    test_type: str
    results: Dict[str, Any] = Field(default_factory=dict)


class ManufacturingPayload(PayloadBase):
    product_name: str
    input_batches: List[str] = Field(default_factory=list)
    quantity: Optional[float] = None
    gmp_compliance: Optional[bool] = None
    details: Dict[str, Any] = Field(default_factory=dict)


class CompliancePayload(PayloadBase):
    report_type: str
    status: str
    findings: List[str] = Field(default_factory=list)
    details: Dict[str, Any] = Field(default_factory=dict)


class GenesisPayload(PayloadBase):
    message: str


EventPayload = Union[
    CollectionPayload,
    ProcessingPayload,
    QualityTestPayload,
    ManufacturingPayload,
    CompliancePayload,
    GenesisPayload,
]

PAYLOAD_MODELS: Dict[EventKind, Type[PayloadBase]] = {
    EventKind.COLLECTION: CollectionPayload,
    EventKind.PROCESSING: ProcessingPayload,
    EventKind.QUALITY_TEST: QualityTestPayload,
    EventKind.MANUFACTURING: ManufacturingPayload,
    EventKind.COMPLIANCE: CompliancePayload,
    EventKind.GENESIS: GenesisPayload,
}


def parse_payload(kind: EventKind, data: Union[Dict[str, Any], PayloadBase]) -> PayloadBase:
    """
    Coerce raw payload data into the model for `kind`.

    Input is copied, so the result shares no mutable state with the caller.
    Raises pydantic.ValidationError on schema errors and TypeError when a
    model of the wrong kind is passed.
    """
    model = PAYLOAD_MODELS[EventKind(kind)]
    if isinstance(data, PayloadBase):
        if not isinstance(data, model):
            raise TypeError(f"{type(data).__name__} is not a payload for {EventKind(kind).value}")
        data = data.model_dump()
    return model.model_validate(copy.deepcopy(data))


def payload_to_dict(payload: PayloadBase) -> Dict[str, Any]:
    """Plain JSON form; optional fields that were never set stay absent."""
    return payload.model_dump(mode="json", exclude_none=True)
