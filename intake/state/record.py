from __future__ import annotations

import copy
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, Dict, Optional, Type

from intake.state.registry import FIELD_SPECS, FieldId, FieldKind, Vector


class CaseStatus(str, Enum):
    QUALIFICATION = "QUALIFICATION"
    INTAKE = "INTAKE"
    REJECTED = "REJECTED"
    REFERRED = "REFERRED"
    CLOSED = "CLOSED"


@dataclass
class FaultAdmission:
    status: Optional[str] = None
    statement: Optional[str] = None


@dataclass
class InjuryDetails:
    has_injury: Optional[bool] = None
    description: Optional[str] = None


@dataclass
class HospitalizationDetails:
    was_hospitalized: Optional[bool] = None
    duration: Optional[str] = None


@dataclass
class LostWagesDetails:
    has_lost_wages: Optional[bool] = None
    amount: Optional[float] = None


COMPOSITE_TYPES: Dict[FieldId, Type] = {
    FieldId.LIABILITY_FAULT_ADMISSION: FaultAdmission,
    FieldId.DAMAGES_INJURY_DETAILS: InjuryDetails,
    FieldId.DAMAGES_HOSPITALIZATION_DETAILS: HospitalizationDetails,
    FieldId.DAMAGES_LOST_WAGES_DETAILS: LostWagesDetails,
}


@dataclass
class ContactVector:
    full_name: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None


@dataclass
class IncidentVector:
    accident_date: Optional[str] = None
    accident_time: Optional[str] = None
    location_jurisdiction: Optional[str] = None
    police_report_filed: Optional[bool] = None
    weather_conditions: Optional[str] = None
    vehicle_description: Optional[str] = None


@dataclass
class LiabilityVector:
    fault_admission: FaultAdmission = field(default_factory=FaultAdmission)
    citation_issued: Optional[bool] = None
    witness_presence: Optional[bool] = None
    claimant_role: Optional[str] = None


@dataclass
class DamagesVector:
    injury_details: InjuryDetails = field(default_factory=InjuryDetails)
    medical_treatment: Optional[bool] = None
    hospitalization_details: HospitalizationDetails = field(default_factory=HospitalizationDetails)
    lost_wages_details: LostWagesDetails = field(default_factory=LostWagesDetails)


@dataclass
class AdministrativeVector:
    insurance_status: Optional[bool] = None
    prior_representation: Optional[bool] = None
    conflict_party: Optional[str] = None


@dataclass
class CaseRecord:
    case_id: str
    status: CaseStatus = CaseStatus.QUALIFICATION
    rejection_reason: Optional[str] = None
    contact: ContactVector = field(default_factory=ContactVector)
    incident: IncidentVector = field(default_factory=IncidentVector)
    liability: LiabilityVector = field(default_factory=LiabilityVector)
    damages: DamagesVector = field(default_factory=DamagesVector)
    admin: AdministrativeVector = field(default_factory=AdministrativeVector)
    # Logical clock; advanced every time a producer takes a snapshot.
    clock: int = 0
    field_versions: Dict[FieldId, int] = field(default_factory=dict)

    def tick(self) -> int:
        self.clock += 1
        return self.clock

    def version_of(self, field_id: FieldId) -> int:
        return self.field_versions.get(field_id, 0)

    def vector(self, vector: Vector) -> Any:
        return getattr(self, vector.value)

    def snapshot(self) -> "CaseRecord":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "case_id": self.case_id,
            "status": self.status.value,
        }
        if self.rejection_reason:
            payload["rejection_reason"] = self.rejection_reason
        for vector in Vector:
            payload[vector.value] = asdict(self.vector(vector))
        return payload


def new_case_record(case_id: str) -> CaseRecord:
    return CaseRecord(case_id=case_id)


def get_value(record: CaseRecord, field_id: FieldId) -> Any:
    return getattr(record.vector(field_id.vector), field_id.attribute)


def set_value(record: CaseRecord, field_id: FieldId, value: Any) -> None:
    setattr(record.vector(field_id.vector), field_id.attribute, value)


def is_composite(field_id: FieldId) -> bool:
    return FIELD_SPECS[field_id].kind is FieldKind.COMPOSITE


def composite_from_mapping(field_id: FieldId, data: Optional[Dict[str, Any]]) -> Any:
    cls = COMPOSITE_TYPES[field_id]
    if not data:
        return cls()
    names = {item.name for item in fields(cls)}
    return cls(**{key: value for key, value in data.items() if key in names})
