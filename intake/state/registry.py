from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


class Vector(str, Enum):
    CONTACT = "contact"
    INCIDENT = "incident"
    LIABILITY = "liability"
    DAMAGES = "damages"
    ADMIN = "admin"


VECTOR_LABELS: Dict[Vector, str] = {
    Vector.CONTACT: "Contact",
    Vector.INCIDENT: "Incident",
    Vector.LIABILITY: "Liability",
    Vector.DAMAGES: "Damages",
    Vector.ADMIN: "Administrative",
}


class FieldId(str, Enum):
    CONTACT_FULL_NAME = "contact.full_name"
    CONTACT_PHONE_NUMBER = "contact.phone_number"
    CONTACT_EMAIL = "contact.email"
    INCIDENT_ACCIDENT_DATE = "incident.accident_date"
    INCIDENT_ACCIDENT_TIME = "incident.accident_time"
    INCIDENT_LOCATION_JURISDICTION = "incident.location_jurisdiction"
    INCIDENT_POLICE_REPORT_FILED = "incident.police_report_filed"
    INCIDENT_WEATHER_CONDITIONS = "incident.weather_conditions"
    INCIDENT_VEHICLE_DESCRIPTION = "incident.vehicle_description"
    LIABILITY_FAULT_ADMISSION = "liability.fault_admission"
    LIABILITY_CITATION_ISSUED = "liability.citation_issued"
    LIABILITY_WITNESS_PRESENCE = "liability.witness_presence"
    LIABILITY_CLAIMANT_ROLE = "liability.claimant_role"
    DAMAGES_INJURY_DETAILS = "damages.injury_details"
    DAMAGES_MEDICAL_TREATMENT = "damages.medical_treatment"
    DAMAGES_HOSPITALIZATION_DETAILS = "damages.hospitalization_details"
    DAMAGES_LOST_WAGES_DETAILS = "damages.lost_wages_details"
    ADMIN_INSURANCE_STATUS = "admin.insurance_status"
    ADMIN_PRIOR_REPRESENTATION = "admin.prior_representation"
    ADMIN_CONFLICT_PARTY = "admin.conflict_party"

    @property
    def vector(self) -> Vector:
        return Vector(self.value.split(".", 1)[0])

    @property
    def attribute(self) -> str:
        return self.value.split(".", 1)[1]

    @classmethod
    def parse(cls, raw: str) -> Optional["FieldId"]:
        try:
            return cls(raw)
        except ValueError:
            return None


class FieldKind(str, Enum):
    STRING = "string"
    BOOLEAN = "boolean"
    ENUM = "enum"
    NUMBER = "number"
    COMPOSITE = "composite"


@dataclass(frozen=True)
class Member:
    name: str
    kind: FieldKind
    choices: Tuple[str, ...] = ()


@dataclass(frozen=True)
class FieldSpec:
    field_id: FieldId
    label: str
    kind: FieldKind
    instruction: str
    question: str
    constraint: Optional[str] = None
    choices: Tuple[str, ...] = ()
    members: Tuple[Member, ...] = field(default_factory=tuple)

    @property
    def vector(self) -> Vector:
        return self.field_id.vector

    @property
    def discriminator(self) -> Optional[Member]:
        return self.members[0] if self.members else None

    @property
    def dependent(self) -> Optional[Member]:
        return self.members[1] if len(self.members) > 1 else None


@dataclass(frozen=True)
class RegistryEntry:
    id: str
    label: str
    vector: str
    order: int

    @property
    def field_id(self) -> FieldId:
        return FieldId(self.id)


FAULT_STATUSES = ("Yes", "No", "Unknown")
CLAIMANT_ROLES = ("Driver", "Passenger", "Pedestrian")


def _spec(field_id: FieldId, label: str, kind: FieldKind, instruction: str, question: str, **extra) -> FieldSpec:
    return FieldSpec(field_id=field_id, label=label, kind=kind, instruction=instruction, question=question, **extra)


FIELD_SPECS: Dict[FieldId, FieldSpec] = {
    spec.field_id: spec
    for spec in [
        _spec(
            FieldId.CONTACT_FULL_NAME,
            "Full Name",
            FieldKind.STRING,
            "Ask ONLY for the user's full legal name.",
            "Could you please provide your full legal name?",
            constraint="Must be 2+ words (First + Last Name).",
        ),
        _spec(
            FieldId.CONTACT_PHONE_NUMBER,
            "Phone Number",
            FieldKind.STRING,
            "Ask ONLY for the user's phone number.",
            "And what is your phone number?",
            constraint="Must contain 7 to 15 digits.",
        ),
        _spec(
            FieldId.CONTACT_EMAIL,
            "Email Address",
            FieldKind.STRING,
            "Ask ONLY for the user's email address.",
            "What is the best email address to reach you at?",
            constraint="Must look like name@domain.tld.",
        ),
        _spec(
            FieldId.INCIDENT_ACCIDENT_DATE,
            "Accident Date",
            FieldKind.STRING,
            "Ask for the date of the accident.",
            "On what date did the accident occur?",
            constraint="Must be a calendar date formatted YYYY-MM-DD.",
        ),
        _spec(
            FieldId.INCIDENT_ACCIDENT_TIME,
            "Accident Time",
            FieldKind.STRING,
            "Ask for the approximate time of day.",
            "About what time of day did it happen?",
        ),
        _spec(
            FieldId.INCIDENT_LOCATION_JURISDICTION,
            "Location",
            FieldKind.STRING,
            "Ask for the City and State where the incident occurred.",
            "In which city and state did the incident take place?",
            constraint="Must include City AND State/Region.",
        ),
        _spec(
            FieldId.INCIDENT_POLICE_REPORT_FILED,
            "Police Report",
            FieldKind.BOOLEAN,
            "Ask if a police report was filed.",
            "Was a police report filed at the scene?",
        ),
        _spec(
            FieldId.INCIDENT_WEATHER_CONDITIONS,
            "Weather Conditions",
            FieldKind.STRING,
            "Ask about weather conditions.",
            "What were the weather and road conditions like at the time?",
        ),
        _spec(
            FieldId.INCIDENT_VEHICLE_DESCRIPTION,
            "Vehicle Description",
            FieldKind.STRING,
            "Ask for details of the user's vehicle (Year, Make, Model).",
            "Could you provide the year, make, and model of the vehicle you were in?",
        ),
        _spec(
            FieldId.LIABILITY_FAULT_ADMISSION,
            "Fault Admission",
            FieldKind.COMPOSITE,
            "Ask if the other driver admitted fault. IF YES: Ask exactly what they said. IF NO: Just confirm no.",
            "Did the other party admit fault or say anything about the cause of the accident?",
            constraint="status is Yes/No/Unknown; statement is required when status is Yes.",
            members=(
                Member("status", FieldKind.ENUM, FAULT_STATUSES),
                Member("statement", FieldKind.STRING),
            ),
        ),
        _spec(
            FieldId.LIABILITY_CITATION_ISSUED,
            "Citations Issued",
            FieldKind.BOOLEAN,
            "Ask if the other driver received a citation.",
            "To your knowledge, was the other driver issued a police citation?",
        ),
        _spec(
            FieldId.LIABILITY_WITNESS_PRESENCE,
            "Witnesses",
            FieldKind.BOOLEAN,
            "Ask if there were independent witnesses.",
            "Were there any independent witnesses who saw what happened?",
        ),
        _spec(
            FieldId.LIABILITY_CLAIMANT_ROLE,
            "Claimant Role",
            FieldKind.ENUM,
            "Ask if they were driver, passenger, or pedestrian.",
            "Were you the driver, a passenger, or a pedestrian in this incident?",
            constraint="One of Driver, Passenger, Pedestrian.",
            choices=CLAIMANT_ROLES,
        ),
        _spec(
            FieldId.DAMAGES_INJURY_DETAILS,
            "Injuries",
            FieldKind.COMPOSITE,
            "Ask if they were injured. IF YES: You MUST get a description of the injuries. IF NO: Confirm no injuries.",
            "Were you or anyone else in your vehicle injured? If so, could you briefly describe the injuries?",
            constraint="description is required when has_injury is true.",
            members=(
                Member("has_injury", FieldKind.BOOLEAN),
                Member("description", FieldKind.STRING),
            ),
        ),
        _spec(
            FieldId.DAMAGES_MEDICAL_TREATMENT,
            "Medical Treatment",
            FieldKind.BOOLEAN,
            "Ask if they saw a doctor or went to urgent care.",
            "Did you receive any medical treatment or see a doctor following the accident?",
        ),
        _spec(
            FieldId.DAMAGES_HOSPITALIZATION_DETAILS,
            "Hospitalization",
            FieldKind.COMPOSITE,
            "Ask if they were hospitalized. IF YES: Ask for how long (duration).",
            "Were you hospitalized? If so, for how many days?",
            constraint="duration is required when was_hospitalized is true.",
            members=(
                Member("was_hospitalized", FieldKind.BOOLEAN),
                Member("duration", FieldKind.STRING),
            ),
        ),
        _spec(
            FieldId.DAMAGES_LOST_WAGES_DETAILS,
            "Lost Wages",
            FieldKind.COMPOSITE,
            "Ask if they lost income/wages. IF YES: Ask for the approximate amount lost.",
            "Have you lost any income or wages due to being unable to work? If so, about how much?",
            constraint="amount (non-negative number) is required when has_lost_wages is true.",
            members=(
                Member("has_lost_wages", FieldKind.BOOLEAN),
                Member("amount", FieldKind.NUMBER),
            ),
        ),
        _spec(
            FieldId.ADMIN_INSURANCE_STATUS,
            "Insurance Status",
            FieldKind.BOOLEAN,
            "Ask if the other party is insured.",
            "Lastly, do you know if the other party involved has insurance coverage?",
        ),
        _spec(
            FieldId.ADMIN_PRIOR_REPRESENTATION,
            "Prior Representation",
            FieldKind.BOOLEAN,
            "Ask if the user already has an attorney. Critical stop question.",
            "Do you already have an attorney representing you for this specific incident?",
        ),
        _spec(
            FieldId.ADMIN_CONFLICT_PARTY,
            "Conflict Check",
            FieldKind.STRING,
            "Ask for the FULL NAME of the party they are suing (for conflict check).",
            "For our conflict check, what is the full name of the person or entity you are seeking to hold responsible?",
        ),
    ]
}

# Standard operating procedure: the order in which the interview collects fields.
_SOP_ORDER: List[FieldId] = [
    FieldId.CONTACT_FULL_NAME,
    FieldId.CONTACT_EMAIL,
    FieldId.ADMIN_PRIOR_REPRESENTATION,
    FieldId.ADMIN_CONFLICT_PARTY,
    FieldId.INCIDENT_ACCIDENT_DATE,
    FieldId.INCIDENT_ACCIDENT_TIME,
    FieldId.INCIDENT_LOCATION_JURISDICTION,
    FieldId.INCIDENT_WEATHER_CONDITIONS,
    FieldId.INCIDENT_VEHICLE_DESCRIPTION,
    FieldId.INCIDENT_POLICE_REPORT_FILED,
    FieldId.LIABILITY_CLAIMANT_ROLE,
    FieldId.LIABILITY_FAULT_ADMISSION,
    FieldId.LIABILITY_CITATION_ISSUED,
    FieldId.LIABILITY_WITNESS_PRESENCE,
    FieldId.DAMAGES_INJURY_DETAILS,
    FieldId.DAMAGES_MEDICAL_TREATMENT,
    FieldId.DAMAGES_HOSPITALIZATION_DETAILS,
    FieldId.DAMAGES_LOST_WAGES_DETAILS,
    FieldId.ADMIN_INSURANCE_STATUS,
]

INTAKE_STEPS: Tuple[RegistryEntry, ...] = tuple(
    RegistryEntry(
        id=field_id.value,
        label=FIELD_SPECS[field_id].label,
        vector=VECTOR_LABELS[field_id.vector],
        order=index,
    )
    for index, field_id in enumerate(_SOP_ORDER)
)

# Fields that must be settled before the case leaves qualification.
QUALIFICATION_GATE: Tuple[FieldId, ...] = (
    FieldId.ADMIN_PRIOR_REPRESENTATION,
    FieldId.ADMIN_CONFLICT_PARTY,
)


def fields_in(vector: Vector) -> List[FieldSpec]:
    return [spec for spec in FIELD_SPECS.values() if spec.vector is vector]
