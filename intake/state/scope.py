from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from intake.state.record import CaseRecord
from intake.state.registry import FIELD_SPECS, FieldId, FieldKind, FieldSpec, Member, Vector, fields_in
from intake.state.resolver import pending_steps, terminal_outcome

RESPONSE_TEXT_KEY = "response_text"

_JSON_TYPES = {
    FieldKind.STRING: "string",
    FieldKind.BOOLEAN: "boolean",
    FieldKind.ENUM: "string",
    FieldKind.NUMBER: "number",
}


@dataclass(frozen=True)
class Slot:
    id: str
    instruction: str
    constraint: Optional[str] = None


def next_slots(record: CaseRecord, n: int) -> List[Slot]:
    if n <= 0 or terminal_outcome(record) is not None:
        return []
    slots: List[Slot] = []
    for entry in pending_steps(record):
        spec = FIELD_SPECS[entry.field_id]
        slots.append(Slot(id=entry.id, instruction=spec.instruction, constraint=spec.constraint))
        if len(slots) >= n:
            break
    return slots


def render_checklist(slots: List[Slot]) -> str:
    if not slots:
        return "ALL STEPS COMPLETE - Thank user and summarize case."
    return "\n".join(
        f'Step {index}: [{slot.id}] is Pending.\n      -> TARGET: "{slot.instruction}"'
        for index, slot in enumerate(slots, start=1)
    )


def render_constraints(slots: List[Slot]) -> str:
    lines = []
    for slot in slots:
        if slot.constraint:
            lines.append(f" - {slot.id}: {slot.constraint}")
        else:
            lines.append(f" - {slot.id}")
    return "\n".join(lines)


def _nullable(schema: Dict[str, Any]) -> Dict[str, Any]:
    nullable = dict(schema)
    declared = nullable.get("type")
    if isinstance(declared, str):
        nullable["type"] = [declared, "null"]
    if "enum" in nullable:
        nullable["enum"] = list(nullable["enum"]) + [None]
    return nullable


def _member_schema(member: Member) -> Dict[str, Any]:
    schema: Dict[str, Any] = {"type": _JSON_TYPES[member.kind]}
    if member.choices:
        schema["enum"] = list(member.choices)
    if member.kind is FieldKind.NUMBER:
        schema["minimum"] = 0
    return _nullable(schema)


def field_schema(spec: FieldSpec) -> Dict[str, Any]:
    if spec.kind is FieldKind.COMPOSITE:
        schema: Dict[str, Any] = {
            "type": "object",
            "properties": {member.name: _member_schema(member) for member in spec.members},
            "additionalProperties": False,
        }
    else:
        schema = {"type": _JSON_TYPES[spec.kind]}
        if spec.choices:
            schema["enum"] = list(spec.choices)
    return _nullable(schema)


def scoped_schema(slot_ids: Iterable[str]) -> Dict[str, Any]:
    properties: Dict[str, Any] = {RESPONSE_TEXT_KEY: {"type": "string"}}
    required: List[str] = [RESPONSE_TEXT_KEY]
    for slot_id in slot_ids:
        field_id = FieldId.parse(slot_id)
        if field_id is None or slot_id in properties:
            continue
        properties[slot_id] = field_schema(FIELD_SPECS[field_id])
        required.append(slot_id)
    return {
        "type": "object",
        "properties": properties,
        "required": required,
        "additionalProperties": False,
    }


def record_schema() -> Dict[str, Any]:
    """Full-record correction shape accepted from the audit oracle."""
    vectors: Dict[str, Any] = {}
    for vector in Vector:
        vectors[vector.value] = {
            "type": ["object", "null"],
            "properties": {spec.field_id.attribute: field_schema(spec) for spec in fields_in(vector)},
        }
    return {"type": ["object", "null"], "properties": vectors}


def audit_schema() -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "audit_reasoning": {"type": ["string", "null"]},
            "corrected_data": record_schema(),
            "flagged_issue": {"type": ["string", "null"]},
            "verification_prompt": {"type": ["string", "null"]},
        },
        "required": ["corrected_data"],
    }
