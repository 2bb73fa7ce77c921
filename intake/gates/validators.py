from __future__ import annotations

import re
from datetime import date
from typing import Any, Callable, Dict, Mapping

from intake.state.registry import FIELD_SPECS, FieldId, FieldKind, FieldSpec, Member

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$")
_REGION_CODE = re.compile(r"^[A-Z]{2}$")


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _valid_full_name(value: str) -> bool:
    return len(value.split()) >= 2


def _valid_email(value: str) -> bool:
    return bool(_EMAIL.match(value.strip()))


def _valid_phone(value: str) -> bool:
    digits = re.sub(r"\D", "", value)
    return 7 <= len(digits) <= 15


def _valid_iso_date(value: str) -> bool:
    text = value.strip()
    if not _ISO_DATE.match(text):
        return False
    try:
        date.fromisoformat(text)
    except ValueError:
        return False
    return True


def _valid_jurisdiction(value: str) -> bool:
    text = value.strip()
    if "," in text:
        locality, _, region = text.partition(",")
        return bool(locality.strip()) and bool(region.strip())
    tokens = text.split()
    return len(tokens) >= 2 and bool(_REGION_CODE.match(tokens[-1]))


_TEXT_RULES: Dict[FieldId, Callable[[str], bool]] = {
    FieldId.CONTACT_FULL_NAME: _valid_full_name,
    FieldId.CONTACT_EMAIL: _valid_email,
    FieldId.CONTACT_PHONE_NUMBER: _valid_phone,
    FieldId.INCIDENT_ACCIDENT_DATE: _valid_iso_date,
    FieldId.INCIDENT_LOCATION_JURISDICTION: _valid_jurisdiction,
}


def _valid_scalar(kind: FieldKind, choices: tuple, value: Any) -> bool:
    if kind is FieldKind.STRING:
        return _is_text(value)
    if kind is FieldKind.BOOLEAN:
        return isinstance(value, bool)
    if kind is FieldKind.ENUM:
        return isinstance(value, str) and value in choices
    if kind is FieldKind.NUMBER:
        return _is_number(value) and value >= 0
    return False


def _valid_member(member: Member, value: Any) -> bool:
    if value is None:
        return True
    return _valid_scalar(member.kind, member.choices, value)


def _valid_composite(spec: FieldSpec, value: Any) -> bool:
    if not isinstance(value, Mapping):
        return False
    members = {member.name: member for member in spec.members}
    if any(key not in members for key in value):
        return False
    return all(_valid_member(members[name], item) for name, item in value.items())


def validate(field_id: FieldId, value: Any, allow_null: bool = False) -> bool:
    if value is None:
        return allow_null

    spec = FIELD_SPECS[field_id]
    if spec.kind is FieldKind.COMPOSITE:
        return _valid_composite(spec, value)
    if not _valid_scalar(spec.kind, spec.choices, value):
        return False
    rule = _TEXT_RULES.get(field_id)
    if rule is not None:
        return rule(value)
    return True


def validate_member(field_id: FieldId, member_name: str, value: Any) -> bool:
    spec = FIELD_SPECS[field_id]
    for member in spec.members:
        if member.name == member_name:
            return _valid_member(member, value)
    return False
