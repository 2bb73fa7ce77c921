from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional

from intake.gates import validators
from intake.state.completeness import is_complete
from intake.state.record import (
    CaseRecord,
    CaseStatus,
    composite_from_mapping,
    get_value,
    is_composite,
    set_value,
)
from intake.state.registry import QUALIFICATION_GATE, FieldId, Vector


class PatchSource(str, Enum):
    FAST = "fast"
    AUDIT = "audit"
    SYSTEM = "system"


@dataclass
class Patch:
    source: PatchSource
    version: int
    vectors: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    status: Optional[CaseStatus] = None
    rejection_reason: Optional[str] = None

    @classmethod
    def from_flat(cls, source: PatchSource, version: int, flat: Mapping[str, Any]) -> "Patch":
        vectors: Dict[str, Dict[str, Any]] = {}
        for slot_id, value in flat.items():
            vector_key, _, attribute = slot_id.partition(".")
            if not vector_key or not attribute:
                continue
            vectors.setdefault(vector_key, {})[attribute] = value
        return cls(source=source, version=version, vectors=vectors)

    def field_ids(self) -> List[str]:
        return [f"{vector}.{name}" for vector, values in self.vectors.items() for name in (values or {})]


@dataclass
class MergeResult:
    applied: List[FieldId] = field(default_factory=list)
    rejected: List[str] = field(default_factory=list)
    stale: List[FieldId] = field(default_factory=list)
    unknown: List[str] = field(default_factory=list)
    status_changed: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.applied) or self.status_changed


Validator = Callable[..., bool]


def _clean(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip()
    return value


def _replace_composite(field_id: FieldId, value: Any, validate: Validator) -> Any:
    if value is None:
        return composite_from_mapping(field_id, None)
    if not validate(field_id, value):
        raise ValueError(field_id.value)
    return composite_from_mapping(field_id, {key: _clean(item) for key, item in value.items()})


def _correct_composite(
    field_id: FieldId, current: Any, value: Any, result: MergeResult
) -> Any:
    if value is None:
        return composite_from_mapping(field_id, None)
    if not isinstance(value, Mapping):
        raise ValueError(field_id.value)
    updated = copy.copy(current)
    touched = False
    for member_name, item in value.items():
        if not validators.validate_member(field_id, member_name, item):
            result.rejected.append(f"{field_id.value}.{member_name}")
            continue
        setattr(updated, member_name, _clean(item))
        touched = True
    if not touched:
        raise ValueError(field_id.value)
    return updated


def _candidate(
    record: CaseRecord,
    field_id: FieldId,
    value: Any,
    source: PatchSource,
    validate: Validator,
    result: MergeResult,
) -> Any:
    if is_composite(field_id):
        if source is PatchSource.AUDIT:
            return _correct_composite(field_id, get_value(record, field_id), value, result)
        return _replace_composite(field_id, value, validate)
    if not validate(field_id, value, allow_null=source is not PatchSource.FAST):
        raise ValueError(field_id.value)
    return _clean(value)


def _is_blank_extraction(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, Mapping) and all(item is None for item in value.values())


def merge(
    record: CaseRecord, patch: Patch, validate: Validator = validators.validate
) -> MergeResult:
    result = MergeResult()

    for vector_key, values in patch.vectors.items():
        try:
            Vector(vector_key)
        except ValueError:
            result.unknown.append(vector_key)
            continue
        if not isinstance(values, Mapping):
            result.rejected.append(vector_key)
            continue

        for attribute, value in values.items():
            slot_id = f"{vector_key}.{attribute}"
            field_id = FieldId.parse(slot_id)
            if field_id is None:
                result.unknown.append(slot_id)
                continue
            # Fast path nulls mean "not mentioned", never an invalidation.
            if patch.source is PatchSource.FAST and _is_blank_extraction(value):
                continue
            if record.version_of(field_id) > patch.version:
                result.stale.append(field_id)
                continue
            try:
                candidate = _candidate(record, field_id, value, patch.source, validate, result)
            except ValueError:
                result.rejected.append(slot_id)
                continue
            # A confirmed value still carries the newer version.
            record.field_versions[field_id] = max(record.version_of(field_id), patch.version)
            if candidate == get_value(record, field_id):
                continue
            set_value(record, field_id, candidate)
            result.applied.append(field_id)

    if patch.status is not None and patch.status is not record.status:
        if record.status is not CaseStatus.REJECTED:
            record.status = patch.status
            record.rejection_reason = patch.rejection_reason
            result.status_changed = True

    return result


def passes_qualification(record: CaseRecord) -> bool:
    if record.admin.prior_representation is not False:
        return False
    return all(is_complete(field_id, get_value(record, field_id)) for field_id in QUALIFICATION_GATE)


def advance_status(record: CaseRecord) -> bool:
    if record.status is CaseStatus.QUALIFICATION and passes_qualification(record):
        record.status = CaseStatus.INTAKE
        return True
    return False
