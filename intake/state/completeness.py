from __future__ import annotations

from typing import Any, Mapping, Optional

from intake.state.registry import FIELD_SPECS, FieldId, FieldKind


def _member(value: Any, name: str) -> Any:
    if isinstance(value, Mapping):
        return value.get(name)
    return getattr(value, name, None)


def _is_affirmative(discriminator: Any) -> bool:
    return discriminator is True or discriminator == "Yes"


def _has_content(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, bool):
        return True
    if isinstance(value, (int, float)):
        # A zero amount counts as missing.
        return value != 0
    return True


def is_complete(field_id: FieldId, value: Any) -> bool:
    if value is None:
        return False

    spec = FIELD_SPECS[field_id]
    if spec.kind is not FieldKind.COMPOSITE:
        return True

    discriminator = _member(value, spec.discriminator.name)
    if discriminator is None:
        return False
    if _is_affirmative(discriminator):
        return _has_content(_member(value, spec.dependent.name))
    return True


def missing_dependent(field_id: FieldId, value: Any) -> Optional[str]:
    """Name of the composite member still owed, if any."""
    spec = FIELD_SPECS[field_id]
    if spec.kind is not FieldKind.COMPOSITE or value is None:
        return None
    discriminator = _member(value, spec.discriminator.name)
    if discriminator is None:
        return spec.discriminator.name
    if _is_affirmative(discriminator) and not _has_content(_member(value, spec.dependent.name)):
        return spec.dependent.name
    return None
