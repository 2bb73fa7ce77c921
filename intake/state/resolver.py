from __future__ import annotations

from typing import Dict, Iterator, Tuple

from intake.state.completeness import is_complete
from intake.state.record import CaseRecord, CaseStatus, get_value
from intake.state.registry import FIELD_SPECS, INTAKE_STEPS, FieldId, RegistryEntry

REJECT_PRIOR_REP = "REJECT_PRIOR_REP"
REJECTED_GENERIC = "REJECTED_GENERIC"
REFERRED = "REFERRED"
CLOSED = "CLOSED"
COMPLETE = "COMPLETE"

TERMINAL_ACTIONS = frozenset({REJECT_PRIOR_REP, REJECTED_GENERIC, REFERRED, CLOSED, COMPLETE})

_TERMINAL_INSTRUCTIONS: Dict[str, str] = {
    REJECT_PRIOR_REP: "Explain we cannot represent them (already represented). Close.",
    REJECTED_GENERIC: "Politely explain we cannot proceed. Close.",
    REFERRED: "Explain the case has been referred to another firm. Close.",
    CLOSED: "Explain this intake has been closed. Close.",
    COMPLETE: "Inform user intake is complete.",
}

_DEFAULT_INSTRUCTION = "Gather the missing information."


def terminal_outcome(record: CaseRecord) -> str | None:
    if record.admin.prior_representation is True:
        return REJECT_PRIOR_REP
    if record.status is CaseStatus.REJECTED:
        return REJECTED_GENERIC
    if record.status is CaseStatus.REFERRED:
        return REFERRED
    if record.status is CaseStatus.CLOSED:
        return CLOSED
    return None


def pending_steps(record: CaseRecord) -> Iterator[RegistryEntry]:
    for entry in INTAKE_STEPS:
        field_id = entry.field_id
        if not is_complete(field_id, get_value(record, field_id)):
            yield entry


def next_action(record: CaseRecord) -> str:
    outcome = terminal_outcome(record)
    if outcome is not None:
        return outcome
    for entry in pending_steps(record):
        return entry.id
    return COMPLETE


def is_terminal(action: str) -> bool:
    return action in TERMINAL_ACTIONS


def instruction_for(action: str) -> str:
    if action in _TERMINAL_INSTRUCTIONS:
        return _TERMINAL_INSTRUCTIONS[action]
    field_id = FieldId.parse(action)
    if field_id is None:
        return _DEFAULT_INSTRUCTION
    return FIELD_SPECS[field_id].instruction


def progress(record: CaseRecord) -> Tuple[int, int]:
    """(completed, total) over the SOP steps."""
    total = len(INTAKE_STEPS)
    return total - sum(1 for _ in pending_steps(record)), total
