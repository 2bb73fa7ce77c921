from __future__ import annotations

from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, List

from intake.state.completeness import is_complete, missing_dependent
from intake.state.record import CaseRecord, get_value
from intake.state.registry import FIELD_SPECS, VECTOR_LABELS, Vector, fields_in
from intake.state.resolver import next_action, pending_steps, progress
from intake.utils.io import write_text


def _format_value(value: Any) -> str:
    if value is None:
        return "-"
    if is_dataclass(value):
        parts = [f"{key}={item}" for key, item in asdict(value).items() if item is not None]
        return ", ".join(parts) if parts else "-"
    if isinstance(value, bool):
        return "Yes" if value else "No"
    return str(value)


def write_case_summary(path: Path, record: CaseRecord) -> None:
    completed, total = progress(record)
    lines: List[str] = [
        f"# Case {record.case_id}",
        "",
        f"Status: {record.status.value}",
        f"Next action: {next_action(record)}",
        f"Progress: {completed}/{total} steps",
    ]
    if record.rejection_reason:
        lines.append(f"Reason: {record.rejection_reason}")

    for vector in Vector:
        lines.extend(["", f"## {VECTOR_LABELS[vector]}", ""])
        for spec in fields_in(vector):
            value = get_value(record, spec.field_id)
            marker = "x" if is_complete(spec.field_id, value) else " "
            line = f"- [{marker}] {spec.label}: {_format_value(value)}"
            owed = missing_dependent(spec.field_id, value)
            if owed and owed != spec.discriminator.name:
                line += f" (missing {owed})"
            lines.append(line)

    pending = list(pending_steps(record))
    if pending:
        lines.extend(["", "## Open Questions", ""])
        lines.extend(f"- {FIELD_SPECS[entry.field_id].question}" for entry in pending)
    write_text(path, "\n".join(lines) + "\n")
