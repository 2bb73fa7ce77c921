from pathlib import Path
from typing import Any, Dict

import pytest

from intake.state.reconciler import Patch, PatchSource, merge
from intake.state.record import CaseRecord, new_case_record

PROMPTS_DIR = Path(__file__).resolve().parents[1] / "configs" / "prompts"

COMPLETE_ANSWERS: Dict[str, Dict[str, Any]] = {
    "contact": {"full_name": "Jane Roe", "email": "jane.roe@example.com"},
    "incident": {
        "accident_date": "2024-03-14",
        "accident_time": "Afternoon",
        "location_jurisdiction": "Austin, TX",
        "weather_conditions": "Light rain",
        "vehicle_description": "2015 Red Toyota Camry",
        "police_report_filed": True,
    },
    "liability": {
        "claimant_role": "Driver",
        "fault_admission": {"status": "No", "statement": None},
        "citation_issued": False,
        "witness_presence": True,
    },
    "damages": {
        "injury_details": {"has_injury": True, "description": "Sprained wrist"},
        "medical_treatment": True,
        "hospitalization_details": {"was_hospitalized": False, "duration": None},
        "lost_wages_details": {"has_lost_wages": True, "amount": 2400},
    },
    "admin": {"prior_representation": False, "conflict_party": "Richard Miles", "insurance_status": True},
}


def system_patch(record: CaseRecord, vectors: Dict[str, Dict[str, Any]]) -> Patch:
    return Patch(source=PatchSource.SYSTEM, version=record.tick(), vectors=vectors)


@pytest.fixture
def prompts_dir() -> Path:
    return PROMPTS_DIR


@pytest.fixture
def record() -> CaseRecord:
    return new_case_record("CASE-TEST")


@pytest.fixture
def complete_record() -> CaseRecord:
    record = new_case_record("CASE-FULL")
    result = merge(record, system_patch(record, COMPLETE_ANSWERS))
    assert not result.rejected
    return record
