from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from intake.state.registry import FIELD_SPECS, FieldId

from .llm_base import LLMAdapter, LLMResponse

_SCENARIOS: Dict[str, Dict[str, Any]] = {
    "default": {
        "contact.full_name": "Jane Roe",
        "contact.email": "jane.roe@example.com",
        "admin.prior_representation": False,
        "admin.conflict_party": "Richard Miles",
        "incident.accident_date": "2024-03-14",
        "incident.accident_time": "Afternoon",
        "incident.location_jurisdiction": "Austin, TX",
        "incident.weather_conditions": "Light rain",
        "incident.vehicle_description": "2015 Red Toyota Camry",
        "incident.police_report_filed": True,
        "liability.claimant_role": "Driver",
        "liability.fault_admission": {"status": "Yes", "statement": "He said sorry, he was texting."},
        "liability.citation_issued": True,
        "liability.witness_presence": False,
        "damages.injury_details": {"has_injury": True, "description": "Whiplash and a sprained wrist"},
        "damages.medical_treatment": True,
        "damages.hospitalization_details": {"was_hospitalized": False, "duration": None},
        "damages.lost_wages_details": {"has_lost_wages": True, "amount": 2400},
        "admin.insurance_status": True,
    },
    "conflict": {
        "contact.full_name": "Jane Roe",
        "contact.email": "jane.roe@example.com",
        "admin.prior_representation": False,
        "admin.conflict_party": "Sarah Connor",
    },
    "represented": {
        "contact.full_name": "Jane Roe",
        "contact.email": "jane.roe@example.com",
        "admin.prior_representation": True,
    },
}


@dataclass
class MockAdapter(LLMAdapter):
    """Offline oracle: answers the first requested slot from a canned scenario."""

    scenario: str = "default"
    provider: str = "mock"
    model_name: str = "mock"
    prompts: List[str] = field(default_factory=list)

    def complete(self, prompt: str, system: str = "", schema: Optional[Dict[str, Any]] = None) -> LLMResponse:
        self.prompts.append(prompt)
        payload = self._build_payload(system, schema or {})
        return LLMResponse(raw_text=json.dumps(payload))

    def generate(self, prompt: str, system: str = "", schema: Optional[Dict[str, Any]] = None) -> str:
        return self.complete(prompt, system=system, schema=schema).raw_text

    def _build_payload(self, system: str, schema: Dict[str, Any]) -> Dict[str, Any]:
        if "corrected_data" in system:
            return {
                "audit_reasoning": "Mock audit clean.",
                "corrected_data": {},
                "flagged_issue": None,
                "verification_prompt": None,
            }

        answers = _SCENARIOS.get(self.scenario, _SCENARIOS["default"])
        slot_ids = [key for key in schema.get("properties", {}) if key != "response_text"]
        payload: Dict[str, Any] = {slot_id: None for slot_id in slot_ids}
        if slot_ids and slot_ids[0] in answers:
            payload[slot_ids[0]] = answers[slot_ids[0]]
        if len(slot_ids) > 1:
            payload["response_text"] = f"Thank you. {FIELD_SPECS[FieldId(slot_ids[1])].question}"
        else:
            payload["response_text"] = "Thank you. That is everything I need for now."
        return payload
