from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from intake.adapters.llm_base import LLMAdapter
from intake.gates.parsers import extract_json_object, screen_payload
from intake.oracle import call_oracle
from intake.state.reconciler import Patch, PatchSource
from intake.state.record import CaseRecord
from intake.state.scope import audit_schema
from intake.state.transcript import Message, render_transcript
from intake.utils.io import read_text
from intake.utils.session_log import SessionLog
from intake.utils.time import utc_date


@dataclass
class AuditFindings:
    patch: Patch
    reasoning: str
    flagged_issue: Optional[str] = None
    verification_prompt: Optional[str] = None


def _optional_text(value: object) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


class AuditPipeline:
    """Slow path: review a full record snapshot against the transcript."""

    def __init__(
        self,
        adapter: LLMAdapter,
        prompts_dir: Path,
        log: SessionLog,
        executor: ThreadPoolExecutor,
        timeout_seconds: float = 90.0,
    ) -> None:
        self.adapter = adapter
        self.prompts_dir = prompts_dir
        self.log = log
        self.executor = executor
        self.timeout_seconds = timeout_seconds

    def run(self, snapshot: CaseRecord, transcript: Sequence[Message], version: int) -> AuditFindings:
        self.log.log(
            "thinker",
            "input",
            "Starting full case validation",
            {"caseId": snapshot.case_id, "status": snapshot.status.value, "version": version},
        )
        template = read_text(self.prompts_dir / "auditor.md")
        system = template.replace("{{TODAY}}", utc_date()).replace(
            "{{CASE_FILE}}", json.dumps(snapshot.to_dict(), indent=2)
        )
        prompt = f"Chat History:\n{render_transcript(transcript)}\n"
        schema = audit_schema()

        response = call_oracle(
            self.adapter,
            self.executor,
            role="thinker",
            system=system,
            prompt=prompt,
            schema=schema,
            timeout_seconds=self.timeout_seconds,
            log=self.log,
        )
        payload, dropped = screen_payload(extract_json_object(response.raw_text), schema, prune_depth=4)
        if dropped:
            self.log.log("thinker", "output", "[SCHEMA REJECT] dropped corrections", {"paths": dropped})

        corrected = payload.get("corrected_data") or {}
        patch = Patch(source=PatchSource.AUDIT, version=version, vectors={key: value for key, value in corrected.items() if value is not None})
        findings = AuditFindings(
            patch=patch,
            reasoning=_optional_text(payload.get("audit_reasoning")) or "",
            flagged_issue=_optional_text(payload.get("flagged_issue")),
            verification_prompt=_optional_text(payload.get("verification_prompt")),
        )
        self.log.log(
            "thinker",
            "output",
            f"Validation complete: {len(patch.field_ids())} correction(s)",
            {"reasoning": findings.reasoning, "corrections": corrected},
        )
        return findings
