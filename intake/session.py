from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from intake.adapters.llm_base import LLMAdapter
from intake.config import IntakeConfig
from intake.errors import ConflictDetected, OracleUnavailable, ParseFailure
from intake.gates.conflicts import ConflictScreener, conflict_reason, conflict_reply
from intake.pipeline_audit import AuditFindings, AuditPipeline
from intake.pipeline_turn import RETRY_PROMPT, ResponderPipeline
from intake.state import resolver
from intake.state.reconciler import MergeResult, Patch, PatchSource, advance_status, merge
from intake.state.record import CaseRecord, CaseStatus, new_case_record
from intake.state.registry import FieldId
from intake.state.transcript import SYSTEM_GREETING, Message
from intake.utils.session_log import SessionLog
from intake.utils.time import utc_timestamp

SYSTEM_ERROR_REPLY = "System Error. Please try again."

CLOSING_REPLIES: Dict[str, str] = {
    resolver.REJECT_PRIOR_REP: (
        "I'm sorry, but because you already have an attorney representing you for this incident, "
        "we are unable to represent you. Thank you for contacting us."
    ),
    resolver.REJECTED_GENERIC: "I'm sorry, but we are unable to proceed with your case. Thank you for contacting us.",
    resolver.REFERRED: "Your case has been referred to another firm, who will be in touch with you directly.",
    resolver.CLOSED: "This intake has been closed. Thank you for contacting us.",
    resolver.COMPLETE: "Thank you. Your intake is complete and a member of our team will be in touch shortly.",
}


@dataclass
class TurnResult:
    response_text: str
    next_action: str
    merge: Optional[MergeResult] = None
    latency: Dict[str, int] = field(default_factory=dict)
    error: Optional[str] = None


class IntakeSession:
    def __init__(
        self,
        responder_adapter: LLMAdapter,
        auditor_adapter: LLMAdapter,
        prompts_dir: Path,
        screener: Optional[ConflictScreener] = None,
        config: Optional[IntakeConfig] = None,
        case_id: Optional[str] = None,
        log: Optional[SessionLog] = None,
        audit_enabled: bool = True,
    ) -> None:
        self.config = config or IntakeConfig()
        self.screener = screener or ConflictScreener.default()
        self.log = log or SessionLog(self.config.log_buffer)
        self.audit_enabled = audit_enabled
        self.record: CaseRecord = new_case_record(case_id or f"CASE-{utc_timestamp()}")
        self.messages: List[Message] = [Message(role="assistant", content=SYSTEM_GREETING)]
        self.notices: List[Message] = []
        self._lock = threading.RLock()
        self._oracle_pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="intake-oracle")
        self._audit_pool = ThreadPoolExecutor(max_workers=2, thread_name_prefix="intake-audit")
        self._audits: List[Future] = []
        self.responder = ResponderPipeline(
            responder_adapter,
            prompts_dir,
            self.log,
            self._oracle_pool,
            slot_window=self.config.slot_window,
            history_limit=self.config.history_limit,
            timeout_seconds=self.config.oracle_timeout_seconds,
        )
        self.auditor = AuditPipeline(
            auditor_adapter,
            prompts_dir,
            self.log,
            self._oracle_pool,
            timeout_seconds=self.config.audit_timeout_seconds,
        )

    def __enter__(self) -> "IntakeSession":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def next_action(self) -> str:
        with self._lock:
            return resolver.next_action(self.record)

    def snapshot(self) -> CaseRecord:
        with self._lock:
            return self.record.snapshot()

    def apply(self, patch: Patch) -> MergeResult:
        """Single point where patches reach the record."""
        with self._lock:
            result = merge(self.record, patch)
            if result.rejected:
                self.log.log(patch.source.value, "output", "[VALIDATION REJECT] constraint failed", {"fields": result.rejected})
            if result.stale:
                self.log.log(
                    patch.source.value,
                    "output",
                    "[STALE WRITE] newer values kept",
                    {"fields": [field_id.value for field_id in result.stale], "patchVersion": patch.version},
                )
            if FieldId.ADMIN_CONFLICT_PARTY in result.applied:
                self._screen(self.record.admin.conflict_party)
            advance_status(self.record)
            return result

    def _screen(self, name: Optional[str]) -> None:
        if not self.screener.screen(name):
            return
        self.log.log("screener", "output", f"Conflict detected for {name}")
        merge(
            self.record,
            Patch(
                source=PatchSource.SYSTEM,
                version=self.record.tick(),
                status=CaseStatus.REJECTED,
                rejection_reason=conflict_reason(name),
            ),
        )

    def submit(self, text: str) -> TurnResult:
        with self._lock:
            if self.record.status is CaseStatus.REJECTED:
                raise ConflictDetected(self.record.rejection_reason or "Case rejected.")
            action = resolver.next_action(self.record)
            self.messages.append(Message(role="user", content=text))
            if resolver.is_terminal(action):
                return self._reply(CLOSING_REPLIES[action], action)
            version = self.record.tick()
            view = self.record.snapshot()
            history = list(self.messages[:-1])

        try:
            extraction = self.responder.run(view, history, text, version)
        except ParseFailure as exc:
            self.log.log("responder", "output", f"ERROR: {exc}")
            return self._reply(RETRY_PROMPT, self.next_action(), error="parse_failure")
        except OracleUnavailable as exc:
            self.log.log("responder", "output", f"ERROR: {exc}")
            return self._reply(SYSTEM_ERROR_REPLY, self.next_action(), error="oracle_unavailable")

        result = self.apply(extraction.patch)
        with self._lock:
            action = resolver.next_action(self.record)
            if self.record.status is CaseStatus.REJECTED:
                response_text = conflict_reply(self.record.admin.conflict_party or "")
            elif action in CLOSING_REPLIES and action != resolver.COMPLETE:
                response_text = CLOSING_REPLIES[action]
            else:
                response_text = extraction.response_text
            turn = self._reply(response_text, action, merge_result=result, latency=extraction.latency)
            rejected = self.record.status is CaseStatus.REJECTED

        if self.audit_enabled and not rejected:
            self._dispatch_audit()
        return turn

    def _reply(
        self,
        response_text: str,
        action: str,
        merge_result: Optional[MergeResult] = None,
        latency: Optional[Dict[str, int]] = None,
        error: Optional[str] = None,
    ) -> TurnResult:
        with self._lock:
            self.messages.append(Message(role="assistant", content=response_text, thought=f"next_action={action}"))
        return TurnResult(
            response_text=response_text,
            next_action=action,
            merge=merge_result,
            latency=latency or {},
            error=error,
        )

    def _dispatch_audit(self) -> Future:
        with self._lock:
            version = self.record.tick()
            snapshot = self.record.snapshot()
            transcript = list(self.messages)
            self._audits = [pending for pending in self._audits if not pending.done()]
            future = self._audit_pool.submit(self._run_audit, snapshot, transcript, version)
            self._audits.append(future)
        return future

    def _run_audit(self, snapshot: CaseRecord, transcript: List[Message], version: int) -> Optional[AuditFindings]:
        try:
            findings = self.auditor.run(snapshot, transcript, version)
        except (ParseFailure, OracleUnavailable) as exc:
            self.log.log("thinker", "output", f"ERROR: {exc}")
            return None

        result = self.apply(findings.patch)
        if result.changed:
            self.log.log(
                "thinker",
                "output",
                f"Applied {len(result.applied)} correction(s)",
                {"fields": [field_id.value for field_id in result.applied]},
            )
            self._follow_up(findings)
        return findings

    def _follow_up(self, findings: AuditFindings) -> None:
        if findings.verification_prompt:
            content = findings.verification_prompt
            thought = f"THINKER AUTO-CORRECTION: {findings.reasoning}"
        elif findings.flagged_issue:
            content = (
                "I've reviewed our notes and realized I need to be more specific. "
                f"{findings.flagged_issue} Could you please clarify that detail?"
            )
            thought = f"THINKER VALIDATION: {findings.reasoning}"
        else:
            return
        message = Message(role="assistant", content=content, thought=thought)
        with self._lock:
            self.messages.append(message)
            self.notices.append(message)

    def pop_notices(self) -> List[Message]:
        with self._lock:
            notices, self.notices = self.notices, []
        return notices

    def drain_audits(self, timeout: Optional[float] = None) -> int:
        """Wait for in-flight audits; returns how many are still running."""
        with self._lock:
            pending = list(self._audits)
        done, not_done = wait(pending, timeout=timeout)
        for future in done:
            exc = future.exception()
            if exc is not None:
                self.log.log("thinker", "output", f"ERROR: audit crashed: {exc!r}")
        with self._lock:
            self._audits = [future for future in self._audits if not future.done()]
        return len(not_done)

    def close_case(self) -> bool:
        with self._lock:
            if resolver.next_action(self.record) != resolver.COMPLETE:
                return False
            result = merge(
                self.record,
                Patch(source=PatchSource.SYSTEM, version=self.record.tick(), status=CaseStatus.CLOSED),
            )
            return result.status_changed

    def refer(self, reason: str) -> bool:
        with self._lock:
            result = merge(
                self.record,
                Patch(
                    source=PatchSource.SYSTEM,
                    version=self.record.tick(),
                    status=CaseStatus.REFERRED,
                    rejection_reason=reason,
                ),
            )
            return result.status_changed

    def close(self) -> None:
        self._audit_pool.shutdown(wait=True)
        self._oracle_pool.shutdown(wait=False)
