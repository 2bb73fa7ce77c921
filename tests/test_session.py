import json
import threading
from typing import Any, Callable, Dict, List, Optional

import pytest

from intake.adapters.llm_base import LLMResponse
from intake.adapters.mock_adapter import MockAdapter
from intake.config import IntakeConfig
from intake.errors import ConflictDetected
from intake.pipeline_turn import RETRY_PROMPT
from intake.session import CLOSING_REPLIES, SYSTEM_ERROR_REPLY, IntakeSession
from intake.state import resolver
from intake.state.record import CaseStatus
from intake.state.registry import INTAKE_STEPS
from intake.utils.session_log import SessionLog

CLEAN_AUDIT = {"audit_reasoning": "Looks right.", "corrected_data": {}, "flagged_issue": None, "verification_prompt": None}


class ScriptedAdapter:
    provider = "fake"
    model_name = "fake-model"

    def __init__(self, reply: Callable[[str, str], Any]) -> None:
        self.reply = reply
        self.calls = 0
        self._lock = threading.Lock()

    def generate(self, prompt: str, system: str = "", schema: Optional[Dict[str, Any]] = None) -> str:
        return self.complete(prompt, system=system, schema=schema).raw_text

    def complete(self, prompt: str, system: str = "", schema: Optional[Dict[str, Any]] = None) -> LLMResponse:
        with self._lock:
            self.calls += 1
        result = self.reply(prompt, system)
        if isinstance(result, str):
            return LLMResponse(raw_text=result)
        return LLMResponse(raw_text=json.dumps(result))


def replies(*payloads: Any) -> ScriptedAdapter:
    queue: List[Any] = list(payloads)
    return ScriptedAdapter(lambda prompt, system: queue.pop(0))


def clean_auditor() -> ScriptedAdapter:
    return ScriptedAdapter(lambda prompt, system: CLEAN_AUDIT)


@pytest.fixture
def make_session(prompts_dir):
    sessions: List[IntakeSession] = []

    def build(responder, auditor=None, audit_enabled=False, **config):
        session = IntakeSession(
            responder,
            auditor or clean_auditor(),
            prompts_dir,
            config=IntakeConfig(**config),
            case_id="CASE-SESSION",
            log=SessionLog(echo=False),
            audit_enabled=audit_enabled,
        )
        sessions.append(session)
        return session

    yield build
    for session in sessions:
        session.close()


def test_turn_extracts_and_advances(make_session):
    responder = replies(
        {
            "response_text": "Thanks Jane. What's your email?",
            "contact.full_name": "Jane Roe",
            "contact.email": None,
            "admin.prior_representation": None,
        }
    )
    session = make_session(responder)

    turn = session.submit("Hi, I'm Jane Roe.")

    assert turn.response_text == "Thanks Jane. What's your email?"
    assert turn.next_action == "contact.email"
    assert session.record.contact.full_name == "Jane Roe"
    assert set(turn.latency) == {"prompt_prep", "api_call", "parsing", "total"}
    assert [message.role for message in session.messages] == ["assistant", "user", "assistant"]


def test_unparseable_reply_leaves_record_untouched(make_session):
    session = make_session(replies("I'm sorry, I can't produce JSON today."))
    before = session.snapshot().to_dict()

    turn = session.submit("My name is Jane Roe")

    assert turn.response_text == RETRY_PROMPT
    assert turn.error == "parse_failure"
    assert session.snapshot().to_dict() == before
    assert not session.record.field_versions


def test_oracle_error_becomes_system_error(make_session):
    def boom(prompt, system):
        raise RuntimeError("503 Service Unavailable")

    session = make_session(ScriptedAdapter(boom))
    turn = session.submit("Hello")

    assert turn.response_text == SYSTEM_ERROR_REPLY
    assert turn.error == "oracle_unavailable"
    assert session.record.contact.full_name is None
    assert session.log.api_calls()[-1].error == "503 Service Unavailable"


def test_oracle_deadline_is_enforced(make_session):
    release = threading.Event()

    def slow(prompt, system):
        release.wait(5)
        return {"response_text": "late", "contact.full_name": "Jane Roe"}

    session = make_session(ScriptedAdapter(slow), oracle_timeout_seconds=0.1)
    try:
        turn = session.submit("Hello")
    finally:
        release.set()

    assert turn.error == "oracle_unavailable"
    assert session.record.contact.full_name is None


def test_conflict_rejects_case_and_blocks_further_turns(make_session):
    responder = replies(
        {
            "response_text": "Got it.",
            "contact.full_name": "Jane Roe",
            "contact.email": "jane@example.com",
            "admin.prior_representation": False,
        },
        {
            "response_text": "Thanks, let's talk about the accident.",
            "admin.conflict_party": "sarah connor",
            "incident.accident_date": None,
            "incident.accident_time": None,
        },
    )
    session = make_session(responder)
    session.submit("Jane Roe, jane@example.com, no lawyer")

    turn = session.submit("The other driver was Sarah Connor")

    assert session.record.status is CaseStatus.REJECTED
    assert session.record.rejection_reason == "Conflict of interest: existing client sarah connor"
    assert turn.next_action == resolver.REJECTED_GENERIC
    assert "we already represent sarah connor" in turn.response_text
    with pytest.raises(ConflictDetected):
        session.submit("Can we keep going?")
    assert responder.calls == 2


def test_clean_conflict_party_moves_case_to_intake(make_session):
    responder = replies(
        {
            "response_text": "Got it.",
            "contact.full_name": "Jane Roe",
            "contact.email": "jane@example.com",
            "admin.prior_representation": False,
        },
        {
            "response_text": "When did it happen?",
            "admin.conflict_party": "Richard Miles",
            "incident.accident_date": None,
            "incident.accident_time": None,
        },
    )
    session = make_session(responder)
    session.submit("Jane Roe, jane@example.com, no lawyer")
    turn = session.submit("Richard Miles hit me")

    assert session.record.status is CaseStatus.INTAKE
    assert turn.next_action == "incident.accident_date"


def test_prior_representation_closes_without_more_calls(make_session):
    responder = replies(
        {
            "response_text": "ok",
            "contact.full_name": None,
            "contact.email": None,
            "admin.prior_representation": True,
        }
    )
    session = make_session(responder)

    turn = session.submit("I already have a lawyer")
    assert turn.next_action == resolver.REJECT_PRIOR_REP
    assert turn.response_text == CLOSING_REPLIES[resolver.REJECT_PRIOR_REP]

    again = session.submit("Are you sure?")
    assert again.response_text == CLOSING_REPLIES[resolver.REJECT_PRIOR_REP]
    assert responder.calls == 1


def test_audit_correction_posts_follow_up(make_session):
    responder = replies(
        {
            "response_text": "And your email?",
            "contact.full_name": "Jane Roe",
            "contact.email": None,
            "admin.prior_representation": None,
        }
    )
    auditor = ScriptedAdapter(
        lambda prompt, system: {
            "audit_reasoning": "User spelled the email in the greeting.",
            "corrected_data": {"contact": {"email": "jane@example.com"}},
            "flagged_issue": None,
            "verification_prompt": "Just to confirm, is your email jane@example.com?",
        }
    )
    session = make_session(responder, auditor, audit_enabled=True)

    session.submit("I'm Jane Roe, jane@example.com")
    assert session.drain_audits(timeout=5) == 0

    assert session.record.contact.email == "jane@example.com"
    notices = session.pop_notices()
    assert [notice.content for notice in notices] == ["Just to confirm, is your email jane@example.com?"]
    assert notices[0].thought.startswith("THINKER AUTO-CORRECTION")
    assert session.pop_notices() == []


def test_late_audit_cannot_overwrite_newer_answer(make_session):
    release = threading.Event()
    first_audit_started = threading.Event()
    responder = replies(
        {
            "response_text": "And your email?",
            "contact.full_name": "Jane Roe",
            "contact.email": None,
            "admin.prior_representation": None,
        },
        {
            "response_text": "Do you have a lawyer?",
            "contact.email": "jane@example.com",
            "admin.prior_representation": None,
            "admin.conflict_party": None,
        },
    )

    def audit(prompt, system):
        if "jane@example.com" in system:
            return CLEAN_AUDIT
        first_audit_started.set()
        release.wait(5)
        return {
            "audit_reasoning": "Guessing the email.",
            "corrected_data": {"contact": {"email": "old@example.com"}},
            "flagged_issue": None,
            "verification_prompt": None,
        }

    session = make_session(responder, ScriptedAdapter(audit), audit_enabled=True)
    session.submit("I'm Jane Roe")
    assert first_audit_started.wait(5)
    session.submit("jane@example.com")
    release.set()
    assert session.drain_audits(timeout=5) == 0

    assert session.record.contact.email == "jane@example.com"
    assert any("[STALE WRITE]" in entry.summary for entry in session.log.entries())
    assert session.pop_notices() == []


def test_failed_audit_is_logged_and_ignored(make_session):
    responder = replies(
        {
            "response_text": "And your email?",
            "contact.full_name": "Jane Roe",
            "contact.email": None,
            "admin.prior_representation": None,
        }
    )
    session = make_session(responder, ScriptedAdapter(lambda prompt, system: "no json here"), audit_enabled=True)

    session.submit("I'm Jane Roe")
    assert session.drain_audits(timeout=5) == 0

    assert session.record.contact.full_name == "Jane Roe"
    assert any(entry.channel == "thinker" and "ERROR" in entry.summary for entry in session.log.entries())


def test_mock_walkthrough_reaches_complete_and_closes(make_session):
    session = make_session(MockAdapter("default"))

    for _ in INTAKE_STEPS:
        turn = session.submit("here is my answer")

    assert turn.next_action == resolver.COMPLETE
    assert session.record.status is CaseStatus.INTAKE
    assert session.record.liability.fault_admission.statement == "He said sorry, he was texting."
    assert session.close_case()
    assert session.next_action() == resolver.CLOSED
    assert session.submit("thanks").response_text == CLOSING_REPLIES[resolver.CLOSED]


def test_refer_is_terminal(make_session):
    session = make_session(MockAdapter("default"))
    session.submit("Jane Roe")

    assert session.refer("Out of jurisdiction")
    assert session.next_action() == resolver.REFERRED
    assert session.record.rejection_reason == "Out of jurisdiction"


def test_finished_audits_are_not_retained(make_session):
    responder = ScriptedAdapter(
        lambda prompt, system: {"response_text": "Go on.", "contact.full_name": None, "contact.email": None}
    )
    session = make_session(responder, audit_enabled=True)

    for _ in range(4):
        session.submit("hello")
        session._audits[-1].result(timeout=5)

    assert len(session._audits) == 1
