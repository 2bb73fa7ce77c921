from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Sequence

from intake.adapters.llm_base import LLMAdapter
from intake.gates.parsers import extract_json_object, screen_payload
from intake.oracle import call_oracle
from intake.state.reconciler import Patch, PatchSource
from intake.state.record import CaseRecord
from intake.state.scope import (
    RESPONSE_TEXT_KEY,
    Slot,
    next_slots,
    render_checklist,
    render_constraints,
    scoped_schema,
)
from intake.state.transcript import Message, recent_history
from intake.utils.io import read_text
from intake.utils.session_log import SessionLog
from intake.utils.time import elapsed_ms

RETRY_PROMPT = "I'm sorry, I didn't catch that. Could you please repeat?"


@dataclass
class Extraction:
    patch: Patch
    response_text: str
    slots: List[Slot]
    raw: Dict[str, Any] = field(default_factory=dict)
    dropped: List[str] = field(default_factory=list)
    latency: Dict[str, int] = field(default_factory=dict)


class ResponderPipeline:
    """Fast path: extract the next few pending slots from one user utterance."""

    def __init__(
        self,
        adapter: LLMAdapter,
        prompts_dir: Path,
        log: SessionLog,
        executor: ThreadPoolExecutor,
        slot_window: int = 3,
        history_limit: int = 6,
        timeout_seconds: float = 30.0,
    ) -> None:
        self.adapter = adapter
        self.prompts_dir = prompts_dir
        self.log = log
        self.executor = executor
        self.slot_window = slot_window
        self.history_limit = history_limit
        self.timeout_seconds = timeout_seconds

    def run(
        self,
        record: CaseRecord,
        history: Sequence[Message],
        user_message: str,
        version: int,
    ) -> Extraction:
        start = time.perf_counter()
        slots = next_slots(record, self.slot_window)
        system = self._render_system(slots)
        prompt = self._render_prompt(history, user_message)
        schema = scoped_schema(slot.id for slot in slots)
        self.log.log(
            "responder",
            "input",
            f'Extracting from: "{user_message}"',
            {"allowedKeys": [slot.id for slot in slots], "version": version},
        )
        prompt_prep = elapsed_ms(start)

        call_start = time.perf_counter()
        response = call_oracle(
            self.adapter,
            self.executor,
            role="responder",
            system=system,
            prompt=prompt,
            schema=schema,
            timeout_seconds=self.timeout_seconds,
            log=self.log,
        )
        api_call = elapsed_ms(call_start)

        parse_start = time.perf_counter()
        payload, dropped = screen_payload(extract_json_object(response.raw_text), schema, prune_depth=1)
        response_text = payload.pop(RESPONSE_TEXT_KEY, None)
        if not isinstance(response_text, str) or not response_text.strip():
            response_text = RETRY_PROMPT
        if dropped:
            self.log.log("responder", "output", "[SCHEMA REJECT] dropped keys", {"keys": dropped})
        patch = Patch.from_flat(PatchSource.FAST, version, payload)
        parsing = elapsed_ms(parse_start)

        self.log.log(
            "responder",
            "output",
            f"Extracted {sum(1 for value in payload.values() if value is not None)} value(s)",
            {"extracted": payload},
        )
        return Extraction(
            patch=patch,
            response_text=response_text,
            slots=slots,
            raw=payload,
            dropped=dropped,
            latency={
                "prompt_prep": prompt_prep,
                "api_call": api_call,
                "parsing": parsing,
                "total": elapsed_ms(start),
            },
        )

    def _render_system(self, slots: List[Slot]) -> str:
        template = read_text(self.prompts_dir / "responder.md")
        return template.replace("{{CHECKLIST}}", render_checklist(slots)).replace(
            "{{CONSTRAINTS}}", render_constraints(slots) or " - (none)"
        )

    def _render_prompt(self, history: Sequence[Message], user_message: str) -> str:
        lines: List[str] = []
        recent = recent_history(history, self.history_limit)
        if recent:
            lines.append("RECENT HISTORY:")
            lines.extend(f"{message.role.upper()}: {message.content}" for message in recent)
            lines.append("")
        lines.append("USER MESSAGE:")
        lines.append(user_message)
        return "\n".join(lines) + "\n"
