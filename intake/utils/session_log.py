from __future__ import annotations

import json
import math
import threading
from collections import deque
from dataclasses import asdict, dataclass
from typing import Any, Deque, Dict, List, Optional

from intake.utils.time import epoch_ms


def estimate_token_count(text: str) -> int:
    return math.ceil(len(text or "") / 4)


@dataclass
class LogEntry:
    timestamp: int
    channel: str
    direction: str
    summary: str
    data: Any = None


@dataclass
class ApiCallLog:
    timestamp: int
    role: str
    provider: str
    model_name: str
    input_prompt: str
    input_tokens: int
    output_string: str
    output_tokens: int
    time_taken_ms: int
    error: Optional[str] = None


class SessionLog:
    """Bounded, per-session log buffers. Entries are also echoed to stdout."""

    def __init__(self, max_entries: int = 50, echo: bool = True) -> None:
        self._entries: Deque[LogEntry] = deque(maxlen=max_entries)
        self._api_calls: Deque[ApiCallLog] = deque(maxlen=max_entries)
        self._lock = threading.Lock()
        self.echo = echo

    def log(self, channel: str, direction: str, summary: str, data: Any = None) -> LogEntry:
        entry = LogEntry(
            timestamp=epoch_ms(),
            channel=channel,
            direction=direction,
            summary=summary,
            data=data,
        )
        if self.echo:
            suffix = f" {json.dumps(data, default=str)}" if data is not None else ""
            print(f"[{channel}][{direction}] {summary}{suffix}")
        with self._lock:
            self._entries.append(entry)
        return entry

    def api_call(self, call: ApiCallLog) -> None:
        if self.echo:
            status = f"error={call.error}" if call.error else f"output_tokens={call.output_tokens}"
            print(
                f"[{call.role}] provider={call.provider} model={call.model_name} "
                f"input_tokens={call.input_tokens} {status} elapsed_ms={call.time_taken_ms}"
            )
        with self._lock:
            self._api_calls.append(call)

    def entries(self) -> List[LogEntry]:
        with self._lock:
            return list(self._entries)

    def api_calls(self) -> List[ApiCallLog]:
        with self._lock:
            return list(self._api_calls)

    def api_calls_payload(self) -> List[Dict[str, Any]]:
        return [asdict(call) for call in self.api_calls()]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._api_calls.clear()
