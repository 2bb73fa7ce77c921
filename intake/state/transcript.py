from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from intake.utils.time import epoch_ms

SYSTEM_GREETING = (
    "Hello. I am the legal intake assistant. Before we begin discussing your case, "
    "could you please provide your Full Name?"
)


@dataclass
class Message:
    role: str
    content: str
    timestamp: int = field(default_factory=epoch_ms)
    thought: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def recent_history(messages: Sequence[Message], limit: int) -> List[Message]:
    if limit <= 0:
        return []
    history = list(messages[-limit:])
    # Conversation turns sent to an oracle start with the user.
    while history and history[0].role != "user":
        history.pop(0)
    return history


def render_transcript(messages: Sequence[Message]) -> str:
    return "\n".join(f"{message.role.upper()}: {message.content}" for message in messages)
