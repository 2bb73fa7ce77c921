from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol


@dataclass
class LLMResponse:
    raw_text: str
    usage: Optional[Dict[str, Any]] = None


class LLMAdapter(Protocol):
    provider: str
    model_name: str

    def generate(self, prompt: str, system: str = "", schema: Optional[Dict[str, Any]] = None) -> str:
        raise NotImplementedError

    def complete(self, prompt: str, system: str = "", schema: Optional[Dict[str, Any]] = None) -> LLMResponse:
        return LLMResponse(raw_text=self.generate(prompt, system=system, schema=schema))
