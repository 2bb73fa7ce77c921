from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

PROVIDERS = ("openai", "gemini")

_API_KEYS = {
    "openai": "OPENAI_API_KEY",
    "gemini": "GEMINI_API_KEY",
}


def _env(key: str, default: str) -> str:
    return os.getenv(key, default)


@dataclass
class IntakeConfig:
    responder_provider: str = "gemini"
    auditor_provider: str = "gemini"
    slot_window: int = 3
    history_limit: int = 6
    oracle_timeout_seconds: float = 30.0
    audit_timeout_seconds: float = 90.0
    log_buffer: int = 50
    conflict_registry: Optional[Path] = None

    @classmethod
    def from_env(cls) -> "IntakeConfig":
        registry = os.getenv("INTAKE_CONFLICT_REGISTRY")
        config = cls(
            responder_provider=_env("INTAKE_RESPONDER_PROVIDER", "gemini").strip().lower(),
            auditor_provider=_env("INTAKE_AUDITOR_PROVIDER", "gemini").strip().lower(),
            slot_window=int(_env("INTAKE_SLOT_WINDOW", "3")),
            history_limit=int(_env("INTAKE_HISTORY_LIMIT", "6")),
            oracle_timeout_seconds=float(_env("INTAKE_ORACLE_TIMEOUT_SECONDS", "30")),
            audit_timeout_seconds=float(_env("INTAKE_AUDIT_TIMEOUT_SECONDS", "90")),
            log_buffer=int(_env("INTAKE_LOG_BUFFER", "50")),
            conflict_registry=Path(registry) if registry else None,
        )
        config.validate()
        return config

    def validate(self) -> None:
        for role, provider in (("responder", self.responder_provider), ("auditor", self.auditor_provider)):
            if provider not in PROVIDERS:
                raise ValueError(f"Unsupported {role} provider: {provider}")
        if self.slot_window < 1:
            raise ValueError("INTAKE_SLOT_WINDOW must be at least 1.")
        if self.history_limit < 0:
            raise ValueError("INTAKE_HISTORY_LIMIT must not be negative.")
        if self.oracle_timeout_seconds <= 0 or self.audit_timeout_seconds <= 0:
            raise ValueError("Oracle timeouts must be positive.")

    def missing_api_keys(self) -> List[str]:
        needed = {_API_KEYS[self.responder_provider], _API_KEYS[self.auditor_provider]}
        return sorted(key for key in needed if not os.getenv(key))
