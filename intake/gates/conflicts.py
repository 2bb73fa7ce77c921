from __future__ import annotations

from pathlib import Path
from typing import FrozenSet, Iterable, List

import yaml

DEFAULT_CLIENTS: List[str] = [
    "John Doe",
    "Sarah Connor",
    "Kyle Reese",
    "Cyberdyne Systems",
    "T-800",
]


def normalize_name(name: str) -> str:
    return name.strip().casefold()


def conflict_reason(name: str) -> str:
    return f"Conflict of interest: existing client {name.strip()}"


def conflict_reply(name: str) -> str:
    return f"I apologize, but we already represent {name.strip()}. Ethically, we cannot proceed."


class ConflictScreener:
    def __init__(self, clients: Iterable[str]) -> None:
        self._clients: FrozenSet[str] = frozenset(
            normalize_name(client) for client in clients if isinstance(client, str) and client.strip()
        )

    def screen(self, candidate_name: str | None) -> bool:
        if not candidate_name or not isinstance(candidate_name, str):
            return False
        return normalize_name(candidate_name) in self._clients

    @classmethod
    def from_yaml(cls, path: Path) -> "ConflictScreener":
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or []
        if isinstance(data, dict):
            data = data.get("clients", [])
        if not isinstance(data, list):
            raise ValueError(f"Conflict registry must be a list of names: {path}")
        return cls(data)

    @classmethod
    def default(cls) -> "ConflictScreener":
        return cls(DEFAULT_CLIENTS)
