from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Sequence, Set, Tuple

from jsonschema import Draft7Validator

from intake.errors import ParseFailure


def _strip_code_fences(text: str) -> str:
    fenced = re.findall(r"```(?:json)?\s*(.*?)```", text, flags=re.DOTALL | re.IGNORECASE)
    if fenced:
        return "\n".join(fenced)
    return text


def _outermost_braces(text: str) -> str | None:
    first = text.find("{")
    last = text.rfind("}")
    if first == -1 or last <= first:
        return None
    return text[first : last + 1]


def _try_parse(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return None


def extract_json_object(raw_text: str | None) -> Dict[str, Any]:
    if not raw_text or not raw_text.strip():
        raise ParseFailure("Oracle returned empty output.")

    candidates: List[str] = [raw_text]
    stripped = _strip_code_fences(raw_text)
    candidates.append(stripped)
    braces = _outermost_braces(stripped)
    if braces:
        candidates.append(braces)

    for candidate in candidates:
        parsed = _try_parse(candidate.strip())
        if isinstance(parsed, dict):
            return parsed

    decoder = json.JSONDecoder()
    for match in re.finditer(r"\{", stripped):
        try:
            parsed, _ = decoder.raw_decode(stripped[match.start() :])
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed

    snippet = raw_text.strip().replace("\n", " ")
    snippet = (snippet[:200] + "...") if len(snippet) > 200 else snippet
    raise ParseFailure(f"No JSON object found in response. Snippet: {snippet}")


def _prune(payload: Dict[str, Any], path: Sequence[Any]) -> str:
    node: Any = payload
    for key in path[:-1]:
        if not isinstance(node, dict) or key not in node:
            return ""
        node = node[key]
    if isinstance(node, dict):
        node.pop(path[-1], None)
    return ".".join(str(part) for part in path)


def screen_payload(
    payload: Dict[str, Any], schema: Dict[str, Any], prune_depth: int
) -> Tuple[Dict[str, Any], List[str]]:
    """Drop the parts of ``payload`` that violate ``schema``.

    Errors located at or below ``prune_depth`` levels remove the offending
    entry (cut at that depth). Keys the schema does not declare are removed.
    Errors on the object itself raise ParseFailure. Returns the pruned payload
    and the dotted paths that were removed.
    """
    if not isinstance(payload, dict):
        raise ParseFailure("Oracle output must be a JSON object.")

    validator = Draft7Validator(schema)
    cut: Set[Tuple[Any, ...]] = set()
    for error in validator.iter_errors(payload):
        path = tuple(error.absolute_path)
        if not path:
            if error.validator in ("required", "additionalProperties"):
                continue
            raise ParseFailure(f"Oracle output rejected: {error.message}")
        cut.add(path[:prune_depth])

    declared = set(schema.get("properties", {}))
    removed: List[str] = []
    for key in [key for key in payload if declared and key not in declared]:
        payload.pop(key)
        removed.append(key)
    for path in sorted(cut, key=len, reverse=True):
        dropped = _prune(payload, path)
        if dropped:
            removed.append(dropped)
    return payload, removed
