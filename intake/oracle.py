from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Any, Dict, Optional

from intake.adapters.gemini_adapter import GeminiAdapter
from intake.adapters.llm_base import LLMAdapter, LLMResponse
from intake.adapters.mock_adapter import MockAdapter
from intake.adapters.openai_adapter import OpenAIAdapter
from intake.errors import OracleUnavailable
from intake.utils.session_log import ApiCallLog, SessionLog, estimate_token_count
from intake.utils.time import elapsed_ms, epoch_ms


def make_adapter(mode: str, provider: str, role: str, timeout_seconds: float, scenario: str = "default") -> LLMAdapter:
    if mode == "mock":
        return MockAdapter(scenario=scenario)
    if provider == "gemini":
        if role == "auditor":
            return GeminiAdapter(timeout_seconds, model_env="GEMINI_AUDIT_MODEL", default_model="gemini-2.5-flash")
        return GeminiAdapter(timeout_seconds)
    if provider == "openai":
        return OpenAIAdapter(timeout_seconds)
    raise ValueError(f"Unsupported provider: {provider}")


def _tokens(usage: Optional[Dict[str, Any]], key: str, fallback_text: str) -> int:
    if usage and usage.get(key) is not None:
        return int(usage[key])
    return estimate_token_count(fallback_text)


def call_oracle(
    adapter: LLMAdapter,
    executor: ThreadPoolExecutor,
    *,
    role: str,
    system: str,
    prompt: str,
    schema: Optional[Dict[str, Any]],
    timeout_seconds: float,
    log: SessionLog,
) -> LLMResponse:
    """Run one oracle call under a deadline; every failure becomes OracleUnavailable."""
    full_prompt = f"System: {system}\n\n{prompt}"
    start = time.perf_counter()
    provider = getattr(adapter, "provider", "unknown")
    future = executor.submit(adapter.complete, prompt, system=system, schema=schema)
    try:
        response = future.result(timeout=timeout_seconds)
    except FutureTimeout as exc:
        future.cancel()
        error = f"{role} oracle exceeded {timeout_seconds:.1f}s deadline"
        _record(log, role, provider, adapter, full_prompt, "", None, start, error)
        raise OracleUnavailable(error) from exc
    except Exception as exc:
        error = str(exc) or exc.__class__.__name__
        _record(log, role, provider, adapter, full_prompt, "", None, start, error)
        raise OracleUnavailable(error) from exc

    _record(log, role, provider, adapter, full_prompt, response.raw_text, response.usage, start, None)
    return response


def _record(
    log: SessionLog,
    role: str,
    provider: str,
    adapter: LLMAdapter,
    full_prompt: str,
    output: str,
    usage: Optional[Dict[str, Any]],
    start: float,
    error: Optional[str],
) -> None:
    log.api_call(
        ApiCallLog(
            timestamp=epoch_ms(),
            role=role,
            provider=provider,
            model_name=getattr(adapter, "model_name", "unknown"),
            input_prompt=full_prompt,
            input_tokens=_tokens(usage, "prompt_tokens", full_prompt),
            output_string=output,
            output_tokens=_tokens(usage, "completion_tokens", output) if output else 0,
            time_taken_ms=elapsed_ms(start),
            error=error,
        )
    )
