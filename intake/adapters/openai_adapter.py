from __future__ import annotations

import os
import time
from typing import Any, Dict, List, Optional

from openai import OpenAI
from openai import APIConnectionError, APITimeoutError, RateLimitError, InternalServerError

from .llm_base import LLMAdapter, LLMResponse


class OpenAIAdapter(LLMAdapter):
    provider = "openai"

    def __init__(self, timeout_seconds: float = 30.0, max_attempts: int = 4) -> None:
        self.api_key = os.getenv("OPENAI_API_KEY")
        if not self.api_key:
            raise RuntimeError("OPENAI_API_KEY is not set.")
        self.model_name = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
        self.max_attempts = max_attempts
        self.client = OpenAI(api_key=self.api_key, timeout=timeout_seconds, max_retries=0)

    def _response_format(self, schema: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        if not schema:
            return {"type": "json_object"}
        return {
            "type": "json_schema",
            "json_schema": {"name": "intake_output", "schema": schema, "strict": False},
        }

    def _usage(self, response: Any) -> Optional[Dict[str, Any]]:
        usage = getattr(response, "usage", None)
        if usage is None:
            return None
        return {name: getattr(usage, name, None) for name in ("prompt_tokens", "completion_tokens", "total_tokens")}

    def complete(self, prompt: str, system: str = "", schema: Optional[Dict[str, Any]] = None) -> LLMResponse:
        max_tokens = int(os.getenv("ORCH_MAX_OUTPUT_TOKENS", "800"))
        temperature = float(os.getenv("ORCH_TEMPERATURE", "0"))
        messages: List[Dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        attempt = 0
        backoff = 1.0
        while True:
            attempt += 1
            try:
                response = self.client.chat.completions.create(
                    model=self.model_name,
                    messages=messages,
                    max_tokens=max_tokens,
                    temperature=temperature,
                    response_format=self._response_format(schema),
                )
                content = response.choices[0].message.content
                if content is None:
                    raise RuntimeError("OpenAI returned empty content.")
                return LLMResponse(raw_text=content, usage=self._usage(response))
            except RateLimitError as exc:
                error = getattr(exc, "error", None)
                code = getattr(error, "code", None)
                if code == "insufficient_quota":
                    raise RuntimeError(
                        "OpenAI API quota exceeded. Please enable billing in your OpenAI account."
                    ) from exc
                if attempt >= self.max_attempts:
                    raise
            except (APITimeoutError, APIConnectionError, InternalServerError):
                if attempt >= self.max_attempts:
                    raise
            print(f"[openai] transient error on attempt {attempt}/{self.max_attempts} -> sleeping {backoff:.1f}s")
            time.sleep(backoff)
            backoff *= 2

    def generate(self, prompt: str, system: str = "", schema: Optional[Dict[str, Any]] = None) -> str:
        return self.complete(prompt, system=system, schema=schema).raw_text
