from __future__ import annotations

import json
import os
import random
import time
from typing import Any, Dict, List, Optional

from google import genai
from google.genai import types

from .llm_base import LLMAdapter, LLMResponse


class GeminiAdapter(LLMAdapter):
    provider = "gemini"

    def __init__(self, timeout_seconds: float = 30.0, model_env: str = "GEMINI_MODEL", default_model: str = "gemini-flash-lite-latest") -> None:
        api_key = os.getenv("GEMINI_API_KEY")
        if not api_key:
            raise RuntimeError("GEMINI_API_KEY is not set.")

        self.client = genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(timeout_seconds * 1000)),
        )

        primary = os.getenv(model_env, default_model)
        self.model_name = primary
        self.model_candidates: List[str] = [primary]
        for fallback in ("gemini-2.5-flash", "gemini-2.0-flash"):
            if fallback not in self.model_candidates:
                self.model_candidates.append(fallback)

        self.max_attempts = int(os.getenv("GEMINI_MAX_ATTEMPTS", "3"))
        self.base_delay = float(os.getenv("GEMINI_BASE_DELAY_SECONDS", "1.0"))

    def _is_transient(self, err: Exception) -> bool:
        msg = str(err).lower()
        return any(s in msg for s in ["503", "unavailable", "429", "too many", "timeout", "temporarily"])

    def _contents(self, prompt: str, schema: Optional[Dict[str, Any]]) -> str:
        if not schema:
            return prompt
        return f"{prompt}\n\nOUTPUT JSON SCHEMA:\n{json.dumps(schema)}\n"

    def _usage(self, response: Any) -> Optional[Dict[str, Any]]:
        metadata = getattr(response, "usage_metadata", None)
        if metadata is None:
            return None
        return {
            "prompt_tokens": getattr(metadata, "prompt_token_count", None),
            "completion_tokens": getattr(metadata, "candidates_token_count", None),
            "total_tokens": getattr(metadata, "total_token_count", None),
        }

    def complete(self, prompt: str, system: str = "", schema: Optional[Dict[str, Any]] = None) -> LLMResponse:
        temperature = float(os.getenv("ORCH_TEMPERATURE", "0"))
        config = types.GenerateContentConfig(
            system_instruction=system or None,
            response_mime_type="application/json",
            temperature=temperature,
        )
        last_err: Exception | None = None

        for model in self.model_candidates:
            for attempt in range(1, self.max_attempts + 1):
                try:
                    response = self.client.models.generate_content(
                        model=model,
                        contents=self._contents(prompt, schema),
                        config=config,
                    )
                    text = getattr(response, "text", None)
                    if not text:
                        raise RuntimeError("Gemini returned empty content.")
                    self.model_name = model
                    return LLMResponse(raw_text=text, usage=self._usage(response))

                except Exception as e:
                    last_err = e
                    if not self._is_transient(e):
                        break

                    delay = self.base_delay * (2 ** (attempt - 1)) + random.random() * 0.5
                    print(f"[gemini] transient error: {e} -> sleeping {delay:.2f}s")
                    time.sleep(delay)

            print(f"[gemini] switching model after failures: {model}")

        raise RuntimeError(
            "Gemini generate_content failed for all candidate models. "
            f"Last error: {last_err}"
        ) from last_err

    def generate(self, prompt: str, system: str = "", schema: Optional[Dict[str, Any]] = None) -> str:
        return self.complete(prompt, system=system, schema=schema).raw_text
