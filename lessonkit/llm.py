from __future__ import annotations

import time
from typing import Optional

from openai import OpenAI

from .config import Settings
from .exceptions import GenerationError


class LessonChat:
    def __init__(self, settings: Settings) -> None:
        if not settings.api_key:
            raise GenerationError(
                "Missing LESSONKIT_API_KEY / DEEPSEEK_API_KEY (or OPENAI_API_KEY). Set it in the environment first."
            )
        self._settings = settings
        self._client = OpenAI(api_key=settings.api_key, base_url=settings.base_url)

    def chat(
        self,
        messages: list[dict],
        temperature: float = 0.7,
        max_tokens: int = 6000,
    ) -> str:
        last_err: Optional[Exception] = None
        for attempt in range(self._settings.max_retries + 1):
            try:
                resp = self._client.chat.completions.create(
                    model=self._settings.model,
                    messages=messages,
                    temperature=temperature,
                    max_tokens=max_tokens,
                    timeout=self._settings.timeout_s,
                )
                return (resp.choices[0].message.content or "").strip()
            except Exception as e:  # noqa: BLE001
                last_err = e
                if attempt >= self._settings.max_retries:
                    break
                print(f"[WARN] Generator call failed (attempt {attempt + 1}): {e}")
                time.sleep(0.6 * (attempt + 1))
        raise GenerationError(f"Generator call failed: {last_err}") from last_err
