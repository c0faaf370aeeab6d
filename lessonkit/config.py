from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    # Generator (upstream LLM that produces lesson JSON)
    api_key: str | None
    base_url: str
    model: str
    timeout_s: float
    max_retries: int
    max_attempts: int

    # Rendering
    uploads_prefix: str

    # Validator
    min_sentence_length: int
    malformed_math_threshold: int

    # Capture
    page_load_timeout_s: float
    ready_timeout_s: float
    ready_poll_s: float
    settle_ms: int
    final_ms: int
    headless: bool
    browser_binary: str | None
    window_width: int
    window_height: int


def _env_str(*names: str, default: str = "") -> str:
    for name in names:
        raw = os.environ.get(name)
        if raw is None:
            continue
        raw = raw.strip()
        # Users often set env vars with quotes (e.g. cmd.exe: set OPENAI_API_KEY="sk-...").
        if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in ("'", '"'):
            raw = raw[1:-1].strip()
        if raw:
            return raw
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = _env_str(name)
    if not raw:
        return default
    return raw.lower() not in {"0", "false", "no", "off"}


def load_settings() -> Settings:
    api_key = _env_str("LESSONKIT_API_KEY", "DEEPSEEK_API_KEY", "OPENAI_API_KEY") or None

    base_url = _env_str("LESSONKIT_BASE_URL", "DEEPSEEK_BASE_URL", "OPENAI_BASE_URL", default="https://api.deepseek.com/v1")
    base_url = base_url.rstrip("/")
    # Be forgiving: many people set DEEPSEEK_BASE_URL=https://api.deepseek.com
    # but the OpenAI-compatible endpoint is under /v1.
    if "api.deepseek.com" in base_url and not base_url.endswith("/v1"):
        base_url = base_url + "/v1"
    model = _env_str("LESSONKIT_MODEL", "DEEPSEEK_MODEL", "OPENAI_MODEL", default="deepseek-chat")

    uploads_prefix = _env_str("LESSONKIT_UPLOADS_PREFIX", default="/uploads/")
    if not uploads_prefix.endswith("/"):
        uploads_prefix += "/"

    return Settings(
        api_key=api_key,
        base_url=base_url,
        model=model,
        timeout_s=float(_env_str("LESSONKIT_LLM_TIMEOUT_S", default="60")),
        max_retries=int(_env_str("LESSONKIT_LLM_MAX_RETRIES", default="2")),
        max_attempts=int(_env_str("LESSONKIT_GENERATION_ATTEMPTS", default="3")),
        uploads_prefix=uploads_prefix,
        min_sentence_length=int(_env_str("LESSONKIT_MIN_SENTENCE_LENGTH", default="20")),
        malformed_math_threshold=int(_env_str("LESSONKIT_MALFORMED_MATH_THRESHOLD", default="5")),
        page_load_timeout_s=float(_env_str("LESSONKIT_PAGE_LOAD_TIMEOUT_S", default="60")),
        ready_timeout_s=float(_env_str("LESSONKIT_READY_TIMEOUT_S", default="15")),
        ready_poll_s=float(_env_str("LESSONKIT_READY_POLL_S", default="0.25")),
        settle_ms=int(_env_str("LESSONKIT_SETTLE_MS", default="1000")),
        final_ms=int(_env_str("LESSONKIT_FINAL_MS", default="1000")),
        headless=_env_bool("LESSONKIT_HEADLESS", True),
        browser_binary=_env_str("LESSONKIT_BROWSER_BINARY") or None,
        # A4 at 96 DPI: 794px x 1123px
        window_width=int(_env_str("LESSONKIT_WINDOW_WIDTH", default="794")),
        window_height=int(_env_str("LESSONKIT_WINDOW_HEIGHT", default="1123")),
    )
