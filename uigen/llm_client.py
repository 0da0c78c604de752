from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional, Tuple

import requests

from uigen.errors import ProviderError

log = logging.getLogger(__name__)

# OpenAI-compatible chat-completion providers plus Anthropic's Messages API.
# The credential always comes from the caller; nothing here reads a key.
PROVIDERS: Dict[str, Dict[str, str]] = {
    "groq": {
        "endpoint": "https://api.groq.com/openai/v1/chat/completions",
        "model": "openai/gpt-oss-120b",
        "style": "openai",
    },
    "openai": {
        "endpoint": "https://api.openai.com/v1/chat/completions",
        "model": "gpt-4o-mini",
        "style": "openai",
    },
    "anthropic": {
        "endpoint": "https://api.anthropic.com/v1/messages",
        "model": "claude-sonnet-4-20250514",
        "style": "anthropic",
    },
}
ANTHROPIC_VERSION = "2023-06-01"

LLM_PROVIDER = os.getenv("LLM_PROVIDER", "groq").strip().lower() or "groq"
if LLM_PROVIDER not in PROVIDERS:
    log.warning("llm.config: unknown LLM_PROVIDER=%r; using groq", LLM_PROVIDER)
    LLM_PROVIDER = "groq"
LLM_MODEL = os.getenv("LLM_MODEL", "").strip() or PROVIDERS[LLM_PROVIDER]["model"]
LLM_ENDPOINT = os.getenv("LLM_ENDPOINT", "").strip() or PROVIDERS[LLM_PROVIDER]["endpoint"]

try:
    TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.4"))
except ValueError:
    TEMPERATURE = 0.4
try:
    LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "4000"))
except ValueError:
    LLM_MAX_TOKENS = 4000
try:
    LLM_TIMEOUT_SECS = int(os.getenv("LLM_TIMEOUT_SECS", "90"))
except ValueError:
    LLM_TIMEOUT_SECS = 90

_ERROR_BODY_LIMIT = 2000


def status() -> Dict[str, Any]:
    return {
        "provider": LLM_PROVIDER,
        "model": LLM_MODEL,
        "endpoint": LLM_ENDPOINT,
        "timeout_secs": LLM_TIMEOUT_SECS,
        "credential": "per-request",
    }


def _request_for(prompt: str, api_key: str) -> Tuple[Dict[str, str], Dict[str, Any]]:
    style = PROVIDERS[LLM_PROVIDER]["style"]
    if style == "anthropic":
        headers = {
            "Content-Type": "application/json",
            "x-api-key": api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }
        body: Dict[str, Any] = {
            "model": LLM_MODEL,
            "max_tokens": LLM_MAX_TOKENS,
            "messages": [{"role": "user", "content": prompt}],
        }
        return headers, body
    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {api_key}",
    }
    body = {
        "model": LLM_MODEL,
        "messages": [{"role": "user", "content": prompt}],
        "temperature": TEMPERATURE,
        "max_tokens": LLM_MAX_TOKENS,
    }
    return headers, body


def _extract_text(data: Any) -> Optional[str]:
    """Pull the first completion's text out of either response shape."""
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if isinstance(choices, list) and choices:
        first = choices[0] if isinstance(choices[0], dict) else {}
        message = first.get("message") or {}
        text = message.get("content") if isinstance(message, dict) else None
        if isinstance(text, str):
            return text
    content = data.get("content")
    if isinstance(content, list):
        for part in content:
            if isinstance(part, dict) and isinstance(part.get("text"), str):
                return part["text"]
    return None


def complete(prompt: str, api_key: str) -> str:
    """POST ``prompt`` to the configured provider and return the first completion's text.

    Raises ProviderError on transport failure, non-success status (carrying the
    provider's error body) or a success body without completion text. There is
    no retry: one call, one answer.
    """
    headers, body = _request_for(prompt, api_key)
    log.info("llm.request provider=%s model=%s prompt_chars=%d", LLM_PROVIDER, LLM_MODEL, len(prompt))
    try:
        resp = requests.post(LLM_ENDPOINT, headers=headers, json=body, timeout=LLM_TIMEOUT_SECS)
    except requests.RequestException as exc:
        log.warning("llm.request failed provider=%s err=%r", LLM_PROVIDER, exc)
        raise ProviderError(f"AI Error: {exc}") from exc

    if resp.status_code != 200:
        raw = (resp.text or "")[:_ERROR_BODY_LIMIT]
        log.warning("llm.response provider=%s status=%s body=%s", LLM_PROVIDER, resp.status_code, raw[:400])
        raise ProviderError(f"AI Error: {raw or resp.status_code}", status=resp.status_code, body=raw)

    try:
        data = resp.json()
    except ValueError as exc:
        raise ProviderError("AI Error: provider returned a non-JSON body", status=resp.status_code) from exc

    text = _extract_text(data)
    if text is None:
        raise ProviderError("AI Error: provider response had no completion text", status=resp.status_code)
    log.info("llm.response provider=%s status=%s chars=%d", LLM_PROVIDER, resp.status_code, len(text))
    return text
