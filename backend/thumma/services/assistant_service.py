# Overview: Forward prompts to the hosted language model behind /api/assistant.

from __future__ import annotations

import logging

import httpx
from flask import current_app

from ..errors import ThummaError, ValidationError

logger = logging.getLogger(__name__)


MAX_PROMPT_LENGTH = 8000


class AssistantError(ThummaError):
    """Raised when the language model cannot be reached or answers badly."""
    http_status = 502


def _extract_text(body) -> str:
    if isinstance(body, dict):
        for key in ("text", "output", "completion"):
            value = body.get(key)
            if isinstance(value, str):
                return value
    raise AssistantError("Assistant returned an unexpected response")


def ask(prompt: str, system_instruction: str | None = None, *, client: httpx.Client | None = None) -> str:
    """
    Send a prompt and return the completion text.

    The completion is opaque: it is returned as-is and never parsed.
    """
    prompt = (prompt or "").strip()
    if not prompt:
        raise ValidationError("prompt is required")
    if len(prompt) > MAX_PROMPT_LENGTH:
        raise ValidationError(f"prompt exceeds max length {MAX_PROMPT_LENGTH}")

    url = current_app.config.get("ASSISTANT_API_URL")
    if not url:
        raise AssistantError("Assistant is not configured")

    headers = {"Content-Type": "application/json"}
    api_key = current_app.config.get("ASSISTANT_API_KEY")
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    payload = {"prompt": prompt, "systemInstruction": system_instruction or ""}

    owns_client = client is None
    client = client or httpx.Client(timeout=current_app.config.get("ASSISTANT_TIMEOUT", 30.0))
    try:
        response = client.post(url, json=payload, headers=headers)
        response.raise_for_status()
        return _extract_text(response.json())
    except httpx.HTTPStatusError as exc:
        logger.warning("Assistant answered %s", exc.response.status_code)
        raise AssistantError(
            "Assistant request failed",
            {"status": exc.response.status_code},
        ) from exc
    except httpx.HTTPError as exc:
        logger.warning("Assistant unreachable: %s", exc)
        raise AssistantError("Assistant is unreachable") from exc
    except ValueError as exc:
        raise AssistantError("Assistant returned invalid JSON") from exc
    finally:
        if owns_client:
            client.close()
