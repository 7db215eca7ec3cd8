"""Optional LLM-based filter parser (feature-flagged).

The LLM is only allowed to produce **parsed-filter JSON**. The output is validated against the
schema by the caller and is never trusted as-is.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from carmarket.config.settings import Settings

logger = logging.getLogger(__name__)

_PROMPT_FILE = "prompt_filters_v1.md"


class LLMParserError(RuntimeError):
    """Raised when the LLM parser fails to return a JSON object."""


@dataclass(frozen=True)
class LLMConfig:
    """Configuration for the OpenAI-style Chat Completions API call."""

    api_key: str
    model: str = "gpt-4o-mini"
    api_base: str = "https://api.openai.com/v1"
    timeout_s: float = 30.0


def load_prompt() -> str:
    """Return the system prompt shipped next to this module."""

    prompt_path = Path(__file__).resolve().parent / _PROMPT_FILE
    return prompt_path.read_text(encoding="utf-8")


def _strip_code_fences(text: str) -> str:
    value = (text or "").strip()
    if value.startswith("```"):
        value = value.strip("`")
        value = value.removeprefix("json").strip()
    return value


def _chat_completions_url(api_base: str) -> str:
    return api_base.rstrip("/") + "/chat/completions"


def _build_request(user_text: str, config: LLMConfig) -> Request:
    payload = {
        "model": config.model,
        "temperature": 0,
        "response_format": {"type": "json_object"},
        "messages": [
            {"role": "system", "content": load_prompt()},
            {"role": "user", "content": user_text},
        ],
    }
    return Request(
        _chat_completions_url(config.api_base),
        method="POST",
        headers={
            "Authorization": f"Bearer {config.api_key}",
            "Content-Type": "application/json",
        },
        data=json.dumps(payload).encode(),
    )


def decode_completion(body: bytes | str) -> dict[str, Any]:
    """Extract the JSON object from a chat-completions response body.

    Raises:
        LLMParserError: If the response shape is unexpected or the content is not a JSON object.
    """

    try:
        decoded = json.loads(body)
        content = decoded["choices"][0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError) as exc:
        raise LLMParserError("Unexpected LLM response format") from exc

    try:
        obj = json.loads(_strip_code_fences(content))
    except (json.JSONDecodeError, TypeError) as exc:
        raise LLMParserError("LLM did not return valid JSON") from exc

    if not isinstance(obj, dict):
        raise LLMParserError("LLM did not return a JSON object")
    return obj


def parse_filters_json_via_llm(user_text: str, *, config: LLMConfig) -> dict[str, Any]:
    """Call an LLM and return the decoded JSON object.

    The call is compatible with OpenAI-style `/v1/chat/completions` APIs. It is blocking; async
    callers run it in a worker thread.
    """

    req = _build_request(user_text, config)
    try:
        with urlopen(req, timeout=config.timeout_s) as resp:  # noqa: S310 (explicit, feature-flagged network call)
            body = resp.read()
    except HTTPError as exc:
        raise LLMParserError(f"LLM HTTP error: {exc.code}") from exc
    except (URLError, TimeoutError) as exc:
        raise LLMParserError("LLM connection error") from exc

    logger.debug("llm response bytes=%d model=%s", len(body), config.model)
    return decode_completion(body)


def llm_config_from_settings(settings: Settings) -> LLMConfig | None:
    """Build the LLM config from application settings; `None` when LLM parsing is disabled.

    `LLM_MODEL`, `LLM_API_BASE` and `LLM_TIMEOUT_S` come from the environment or `.env` through
    `Settings`.
    """

    if not settings.llm_enabled:
        return None
    if not settings.llm_api_key:
        raise LLMParserError("LLM_API_KEY is required")

    return LLMConfig(
        api_key=settings.llm_api_key,
        model=settings.llm_model,
        api_base=settings.llm_api_base,
        timeout_s=settings.llm_timeout_s,
    )
