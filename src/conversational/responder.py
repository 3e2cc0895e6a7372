"""Conversational fallback via an OpenAI-compatible Chat Completions API (feature-flagged).

The responder only ever receives the user's text and the project count; it never sees parser
internals and its output is shown verbatim without being interpreted as a command.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from src.config.settings import Settings

logger = logging.getLogger(__name__)


class ConversationalResponderError(RuntimeError):
    """Raised when the LLM call fails or returns an unexpected payload."""


@dataclass(frozen=True)
class LLMConfig:
    """Configuration for the OpenAI-style Chat Completions API call."""

    api_key: str
    model: str = "llama-3.1-8b-instant"
    api_base: str = "https://api.groq.com/openai/v1"
    timeout_s: float = 30.0
    temperature: float = 0.4


def fallback_response(project_count: int) -> str:
    return (
        f"Salut ! 🎵 Je suis ton assistant projets, là pour t'aider avec tes {project_count} projets. "
        "Demande-moi \"combien de ghost prod j'ai\" ou \"liste mes projets terminés\"."
    )


def _load_prompt() -> str:
    prompt_path = Path(__file__).resolve().parent / "prompt_conversational_v1.md"
    return prompt_path.read_text(encoding="utf-8")


def _chat_completions_url(api_base: str) -> str:
    return api_base.rstrip("/") + "/chat/completions"


def complete_via_llm(prompt: str, *, project_count: int, config: LLMConfig) -> str:
    """Call the LLM and return the assistant text (blocking)."""

    payload = {
        "model": config.model,
        "temperature": config.temperature,
        "messages": [
            {"role": "system", "content": _load_prompt().format(project_count=project_count)},
            {"role": "user", "content": prompt},
        ],
    }

    req = Request(
        _chat_completions_url(config.api_base),
        method="POST",
        headers={
            "Authorization": f"Bearer {config.api_key}",
            "Content-Type": "application/json",
        },
        data=json.dumps(payload).encode(),
    )

    try:
        with urlopen(req, timeout=config.timeout_s) as resp:  # noqa: S310 (explicit, feature-flagged network call)
            body = resp.read()
    except HTTPError as exc:
        raise ConversationalResponderError(f"LLM HTTP error: {exc.code}") from exc
    except (URLError, TimeoutError) as exc:
        raise ConversationalResponderError("LLM connection error") from exc

    try:
        decoded = json.loads(body)
        content = decoded["choices"][0]["message"]["content"]
    except Exception as exc:  # noqa: BLE001
        raise ConversationalResponderError("Unexpected LLM response format") from exc

    if not isinstance(content, str) or not content.strip():
        raise ConversationalResponderError("LLM returned an empty answer")
    return content.strip()


class ConversationalResponder:
    """Answer chit-chat through the LLM, or with a static greeting when disabled or failing."""

    def __init__(self, config: LLMConfig | None = None) -> None:
        self._config = config

    @classmethod
    def from_settings(cls, settings: Settings) -> ConversationalResponder:
        if not settings.llm_enabled or not settings.llm_api_key:
            return cls(None)
        return cls(
            LLMConfig(
                api_key=settings.llm_api_key,
                model=settings.llm_model,
                api_base=settings.llm_api_base,
                timeout_s=settings.llm_timeout_s,
            )
        )

    @property
    def enabled(self) -> bool:
        return self._config is not None

    async def respond(self, prompt: str, *, project_count: int) -> str:
        if self._config is None:
            return fallback_response(project_count)
        try:
            return await asyncio.to_thread(
                complete_via_llm, prompt, project_count=project_count, config=self._config
            )
        except ConversationalResponderError as exc:
            logger.warning("conversational fallback used reason=%s", exc)
            return fallback_response(project_count)
