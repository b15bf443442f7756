from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING, Any

import requests
import yaml

from steps.errors import UpstreamGenerationError

if TYPE_CHECKING:
    from backend.settings import Settings

logger = logging.getLogger(__name__)

PROMPT_PATH = Path(__file__).resolve().parent / "prompts" / "generator.yaml"

MOCK_PREFIX = "Quick thought: "
MOCK_MAX_CHARS = 80
MOCK_KEEP_CHARS = 77


@lru_cache()
def _load_prompts() -> dict:
    logger.info("Loading prompts from %s", PROMPT_PATH)
    return yaml.safe_load(PROMPT_PATH.read_text())


def mock_generate(prompt: str) -> str:
    """Deterministic stand-in used when no remote model is configured."""
    short = prompt[:MOCK_KEEP_CHARS] + "..." if len(prompt) > MOCK_MAX_CHARS else prompt
    return f"{MOCK_PREFIX}{short}"


def _strip_fences(text: str) -> str:
    return text.replace("```json", "").replace("```", "").strip()


class TextGenerator:
    """Produce a short tweet-sized text for a prompt.

    Runs in mock mode when ``use_mock_ai`` is set or no API key is
    configured, otherwise calls a chat-completion endpoint.
    """

    def __init__(self, settings: Settings, http: Any = requests):
        self.settings = settings
        self.http = http

    @property
    def use_mock(self) -> bool:
        return self.settings.use_mock_ai or not self.settings.openai_api_key

    def generate(self, prompt: str) -> str:
        if self.use_mock:
            logger.info("Generating mock text")
            return mock_generate(prompt)
        return self._generate_remote(prompt)

    def _generate_remote(self, prompt: str) -> str:
        prompts = _load_prompts()
        body = {
            "model": self.settings.openai_model,
            "messages": [
                {"role": "system", "content": prompts["system"]},
                {"role": "user", "content": prompts["user"].format(prompt=prompt)},
            ],
            "max_tokens": 60,
            "temperature": 0.7,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.settings.openai_api_key}",
        }
        logger.info("Requesting completion from %s", self.settings.openai_endpoint)
        try:
            resp = self.http.post(
                self.settings.openai_endpoint,
                json=body,
                headers=headers,
                timeout=self.settings.request_timeout,
            )
        except requests.RequestException as e:
            raise UpstreamGenerationError(f"OpenAI request failed: {e}") from e

        if not resp.ok:
            raise UpstreamGenerationError(f"OpenAI error: {resp.status_code} {resp.text}")

        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamGenerationError("OpenAI returned invalid JSON") from e
        return _strip_fences(_completion_text(data))


def _completion_text(data: Any) -> str:
    choices = data.get("choices") if isinstance(data, dict) else None
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        raise UpstreamGenerationError("OpenAI response has no choices")
    first = choices[0]
    message = first.get("message") or {}
    content = message.get("content") if isinstance(message, dict) else None
    if content is None:
        content = first.get("text")
    if not isinstance(content, str):
        raise UpstreamGenerationError("OpenAI response has no completion text")
    return content
