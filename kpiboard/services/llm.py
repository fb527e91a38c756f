"""
Thin client for the external text-generation collaborator (Anthropic
Messages API). One request per call, no retries: a failure is terminal for
the request that triggered it.
"""
from __future__ import annotations

import logging
from typing import Optional, Protocol

import requests

from kpiboard.core.config import Settings, settings as default_settings
from kpiboard.core.errors import InterpretationError

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"


class TextGenerator(Protocol):
    def complete(self, prompt: str, max_tokens: int = 1000) -> str: ...


class AnthropicClient:
    def __init__(
        self,
        api_key: str,
        model: str,
        url: str,
        timeout: int = 60,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def complete(self, prompt: str, max_tokens: int = 1000) -> str:
        """Send one user message and return the text of the first content block."""
        try:
            response = self.session.post(
                self.url,
                headers={
                    "content-type": "application/json",
                    "x-api-key": self.api_key,
                    "anthropic-version": ANTHROPIC_VERSION,
                },
                json={
                    "model": self.model,
                    "max_tokens": max_tokens,
                    "messages": [{"role": "user", "content": prompt}],
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            body = response.json()
        except requests.RequestException as exc:
            logger.warning("Text generation request failed: %s", exc)
            raise InterpretationError(f"Text generation request failed: {exc}") from exc
        except ValueError as exc:
            raise InterpretationError("Text generation service returned invalid JSON.") from exc

        blocks = body.get("content") or []
        texts = [b.get("text", "") for b in blocks if isinstance(b, dict) and b.get("type") == "text"]
        if not texts or not texts[0].strip():
            raise InterpretationError("Text generation service returned an empty reply.")
        return texts[0]


def build_client(config: Settings = default_settings) -> Optional[AnthropicClient]:
    """Client for the configured credential, or None when no key is set."""
    if not config.ANTHROPIC_API_KEY.strip():
        return None
    return AnthropicClient(
        api_key=config.ANTHROPIC_API_KEY.strip(),
        model=config.ANTHROPIC_MODEL,
        url=config.ANTHROPIC_API_URL,
        timeout=config.ANTHROPIC_TIMEOUT,
    )


def get_text_client() -> Optional[TextGenerator]:
    """FastAPI dependency; overridden in tests with a fake."""
    return build_client()
