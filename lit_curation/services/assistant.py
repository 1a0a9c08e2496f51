# lit_curation/services/assistant.py

from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests
from pydantic import SecretStr

from lit_curation.config.settings import Settings, settings as default_settings
from lit_curation.services.base import AssistantServiceError

KEYWORDS_PROMPT = (
    "Generate a list of 3-5 precise, highly relevant single keywords or short "
    "phrases to search PubMed for the following topic: '{topic}'.\n"
    "Return ONLY a comma-separated list of keywords. "
    "Do not include any other text or explanations."
)

VERIFY_PROMPT = (
    "Does the following text support the claim: '{claim}'?\n"
    "Text: {context}\n\n"
    "Answer ONLY with 'YES' or 'NO'."
)


def split_keywords(content: str) -> List[str]:
    return [part.strip() for part in content.split(",") if part.strip()]


class OpenRouterAssistant:
    """
    Language-model helper backed by the OpenRouter chat completions API.

    Serves both as the keyword generator and the claim verifier.
    """

    def __init__(
        self,
        api_key: Optional[SecretStr] = None,
        *,
        url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_key = api_key
        self.url = url or default_settings.OPENROUTER_URL
        self.model = model or default_settings.OPENROUTER_MODEL
        self.timeout = timeout if timeout is not None else default_settings.HTTP_TIMEOUT
        self.http = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> "OpenRouterAssistant":
        return cls(
            settings.OPENROUTER_API_KEY,
            url=settings.OPENROUTER_URL,
            model=settings.OPENROUTER_MODEL,
            timeout=settings.HTTP_TIMEOUT,
        )

    @property
    def configured(self) -> bool:
        return self.api_key is not None and bool(self.api_key.get_secret_value())

    def complete(self, prompt: str) -> str:
        """Send a single user message and return the reply text."""
        if not self.configured:
            raise AssistantServiceError("OpenRouter API key is not configured")

        body: Dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
        }
        headers = {
            "Authorization": f"Bearer {self.api_key.get_secret_value()}",  # type: ignore[union-attr]
            "Content-Type": "application/json",
        }

        try:
            resp = self.http.post(self.url, json=body, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise AssistantServiceError(
                f"Error contacting OpenRouter at {self.url}: {exc}",
                url=self.url,
            ) from exc

        if not resp.ok:
            raise AssistantServiceError(
                f"OpenRouter returned HTTP {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code,
                url=self.url,
            )

        try:
            content = resp.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise AssistantServiceError("Unexpected OpenRouter response shape") from exc

        return content or ""

    def generate_keywords(self, topic: str) -> List[str]:
        return split_keywords(self.complete(KEYWORDS_PROMPT.format(topic=topic)))

    def verify_claim(self, claim: str, context: str) -> bool:
        reply = self.complete(VERIFY_PROMPT.format(claim=claim, context=context))
        return "YES" in reply.upper()
