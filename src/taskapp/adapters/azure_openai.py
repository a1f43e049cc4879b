"""Azure OpenAI adapter - HTTP client for chat completions."""

import logging

import requests

from taskapp.config import Config, load_config

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 600
RETRY_MAX_TOKENS = 1000


class LLMError(Exception):
    """Raised when the model call fails or returns nothing usable."""

    pass


class AzureOpenAIService:
    """
    Azure OpenAI chat-completions adapter.

    Implements LLMService protocol. Asks for a JSON object response and retries
    once with a larger token budget when the first answer was cut off empty.
    """

    def __init__(
        self,
        config: Config | None = None,
        session: requests.Session | None = None,
        timeout: int = 60,
    ):
        self.config = config or load_config()
        self._session = session or requests.Session()
        self.timeout = timeout

    def _url(self) -> str:
        c = self.config
        if not c.azure_openai_endpoint or not c.azure_openai_api_key or not c.azure_openai_deployment:
            raise LLMError("Azure OpenAI env vars are not configured.")
        endpoint = c.azure_openai_endpoint.rstrip("/")
        return (
            f"{endpoint}/openai/deployments/{c.azure_openai_deployment}"
            f"/chat/completions?api-version={c.azure_openai_api_version}"
        )

    def _call(self, url: str, system: str, text: str, max_tokens: int) -> dict:
        try:
            resp = self._session.post(
                url,
                headers={"content-type": "application/json", "api-key": self.config.azure_openai_api_key},
                json={
                    "max_completion_tokens": max_tokens,
                    "response_format": {"type": "json_object"},
                    "messages": [
                        {"role": "system", "content": system},
                        {"role": "user", "content": text},
                    ],
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise LLMError(f"Azure OpenAI request failed: {e}") from e

        if not resp.ok:
            logger.error(f"Azure OpenAI request failed ({resp.status_code}): {resp.text}")
            raise LLMError(f"Azure OpenAI request failed ({resp.status_code}): {resp.text}")
        return resp.json()

    @staticmethod
    def _content(data: dict) -> tuple[str | None, str | None]:
        choices = data.get("choices") or [{}]
        choice = choices[0]
        content = (choice.get("message") or {}).get("content")
        return (content if isinstance(content, str) and content else None), choice.get("finish_reason")

    def complete_json(self, system: str, text: str) -> str:
        """Send instructions plus user text. Returns the raw response content."""
        url = self._url()
        data = self._call(url, system, text.strip(), DEFAULT_MAX_TOKENS)
        content, finish_reason = self._content(data)

        if content is None and finish_reason == "length":
            logger.info("Model ran out of tokens, retrying with a larger budget")
            data = self._call(url, system, text.strip(), RETRY_MAX_TOKENS)
            content, _ = self._content(data)

        if content is None:
            raise LLMError(f"No AI response content: {data}")
        return content
