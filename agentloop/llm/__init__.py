"""Generation service clients - direct HTTP calls to the Ollama API."""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx

from agentloop.exceptions import LLMAPIError, LLMError
from agentloop.logging import get_logger

log = get_logger(__name__)


OLLAMA_NATIVE_BASE_URL = "http://127.0.0.1:11434"


@dataclass
class Message:
    """A message in the conversation."""

    role: str  # "system", "user", "assistant"
    content: str


@dataclass
class GenerationOptions:
    """Fixed sampling options sent with every request."""

    context_window_size: int = 10000
    temperature: float = 0.9
    repeat_penalty: float = 1.3
    top_k: int = 20

    @classmethod
    def from_config(cls, model_config: Any) -> "GenerationOptions":
        return cls(
            context_window_size=int(model_config.context_window),
            temperature=float(model_config.temperature),
            repeat_penalty=float(model_config.repeat_penalty),
            top_k=int(model_config.top_k),
        )

    def to_ollama(self) -> dict[str, Any]:
        return {
            "num_ctx": self.context_window_size,
            "temperature": self.temperature,
            "repeat_penalty": self.repeat_penalty,
            "top_k": self.top_k,
        }


class GenerationClient(ABC):
    """Abstract base class for generation services."""

    @abstractmethod
    async def generate(
        self,
        model: str,
        system_prompt: str,
        prompt: str,
        options: GenerationOptions | None = None,
        history: list[Message] | None = None,
    ) -> str:
        """Send one request and return the raw response text."""

    async def close(self) -> None:
        """Release any transport resources."""


class OllamaClient(GenerationClient):
    """Direct Ollama API client."""

    def __init__(
        self,
        base_url: str = OLLAMA_NATIVE_BASE_URL,
        timeout: float = 120.0,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize Ollama client.

        Args:
            base_url: Ollama API base URL
            timeout: Request timeout in seconds
            api_key: Optional API key (Ollama usually doesn't need one locally)
            transport: Optional httpx transport override
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.client = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    @staticmethod
    def _build_messages(
        system_prompt: str,
        prompt: str,
        history: list[Message] | None,
    ) -> list[dict[str, str]]:
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": prompt},
        ]
        for msg in history or []:
            messages.append({"role": msg.role, "content": msg.content})
        return messages

    async def generate(
        self,
        model: str,
        system_prompt: str,
        prompt: str,
        options: GenerationOptions | None = None,
        history: list[Message] | None = None,
    ) -> str:
        """Generate a completion."""
        url = f"{self.base_url}/api/chat"
        messages = self._build_messages(system_prompt, prompt, history)
        body: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "stream": False,
            "options": (options or GenerationOptions()).to_ollama(),
        }

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            log.debug("Calling Ollama", model=model, url=url, msg_count=len(messages))

            response = await self.client.post(url, json=body, headers=headers)

            log.debug("Ollama response status", status=response.status_code)

            if not response.is_success:
                raise LLMAPIError(
                    f"Ollama API error {response.status_code}: {response.text}",
                    status_code=response.status_code,
                )

            data = response.json()
            message = data.get("message")
            if not isinstance(message, dict):
                raise LLMError("Ollama response is missing 'message'")
            return str(message.get("content") or "")

        except LLMError:
            raise
        except httpx.HTTPError as e:
            raise LLMAPIError(f"Ollama HTTP error: {e}")
        except json.JSONDecodeError as e:
            raise LLMError(f"Ollama response decode error: {e}")

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()


def create_client(
    provider: str = "ollama",
    base_url: str | None = None,
    timeout: float = 120.0,
    api_key: str | None = None,
) -> GenerationClient:
    """Create a generation client.

    Args:
        provider: Provider name (only ollama is supported)
        base_url: Optional base URL
        timeout: Request timeout in seconds
        api_key: Optional API key

    Returns:
        Configured GenerationClient instance
    """
    if provider == "ollama":
        return OllamaClient(
            base_url=base_url or OLLAMA_NATIVE_BASE_URL,
            timeout=timeout,
            api_key=api_key,
        )
    raise ValueError(f"Provider '{provider}' not supported. Use 'ollama' or configure manually.")

