"""Ollama HTTP client for chat, completion and embeddings.

Endpoints used:
  GET  /api/tags       installed models (doubles as the health check)
  POST /api/generate   single-prompt completion
  POST /api/chat       multi-turn chat completion
  POST /api/embed      batch embeddings

Every connection, protocol and format failure is raised as LLMError so
callers handle one exception type.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from story_engine import config

logger = logging.getLogger(__name__)


class LLMError(RuntimeError):
    """Raised when the model server cannot be reached or returns an error."""


@dataclass
class ChatResult:
    content: str
    model: str
    eval_count: int | None = None
    total_duration: int | None = None

    def metadata(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "eval_count": self.eval_count,
            "total_duration": self.total_duration,
        }


class OllamaClient:
    """Async client for an Ollama server.

    Args:
        base_url:        Server URL, e.g. "http://localhost:11434".
        chat_model:      Model used by chat() and generate().
        embedding_model: Model used by embed().
        timeout:         HTTP timeout in seconds. Defaults to 120.
    """

    def __init__(
        self,
        base_url: str,
        chat_model: str = "llama3.2",
        embedding_model: str = "nomic-embed-text",
        timeout: float = 120.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self.chat_model = chat_model
        self.embedding_model = embedding_model
        self._timeout = timeout

    @classmethod
    def from_env(cls) -> OllamaClient:
        return cls(
            base_url=config.ollama_url(),
            chat_model=config.chat_model(),
            embedding_model=config.embedding_settings().model,
        )

    async def _request(self, method: str, path: str, body: dict[str, Any] | None = None) -> dict[str, Any]:
        url = f"{self._base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                if method == "GET":
                    resp = await client.get(url)
                else:
                    resp = await client.post(url, json=body)
                resp.raise_for_status()
                data = resp.json()
        except httpx.ConnectError as e:
            raise LLMError(f"Cannot connect to Ollama at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            raise LLMError(f"Ollama returned HTTP {e.response.status_code}") from e
        except httpx.TimeoutException as e:
            raise LLMError(f"Ollama timed out after {self._timeout}s") from e
        except httpx.RequestError as e:
            raise LLMError(f"Request to Ollama failed: {e}") from e
        except ValueError as e:
            raise LLMError(f"Ollama returned a body that is not JSON from {path}") from e
        if not isinstance(data, dict):
            raise LLMError(f"Unexpected response format from {path}")
        return data

    async def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", path, body)

    async def list_models(self) -> list[str]:
        data = await self._request("GET", "/api/tags")
        return [m["name"] for m in data.get("models", [])]

    async def health_check(self) -> bool:
        """True when the server answers /api/tags."""
        try:
            await self.list_models()
        except LLMError as e:
            logger.warning("Ollama health check failed: %s", e)
            return False
        return True

    async def generate(
        self, prompt: str, system: str | None = None, temperature: float = 0.7
    ) -> str:
        body: dict[str, Any] = {
            "model": self.chat_model,
            "prompt": prompt,
            "stream": False,
            "options": {"temperature": temperature},
        }
        if system:
            body["system"] = system
        logger.debug("ollama generate model=%s prompt_len=%d", self.chat_model, len(prompt))
        data = await self._post("/api/generate", body)
        if "response" not in data:
            raise LLMError("Unexpected response format from /api/generate")
        return data["response"]

    async def chat(
        self,
        messages: list[dict[str, str]],
        temperature: float = 0.7,
        max_tokens: int = 500,
    ) -> ChatResult:
        """Run a chat completion over `messages` ({role, content} dicts)."""
        body = {
            "model": self.chat_model,
            "messages": messages,
            "stream": False,
            "options": {"temperature": temperature, "num_predict": max_tokens},
        }
        logger.debug("ollama chat model=%s messages=%d", self.chat_model, len(messages))
        data = await self._post("/api/chat", body)
        message = data.get("message")
        if not isinstance(message, dict) or "content" not in message:
            raise LLMError("Unexpected response format from /api/chat")
        return ChatResult(
            content=message["content"],
            model=data.get("model", self.chat_model),
            eval_count=data.get("eval_count"),
            total_duration=data.get("total_duration"),
        )

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Return one embedding per input text."""
        if not texts:
            return []
        data = await self._post("/api/embed", {"model": self.embedding_model, "input": texts})
        embeddings = data.get("embeddings")
        if not isinstance(embeddings, list) or len(embeddings) != len(texts):
            raise LLMError("Unexpected response format from /api/embed")
        return embeddings
