"""Content provider interface. Ollama primary; FakeProvider for tests."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import httpx

logger = logging.getLogger("prepwise.generation")


@dataclass
class GenerationError(Exception):
    """Structured error from the content provider. Never expose raw tracebacks."""
    kind: str  # timeout | unavailable | invalid_json | provider_error
    message: str
    details: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"


class ContentProvider(ABC):
    """Abstract provider for structured content generation."""

    name: str = "base"

    @abstractmethod
    async def generate_json(
        self,
        system_prompt: str,
        user_prompt: str,
        schema_hint: str,
        *,
        temperature: float = 0.4,
        timeout_s: float = 60,
    ) -> Dict[str, Any]:
        """Generate JSON output. Returns parsed dict or raises GenerationError."""
        ...

    @abstractmethod
    async def test_connection(self) -> tuple[bool, str]:
        """Test if provider is available. Returns (ok, message)."""
        ...


def _strip_code_fence(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        if lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        text = "\n".join(lines)
    return text


def _transport_error(e: httpx.HTTPError) -> GenerationError:
    if isinstance(e, httpx.TimeoutException):
        return GenerationError(kind="timeout", message="Model request timed out", details={"error": str(e)})
    if isinstance(e, httpx.ConnectError):
        return GenerationError(kind="unavailable", message="Cannot connect to Ollama", details={"error": str(e)})
    logger.warning("Ollama request failed: %s", e)
    return GenerationError(kind="provider_error", message="Model request failed", details={"error": str(e)})


class OllamaProvider(ContentProvider):
    """
    Talks to a local Ollama server. Requests JSON mode, so the model's
    "response" field is expected to hold a single JSON object.
    """

    name = "ollama"

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "qwen2.5:7b-instruct",
        timeout_s: float = 60,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout_s = timeout_s
        self.transport = transport

    def _client(self, timeout_s: Optional[float] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout_s or self.timeout_s,
            transport=self.transport,
        )

    async def generate_json(
        self,
        system_prompt: str,
        user_prompt: str,
        schema_hint: str,
        *,
        temperature: float = 0.4,
        timeout_s: Optional[float] = None,
    ) -> Dict[str, Any]:
        body = {
            "model": self.model,
            "system": system_prompt,
            "prompt": f"{schema_hint}\n\n{user_prompt}",
            "format": "json",
            "stream": False,
            "options": {"temperature": temperature},
        }
        try:
            async with self._client(timeout_s) as client:
                resp = await client.post("/api/generate", json=body)
        except httpx.HTTPError as e:
            raise _transport_error(e) from e
        if resp.status_code != 200:
            raise GenerationError(
                kind="provider_error",
                message=f"Ollama returned {resp.status_code}",
                details={"status": resp.status_code, "body": resp.text[:200]},
            )
        return self._decode(resp)

    @staticmethod
    def _decode(resp: httpx.Response) -> Dict[str, Any]:
        try:
            envelope = resp.json()
        except json.JSONDecodeError as e:
            raise GenerationError(kind="invalid_json", message="Ollama reply is not JSON", details={"error": str(e)})
        text = envelope.get("response") if isinstance(envelope, dict) else None
        if not text:
            raise GenerationError(kind="invalid_json", message="Empty response from model")
        try:
            out = json.loads(_strip_code_fence(text))
        except json.JSONDecodeError as e:
            raise GenerationError(kind="invalid_json", message="Model output is not valid JSON", details={"error": str(e)})
        if not isinstance(out, dict):
            raise GenerationError(kind="invalid_json", message="Model output is not a JSON object")
        return out

    async def test_connection(self) -> tuple[bool, str]:
        try:
            async with self._client(5) as client:
                resp = await client.get("/api/tags")
        except httpx.ConnectError:
            return False, "Ollama not detected. Start it with: ollama serve"
        except httpx.HTTPError as e:
            return False, str(e)
        if resp.status_code != 200:
            return False, f"Ollama returned {resp.status_code}"
        return True, f"Ollama available ({self.model})"


Scripted = Union[Dict[str, Any], Exception]


class FakeProvider(ContentProvider):
    """
    Test double: plays back a script of responses.

    Each script entry is either a dict (returned) or an exception (raised).
    The last entry repeats once the script is exhausted.
    """

    def __init__(
        self,
        canned: Optional[Dict[str, Any]] = None,
        error: Optional[Exception] = None,
        script: Optional[List[Scripted]] = None,
    ):
        if script is None:
            script = [error] if error is not None else [canned if canned is not None else {"error": "reject"}]
        self.script = list(script)
        self.calls: List[Dict[str, str]] = []
        self.name = "fake"

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def generate_json(
        self,
        system_prompt: str,
        user_prompt: str,
        schema_hint: str,
        **kwargs,
    ) -> Dict[str, Any]:
        self.calls.append({"system": system_prompt, "user": user_prompt, "schema": schema_hint})
        entry = self.script[min(len(self.calls), len(self.script)) - 1]
        if isinstance(entry, Exception):
            raise entry
        return entry

    async def test_connection(self) -> tuple[bool, str]:
        first = self.script[0] if self.script else None
        if isinstance(first, GenerationError) and first.kind == "unavailable":
            return False, "Fake unavailable"
        return True, "Fake OK"


_provider: Optional[ContentProvider] = None


def get_provider(settings) -> Optional[ContentProvider]:
    """Get configured provider. Returns None if disabled."""
    if not getattr(settings, "generation_enabled", False):
        return None
    global _provider
    if _provider is None:
        provider_name = getattr(settings, "generation_provider", "ollama")
        if provider_name != "ollama":
            logger.warning("Unknown generation provider %r, using ollama", provider_name)
        _provider = OllamaProvider(
            base_url=getattr(settings, "generation_base_url", "http://localhost:11434"),
            model=getattr(settings, "generation_model", "qwen2.5:7b-instruct"),
            timeout_s=getattr(settings, "generation_timeout_s", 60),
        )
    return _provider


def reset_provider() -> None:
    """Reset cached provider (for tests)."""
    global _provider
    _provider = None
