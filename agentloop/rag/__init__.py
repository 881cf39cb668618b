"""Documents and embedders for naive retrieval."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
import hashlib
import math
from pathlib import Path
from typing import Any

import httpx

from agentloop.llm import OLLAMA_NATIVE_BASE_URL


@dataclass
class Document:
    """A text document (or a chunk of one) that can be indexed."""

    path: str
    ident: str
    data: str

    @classmethod
    def from_text_file(cls, path: Path | str) -> "Document":
        file_path = Path(path)
        data = file_path.read_text(encoding="utf-8", errors="replace")
        return cls(path=str(file_path), ident=_hash_text(f"{file_path}\n{data}"), data=data)

    def chunks(self, chunk_size: int) -> list["Document"]:
        """Split into documents of at most ``chunk_size`` characters."""
        if chunk_size <= 0:
            raise ValueError("chunk size must be positive")
        return [
            Document(
                path=self.path,
                ident=f"{self.ident}@{idx}",
                data=self.data[offset:offset + chunk_size],
            )
            for idx, offset in enumerate(range(0, len(self.data), chunk_size))
        ]

    @property
    def byte_size(self) -> int:
        return len(self.data.encode("utf-8"))

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "ident": self.ident, "data": self.data}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Document":
        return cls(path=str(data["path"]), ident=str(data["ident"]), data=str(data.get("data", "")))


def _hash_text(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def cosine_similarity(a: list[float], b: list[float]) -> float:
    if not a or not b or len(a) != len(b):
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if norm <= 1e-12 or not math.isfinite(dot):
        return 0.0
    return max(-1.0, min(1.0, dot / norm))


class Embedder(ABC):
    """Turns text into an embedding vector."""

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        pass


class OllamaEmbedder(Embedder):
    """Embeddings from the Ollama ``/api/embeddings`` endpoint."""

    def __init__(
        self,
        model: str,
        base_url: str = OLLAMA_NATIVE_BASE_URL,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.model = str(model).strip() or "all-minilm"
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def embed(self, text: str) -> list[float]:
        response = await self.client.post(
            f"{self.base_url}/api/embeddings",
            json={"model": self.model, "prompt": text},
        )
        response.raise_for_status()
        embedding = response.json().get("embedding")
        if not isinstance(embedding, list):
            raise ValueError("Ollama embeddings response missing list 'embedding'")
        return [float(v) for v in embedding]

    async def close(self) -> None:
        await self.client.aclose()
