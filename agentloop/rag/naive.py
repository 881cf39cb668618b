"""YAML persisted vector store with brute force cosine retrieval."""

from __future__ import annotations

from pathlib import Path
import time
from typing import Any

import yaml

from agentloop.logging import get_logger
from agentloop.rag import Document, Embedder, cosine_similarity

log = get_logger(__name__)

STORE_FILENAME = "rag.yml"


class NaiveVectorStore:
    """Keeps every document and embedding in memory, persisted after each add."""

    def __init__(
        self,
        embedder: Embedder,
        source_path: Path | str,
        data_path: Path | str,
        chunk_size: int | None = None,
    ):
        self.embedder = embedder
        self.source_path = Path(source_path).expanduser()
        self.data_path = Path(data_path).expanduser()
        self.chunk_size = chunk_size
        self._documents: dict[str, Document] = {}
        self._embeddings: dict[str, list[float]] = {}
        self._load()

    @classmethod
    async def create(cls, embedder: Embedder, config: Any) -> "NaiveVectorStore":
        """Open the store described by a ``RagConfig`` and index new source files."""
        store = cls(
            embedder,
            source_path=config.source_path,
            data_path=config.data_path,
            chunk_size=config.chunk_size,
        )
        await store.import_new_documents()
        return store

    @property
    def store_path(self) -> Path:
        return self.data_path / STORE_FILENAME

    def __len__(self) -> int:
        return len(self._documents)

    def _load(self) -> None:
        if not self.store_path.exists():
            return
        with open(self.store_path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        for ident, doc in (raw.get("documents") or {}).items():
            self._documents[ident] = Document.from_dict(doc)
        for ident, vector in (raw.get("embeddings") or {}).items():
            self._embeddings[ident] = [float(v) for v in vector]

    def _persist(self) -> None:
        self.data_path.mkdir(parents=True, exist_ok=True)
        data = {
            "documents": {ident: doc.to_dict() for ident, doc in self._documents.items()},
            "embeddings": self._embeddings,
        }
        with open(self.store_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, sort_keys=False)

    async def import_new_documents(self) -> int:
        """Index every ``*.txt`` under the source path that isn't indexed yet."""
        if not self.source_path.exists():
            log.warning("RAG source path does not exist", path=str(self.source_path))
            return 0

        start = time.monotonic()
        new = 0
        for path in sorted(self.source_path.resolve().rglob("*.txt")):
            try:
                document = Document.from_text_file(path)
            except OSError as e:
                log.error("Failed to read document", path=str(path), error=str(e))
                continue

            docs = document.chunks(self.chunk_size) if self.chunk_size else [document]
            for doc in docs:
                try:
                    if await self.add(doc):
                        new += 1
                except Exception as e:
                    log.error("Failed to index document", path=str(path), error=str(e))

        if new > 0:
            log.info(
                "New documents indexed",
                count=new,
                elapsed=round(time.monotonic() - start, 3),
            )
        return new

    async def add(self, document: Document) -> bool:
        """Embed and store a document. Returns False if it was already indexed."""
        if document.ident in self._documents:
            return False

        log.info("Indexing document", path=document.path, size=document.byte_size)
        embedding = await self.embedder.embed(document.data)

        self._documents[document.ident] = document
        self._embeddings[document.ident] = embedding
        self._persist()
        return True

    async def retrieve(self, query: str, top_k: int) -> list[tuple[Document, float]]:
        """Return up to ``top_k`` documents, most similar first."""
        log.info("Retrieving documents", query=query, top_k=top_k)
        query_vector = await self.embedder.embed(query)

        scored = [
            (ident, cosine_similarity(query_vector, vector))
            for ident, vector in self._embeddings.items()
            if ident in self._documents
        ]
        scored.sort(key=lambda item: item[1], reverse=True)

        return [(self._documents[ident], score) for ident, score in scored[:max(0, top_k)]]
