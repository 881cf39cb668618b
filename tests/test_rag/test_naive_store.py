import json
from pathlib import Path

import httpx
import pytest

from agentloop.actions.rag import Search
from agentloop.config import RagConfig
from agentloop.exceptions import ActionError
from agentloop.rag import Document, Embedder, OllamaEmbedder, cosine_similarity
from agentloop.rag.naive import STORE_FILENAME, NaiveVectorStore


class KeywordEmbedder(Embedder):
    """Embeds text as counts of a few fixed keywords."""

    KEYWORDS = ("cat", "dog", "fish")

    def __init__(self):
        self.calls = 0

    async def embed(self, text: str) -> list[float]:
        self.calls += 1
        lowered = text.lower()
        return [float(lowered.count(word)) for word in self.KEYWORDS]


def _write_docs(folder: Path) -> None:
    folder.mkdir(parents=True, exist_ok=True)
    (folder / "cats.txt").write_text("cat cat cat", encoding="utf-8")
    (folder / "dogs.txt").write_text("dog dog and a cat", encoding="utf-8")
    nested = folder / "nested"
    nested.mkdir()
    (nested / "fish.txt").write_text("fish", encoding="utf-8")
    (nested / "ignored.md").write_text("cat", encoding="utf-8")


def test_cosine_similarity():
    assert cosine_similarity([1.0, 0.0], [1.0, 0.0]) == pytest.approx(1.0)
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
    assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)
    assert cosine_similarity([0.0, 0.0], [1.0, 0.0]) == 0.0
    assert cosine_similarity([1.0], [1.0, 0.0]) == 0.0


def test_document_chunks():
    doc = Document(path="a.txt", ident="abc", data="abcdefg")

    chunks = doc.chunks(3)

    assert [c.data for c in chunks] == ["abc", "def", "g"]
    assert [c.ident for c in chunks] == ["abc@0", "abc@1", "abc@2"]
    with pytest.raises(ValueError):
        doc.chunks(0)


@pytest.mark.asyncio
async def test_import_and_retrieve_most_similar_first(tmp_path: Path):
    source = tmp_path / "docs"
    _write_docs(source)
    config = RagConfig(source_path=str(source), data_path=str(tmp_path / "data"))

    store = await NaiveVectorStore.create(KeywordEmbedder(), config)

    assert len(store) == 3
    results = await store.retrieve("a cat", top_k=2)
    assert [Path(doc.path).name for doc, _ in results] == ["cats.txt", "dogs.txt"]
    assert results[0][1] >= results[1][1]


@pytest.mark.asyncio
async def test_store_is_persisted_and_not_reindexed(tmp_path: Path):
    source = tmp_path / "docs"
    _write_docs(source)
    data = tmp_path / "data"

    first = NaiveVectorStore(KeywordEmbedder(), source, data)
    assert await first.import_new_documents() == 3
    assert (data / STORE_FILENAME).exists()

    embedder = KeywordEmbedder()
    second = NaiveVectorStore(embedder, source, data)
    assert len(second) == 3
    assert await second.import_new_documents() == 0
    assert embedder.calls == 0


@pytest.mark.asyncio
async def test_chunked_import(tmp_path: Path):
    source = tmp_path / "docs"
    source.mkdir()
    (source / "long.txt").write_text("cat " * 10, encoding="utf-8")

    store = NaiveVectorStore(KeywordEmbedder(), source, tmp_path / "data", chunk_size=16)

    assert await store.import_new_documents() == 3


@pytest.mark.asyncio
async def test_missing_source_imports_nothing(tmp_path: Path):
    store = NaiveVectorStore(KeywordEmbedder(), tmp_path / "nope", tmp_path / "data")

    assert await store.import_new_documents() == 0
    assert await store.retrieve("cat", top_k=3) == []


@pytest.mark.asyncio
async def test_search_action_formats_results(tmp_path: Path):
    source = tmp_path / "docs"
    _write_docs(source)
    store = NaiveVectorStore(KeywordEmbedder(), source, tmp_path / "data")
    await store.import_new_documents()

    output = await Search(store, top_k=1).run(None, None, "fish please")

    assert output.startswith("[")
    assert "fish.txt score=1.00]\nfish" in output

    with pytest.raises(ActionError):
        await Search(store).run(None, None, None)


@pytest.mark.asyncio
async def test_search_action_on_empty_store(tmp_path: Path):
    store = NaiveVectorStore(KeywordEmbedder(), tmp_path / "docs", tmp_path / "data")

    assert await Search(store).run(None, None, "anything") == "no documents found"


@pytest.mark.asyncio
async def test_ollama_embedder_posts_prompt():
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"embedding": [0.5, 1, 2]})

    embedder = OllamaEmbedder("all-minilm", base_url="http://ollama:11434/", transport=httpx.MockTransport(handler))
    try:
        vector = await embedder.embed("hello")
    finally:
        await embedder.close()

    assert vector == [0.5, 1.0, 2.0]
    assert seen["url"] == "http://ollama:11434/api/embeddings"
    assert seen["body"] == {"model": "all-minilm", "prompt": "hello"}


@pytest.mark.asyncio
async def test_unreadable_document_is_skipped(tmp_path: Path):
    source = tmp_path / "docs"
    _write_docs(source)
    (source / "dangling.txt").symlink_to(tmp_path / "gone.txt")

    store = NaiveVectorStore(KeywordEmbedder(), source, tmp_path / "data")

    assert await store.import_new_documents() == 3
