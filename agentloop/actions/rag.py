"""Retrieval namespace: search the indexed documents."""

from typing import Any

from agentloop.actions.registry import Action, Namespace
from agentloop.exceptions import ActionError
from agentloop.rag.naive import NaiveVectorStore


class Search(Action):
    name = "search"
    description = "To search for information in the documents you have access to:"
    example_payload = "what is the biggest city in the world?"

    def __init__(self, store: NaiveVectorStore, top_k: int = 1):
        self.store = store
        self.top_k = top_k

    async def run(self, state: Any, attributes: dict[str, str] | None, payload: str | None) -> str | None:
        if not payload:
            raise ActionError("the search query is missing")

        results = await self.store.retrieve(payload, self.top_k)
        if not results:
            return "no documents found"

        blocks = [
            f"[{doc.path} score={score:.2f}]\n{doc.data.strip()}"
            for doc, score in results
        ]
        return "\n\n".join(blocks)


def get_namespace(store: NaiveVectorStore, top_k: int = 1) -> Namespace:
    return Namespace(
        name="Knowledge",
        description="You can search a local knowledge base for relevant information.",
        actions=[Search(store, top_k=top_k)],
    )
