"""Actions package for agentloop."""

from functools import partial

from agentloop.actions import clock, filesystem, goal, memory, planning, task
from agentloop.actions.registry import (
    Action,
    ActionRegistry,
    Namespace,
    NamespaceBuilder,
)
from agentloop.rag.naive import NaiveVectorStore


def default_namespace_builders(
    vector_store: NaiveVectorStore | None = None,
    rag_top_k: int = 1,
) -> dict[str, NamespaceBuilder]:
    """Registration table of the built-in namespaces, keyed by lowercase id."""
    builders: dict[str, NamespaceBuilder] = {
        "memory": memory.get_namespace,
        "goal": goal.get_namespace,
        "planning": planning.get_namespace,
        "task": task.get_namespace,
        "time": clock.get_namespace,
        "filesystem": filesystem.get_namespace,
    }
    if vector_store is not None:
        from agentloop.actions import rag

        builders["rag"] = partial(rag.get_namespace, vector_store, rag_top_k)
    return builders


__all__ = [
    "Action",
    "ActionRegistry",
    "Namespace",
    "NamespaceBuilder",
    "default_namespace_builders",
]
