"""Memory namespace: key/value notes that persist across steps."""

from typing import Any

from agentloop.actions.registry import Action, Namespace
from agentloop.exceptions import ActionError
from agentloop.state.storage import StorageDescriptor, StorageType


def _require_key(attributes: dict[str, str] | None) -> str:
    key = (attributes or {}).get("key", "").strip()
    if not key:
        raise ActionError("the key attribute is missing")
    return key


class SaveMemory(Action):
    name = "save-memory"
    description = "To store a memory:"
    example_payload = "put here the custom data you want to keep for later"
    example_attributes = {"key": "my-note"}

    async def run(self, state: Any, attributes: dict[str, str] | None, payload: str | None) -> str | None:
        key = _require_key(attributes)
        if not payload:
            raise ActionError("the memory content is missing")
        state.get_storage("memories").add_tagged(key, payload)
        return "memory saved"


class DeleteMemory(Action):
    name = "delete-memory"
    description = "To delete a memory you don't need anymore:"
    example_attributes = {"key": "my-note"}

    async def run(self, state: Any, attributes: dict[str, str] | None, payload: str | None) -> str | None:
        key = _require_key(attributes)
        if state.get_storage("memories").del_tagged(key) is None:
            raise ActionError(f"memory '{key}' not found")
        return "memory deleted"


def get_namespace() -> Namespace:
    return Namespace(
        name="Memory",
        description="You can use the memory actions to store and retrieve long term information as you work.",
        actions=[SaveMemory(), DeleteMemory()],
        storages=[StorageDescriptor("memories", StorageType.TAGGED)],
    )
