"""Task namespace: lets the model declare the task finished."""

from typing import Any

from agentloop.actions.registry import Action, Namespace


class TaskComplete(Action):
    name = "task-complete"
    description = "When you are sure that you've completed the task, use this action and explain briefly why:"
    example_payload = "a brief report about why the task is complete"

    async def run(self, state: Any, attributes: dict[str, str] | None, payload: str | None) -> str | None:
        state.mark_complete(False, payload)
        return None


class TaskImpossible(Action):
    name = "task-impossible"
    description = "If you believe that the task is impossible to complete, use this action and explain briefly why:"
    example_payload = "a brief report about why the task is impossible"

    async def run(self, state: Any, attributes: dict[str, str] | None, payload: str | None) -> str | None:
        state.mark_complete(True, payload)
        return None


def get_namespace() -> Namespace:
    return Namespace(
        name="Task",
        description="",
        actions=[TaskComplete(), TaskImpossible()],
    )
