"""Goal namespace: lets the model refine its current goal."""

from typing import Any

from agentloop.actions.registry import Action, Namespace
from agentloop.exceptions import ActionError
from agentloop.state.storage import StorageDescriptor, StorageType


class UpdateGoal(Action):
    name = "update-goal"
    description = "When you believe you've accomplished your current goal, pick the next goal from the plan or set a new one:"
    example_payload = "your new goal"

    async def run(self, state: Any, attributes: dict[str, str] | None, payload: str | None) -> str | None:
        if not payload:
            raise ActionError("the new goal is missing")
        state.get_storage("goal").set_current(payload)
        return "goal updated"


def get_namespace() -> Namespace:
    return Namespace(
        name="Goal",
        description="",
        actions=[UpdateGoal()],
        storages=[StorageDescriptor("goal", StorageType.SINGLE)],
    )
