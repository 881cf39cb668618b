"""Planning namespace: an ordered list of steps with completion flags."""

from typing import Any

from agentloop.actions.registry import Action, Namespace
from agentloop.exceptions import ActionError
from agentloop.state.storage import StorageDescriptor, StorageType


def _position(payload: str | None) -> int:
    try:
        return int(str(payload or "").strip())
    except ValueError:
        raise ActionError(f"'{payload}' is not a valid step number")


class AddPlanStep(Action):
    name = "add-plan-step"
    description = "To add a step to your plan:"
    example_payload = "complete the task"

    async def run(self, state: Any, attributes: dict[str, str] | None, payload: str | None) -> str | None:
        if not payload:
            raise ActionError("the step description is missing")
        state.get_storage("plan").add_completion(payload)
        return "step added to the plan"


class DeletePlanStep(Action):
    name = "delete-plan-step"
    description = "To remove a step from your plan given its number:"
    example_payload = "the step number"

    async def run(self, state: Any, attributes: dict[str, str] | None, payload: str | None) -> str | None:
        state.get_storage("plan").del_completion(_position(payload))
        return "step removed from the plan"


class SetStepCompleted(Action):
    name = "set-step-completed"
    description = "To mark a step of your plan as completed given its number:"
    example_payload = "the step number"

    async def run(self, state: Any, attributes: dict[str, str] | None, payload: str | None) -> str | None:
        state.get_storage("plan").set_complete(_position(payload))
        return "step marked as completed"


class SetStepIncomplete(Action):
    name = "set-step-incomplete"
    description = "To mark a step of your plan as not completed given its number:"
    example_payload = "the step number"

    async def run(self, state: Any, attributes: dict[str, str] | None, payload: str | None) -> str | None:
        state.get_storage("plan").set_incomplete(_position(payload))
        return "step marked as incomplete"


class ClearPlan(Action):
    name = "clear-plan"
    description = "To remove all the steps of your plan and start over:"

    async def run(self, state: Any, attributes: dict[str, str] | None, payload: str | None) -> str | None:
        state.get_storage("plan").clear()
        return "plan cleared"


def get_namespace() -> Namespace:
    return Namespace(
        name="Planning",
        description="Break the task down into steps and keep track of your progress.",
        actions=[
            AddPlanStep(),
            DeletePlanStep(),
            SetStepCompleted(),
            SetStepIncomplete(),
            ClearPlan(),
        ],
        storages=[StorageDescriptor("plan", StorageType.COMPLETION)],
    )
