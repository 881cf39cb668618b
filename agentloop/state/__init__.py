"""Run state: task, active actions, storages, history and completion."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import threading
from typing import TYPE_CHECKING

from agentloop.exceptions import IterationBudgetExceededError, StorageNotFoundError
from agentloop.instructions import InstructionLoader
from agentloop.llm import Message
from agentloop.logging import get_logger
from agentloop.parsing import Invocation
from agentloop.state.history import Execution, History
from agentloop.state.storage import Storage, StorageDescriptor, StorageType

if TYPE_CHECKING:
    from agentloop.actions.registry import ActionRegistry, NamespaceBuilder
    from agentloop.task import Task

log = get_logger(__name__)

EXAMPLE_MISUSE_ERROR = (
    "do not use the example values but use the information you have to create new ones"
)
NO_REASON = "no reason provided"


@dataclass(frozen=True)
class Completion:
    """How the run ended when an action declared it finished."""

    impossible: bool
    reason: str


class State:
    """Everything one run knows, and the guarded dispatch of invocations."""

    def __init__(
        self,
        task: Task,
        max_iterations: int = 0,
        namespace_builders: Mapping[str, NamespaceBuilder] | None = None,
        instructions: InstructionLoader | None = None,
    ):
        from agentloop.actions import ActionRegistry, default_namespace_builders

        self.task = task
        self.iteration = 0
        self.max_iterations = max(0, int(max_iterations))
        self.history = History()
        self.instructions = instructions or InstructionLoader()
        self.completion: Completion | None = None
        self._complete = threading.Event()

        builders = namespace_builders if namespace_builders is not None else default_namespace_builders()
        self.registry: ActionRegistry = ActionRegistry.build(
            builders,
            using=task.namespaces(),
            extra=task.get_functions(),
        )

        # slots exist only if an active namespace needs them
        self.storages: dict[str, Storage] = {}
        for descriptor in self.registry.required_storages():
            self.storages[descriptor.name] = Storage(descriptor.name, descriptor.type)

        goal = self.storages.get("goal")
        if goal is not None:
            goal.set_current(task.to_prompt())

        log.debug(
            "State initialized",
            namespaces=self.registry.used_namespaces(),
            storages=sorted(self.storages),
            max_iterations=self.max_iterations,
        )

    def advance_iteration(self) -> None:
        """Move to the next step.

        Raises:
            IterationBudgetExceededError: when a budget is set and the next step would reach it
        """
        next_iteration = self.iteration + 1
        if self.max_iterations > 0 and next_iteration >= self.max_iterations:
            raise IterationBudgetExceededError(self.iteration, self.max_iterations)
        self.iteration = next_iteration

    def get_storage(self, name: str) -> Storage:
        storage = self.storages.get(name)
        if storage is None:
            log.warning("Requested storage not found", storage=name)
            raise StorageNotFoundError(name)
        return storage

    def _sorted_storages(self) -> list[Storage]:
        return sorted(self.storages.values(), key=lambda storage: int(storage.type))

    def _iterations_banner(self) -> str:
        if self.max_iterations <= 0:
            return ""
        return f"You are currently at step {self.iteration + 1} of a maximum of {self.max_iterations}."

    def to_chat_history(self, max_entries: int) -> list[Message]:
        return self.history.to_chat_history(max_entries)

    def render_system_prompt(self) -> str:
        storages = "\n\n".join(
            block
            for block in (storage.to_structured_string().strip() for storage in self._sorted_storages())
            if block
        )
        guidance = "\n".join(f"- {line}" for line in self.task.guidance())

        return self.instructions.render(
            "system_prompt.md",
            system_prompt=self.task.to_system_prompt(),
            storages=storages,
            guidance=guidance,
            available_actions=self.registry.describe().strip(),
            iterations=self._iterations_banner(),
        )

    def render_user_prompt(self) -> str:
        return self.task.to_prompt()

    def render_debug_snapshot(self) -> str:
        """Storages and iteration banner, without the static action descriptions."""
        storages = "\n".join(storage.to_structured_string() for storage in self._sorted_storages())
        iterations = self._iterations_banner()
        return f"{storages}\n{iterations}\n" if iterations else f"{storages}\n"

    def add_execution(
        self,
        invocation: Invocation,
        result: str | None = None,
        error: str | None = None,
    ) -> None:
        self.history.push(Execution(invocation, result=result, error=error))

    async def execute(self, invocation: Invocation) -> None:
        """Dispatch one invocation, recording exactly one history entry if the action exists.

        Unknown actions are ignored. Action failures are recorded, never raised.
        """
        action = self.registry.find(invocation.action)
        if action is None:
            log.debug("Ignoring unknown action", action=invocation.action)
            return

        if action.uses_example(invocation):
            log.warning("Example values used", invocation=invocation.canonical)
            self.add_execution(invocation, error=EXAMPLE_MISUSE_ERROR)
            return

        log.info("Executing action", invocation=invocation.canonical)
        attributes = dict(invocation.attributes) if invocation.attributes is not None else None
        try:
            result = await action.run(StateHandle(self), attributes, invocation.payload)
        except Exception as e:
            log.error("Action failed", action=invocation.action, error=str(e))
            self.add_execution(invocation, error=str(e) or type(e).__name__)
            return

        self.add_execution(invocation, result=result)

    def mark_complete(self, impossible: bool, reason: str | None = None) -> None:
        """Flag the run as finished. The first report wins, the flag never resets."""
        if self._complete.is_set():
            log.debug("Run already complete", impossible=impossible, reason=reason)
            return

        self.completion = Completion(impossible=impossible, reason=(reason or "").strip() or NO_REASON)
        self._complete.set()
        if impossible:
            log.warning("Task is impossible", reason=self.completion.reason)
        else:
            log.info("Task complete", reason=self.completion.reason)

    def is_complete(self) -> bool:
        return self._complete.is_set()

    def used_namespaces(self) -> list[str]:
        return self.registry.used_namespaces()


class StateHandle:
    """What an action may do with the run state while it executes."""

    def __init__(self, state: State):
        self._state = state

    @property
    def iteration(self) -> int:
        return self._state.iteration

    @property
    def max_iterations(self) -> int:
        return self._state.max_iterations

    def get_storage(self, name: str) -> Storage:
        return self._state.get_storage(name)

    def has_storage(self, name: str) -> bool:
        return name in self._state.storages

    def add_execution(
        self,
        invocation: Invocation,
        result: str | None = None,
        error: str | None = None,
    ) -> None:
        self._state.add_execution(invocation, result=result, error=error)

    def mark_complete(self, impossible: bool, reason: str | None = None) -> None:
        self._state.mark_complete(impossible, reason)

    def is_complete(self) -> bool:
        return self._state.is_complete()


__all__ = [
    "Completion",
    "Execution",
    "History",
    "State",
    "StateHandle",
    "Storage",
    "StorageDescriptor",
    "StorageType",
]
