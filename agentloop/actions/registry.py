"""Action base class, namespaces and the run-scoped action registry."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from agentloop.logging import get_logger
from agentloop.parsing import Invocation
from agentloop.state.storage import StorageDescriptor

if TYPE_CHECKING:
    from agentloop.state import StateHandle

log = get_logger(__name__)


class Action(ABC):
    """Base class for all actions the model can invoke."""

    name: str = ""
    description: str = ""
    example_payload: str | None = None
    example_attributes: dict[str, str] | None = None

    @abstractmethod
    async def run(
        self,
        state: StateHandle,
        attributes: dict[str, str] | None,
        payload: str | None,
    ) -> str | None:
        """Execute the action.

        Args:
            state: Narrow handle on the run state
            attributes: Attributes from the opening tag, if any were supplied
            payload: Text between the tags, if any

        Returns:
            Text fed back to the model, or None when there is nothing to report

        Raises:
            Any exception; it is recorded as an error in the run history
        """

    def structured_example(self) -> str:
        """Example invocation shown to the model."""
        return Invocation(self.name, self.example_attributes, self.example_payload).canonical

    def uses_example(self, invocation: Invocation) -> bool:
        """Whether the invocation just echoes the documented example values."""
        if invocation.payload is not None and self.example_payload is not None:
            if invocation.payload == self.example_payload:
                return True
        if invocation.attributes is not None and self.example_attributes is not None:
            if invocation.attributes == self.example_attributes:
                return True
        return False


@dataclass
class Namespace:
    """A named group of related actions, presented together in the prompt."""

    name: str
    description: str
    actions: list[Action] = field(default_factory=list)
    storages: list[StorageDescriptor] | None = None


NamespaceBuilder = Callable[[], Namespace]


class ActionRegistry:
    """Immutable catalog of the namespaces active for one run."""

    def __init__(self, namespaces: Iterable[Namespace]):
        self._namespaces: tuple[Namespace, ...] = tuple(namespaces)

        seen: dict[str, str] = {}
        for namespace in self._namespaces:
            for action in namespace.actions:
                if action.name in seen:
                    # lookups are first match wins, the later one is unreachable
                    log.warning(
                        "Duplicate action name, first registration wins",
                        action=action.name,
                        kept=seen[action.name],
                        shadowed=namespace.name,
                    )
                    continue
                seen[action.name] = namespace.name

    @classmethod
    def build(
        cls,
        builders: Mapping[str, NamespaceBuilder],
        using: Iterable[str] | None = None,
        extra: Iterable[Namespace] | None = None,
    ) -> "ActionRegistry":
        """Build the registry for a run.

        Args:
            builders: Registered namespace builders by lowercase id
            using: Namespace ids to enable, or None for all of them
            extra: Ad-hoc namespaces appended after the registered ones
        """
        namespaces: list[Namespace] = []
        if using is None:
            namespaces.extend(build() for build in builders.values())
        else:
            wanted = {str(name).strip().lower() for name in using}
            for unknown in sorted(wanted - {key.lower() for key in builders}):
                log.warning("Requested namespace is not registered", namespace=unknown)
            namespaces.extend(
                build() for key, build in builders.items() if key.lower() in wanted
            )

        namespaces.extend(extra or [])
        return cls(namespaces)

    @property
    def namespaces(self) -> tuple[Namespace, ...]:
        return self._namespaces

    def find(self, action_name: str) -> Action | None:
        """Find an action by name, first match in namespace order."""
        for namespace in self._namespaces:
            for action in namespace.actions:
                if action.name == action_name:
                    return action
        return None

    def required_storages(self) -> list[StorageDescriptor]:
        """Storage slots declared by the active namespaces, without duplicates."""
        descriptors: list[StorageDescriptor] = []
        names: set[str] = set()
        for namespace in self._namespaces:
            for descriptor in namespace.storages or []:
                if descriptor.name not in names:
                    names.add(descriptor.name)
                    descriptors.append(descriptor)
        return descriptors

    def used_namespaces(self) -> list[str]:
        return [namespace.name.lower() for namespace in self._namespaces]

    def describe(self) -> str:
        """Markdown description of every action with a worked example."""
        md = ""
        for namespace in self._namespaces:
            md += f"## {namespace.name}\n\n"
            if namespace.description:
                md += f"{namespace.description}\n\n"
            for action in namespace.actions:
                md += f"{action.description}\n{action.structured_example()}\n\n"
        return md
