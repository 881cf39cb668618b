"""Append-only log of executed invocations."""

from __future__ import annotations

from dataclasses import dataclass
import threading

from agentloop.llm import Message
from agentloop.parsing import Invocation

NO_OUTPUT = "(the command produced no output)"


@dataclass(frozen=True)
class Execution:
    """One executed invocation and its outcome. At most one of result/error is set."""

    invocation: Invocation
    result: str | None = None
    error: str | None = None

    def __post_init__(self) -> None:
        if self.result is not None and self.error is not None:
            raise ValueError("an execution record holds either a result or an error")

    @property
    def failed(self) -> bool:
        return self.error is not None

    def feedback(self) -> str:
        """What the model is told about this execution."""
        if self.error is not None:
            return f"ERROR: {self.error}"
        if self.result:
            return self.result
        return NO_OUTPUT


class History:
    """Thread-safe execution history.

    Actions receive a handle to the run state and may append records while the
    driver is itself appending, so every access goes through one lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._executions: list[Execution] = []

    def push(self, execution: Execution) -> None:
        with self._lock:
            self._executions.append(execution)

    def __len__(self) -> int:
        with self._lock:
            return len(self._executions)

    def executions(self) -> list[Execution]:
        """Snapshot of all records in execution order."""
        with self._lock:
            return list(self._executions)

    def last(self) -> Execution | None:
        with self._lock:
            return self._executions[-1] if self._executions else None

    def to_chat_history(self, max_entries: int) -> list[Message]:
        """Render the latest ``max_entries`` records as an assistant/user transcript."""
        with self._lock:
            if max_entries <= 0:
                latest: list[Execution] = []
            else:
                latest = self._executions[-max_entries:]

        messages: list[Message] = []
        for execution in latest:
            messages.append(Message(role="assistant", content=execution.invocation.canonical))
            messages.append(Message(role="user", content=execution.feedback()))
        return messages
