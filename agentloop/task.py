"""Task definitions: what the agent is asked to do."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path
import shlex
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from agentloop.actions.registry import Action, Namespace
from agentloop.exceptions import ActionExecutionError, TaskError
from agentloop.logging import get_logger

log = get_logger(__name__)


class Task(ABC):
    """Supplies prompts, guidance and the namespaces a run may use."""

    @abstractmethod
    def to_system_prompt(self) -> str:
        pass

    @abstractmethod
    def to_prompt(self) -> str:
        pass

    def guidance(self) -> list[str]:
        return []

    def namespaces(self) -> list[str] | None:
        """Namespace ids to enable, or None to enable all registered ones."""
        return None

    def get_functions(self) -> list[Namespace]:
        """Ad-hoc namespaces defined by the task itself."""
        return []


class FunctionSpec(BaseModel):
    """A task-defined action that runs a shell command."""

    name: str
    description: str
    tool: str
    example_payload: str | None = None
    args: dict[str, str] = Field(default_factory=dict)
    timeout: float = 60.0


class FunctionGroupSpec(BaseModel):
    name: str
    description: str = ""
    actions: list[FunctionSpec] = Field(default_factory=list)


class TaskletSpec(BaseModel):
    """Schema of a tasklet YAML file."""

    system_prompt: str
    prompt: str | None = None
    guidance: list[str] = Field(default_factory=list)
    using: list[str] | None = None
    functions: list[FunctionGroupSpec] = Field(default_factory=list)


class ShellFunction(Action):
    """Runs ``tool`` with the configured arguments and the payload as last argument."""

    def __init__(self, spec: FunctionSpec, working_dir: Path):
        self.spec = spec
        self.name = spec.name
        self.description = spec.description
        self.example_payload = spec.example_payload
        self.working_dir = working_dir

    def _command(self, payload: str | None) -> str:
        parts = [self.spec.tool]
        for key, value in self.spec.args.items():
            parts.append(f"{key} {shlex.quote(value)}" if value else key)
        if payload:
            parts.append(shlex.quote(payload))
        return " ".join(parts)

    async def run(self, state: Any, attributes: dict[str, str] | None, payload: str | None) -> str | None:
        command = self._command(payload)
        log.info("Running task function", function=self.name, command=command)

        process = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(self.working_dir),
        )
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.spec.timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise ActionExecutionError(self.name, f"timed out after {self.spec.timeout}s")

        out = stdout.decode("utf-8", errors="replace").strip()
        err = stderr.decode("utf-8", errors="replace").strip()
        if process.returncode != 0:
            raise ActionExecutionError(self.name, err or out or f"exit code {process.returncode}")
        return out or None


class Tasklet(Task):
    """Task loaded from a YAML file."""

    def __init__(self, spec: TaskletSpec, folder: Path | str | None = None):
        self.spec = spec
        self.folder = Path(folder).resolve() if folder is not None else Path.cwd().resolve()

    @classmethod
    def from_path(cls, path: Path | str, prompt: str | None = None) -> "Tasklet":
        """Load a tasklet file, optionally overriding its prompt."""
        tasklet_path = Path(path).expanduser()
        if tasklet_path.is_dir():
            tasklet_path = tasklet_path / "task.yml"

        try:
            with open(tasklet_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise TaskError(f"Can't read tasklet {tasklet_path}: {e}")
        except yaml.YAMLError as e:
            raise TaskError(f"Invalid YAML in tasklet {tasklet_path}: {e}")

        if not isinstance(data, dict):
            raise TaskError(f"Tasklet {tasklet_path} must be a mapping")

        try:
            spec = TaskletSpec(**data)
        except ValidationError as e:
            raise TaskError(f"Invalid tasklet {tasklet_path}: {e}")

        if prompt:
            spec.prompt = prompt
        if not (spec.prompt or "").strip():
            raise TaskError(f"Tasklet {tasklet_path} has no prompt and none was provided")

        log.debug("Tasklet loaded", path=str(tasklet_path), functions=len(spec.functions))
        return cls(spec, folder=tasklet_path.parent)

    def to_system_prompt(self) -> str:
        return self.spec.system_prompt.strip()

    def to_prompt(self) -> str:
        return (self.spec.prompt or "").strip()

    def guidance(self) -> list[str]:
        return list(self.spec.guidance)

    def namespaces(self) -> list[str] | None:
        return list(self.spec.using) if self.spec.using is not None else None

    def get_functions(self) -> list[Namespace]:
        return [
            Namespace(
                name=group.name,
                description=group.description,
                actions=[ShellFunction(action, self.folder) for action in group.actions],
            )
            for group in self.spec.functions
        ]
