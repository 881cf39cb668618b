"""Driver loop: prompt the model, parse its answer, execute, repeat."""

from collections.abc import Mapping
from pathlib import Path

from agentloop.actions import NamespaceBuilder
from agentloop.exceptions import PersistenceError
from agentloop.llm import GenerationClient, GenerationOptions
from agentloop.logging import get_logger
from agentloop.parsing import parse
from agentloop.state import Completion, State
from agentloop.task import Task

log = get_logger(__name__)


class Agent:
    """Owns the run state and drives it one step at a time."""

    def __init__(
        self,
        client: GenerationClient,
        model: str,
        task: Task,
        max_iterations: int = 0,
        options: GenerationOptions | None = None,
        history_window: int = 50,
        persist_state_path: Path | str | None = None,
        persist_prompt_path: Path | str | None = None,
        namespace_builders: Mapping[str, NamespaceBuilder] | None = None,
    ):
        """Initialize the agent.

        Args:
            client: Generation service client
            model: Model id passed to the client
            task: Task to accomplish
            max_iterations: Step budget, 0 for unbounded
            options: Sampling options, defaults when None
            history_window: How many history records are sent back to the model
            persist_state_path: Where to dump a state snapshot, None to skip
            persist_prompt_path: Where to dump the rendered prompts, None to skip
            namespace_builders: Registered namespaces, built-in ones when None
        """
        self.client = client
        self.model = model
        self.options = options or GenerationOptions()
        self.history_window = history_window
        self.persist_state_path = Path(persist_state_path) if persist_state_path else None
        self.persist_prompt_path = Path(persist_prompt_path) if persist_prompt_path else None
        self.state = State(
            task,
            max_iterations=max_iterations,
            namespace_builders=namespace_builders,
        )

    @staticmethod
    def _write(path: Path, content: str) -> None:
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise PersistenceError(str(path), str(e))

    def persist(self, system_prompt: str | None = None, prompt: str | None = None) -> None:
        """Dump the state snapshot and, when given, the prompts.

        Raises:
            PersistenceError: when a configured destination can't be written
        """
        if self.persist_state_path is not None:
            self._write(self.persist_state_path, self.state.render_debug_snapshot())

        if self.persist_prompt_path is not None and system_prompt is not None:
            self._write(self.persist_prompt_path, f"{system_prompt}\n\n{prompt or ''}\n")

    async def step(self) -> None:
        """Run one prompt/parse/execute cycle."""
        if self.state.is_complete():
            log.debug("Step skipped, run already complete")
            return

        system_prompt = self.state.render_system_prompt()
        prompt = self.state.render_user_prompt()
        self.persist(system_prompt, prompt)

        response = await self.client.generate(
            self.model,
            system_prompt,
            prompt,
            options=self.options,
            history=self.state.to_chat_history(self.history_window),
        )
        log.debug("Model response", iteration=self.state.iteration, response=response)

        invocations = parse(response)
        log.debug("Parsed invocations", count=len(invocations))

        previous: str | None = None
        for invocation in invocations:
            # a verbatim repeat means the model is stalling, not re-issuing
            if previous is not None and invocation.canonical == previous:
                log.debug("Skipping repeated invocation", invocation=invocation.canonical)
                continue
            previous = invocation.canonical

            await self.state.execute(invocation)
            self.persist(system_prompt, prompt)

            if self.state.is_complete():
                break

    async def run(self) -> Completion:
        """Step until an action completes the run.

        Raises:
            IterationBudgetExceededError: when the step budget runs out first
        """
        while True:
            await self.step()
            if self.state.is_complete():
                assert self.state.completion is not None
                return self.state.completion
            self.state.advance_iteration()

    def is_complete(self) -> bool:
        return self.state.is_complete()
