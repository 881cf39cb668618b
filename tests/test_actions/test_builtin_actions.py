from pathlib import Path

import pytest

from agentloop.actions.filesystem import MAX_FILE_SIZE
from agentloop.parsing import parse
from agentloop.state import EXAMPLE_MISUSE_ERROR, State
from agentloop.task import Task


class DummyTask(Task):
    def to_system_prompt(self) -> str:
        return "You are a test agent."

    def to_prompt(self) -> str:
        return "organize the notes"


async def _run(state: State, text: str) -> None:
    for invocation in parse(text):
        await state.execute(invocation)


@pytest.mark.asyncio
async def test_read_file_returns_contents(tmp_path: Path):
    target = tmp_path / "hello.txt"
    target.write_text("hello world\n", encoding="utf-8")
    state = State(DummyTask())

    await _run(state, f"<read-file>{target}</read-file>")

    assert state.history.last().result == "hello world\n"


@pytest.mark.asyncio
async def test_read_file_rejects_folders_and_large_files(tmp_path: Path):
    big = tmp_path / "big.txt"
    big.write_text("x" * (MAX_FILE_SIZE + 1), encoding="utf-8")
    state = State(DummyTask())

    await _run(state, f"<read-file>{tmp_path}</read-file><read-file>{big}</read-file>")

    first, second = state.history.executions()
    assert first.error.startswith("not a file")
    assert second.error.startswith("file too large")


@pytest.mark.asyncio
async def test_read_folder_lists_entries(tmp_path: Path):
    (tmp_path / "a.txt").write_text("a", encoding="utf-8")
    (tmp_path / "sub").mkdir()
    state = State(DummyTask())

    await _run(state, f"<read-folder>{tmp_path}</read-folder>")

    listing = state.history.last().result
    assert listing.startswith(f"Contents of {tmp_path} :")
    assert "[file]" in listing
    assert "[dir]" in listing
    assert str((tmp_path / "a.txt").resolve()) in listing


@pytest.mark.asyncio
async def test_read_folder_missing_path_is_an_error(tmp_path: Path):
    state = State(DummyTask())

    await _run(state, f"<read-folder>{tmp_path / 'nope'}</read-folder>")

    assert state.history.last().failed


@pytest.mark.asyncio
async def test_memory_save_and_delete():
    state = State(DummyTask())

    await _run(
        state,
        '<save-memory key="host">127.0.0.1</save-memory>'
        '<save-memory key="port">8080</save-memory>'
        '<delete-memory key="host"></delete-memory>',
    )

    memories = state.get_storage("memories")
    assert memories.get_tagged("host") is None
    assert memories.get_tagged("port") == "8080"
    assert all(not r.failed for r in state.history.executions())


@pytest.mark.asyncio
async def test_memory_errors():
    state = State(DummyTask())

    await _run(
        state,
        "<save-memory>no key here</save-memory>"
        '<delete-memory key="ghost"></delete-memory>',
    )

    save, delete = state.history.executions()
    assert save.error == "the key attribute is missing"
    assert delete.error == "memory 'ghost' not found"


@pytest.mark.asyncio
async def test_memory_example_key_is_rejected():
    state = State(DummyTask())

    await _run(state, '<save-memory key="my-note">real content</save-memory>')

    assert state.history.last().error == EXAMPLE_MISUSE_ERROR
    assert state.get_storage("memories").is_empty()


@pytest.mark.asyncio
async def test_planning_actions():
    state = State(DummyTask())

    await _run(
        state,
        "<add-plan-step>list files</add-plan-step>"
        "<add-plan-step>read files</add-plan-step>"
        "<add-plan-step>summarize</add-plan-step>"
        "<set-step-completed>1</set-step-completed>"
        "<delete-plan-step>2</delete-plan-step>",
    )

    plan = state.get_storage("plan").to_structured_string()
    assert plan == "## Plan\n\n1. [x] list files\n2. [ ] summarize\n"

    await _run(state, "<set-step-incomplete>1</set-step-incomplete><set-step-completed>7</set-step-completed>")
    assert state.get_storage("plan").to_structured_string().startswith("## Plan\n\n1. [ ] list files")
    assert "out of range" in state.history.last().error

    await _run(state, "<set-step-completed>first</set-step-completed><clear-plan></clear-plan>")
    bad, cleared = state.history.executions()[-2:]
    assert bad.error == "'first' is not a valid step number"
    assert cleared.result == "plan cleared"
    assert state.get_storage("plan").is_empty()


@pytest.mark.asyncio
async def test_update_goal_keeps_previous():
    state = State(DummyTask())

    await _run(state, "<update-goal>sort the notes by date</update-goal>")

    goal = state.get_storage("goal")
    assert goal.get_current() == "sort the notes by date"
    assert goal.get_previous() == "organize the notes"


@pytest.mark.asyncio
async def test_wait_validates_seconds():
    state = State(DummyTask())

    await _run(state, "<wait>0</wait><wait>forever</wait><wait>-1</wait>")

    ok, bad, negative = state.history.executions()
    assert ok.result is None and ok.error is None
    assert ok.feedback() == "(the command produced no output)"
    assert bad.error == "'forever' is not a valid number of seconds"
    assert negative.failed


@pytest.mark.asyncio
async def test_task_complete_and_impossible():
    state = State(DummyTask())

    await _run(state, "<task-impossible></task-impossible><task-complete>done</task-complete>")

    assert state.is_complete()
    assert state.completion.impossible is True
    assert state.completion.reason == "no reason provided"
    assert len(state.history) == 2
