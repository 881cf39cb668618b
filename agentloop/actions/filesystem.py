"""Filesystem namespace: read-only access to files and folders."""

from datetime import datetime
from pathlib import Path
import stat
from typing import Any

from agentloop.actions.registry import Action, Namespace
from agentloop.exceptions import ActionError
from agentloop.logging import get_logger

log = get_logger(__name__)

MAX_FILE_SIZE = 100_000  # 100KB


def _entry_type(mode: int) -> str:
    if stat.S_ISLNK(mode):
        return "symlink"
    if stat.S_ISDIR(mode):
        return "dir"
    if stat.S_ISBLK(mode):
        return "block device"
    if stat.S_ISCHR(mode):
        return "char device"
    if stat.S_ISFIFO(mode):
        return "fifo"
    if stat.S_ISSOCK(mode):
        return "socket"
    if stat.S_ISREG(mode):
        return "file"
    return "unknown"


def _describe_entry(entry: Path) -> str:
    info = entry.lstat()
    modified = datetime.fromtimestamp(info.st_mtime)
    return (
        f"{stat.filemode(info.st_mode)[1:]} {info.st_size:>5} "
        f"{modified.day:>2} {modified.strftime('%b %H:%M')} "
        f"[{_entry_type(info.st_mode)}] {entry.resolve()}"
    )


class ReadFolder(Action):
    name = "read-folder"
    description = "To list the contents of a folder:"
    example_payload = "/path/to/folder"

    async def run(self, state: Any, attributes: dict[str, str] | None, payload: str | None) -> str | None:
        if not payload:
            raise ActionError("the folder path is missing")

        folder = Path(payload).expanduser()
        try:
            entries = sorted(folder.iterdir())
        except OSError as e:
            raise ActionError(f"can't read {payload}: {e}")

        lines = [f"Contents of {payload} :", ""]
        for entry in entries:
            try:
                lines.append(_describe_entry(entry))
            except OSError as e:
                log.error("Can't stat folder entry", path=str(entry), error=str(e))
        return "\n".join(lines) + "\n"


class ReadFile(Action):
    name = "read-file"
    description = "To read the contents of a file:"
    example_payload = "/path/to/file/to/read"

    async def run(self, state: Any, attributes: dict[str, str] | None, payload: str | None) -> str | None:
        if not payload:
            raise ActionError("the file path is missing")

        file_path = Path(payload).expanduser()
        if not file_path.is_file():
            raise ActionError(f"not a file: {payload}")

        file_size = file_path.stat().st_size
        if file_size > MAX_FILE_SIZE:
            raise ActionError(f"file too large: {file_size} bytes (max {MAX_FILE_SIZE})")

        return file_path.read_text(encoding="utf-8", errors="replace")


def get_namespace() -> Namespace:
    return Namespace(
        name="Filesystem",
        description="You can use the filesystem actions to read files and folders on the local system.",
        actions=[ReadFile(), ReadFolder()],
    )
