"""Named memory slots rendered into the prompt and mutated by actions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum
import time

from agentloop.exceptions import ActionError
from agentloop.logging import get_logger

log = get_logger(__name__)


class StorageType(IntEnum):
    """Slot kinds. The value is the rendering priority, lowest first."""

    SINGLE = 0
    TIME = 1
    COMPLETION = 2
    TAGGED = 3
    LIST = 4


@dataclass(frozen=True)
class StorageDescriptor:
    """A namespace's declaration that it needs a slot."""

    name: str
    type: StorageType


@dataclass
class Entry:
    data: str
    complete: bool = False


_CURRENT = "current"
_PREVIOUS = "previous"


class Storage:
    """A single run-scoped slot.

    Entries are kept in insertion order. LIST and COMPLETION slots key their
    entries by position, TAGGED slots by the key the model chose, SINGLE slots
    only use the ``current`` and ``previous`` keys.
    """

    def __init__(self, name: str, type_: StorageType):
        self.name = name
        self.type = type_
        self.started_at = time.monotonic()
        self._entries: list[tuple[str, Entry]] = []

    def __len__(self) -> int:
        return len(self._entries)

    def is_empty(self) -> bool:
        return not self._entries

    def _index_of(self, key: str) -> int | None:
        for idx, (existing, _) in enumerate(self._entries):
            if existing == key:
                return idx
        return None

    def _entry_at(self, position: int) -> Entry:
        # positions are 1-based, as rendered to the model
        if position < 1 or position > len(self._entries):
            raise ActionError(f"position {position} is out of range (1-{len(self._entries)})")
        return self._entries[position - 1][1]

    def _reindex(self) -> None:
        self._entries = [(str(idx), entry) for idx, (_, entry) in enumerate(self._entries, start=1)]

    # SINGLE

    def set_current(self, data: str) -> None:
        """Replace the current value, keeping the replaced one as previous."""
        old = self.get_current()
        self._entries = [(_CURRENT, Entry(data.strip()))]
        if old is not None:
            self._entries.append((_PREVIOUS, Entry(old)))
        log.debug("Storage current value set", storage=self.name, previous=old)

    def get_current(self) -> str | None:
        return self.get_tagged(_CURRENT)

    def get_previous(self) -> str | None:
        return self.get_tagged(_PREVIOUS)

    # TAGGED

    def add_tagged(self, key: str, data: str) -> None:
        idx = self._index_of(key)
        if idx is None:
            self._entries.append((key, Entry(data)))
        else:
            self._entries[idx] = (key, Entry(data))

    def get_tagged(self, key: str) -> str | None:
        idx = self._index_of(key)
        return self._entries[idx][1].data if idx is not None else None

    def del_tagged(self, key: str) -> str | None:
        idx = self._index_of(key)
        if idx is None:
            return None
        _, entry = self._entries.pop(idx)
        return entry.data

    # LIST

    def add_untagged(self, data: str) -> None:
        self._entries.append((str(len(self._entries) + 1), Entry(data)))

    def del_untagged(self, position: int) -> str:
        entry = self._entry_at(position)
        del self._entries[position - 1]
        self._reindex()
        return entry.data

    # COMPLETION

    def add_completion(self, data: str) -> None:
        self.add_untagged(data)

    def del_completion(self, position: int) -> str:
        return self.del_untagged(position)

    def set_complete(self, position: int) -> None:
        self._entry_at(position).complete = True

    def set_incomplete(self, position: int) -> None:
        self._entry_at(position).complete = False

    def values(self) -> list[str]:
        return [entry.data for _, entry in self._entries]

    def clear(self) -> None:
        self._entries.clear()

    def to_structured_string(self) -> str:
        """Render the slot as the block shown to the model."""
        if self.type == StorageType.SINGLE:
            current = self.get_current()
            if current is None:
                return ""
            text = f"* Current {self.name}: {current}"
            previous = self.get_previous()
            if previous is not None:
                text += f"\n* Previous {self.name}: {previous}"
            return text + "\n"

        if self.type == StorageType.TIME:
            now = datetime.now().astimezone()
            elapsed = int(time.monotonic() - self.started_at)
            return (
                f"## Current date and time\n\n"
                f"{now.strftime('%A %d %B %Y %H:%M:%S %Z')}, "
                f"{elapsed} seconds since the start of the task.\n"
            )

        header = f"## {self.name.capitalize()}\n\n"
        if not self._entries:
            return header + f"No {self.name}.\n"

        lines: list[str] = []
        for key, entry in self._entries:
            if self.type == StorageType.TAGGED:
                lines.append(f"- {key}: {entry.data}")
            elif self.type == StorageType.COMPLETION:
                mark = "x" if entry.complete else " "
                lines.append(f"{key}. [{mark}] {entry.data}")
            else:
                lines.append(f"{key}. {entry.data}")
        return header + "\n".join(lines) + "\n"
