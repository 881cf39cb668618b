"""Time namespace: wall clock awareness and waiting."""

import asyncio
from typing import Any

from agentloop.actions.registry import Action, Namespace
from agentloop.exceptions import ActionError
from agentloop.logging import get_logger
from agentloop.state.storage import StorageDescriptor, StorageType

log = get_logger(__name__)

MAX_WAIT_SECONDS = 3600


class Wait(Action):
    name = "wait"
    description = "To pause for a given number of seconds:"
    example_payload = "the number of seconds"

    async def run(self, state: Any, attributes: dict[str, str] | None, payload: str | None) -> str | None:
        try:
            seconds = int(str(payload or "").strip())
        except ValueError:
            raise ActionError(f"'{payload}' is not a valid number of seconds")
        if seconds < 0 or seconds > MAX_WAIT_SECONDS:
            raise ActionError(f"can only wait between 0 and {MAX_WAIT_SECONDS} seconds")

        log.info("Waiting", seconds=seconds)
        await asyncio.sleep(seconds)
        return None


def get_namespace() -> Namespace:
    return Namespace(
        name="Time",
        description="",
        actions=[Wait()],
        storages=[StorageDescriptor("time", StorageType.TIME)],
    )
