"""Protocol definitions for dependency injection."""

from typing import Any, Protocol

from tunelight.models import DeviceTarget, DispatchResult


class LightDispatcherProtocol(Protocol):
    """Protocol for anything that can deliver a command to the light.

    Lets the orchestrator and tests swap the WLED HTTP dispatcher for a
    recording fake.
    """

    async def send(self, target: DeviceTarget | str, command: dict[str, Any]) -> DispatchResult:
        """Send a command.

        Args:
            target: Device address
            command: WLED JSON state payload

        Returns:
            Whether the command left without a transport error
        """
        ...
