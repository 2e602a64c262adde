"""Ports (Protocol interfaces) for the chat platform and label rendering.

Platform adapters implement these; the dispatcher and event handler only
depend on the abstractions.
"""

from __future__ import annotations

from typing import Any, Protocol

from ..io.models import OutgoingMessage


class ChatTransport(Protocol):
    """Port: deliver and retract chat messages."""

    async def send(self, reply_to: str | None, message: OutgoingMessage) -> Any:
        """Send *message* as a reply to *reply_to* and return a handle for it."""
        ...

    async def delete(self, handle: Any) -> None:
        """Delete a previously sent message."""
        ...


class Renderer(Protocol):
    """Port: turn a label string into image bytes."""

    def render(self, text: str) -> bytes:
        ...
