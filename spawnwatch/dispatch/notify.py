"""Turn a successful match into a reply and watcher pings."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from ..bot.ports import ChatTransport, Renderer
from ..config import Settings
from ..io.models import DispatchOutcome, ImageEvent, MatchResult, OutgoingMessage
from ..store.subscriptions import SubscriptionStore

logger = logging.getLogger(__name__)

LABEL_FILENAME = "label.png"


class NotificationDispatcher:
    """Send the label reply, schedule its removal and ping interested watchers."""

    def __init__(
        self,
        store: SubscriptionStore,
        transport: ChatTransport,
        renderer: Renderer,
        settings: Settings,
    ) -> None:
        self._store = store
        self._transport = transport
        self._renderer = renderer
        self._settings = settings
        self._pending: set[asyncio.Task[None]] = set()

    async def dispatch(self, event: ImageEvent, result: MatchResult) -> DispatchOutcome | None:
        if not result.matched:
            logger.debug("No match for message %s; nothing sent", event.message_id)
            return None
        name = str(result.name)

        watchers = sorted(self._store.watchers_interested_in(name))
        outcome = DispatchOutcome(name=name, watchers=watchers)

        outcome.reply = await self._transport.send(event.message_id, self._reply_for(event, name))
        if self._settings.reply_ttl is not None:
            self.schedule_delete(outcome.reply, self._settings.reply_ttl)

        if watchers:
            outcome.ping = await self._transport.send(
                event.message_id, OutgoingMessage(text=self.ping_text(name, watchers))
            )
        logger.info("Matched %s (distance %s); pinged %d", name, result.distance, len(watchers))
        return outcome

    def ping_text(self, name: str, watchers: list[str]) -> str:
        mentions = " ".join(
            self._settings.mention_template.format(watcher_id=watcher_id) for watcher_id in watchers
        )
        return f"{name} spotted! {mentions}"

    def schedule_delete(self, handle: Any, delay: float) -> asyncio.Task[None]:
        """Delete *handle* after *delay* seconds without blocking the caller."""
        task = asyncio.create_task(self._delete_later(handle, delay))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    def cancel_pending(self) -> None:
        for task in list(self._pending):
            task.cancel()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def _reply_for(self, event: ImageEvent, name: str) -> OutgoingMessage:
        if event.context_id is not None and event.context_id in self._settings.text_only_contexts:
            return OutgoingMessage(text=name)
        try:
            image = self._renderer.render(name)
        except Exception:  # noqa: BLE001 - fall back to a text reply
            logger.exception("Label rendering failed for %s", name)
            return OutgoingMessage(text=name)
        return OutgoingMessage(attachment=image, filename=LABEL_FILENAME)

    async def _delete_later(self, handle: Any, delay: float) -> None:
        await asyncio.sleep(delay)
        try:
            await self._transport.delete(handle)
        except Exception:  # noqa: BLE001 - deletion is best-effort
            logger.warning("Failed to delete reply %r", handle, exc_info=True)
