"""Adapt chat events to catalog matching and subscription commands."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from ..catalog.reference import ReferenceCatalog
from ..config import Settings
from ..dispatch.notify import NotificationDispatcher
from ..extract.normalize import normalize_source
from ..io.models import CommandEvent, ImageEvent, MatchResult, OutgoingMessage
from ..match.similarity import Matcher
from ..render.label import LabelRenderer
from ..store.subscriptions import PersistenceError, SubscriptionStore
from .ports import ChatTransport

logger = logging.getLogger(__name__)

LIST_CHUNK_SIZE = 50

Normalize = Callable[[str], Optional[bytes]]


def split_into_chunks(items: list[str], chunk_size: int) -> list[list[str]]:
    """Split *items* into consecutive slices of at most *chunk_size*."""
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    return [items[i : i + chunk_size] for i in range(0, len(items), chunk_size)]


def format_interest_pages(names: list[str], chunk_size: int = LIST_CHUNK_SIZE) -> list[str]:
    """Return numbered list pages, the first one carrying a heading."""
    pages: list[str] = []
    for index, chunk in enumerate(split_into_chunks(names, chunk_size)):
        offset = index * chunk_size
        lines = "\n".join(f"{offset + n}. {name}" for n, name in enumerate(chunk, start=1))
        pages.append(f"**Your list:**\n{lines}" if index == 0 else lines)
    return pages


def parse_name_list(text: str) -> list[str]:
    """Split a comma-separated argument into trimmed, non-empty names."""
    return [name.strip() for name in text.split(",") if name.strip()]


class EventHandler:
    """Entry points a platform adapter calls for each incoming message."""

    def __init__(
        self,
        catalog: ReferenceCatalog,
        matcher: Matcher,
        store: SubscriptionStore,
        dispatcher: NotificationDispatcher,
        transport: ChatTransport,
        settings: Settings,
        normalize: Normalize | None = None,
    ) -> None:
        self.catalog = catalog
        self.matcher = matcher
        self.store = store
        self.dispatcher = dispatcher
        self.transport = transport
        self.settings = settings
        self._normalize = normalize or self._default_normalize

    @property
    def command_head(self) -> str:
        return f"<@{self.settings.bot_user_id}> {self.settings.command_prefix} "

    def close(self) -> None:
        """Cancel scheduled deletions and release the matcher's worker pool."""
        self.dispatcher.cancel_pending()
        self.matcher.close()

    def is_spawn(self, event: ImageEvent) -> bool:
        return (
            event.author_id == self.settings.source_author_id
            and bool(event.title)
            and str(event.title).startswith(self.settings.title_prefix)
            and bool(event.image_url)
        )

    async def on_image_event(self, event: ImageEvent) -> MatchResult | None:
        """Identify the image in *event* and notify; ``None`` when skipped."""
        if not self.is_spawn(event):
            return None
        buffer = await asyncio.to_thread(self._normalize, str(event.image_url))
        if buffer is None:
            logger.info("Skipping message %s: image could not be normalized", event.message_id)
            return None
        result = await asyncio.to_thread(self.matcher.match, buffer)
        await self.dispatcher.dispatch(event, result)
        return result

    async def on_command(self, event: CommandEvent) -> bool:
        """Handle ``add``/``list`` commands; return ``True`` when one ran."""
        head = self.command_head
        content = event.content.strip()
        if not content.startswith(head):
            return False
        verb, _, argument = content[len(head) :].strip().partition(" ")
        if verb == "add":
            await self._handle_add(event, argument)
            return True
        if verb == "list":
            await self._handle_list(event)
            return True
        return False

    async def _handle_add(self, event: CommandEvent, argument: str) -> None:
        names = parse_name_list(argument)
        if not names:
            await self._reply(event, "Please specify at least one name.")
            return
        try:
            result = await asyncio.to_thread(self.store.add_interest, event.author_id, names)
        except PersistenceError:
            logger.exception("Failed to save interest list for %s", event.author_id)
            await self._reply(event, "Could not save your list, please try again later.")
            return

        lines: list[str] = []
        if result.added:
            lines.append(f"Added {', '.join(result.added)} to your ping list.")
        if result.already_present:
            lines.append(f"{', '.join(result.already_present)} are already in your ping list.")
        await self._reply(event, "\n".join(lines))

    async def _handle_list(self, event: CommandEvent) -> None:
        names = self.store.list_interest(event.author_id)
        if not names:
            await self._reply(event, "You have no names added to your list.")
            return
        for page in format_interest_pages(names):
            await self._reply(event, page)

    async def _reply(self, event: CommandEvent, text: str) -> None:
        await self.transport.send(event.message_id, OutgoingMessage(text=text))

    def _default_normalize(self, source: str) -> bytes | None:
        return normalize_source(source, self.settings.scale, timeout=self.settings.fetch_timeout)


def create_handler(
    settings: Settings, transport: ChatTransport, progress: bool = True
) -> EventHandler:
    """Load the catalog and store described by *settings* and wire a handler.

    Raises the catalog and store startup errors unchanged; both are fatal.
    """
    catalog = ReferenceCatalog.build(
        settings.dataset_dir,
        settings.scale,
        timeout=settings.fetch_timeout,
        progress=progress,
    )
    store = SubscriptionStore.open(settings.subscriptions_path)
    renderer = LabelRenderer(
        background_path=settings.background_path,
        icon_path=settings.icon_path,
        font_path=settings.font_path,
    )
    dispatcher = NotificationDispatcher(store, transport, renderer, settings)
    matcher = Matcher(catalog, workers=settings.match_workers)
    return EventHandler(catalog, matcher, store, dispatcher, transport, settings)
