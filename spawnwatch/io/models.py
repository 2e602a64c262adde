"""Data models shared across the spawnwatch pipeline."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, List


@dataclass(frozen=True, slots=True)
class ReferenceImage:
    """A named catalog entry and its canonical pixel buffer.

    ``pixels`` is ``None`` when the source file could not be normalized.
    """

    name: str
    pixels: bytes | None = None

    @property
    def valid(self) -> bool:
        return self.pixels is not None


@dataclass(frozen=True, slots=True)
class MatchResult:
    """Closest catalog entry for an incoming buffer."""

    name: str | None = None
    distance: float = math.inf

    @property
    def matched(self) -> bool:
        return self.name is not None


@dataclass(slots=True)
class Watcher:
    """A subscriber and the catalog names they follow."""

    watcher_id: str
    interest_list: List[str] = field(default_factory=list)
    away: bool = False


@dataclass(slots=True)
class AddResult:
    """Outcome of an ``add_interest`` call, both lists in input order."""

    added: List[str] = field(default_factory=list)
    already_present: List[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class ImageEvent:
    """A chat message carrying an embedded image."""

    author_id: str
    context_id: str | None
    title: str | None
    image_url: str | None
    message_id: str | None = None


@dataclass(frozen=True, slots=True)
class CommandEvent:
    """A plain-text chat message that may contain a bot command."""

    author_id: str
    context_id: str | None
    content: str
    message_id: str | None = None


@dataclass(frozen=True, slots=True)
class OutgoingMessage:
    """Message payload handed to the chat transport."""

    text: str | None = None
    attachment: bytes | None = None
    filename: str | None = None


@dataclass(slots=True)
class DispatchOutcome:
    """Messages sent for a single successful match."""

    name: str
    watchers: List[str] = field(default_factory=list)
    reply: Any = None
    ping: Any = None
