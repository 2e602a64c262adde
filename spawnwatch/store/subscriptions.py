"""Persisted mapping from watcher identity to followed catalog names."""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Iterable, Mapping

from ..io.models import AddResult, Watcher
from ..io.outputs import read_json, write_json

logger = logging.getLogger(__name__)

_LIST_KEYS = ("interestList", "pokemonList")
_AWAY_KEYS = ("away", "afk")


class StoreLoadError(Exception):
    """Raised when the persisted store cannot be parsed at startup."""


class PersistenceError(Exception):
    """Raised when a mutation could not be flushed to disk."""


def _parse_record(watcher_id: str, record: Any) -> Watcher:
    if not isinstance(record, Mapping):
        raise StoreLoadError(f"Record for {watcher_id!r} is not an object")
    names: Any = []
    for key in _LIST_KEYS:
        if key in record:
            names = record[key]
            break
    if not isinstance(names, list) or not all(isinstance(n, str) for n in names):
        raise StoreLoadError(f"Interest list for {watcher_id!r} must be a list of strings")
    away = next((record[key] for key in _AWAY_KEYS if key in record), False)
    if not isinstance(away, bool):
        raise StoreLoadError(f"Away flag for {watcher_id!r} must be a boolean")
    return Watcher(watcher_id=watcher_id, interest_list=list(names), away=away)


def _serialise(watchers: Mapping[str, Watcher]) -> Dict[str, Any]:
    return {
        watcher_id: {"interestList": list(watcher.interest_list), "away": watcher.away}
        for watcher_id, watcher in watchers.items()
    }


def clean_names(names: Iterable[str]) -> list[str]:
    """Trim *names*, dropping empties and repeats while keeping first-seen order."""
    seen: set[str] = set()
    cleaned: list[str] = []
    for raw in names:
        name = raw.strip()
        if not name or name in seen:
            continue
        seen.add(name)
        cleaned.append(name)
    return cleaned


class SubscriptionStore:
    """In-memory watcher map mirrored to a JSON file after every mutation.

    Mutations and their flush run under one lock, so concurrent callers are
    applied one at a time and the file always reflects a complete state.
    Reads take the same lock and never observe a half-applied mutation.
    """

    def __init__(self, path: str | Path, watchers: Mapping[str, Watcher] | None = None) -> None:
        self.path = Path(path)
        self._watchers: Dict[str, Watcher] = dict(watchers or {})
        self._lock = Lock()

    @classmethod
    def open(cls, path: str | Path) -> "SubscriptionStore":
        """Load the store at *path*, creating an empty file when absent."""
        store_path = Path(path)
        if not store_path.exists():
            store = cls(store_path)
            try:
                write_json(store_path, {})
            except OSError as exc:
                raise StoreLoadError(f"Cannot create store file {store_path}: {exc}") from exc
            logger.info("Created empty subscription store at %s", store_path)
            return store
        try:
            payload = read_json(store_path)
        except ValueError as exc:
            raise StoreLoadError(f"Malformed store file {store_path}: {exc}") from exc
        except OSError as exc:
            raise StoreLoadError(f"Cannot read store file {store_path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise StoreLoadError(f"Store file {store_path} must contain a JSON object")
        watchers = {
            str(watcher_id): _parse_record(str(watcher_id), record)
            for watcher_id, record in payload.items()
        }
        logger.info("Loaded %d watchers from %s", len(watchers), store_path)
        return cls(store_path, watchers)

    def add_interest(self, watcher_id: str, names: Iterable[str]) -> AddResult:
        """Append *names* to the watcher's interest list and flush once.

        A batch with no usable names is a no-op. Raises
        :class:`PersistenceError` when the flush fails; in that case the
        in-memory state is restored to what is on disk.
        """
        cleaned = clean_names(names)
        if not cleaned:
            return AddResult()
        with self._lock:
            previous = copy.deepcopy(self._watchers.get(watcher_id))
            watcher = self._watchers.setdefault(watcher_id, Watcher(watcher_id=watcher_id))
            result = AddResult()
            for name in cleaned:
                if name in watcher.interest_list:
                    result.already_present.append(name)
                else:
                    watcher.interest_list.append(name)
                    result.added.append(name)
            try:
                self._flush()
            except OSError as exc:
                if previous is None:
                    del self._watchers[watcher_id]
                else:
                    self._watchers[watcher_id] = previous
                raise PersistenceError(f"Could not write {self.path}: {exc}") from exc
        logger.info(
            "Watcher %s: added %d, already present %d",
            watcher_id,
            len(result.added),
            len(result.already_present),
        )
        return result

    def list_interest(self, watcher_id: str) -> list[str] | None:
        """Return a copy of the watcher's interest list, or ``None`` if unknown."""
        with self._lock:
            watcher = self._watchers.get(watcher_id)
            if watcher is None:
                return None
            return list(watcher.interest_list)

    def watchers_interested_in(self, name: str) -> set[str]:
        with self._lock:
            return {
                watcher_id
                for watcher_id, watcher in self._watchers.items()
                if name in watcher.interest_list
            }

    def get(self, watcher_id: str) -> Watcher | None:
        with self._lock:
            watcher = self._watchers.get(watcher_id)
            return copy.deepcopy(watcher) if watcher is not None else None

    def snapshot(self) -> Dict[str, Any]:
        """Return the store in its persisted JSON shape."""
        with self._lock:
            return _serialise(self._watchers)

    def __len__(self) -> int:
        with self._lock:
            return len(self._watchers)

    def _flush(self) -> None:
        write_json(self.path, _serialise(self._watchers))
