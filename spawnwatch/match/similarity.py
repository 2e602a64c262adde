"""Nearest-match scoring of canonical buffers against the reference catalog."""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Sequence

import numpy as np

from ..catalog.reference import ReferenceCatalog
from ..io.models import MatchResult, ReferenceImage

logger = logging.getLogger(__name__)


def l1_distance(a: bytes, b: bytes) -> float:
    """Return the sum of absolute per-byte differences between *a* and *b*.

    Buffers of different length are not comparable and score ``math.inf``.
    """
    if len(a) != len(b):
        return math.inf
    left = np.frombuffer(a, dtype=np.uint8).astype(np.int64)
    right = np.frombuffer(b, dtype=np.uint8).astype(np.int64)
    return int(np.abs(left - right).sum())


def closest(scored: Iterable[tuple[str, float]]) -> MatchResult:
    """Reduce ``(name, distance)`` pairs to the first strict minimum."""
    best = MatchResult()
    for name, distance in scored:
        if distance < best.distance:
            best = MatchResult(name=name, distance=distance)
    return best


class Matcher:
    """Linear scan over catalog entries; the earliest entry wins ties.

    With more than one worker the matcher owns a thread pool for its whole
    lifetime; call :meth:`close` (or use it as a context manager) to release it.
    """

    def __init__(self, catalog: ReferenceCatalog, workers: int = 1) -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self._catalog = catalog
        self._workers = workers
        self._pool = ThreadPoolExecutor(max_workers=workers) if workers > 1 else None

    def __enter__(self) -> "Matcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if self._pool is not None:
            self._pool.shutdown(wait=True)
            self._pool = None

    def match(self, candidate: bytes) -> MatchResult:
        entries = self._catalog.valid_entries()
        if self._pool is not None and len(entries) > 1:
            distances = self._parallel_distances(candidate, entries)
        else:
            distances = [l1_distance(candidate, entry.pixels) for entry in entries]
        result = closest(zip((entry.name for entry in entries), distances))
        if result.matched:
            logger.debug("Best match %s at distance %s", result.name, result.distance)
        else:
            logger.debug("No comparable catalog entry for %d-byte buffer", len(candidate))
        return result

    def _parallel_distances(
        self, candidate: bytes, entries: Sequence[ReferenceImage]
    ) -> list[float]:
        # Executor.map yields in submission order, which keeps the tie-break.
        return list(self._pool.map(lambda entry: l1_distance(candidate, entry.pixels), entries))
