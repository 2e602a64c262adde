"""Reference catalog of named canonical images, built once at startup."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, Iterator, List

from tqdm import tqdm

from ..extract.normalize import Scale, normalize_source
from ..fetch.http import DEFAULT_TIMEOUT
from ..io.models import ReferenceImage

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg")


class CatalogError(Exception):
    """Raised when the catalog directory cannot be enumerated."""


def discover_reference_files(directory: Path) -> list[Path]:
    """Return image files in *directory* sorted by filename."""
    if not directory.is_dir():
        raise CatalogError(f"Catalog directory does not exist: {directory}")
    files = [
        path
        for path in directory.iterdir()
        if path.is_file() and path.suffix.lower() in IMAGE_EXTENSIONS
    ]
    return sorted(files, key=lambda path: path.name)


class ReferenceCatalog:
    """Ordered, read-only collection of :class:`ReferenceImage` entries."""

    def __init__(self, entries: Iterable[ReferenceImage] = ()) -> None:
        self._entries: Dict[str, ReferenceImage] = {}
        for entry in entries:
            if entry.name in self._entries:
                logger.warning("Duplicate catalog name %r ignored", entry.name)
                continue
            self._entries[entry.name] = entry

    @classmethod
    def build(
        cls,
        directory: str | Path,
        scale: Scale,
        timeout: float = DEFAULT_TIMEOUT,
        progress: bool = True,
    ) -> "ReferenceCatalog":
        """Normalize every reference image in *directory* into a catalog.

        Files that fail to normalize stay in the catalog without pixels so the
        matcher skips them.
        """
        files = discover_reference_files(Path(directory))
        logger.info("Loading %d reference images from %s", len(files), directory)
        entries: List[ReferenceImage] = []
        for path in tqdm(
            files, desc="Loading catalog", unit="image", leave=False, disable=not progress
        ):
            pixels = normalize_source(str(path), scale, timeout=timeout)
            if pixels is None:
                logger.warning("Reference %s kept without pixels", path.name)
            entries.append(ReferenceImage(name=path.stem, pixels=pixels))
        catalog = cls(entries)
        logger.info(
            "Catalog ready: %d entries (%d usable)",
            len(catalog),
            len(catalog.valid_entries()),
        )
        return catalog

    def __iter__(self) -> Iterator[ReferenceImage]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def get(self, name: str) -> ReferenceImage | None:
        return self._entries.get(name)

    def names(self) -> list[str]:
        return list(self._entries)

    def valid_entries(self) -> list[ReferenceImage]:
        """Entries with a canonical buffer, in catalog order."""
        return [entry for entry in self._entries.values() if entry.valid]
