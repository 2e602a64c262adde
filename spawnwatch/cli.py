"""Command-line interface for the spawnwatch project."""

from __future__ import annotations

import argparse
import logging
from typing import Iterable

from .catalog.reference import CatalogError, ReferenceCatalog
from .config import ConfigError, Settings, load_settings
from .extract.normalize import normalize_source
from .match.similarity import Matcher
from .store.subscriptions import PersistenceError, StoreLoadError, SubscriptionStore

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_STARTUP = 2


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments for the spawnwatch tools."""
    parser = argparse.ArgumentParser(
        description="Identify images against a reference catalog and manage watch lists."
    )
    parser.add_argument(
        "--config",
        required=True,
        help="Path to the JSON configuration file.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("catalog", help="Load the reference catalog and summarize it.")

    match_parser = subparsers.add_parser(
        "match", help="Identify a local image path or URL against the catalog."
    )
    match_parser.add_argument("source", help="Image path or http(s) URL.")

    add_parser = subparsers.add_parser("add", help="Add names to a watcher's list.")
    add_parser.add_argument("watcher", help="Watcher identity.")
    add_parser.add_argument("names", help="Comma-separated catalog names.")

    list_parser = subparsers.add_parser("list", help="Show a watcher's list.")
    list_parser.add_argument("watcher", help="Watcher identity.")

    watchers_parser = subparsers.add_parser(
        "watchers", help="Show the watchers following a catalog name."
    )
    watchers_parser.add_argument("name", help="Catalog name.")

    return parser.parse_args(list(argv) if argv is not None else None)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _cmd_catalog(settings: Settings) -> int:
    catalog = ReferenceCatalog.build(settings.dataset_dir, settings.scale, timeout=settings.fetch_timeout)
    usable = catalog.valid_entries()
    print(f"Catalog: {len(catalog)} entries ({len(usable)} usable)")
    for entry in catalog:
        if not entry.valid:
            print(f"  [unusable] {entry.name}")
    return EXIT_OK


def _cmd_match(settings: Settings, source: str) -> int:
    catalog = ReferenceCatalog.build(settings.dataset_dir, settings.scale, timeout=settings.fetch_timeout)
    store = SubscriptionStore.open(settings.subscriptions_path)
    buffer = normalize_source(source, settings.scale, timeout=settings.fetch_timeout)
    if buffer is None:
        print(f"[error] could not normalize {source}")
        return EXIT_FAILED
    with Matcher(catalog, workers=settings.match_workers) as matcher:
        result = matcher.match(buffer)
    if not result.matched:
        print("No match")
        return EXIT_FAILED
    print(f"{result.name} (distance={result.distance})")
    watchers = sorted(store.watchers_interested_in(str(result.name)))
    if watchers:
        print(f"Watchers: {', '.join(watchers)}")
    return EXIT_OK


def _cmd_add(settings: Settings, watcher: str, names: str) -> int:
    store = SubscriptionStore.open(settings.subscriptions_path)
    try:
        result = store.add_interest(watcher, names.split(","))
    except PersistenceError as exc:
        print(f"[error] {exc}")
        return EXIT_FAILED
    if not result.added and not result.already_present:
        print("[error] no names given")
        return EXIT_FAILED
    if result.added:
        print(f"Added: {', '.join(result.added)}")
    if result.already_present:
        print(f"Already present: {', '.join(result.already_present)}")
    return EXIT_OK


def _cmd_list(settings: Settings, watcher: str) -> int:
    store = SubscriptionStore.open(settings.subscriptions_path)
    names = store.list_interest(watcher)
    if names is None:
        print(f"Unknown watcher: {watcher}")
        return EXIT_FAILED
    for index, name in enumerate(names, start=1):
        print(f"{index}. {name}")
    return EXIT_OK


def _cmd_watchers(settings: Settings, name: str) -> int:
    store = SubscriptionStore.open(settings.subscriptions_path)
    for watcher in sorted(store.watchers_interested_in(name)):
        print(watcher)
    return EXIT_OK


def main(argv: Iterable[str] | None = None) -> int:
    """Entry point for the CLI."""
    args = parse_args(argv)
    _configure_logging(args.verbose)
    try:
        settings = load_settings(args.config)
        if args.command == "catalog":
            return _cmd_catalog(settings)
        if args.command == "match":
            return _cmd_match(settings, args.source)
        if args.command == "add":
            return _cmd_add(settings, args.watcher, args.names)
        if args.command == "list":
            return _cmd_list(settings, args.watcher)
        return _cmd_watchers(settings, args.name)
    except (ConfigError, CatalogError, StoreLoadError) as exc:
        logger.error("Startup failed: %s", exc)
        return EXIT_STARTUP


if __name__ == "__main__":
    raise SystemExit(main())
