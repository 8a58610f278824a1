#!/usr/bin/env python3
"""
Operator commands for a tagged cache living in Redis.

Inspect the tag snapshot stored with a key, read, bump or delete a tag, and
check or clear a stuck lock::

    tagcache-admin stored-tags page:1
    tagcache-admin bump-tag site
    tagcache-admin unlock page:1
"""

import argparse
import asyncio
import json
import sys
from typing import Any, Dict, List, Optional

from shared.config import CacheSettings
from shared.errors import TaggedCacheException
from shared.logging import configure_logging, shutdown_logging
from .cache import TaggedCache
from .stores import RedisStore


async def run(args: argparse.Namespace, cache: TaggedCache) -> Dict[str, Any]:
    """Execute one command against ``cache`` and return its JSON summary."""
    command = args.command
    if command == "stored-tags":
        return {"key": args.key, "tags": await cache.get_stored_tags(args.key)}
    if command == "get-tag":
        return {"tag": args.name, "timestamp": await cache.get_tag(args.name)}
    if command == "bump-tag":
        timestamp = await cache.set_tag(args.name, args.timestamp, args.ttl)
        return {"tag": args.name, "timestamp": timestamp}
    if command == "delete-tag":
        return {"tag": args.name, "deleted": await cache.delete_tag(args.name)}
    if command == "lock-status":
        return {"key": args.key, "locked": await cache.is_locked(args.key)}
    if command == "unlock":
        return {"key": args.key, "unlocked": await cache.unlock(args.key)}
    if command == "ping":
        return {"available": await cache.is_available()}
    raise ValueError(f"unknown command {command!r}")


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Inspect and maintain a tagged cache.")
    parser.add_argument("--redis-url", default=None, help="Redis connection URL (default: TAGCACHE_REDIS_URL)")
    commands = parser.add_subparsers(dest="command", required=True)

    stored = commands.add_parser("stored-tags", help="Show the tag snapshot stored with a key")
    stored.add_argument("key")

    get_tag = commands.add_parser("get-tag", help="Show a tag's current timestamp")
    get_tag.add_argument("name")

    bump = commands.add_parser("bump-tag", help="Give a tag a new timestamp")
    bump.add_argument("name")
    bump.add_argument("--timestamp", default=None, help="Timestamp to write (default: now)")
    bump.add_argument("--ttl", type=int, default=0, help="Tag expiry in seconds (0 = never)")

    delete = commands.add_parser("delete-tag", help="Delete a tag; it is recreated on next use")
    delete.add_argument("name")

    status = commands.add_parser("lock-status", help="Check whether a key is locked")
    status.add_argument("key")

    unlock = commands.add_parser("unlock", help="Remove a key's lock marker")
    unlock.add_argument("key")

    commands.add_parser("ping", help="Check that the store answers")
    return parser.parse_args(argv)


async def _main(args: argparse.Namespace, settings: CacheSettings) -> Dict[str, Any]:
    if args.redis_url:
        settings = settings.model_copy(update={"redis_url": args.redis_url})
    store = RedisStore.from_settings(settings)
    try:
        return await run(args, TaggedCache(store, settings))
    finally:
        await store.stop()


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    settings = CacheSettings()
    configure_logging("tagcache-admin", settings.log_level, settings.log_file)
    try:
        summary = asyncio.run(_main(args, settings))
    except KeyboardInterrupt:
        return 130
    except TaggedCacheException as exc:
        print(f"[tagcache-admin] {exc.code}: {exc.message}", file=sys.stderr)
        return 1
    finally:
        shutdown_logging()

    print(json.dumps(summary, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
