"""
Staleness check for tagged cache entries.
"""

from typing import Mapping

from shared.logging import get_logger
from .registry import TagRegistry


class InvalidationChecker:
    """Compares a stored tag snapshot with the tags' current timestamps."""

    def __init__(self, registry: TagRegistry):
        self.registry = registry
        self.logger = get_logger("tagcache.invalidation")

    async def is_invalidated(self, snapshot: Mapping[str, str]) -> bool:
        """Whether any tag in ``snapshot`` has moved on since it was captured.

        A tag that was deleted is recreated here with a fresh timestamp, which
        then differs from the stored one. Store failures propagate.
        """
        if not snapshot:
            return False

        current = await self.registry.resolve_timestamps(snapshot.keys())
        changed = [name for name, stamp in snapshot.items() if current.get(name) != stamp]
        if changed:
            self.logger.debug("Snapshot invalidated", tags=changed)
            return True
        return False
