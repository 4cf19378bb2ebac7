"""In-memory snapshot of every enabled trigger rule.

The cache owns a single reference to an immutable :class:`TriggerSnapshot`.
A reload reads the full rule set from the store, builds a brand new snapshot,
and publishes it with one attribute assignment. Matchers grab the reference
once per message, so a reload running concurrently can never expose a
half-built snapshot to them.

Reloads may be started from several places at once (startup, the periodic
scheduler, rule administration, manual commands). They are not coalesced:
each one re-reads the whole store and the last to finish wins.
"""

from __future__ import annotations

import asyncio
from typing import Protocol, Sequence

from nekovilo.datatypes.trigger_datatypes import EMPTY_SNAPSHOT, TriggerRule, TriggerSnapshot
from nekovilo.util.logger import get_logger

logger = get_logger("trigger_cache")


class EnabledRuleSource(Protocol):
    """The slice of the rule store the cache depends on."""

    async def list_enabled_rules(self) -> Sequence[TriggerRule]:
        ...


class TriggerCache:
    """
    Holder of the current trigger snapshot and its reload lifecycle.

    Methods:
        reload: Rebuild the snapshot from the store (never raises on store errors).
        snapshot: Return the current immutable snapshot.
    """

    def __init__(self, source: EnabledRuleSource) -> None:
        self._source = source
        self._snapshot: TriggerSnapshot = EMPTY_SNAPSHOT
        self._reload_count = 0
        self._last_reload_error: BaseException | None = None

    def snapshot(self) -> TriggerSnapshot:
        return self._snapshot

    @property
    def trigger_count(self) -> int:
        return len(self._snapshot)

    @property
    def reload_count(self) -> int:
        """Number of successful reloads since startup."""
        return self._reload_count

    @property
    def last_reload_error(self) -> BaseException | None:
        """Failure of the most recent reload, or None if it succeeded."""
        return self._last_reload_error

    async def reload(self) -> bool:
        """
        Rebuild the snapshot from the rule store.

        On failure the previous snapshot stays published and the error is
        logged; nothing is raised so message handling keeps working on the
        stale-but-valid rules.

        Returns:
            bool: True if a new snapshot was published.
        """
        try:
            rules = await self._source.list_enabled_rules()
            new_snapshot = TriggerSnapshot.build(rules)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._last_reload_error = exc
            logger.exception(
                "[TRIGGER CACHE] Reload failed; keeping previous snapshot of %d triggers",
                len(self._snapshot),
            )
            return False

        self._snapshot = new_snapshot
        self._reload_count += 1
        self._last_reload_error = None
        logger.info("[TRIGGER CACHE] %d triggers loaded into memory", len(new_snapshot))
        return True
