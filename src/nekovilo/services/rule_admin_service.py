"""
Rule administration: validated mutations of the rule store.

Each successful add or delete is followed by a full trigger cache reload
instead of patching the snapshot, so the cache can never drift from what the
store holds after a write made here. If persisting fails the error propagates
to the caller and no reload is triggered.
"""

from __future__ import annotations

from typing import Iterable, List, Protocol, Sequence

from nekovilo.datatypes.discord_datatypes import ChannelID, GuildID
from nekovilo.datatypes.errors import ValidationError
from nekovilo.datatypes.trigger_datatypes import NewTriggerRule, TriggerRule
from nekovilo.rules_cache.trigger_cache import TriggerCache
from nekovilo.util.logger import get_logger

logger = get_logger("rule_admin_service")


class RuleStore(Protocol):
    async def insert_rule(self, rule: NewTriggerRule) -> int:
        ...

    async def delete_rule(self, rule_id: int, guild_id: GuildID) -> int:
        ...

    async def delete_all_rules(self, guild_id: GuildID) -> int:
        ...

    async def list_guild_rules(self, guild_id: GuildID) -> Sequence[TriggerRule]:
        ...


def parse_phrase_list(raw: str | None) -> List[str]:
    """Split a comma-separated string into trimmed, non-empty phrases."""
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def _clean_phrases(phrases: Iterable[str]) -> List[str]:
    return [str(p).strip() for p in phrases if str(p).strip()]


def _clean_channels(channel_ids: Iterable[ChannelID | int | str]) -> List[ChannelID]:
    cleaned: List[ChannelID] = []
    for value in channel_ids:
        try:
            channel = ChannelID(value)
        except ValueError as exc:
            raise ValidationError(f"Invalid channel id: {value!r}") from exc
        if channel not in cleaned:
            cleaned.append(channel)
    return cleaned


class RuleAdministrationService:
    """Create, delete, and list trigger rules for a guild."""

    def __init__(self, store: RuleStore, cache: TriggerCache) -> None:
        self._store = store
        self._cache = cache

    async def add_rule(
        self,
        guild_id: GuildID,
        channel_ids: Iterable[ChannelID | int | str],
        keywords: Iterable[str],
        response: str,
        exceptions: Iterable[str] = (),
    ) -> int:
        """
        Persist a new enabled rule and reload the cache.

        Returns:
            int: The id assigned by the store.

        Raises:
            ValidationError: Channels, keywords, or response are empty.
            StoreError: The store rejected the insert (cache is not reloaded).
        """
        channels = _clean_channels(channel_ids)
        keyword_list = _clean_phrases(keywords)
        exception_list = _clean_phrases(exceptions)

        if not channels:
            raise ValidationError("At least one channel is required.")
        if not keyword_list:
            raise ValidationError("At least one keyword is required.")
        if not response or not response.strip():
            raise ValidationError("The response cannot be empty.")

        rule_id = await self._store.insert_rule(
            NewTriggerRule(
                guild_id=guild_id,
                channel_ids=channels,
                keywords=keyword_list,
                response=response,
                exceptions=exception_list,
            )
        )
        logger.info(
            "[RULE ADMIN] Added rule %d in guild %s (%d keywords, %d channels)",
            rule_id,
            guild_id,
            len(keyword_list),
            len(channels),
        )
        await self._cache.reload()
        return rule_id

    async def remove_rule(self, rule_id: int, guild_id: GuildID) -> int:
        """
        Delete a rule if it belongs to ``guild_id`` and reload the cache.

        A missing rule (or one owned by another guild) is a no-op, not an error.

        Returns:
            int: Number of rows deleted (0 or 1).
        """
        affected = await self._store.delete_rule(rule_id, guild_id)
        if affected:
            logger.info("[RULE ADMIN] Removed rule %d from guild %s", rule_id, guild_id)
        else:
            logger.debug("[RULE ADMIN] No rule %d in guild %s to remove", rule_id, guild_id)
        await self._cache.reload()
        return affected

    async def remove_all_rules(self, guild_id: GuildID) -> int:
        """Delete every rule of a guild and reload the cache."""
        affected = await self._store.delete_all_rules(guild_id)
        logger.info("[RULE ADMIN] Removed %d rules from guild %s", affected, guild_id)
        await self._cache.reload()
        return affected

    async def list_rules(self, guild_id: GuildID) -> List[TriggerRule]:
        """Return all rules of a guild, newest first."""
        return list(await self._store.list_guild_rules(guild_id))
