"""
Trigger rule records and the cached forms used for matching.

``TriggerRule`` mirrors a row of the ``rules`` table. ``CachedTrigger`` is the
normalized, immutable form held by the trigger cache: keywords and exceptions
are lowercased once at load time so per-message matching never does it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Tuple

from nekovilo.datatypes.discord_datatypes import ChannelID, GuildID


def normalize_phrases(phrases: Iterable[str]) -> Tuple[str, ...]:
    """Lowercase and strip phrases, dropping blank entries."""
    normalized = []
    for phrase in phrases:
        cleaned = str(phrase).strip().lower()
        if cleaned:
            normalized.append(cleaned)
    return tuple(normalized)


@dataclass(slots=True)
class TriggerRule:
    """A persisted trigger rule.

    Attributes:
        id: Store-assigned identifier, stable across reloads.
        guild_id: Owning guild (the administration scope).
        channel_ids: Channels where the rule is active; empty means it never fires.
        keywords: Trigger phrases matched by substring containment.
        response: Literal reply text.
        exceptions: Phrases that suppress the rule when present.
        enabled: Only enabled rules are loaded into the cache.
    """

    id: int
    guild_id: GuildID
    channel_ids: List[ChannelID]
    keywords: List[str]
    response: str
    exceptions: List[str] = field(default_factory=list)
    enabled: bool = True


@dataclass(slots=True)
class NewTriggerRule:
    """Payload for inserting a rule; the store assigns the id."""

    guild_id: GuildID
    channel_ids: List[ChannelID]
    keywords: List[str]
    response: str
    exceptions: List[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class CachedTrigger:
    """Normalized, read-only view of an enabled rule."""

    rule_id: int
    guild_id: GuildID
    channel_ids: frozenset[ChannelID]
    keywords: Tuple[str, ...]
    exceptions: Tuple[str, ...]
    response: str

    @classmethod
    def from_rule(cls, rule: TriggerRule) -> "CachedTrigger":
        return cls(
            rule_id=rule.id,
            guild_id=rule.guild_id,
            channel_ids=frozenset(rule.channel_ids),
            keywords=normalize_phrases(rule.keywords),
            exceptions=normalize_phrases(rule.exceptions),
            response=rule.response,
        )


@dataclass(frozen=True, slots=True)
class TriggerSnapshot:
    """Immutable, ordered set of cached triggers published by one reload."""

    triggers: Tuple[CachedTrigger, ...] = ()
    loaded_at: datetime | None = field(default=None, compare=False)

    @classmethod
    def build(cls, rules: Iterable[TriggerRule]) -> "TriggerSnapshot":
        """Normalize rules into a snapshot, preserving store order.

        Disabled rules and rules left without keywords after normalization are
        dropped since they can never fire.
        """
        triggers = []
        for rule in rules:
            if not rule.enabled:
                continue
            cached = CachedTrigger.from_rule(rule)
            if cached.keywords:
                triggers.append(cached)
        return cls(triggers=tuple(triggers), loaded_at=datetime.now(timezone.utc))

    def __len__(self) -> int:
        return len(self.triggers)

    def __iter__(self):
        return iter(self.triggers)

    def rule_ids(self) -> Tuple[int, ...]:
        return tuple(trigger.rule_id for trigger in self.triggers)


EMPTY_SNAPSHOT = TriggerSnapshot()
