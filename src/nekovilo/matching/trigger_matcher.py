"""First-match-wins keyword matching against the trigger cache.

For each cached trigger, in snapshot order, a message fires the trigger when:

1. the message's channel is one of the trigger's channels,
2. at least one keyword is a substring of the lowercased message, and
3. no exception phrase is a substring of the lowercased message.

Exceptions always win, even when an exception is itself a substring of a
keyword. The first trigger that fires supplies the response and evaluation
stops there.
"""

from __future__ import annotations

import threading
from typing import Optional, Union

from nekovilo.datatypes.discord_datatypes import ChannelID
from nekovilo.datatypes.trigger_datatypes import CachedTrigger
from nekovilo.rules_cache.trigger_cache import TriggerCache


class ResponseCounter:
    """Process-lifetime count of responses sent. Not persisted."""

    def __init__(self) -> None:
        self._value = 0
        self._lock = threading.Lock()

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    @property
    def value(self) -> int:
        return self._value


def trigger_fires(trigger: CachedTrigger, lowered_text: str, channel_id: ChannelID) -> bool:
    """Return True if ``trigger`` fires for an already-lowercased message."""
    if channel_id not in trigger.channel_ids:
        return False
    if not any(keyword in lowered_text for keyword in trigger.keywords):
        return False
    return not any(exception in lowered_text for exception in trigger.exceptions)


class TriggerMatcher:
    """Evaluates messages against the current trigger snapshot."""

    def __init__(self, cache: TriggerCache, counter: ResponseCounter | None = None) -> None:
        self._cache = cache
        self._counter = counter or ResponseCounter()

    @property
    def responses_sent(self) -> int:
        return self._counter.value

    def match(self, text: Optional[str], channel_id: Union[ChannelID, int, str]) -> Optional[str]:
        """Return the response of the first trigger that fires, or None.

        Never raises: empty or non-string text, or an unparseable channel id,
        means no match.
        """
        if not text or not isinstance(text, str):
            return None

        try:
            channel = ChannelID(channel_id)
        except ValueError:
            return None

        lowered = text.lower()
        # One reference read; a concurrent reload swaps in a new snapshot
        # without affecting this pass.
        snapshot = self._cache.snapshot()

        for trigger in snapshot.triggers:
            if trigger_fires(trigger, lowered, channel):
                self._counter.increment()
                return trigger.response

        return None
