"""
Type-safe wrapper classes for Discord identifiers.

Discord snowflakes are 64-bit integers, but are often stored/transmitted as
strings so they survive JSON and other text encodings without precision loss.
The wrappers keep the decimal string form internally and compare equal to the
raw ``int`` and ``str`` representations of the same snowflake.
"""

from __future__ import annotations

from typing import Union

import discord


class _Snowflake:
    """
    Shared implementation for snowflake wrappers.

    Attributes:
        _value (str): The snowflake ID stored as a decimal string.
    """

    __slots__ = ("_value",)

    def __init__(self, value: Union[str, int, "_Snowflake"]) -> None:
        """
        Initialize from a string, int, or another wrapper of the same type.

        Raises:
            ValueError: If the value cannot be converted to a valid snowflake.
        """
        if isinstance(value, type(self)):
            self._value = value._value
        elif isinstance(value, bool):
            raise ValueError(f"Cannot create {type(self).__name__} from bool: {value}")
        elif isinstance(value, int):
            if value < 0:
                raise ValueError(f"Snowflake IDs cannot be negative: {value}")
            self._value = str(value)
        elif isinstance(value, str):
            # int() validates the digits and strips leading zeros
            parsed = int(value.strip())
            if parsed < 0:
                raise ValueError(f"Snowflake IDs cannot be negative: {value}")
            self._value = str(parsed)
        else:
            raise ValueError(f"Cannot create {type(self).__name__} from {type(value).__name__}: {value}")

    @classmethod
    def from_int(cls, value: int):
        """Create an instance from an integer snowflake."""
        return cls(value)

    def to_int(self) -> int:
        """Convert to an integer for Discord API calls."""
        return int(self._value)

    def __int__(self) -> int:
        return int(self._value)

    def __str__(self) -> str:
        """Return the string representation for JSON serialization."""
        return self._value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, type(self)):
            return self._value == other._value
        if isinstance(other, str):
            return self._value == other
        if isinstance(other, int) and not isinstance(other, bool):
            return self._value == str(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)


class GuildID(_Snowflake):
    """Guild snowflake; the scope that owns trigger rules.

        >>> GuildID(900000000000000001) == "900000000000000001"
        True
    """

    __slots__ = ()

    @classmethod
    def from_guild(cls, guild: discord.Guild) -> "GuildID":
        """Create a GuildID from a Discord Guild object."""
        return cls(guild.id)


class ChannelID(_Snowflake):
    """Channel snowflake a trigger is active in.

    Hashing uses the string form, so set lookups must use ``ChannelID``
    instances rather than raw ints:

        >>> ChannelID(" 0042 ") in frozenset({ChannelID(42)})
        True
    """

    __slots__ = ()

    @classmethod
    def from_channel(cls, channel: Union[discord.TextChannel, discord.Thread, discord.abc.GuildChannel, discord.abc.Messageable]) -> "ChannelID":
        """Create a ChannelID from a Discord Channel object."""
        return cls(channel.id)  # type: ignore[union-attr]
