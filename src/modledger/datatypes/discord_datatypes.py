"""
Type-safe wrappers for Discord identifiers and moderation targets.

Discord snowflakes are 64-bit integers that are often handled as strings.
The wrappers below keep guild, user, channel, message and role identifiers
from being mixed up as they travel between the store, the settings layer and
the Discord API.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

import discord


class Snowflake:
    """
    Base class for the identifier wrappers.

    The value is normalised to its decimal string form so that ``UserID(1)``,
    ``UserID("1")`` and ``UserID(UserID(1))`` compare and hash equal.
    Comparison against a raw ``int`` or ``str`` is supported for convenience.
    """

    __slots__ = ("_value",)

    def __init__(self, value: Union[str, int, "Snowflake"]) -> None:
        if isinstance(value, Snowflake):
            self._value = value._value
        elif isinstance(value, bool):
            raise ValueError(f"Cannot create {type(self).__name__} from bool")
        elif isinstance(value, int):
            self._value = str(value)
        elif isinstance(value, str):
            self._value = str(int(value.strip()))
        else:
            raise ValueError(f"Cannot create {type(self).__name__} from {type(value).__name__}: {value}")

    @classmethod
    def from_int(cls, value: int):
        return cls(value)

    def to_int(self) -> int:
        """Return the snowflake as an integer for Discord API and SQLite calls."""
        return int(self._value)

    def __int__(self) -> int:
        return int(self._value)

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Snowflake):
            return type(self) is type(other) and self._value == other._value
        if isinstance(other, str):
            return self._value == other
        if isinstance(other, int) and not isinstance(other, bool):
            return self._value == str(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)


class UserID(Snowflake):
    """Discord user (or member) snowflake."""

    __slots__ = ()

    @classmethod
    def from_user(cls, member: Union[discord.Member, discord.User]) -> "UserID":
        return cls(member.id)


class GuildID(Snowflake):
    """Discord guild snowflake; the community that scopes case numbers."""

    __slots__ = ()

    @classmethod
    def from_guild(cls, guild: discord.Guild) -> "GuildID":
        return cls(guild.id)


class ChannelID(Snowflake):
    """Discord channel snowflake."""

    __slots__ = ()


class MessageID(Snowflake):
    """Discord message snowflake."""

    __slots__ = ()

    @classmethod
    def from_message(cls, message: discord.Message) -> "MessageID":
        return cls(message.id)


class RoleID(Snowflake):
    """Discord role snowflake."""

    __slots__ = ()


@dataclass(frozen=True, slots=True)
class ModerationTarget:
    """
    A member or user reduced to the fields the ledger needs.

    py-cord hands commands either a :class:`discord.Member` or a plain
    :class:`discord.User` depending on whether the person is still in the
    guild. The choice is resolved once here so downstream code reads
    ``display_name`` and ``avatar_url`` without branching on the type.

    Attributes:
        user_id: Snowflake of the person.
        display_name: Unique tag shown in logs (``name`` or ``name#1234``).
        avatar_url: Display avatar URL, or None if unavailable.
        is_member: True when resolved from a guild member.
    """

    user_id: UserID
    display_name: str
    avatar_url: str | None = None
    is_member: bool = False

    @classmethod
    def from_discord(cls, person: Union[discord.Member, discord.User]) -> "ModerationTarget":
        """Build a target from a py-cord Member or User."""
        avatar = getattr(person, "display_avatar", None)
        return cls(
            user_id=UserID(person.id),
            display_name=str(person),
            avatar_url=str(avatar.url) if avatar is not None else None,
            is_member=isinstance(person, discord.Member),
        )

    def label(self) -> str:
        """Return ``"tag (id)"`` as used in embed authors and descriptions."""
        return f"{self.display_name} ({self.user_id})"
