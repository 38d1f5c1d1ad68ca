"""
Case records and action tags for the moderation ledger.

This module defines the CaseAction tag set, the many-to-one mapping from tags
to display buckets, and the dataclasses that travel between the case
repository, the case service and the presentation layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Dict, Optional

from modledger.datatypes.discord_datatypes import ChannelID, GuildID, MessageID, UserID


class CaseAction(IntEnum):
    """Persisted action tag of a case. Values are stored as-is in SQLite."""

    BAN = 1
    UNBAN = 2
    KICK = 3
    SOFTBAN = 4
    MUTE = 5
    EMBED_RESTRICTION = 6
    EMOJI_RESTRICTION = 7
    REACTION_RESTRICTION = 8
    WARN = 9
    RESTRICTION = 10

    @property
    def bucket(self) -> "ActionBucket":
        return ACTION_BUCKETS[self]

    @property
    def title(self) -> str:
        """Human readable label rendered in the case embed."""
        return ACTION_TITLES[self]


class ActionBucket(Enum):
    """Display bucket a tag collapses into in logs and history summaries."""

    BAN = "ban"
    UNBAN = "unban"
    KICK = "kick"
    MUTE = "mute"
    RESTRICTION = "restriction"
    WARN = "warn"

    def __str__(self) -> str:
        return self.value


# Two tags render as "kick" and four as "restriction".
ACTION_BUCKETS: Dict[CaseAction, ActionBucket] = {
    CaseAction.BAN: ActionBucket.BAN,
    CaseAction.UNBAN: ActionBucket.UNBAN,
    CaseAction.KICK: ActionBucket.KICK,
    CaseAction.SOFTBAN: ActionBucket.KICK,
    CaseAction.MUTE: ActionBucket.MUTE,
    CaseAction.EMBED_RESTRICTION: ActionBucket.RESTRICTION,
    CaseAction.EMOJI_RESTRICTION: ActionBucket.RESTRICTION,
    CaseAction.REACTION_RESTRICTION: ActionBucket.RESTRICTION,
    CaseAction.WARN: ActionBucket.WARN,
    CaseAction.RESTRICTION: ActionBucket.RESTRICTION,
}

ACTION_TITLES: Dict[CaseAction, str] = {
    CaseAction.BAN: "Ban",
    CaseAction.UNBAN: "Unban",
    CaseAction.KICK: "Kick",
    CaseAction.SOFTBAN: "Softban",
    CaseAction.MUTE: "Mute",
    CaseAction.EMBED_RESTRICTION: "Embed restriction",
    CaseAction.EMOJI_RESTRICTION: "Emoji restriction",
    CaseAction.REACTION_RESTRICTION: "Reaction restriction",
    CaseAction.WARN: "Warn",
    CaseAction.RESTRICTION: "Restriction",
}


@dataclass(frozen=True, slots=True)
class AuditMessageRef:
    """Location of the rendered mod-log message for a case."""

    channel_id: ChannelID
    message_id: MessageID


@dataclass(slots=True)
class NewCase:
    """
    A case as supplied by the caller, before the store assigns ``id``.

    ``case_number`` may be left as None, in which case the case service
    allocates the next number for the guild under its per-guild lock.
    """

    guild_id: GuildID
    target_id: UserID
    target_tag: str
    moderator_id: UserID
    moderator_tag: str
    action: CaseAction
    reason: str
    case_number: Optional[int] = None
    audit_message: Optional[AuditMessageRef] = None
    duration: Optional[int] = None
    ref_case: Optional[int] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(slots=True)
class Case:
    """
    A persisted moderation case.

    Attributes:
        id: Store-assigned identity; only used to keep creation order.
        guild_id: Guild that owns the case number sequence.
        case_number: Visible number, dense within the guild.
        target_id: Member the action was taken against.
        target_tag: Tag of the target at creation time.
        moderator_id: Acting moderator.
        moderator_tag: Tag of the moderator at creation time.
        action: Action tag.
        reason: Free text reason.
        created_at: UTC creation time.
        audit_message: Rendered mod-log entry, if one was posted.
        duration: Mute length in seconds.
        ref_case: Case number this case refers to, if any.
    """

    id: int
    guild_id: GuildID
    case_number: int
    target_id: UserID
    target_tag: str
    moderator_id: UserID
    moderator_tag: str
    action: CaseAction
    reason: str
    created_at: datetime
    audit_message: Optional[AuditMessageRef] = None
    duration: Optional[int] = None
    ref_case: Optional[int] = None

    @property
    def expires_at(self) -> Optional[datetime]:
        """End of a timed mute, or None for anything else."""
        if self.action is not CaseAction.MUTE or not self.duration:
            return None
        return datetime.fromtimestamp(self.created_at.timestamp() + self.duration, tz=timezone.utc)
