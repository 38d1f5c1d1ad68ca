"""
Takes punitive roles back off members when their case is deleted or expires.

Removing a role makes Discord emit a member update, which the role listener
would otherwise log as a moderator acting by hand. While the bot removes a
mute role itself, ``(guild, member, kind)`` is marked in an
:class:`InFlightSet` before the call. On success the mark stays until the
role listener sees the resulting member update and consumes it. If the call
fails no update will follow, so the mark is dropped here.

Policy per case action:

    action                 role revoked          member fetch fails   revoke fails
    MUTE                   mute role             abort silently       unmark, report
    EMBED_RESTRICTION      embed role            abort silently       report
    EMOJI_RESTRICTION      emoji role            abort silently       report
    REACTION_RESTRICTION   reaction role         abort silently       report
    anything else          -                     -                    -

"Report" means a plain sentence returned to the caller so the invoking
moderator sees it. A missing role setting makes the branch a no-op.
"""

from __future__ import annotations

import threading
from typing import Iterator, Optional, Set, Tuple

import discord

from modledger.configuration.guild_settings import GuildSettingsManager
from modledger.datatypes.case_datatypes import Case
from modledger.datatypes.discord_datatypes import GuildID, UserID
from modledger.datatypes.guild_settings import ACTION_ROLE_KINDS, RoleKind
from modledger.util.logger import get_logger

logger = get_logger("role_reconciler")

InFlightKey = Tuple[GuildID, UserID, RoleKind]


class InFlightSet:
    """
    Lock-guarded set of role changes the bot itself started.

    Safe to use from the deletion path, the scheduler and the gateway event
    handler, whether they run as tasks on one loop or in different threads.
    The lock is never held across an await.
    """

    def __init__(self) -> None:
        self._keys: Set[InFlightKey] = set()
        self._lock = threading.Lock()

    @staticmethod
    def key(guild_id, user_id, kind: RoleKind) -> InFlightKey:
        return (GuildID(guild_id), UserID(user_id), kind)

    def add(self, guild_id, user_id, kind: RoleKind) -> None:
        with self._lock:
            self._keys.add(self.key(guild_id, user_id, kind))

    def discard(self, guild_id, user_id, kind: RoleKind) -> None:
        with self._lock:
            self._keys.discard(self.key(guild_id, user_id, kind))

    def consume(self, guild_id, user_id, kind: RoleKind) -> bool:
        """Remove the key if present. Returns True if it was there."""
        key = self.key(guild_id, user_id, kind)
        with self._lock:
            if key in self._keys:
                self._keys.remove(key)
                return True
            return False

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._keys

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)

    def __iter__(self) -> Iterator[InFlightKey]:
        with self._lock:
            return iter(list(self._keys))

    def clear(self) -> None:
        with self._lock:
            self._keys.clear()


class RoleReconciler:
    """
    Revokes the role attached to a deleted or expired case.

    Args:
        settings: Source of the guild's role ids.
        in_flight: Marker set shared with the role listener.
    """

    def __init__(self, settings: GuildSettingsManager, in_flight: Optional[InFlightSet] = None):
        self.settings = settings
        self.in_flight = in_flight if in_flight is not None else InFlightSet()

    async def _fetch_member(self, guild: discord.Guild, user_id: UserID) -> Optional[discord.Member]:
        try:
            return await guild.fetch_member(int(user_id))
        except (discord.HTTPException, discord.InvalidData) as exc:
            logger.debug("[ROLE RECONCILER] Could not fetch member %s in guild %s: %s", user_id, guild.id, exc)
            return None

    async def _revoke(self, guild: discord.Guild, case: Case, kind: RoleKind, reason: str) -> Optional[str]:
        """
        Remove the ``kind`` role from the case target.

        Returns None when done or skipped, otherwise the message to report.
        """
        role_id = self.settings.get_setting(guild.id, kind.setting_key)
        if role_id is None:
            logger.debug("[ROLE RECONCILER] No %s role configured for guild %s", kind.label, guild.id)
            return None

        member = await self._fetch_member(guild, case.target_id)
        if member is None:
            return None

        track = kind is RoleKind.MUTE
        if track:
            self.in_flight.add(guild.id, member.id, kind)
        try:
            await member.remove_roles(discord.Object(id=role_id), reason=reason)
        except (discord.HTTPException, discord.InvalidData) as exc:
            if track:
                self.in_flight.discard(guild.id, member.id, kind)
            logger.warning(
                "[ROLE RECONCILER] Failed to remove %s role from %s for case #%d: %s",
                kind.label, member.id, case.case_number, exc,
            )
            return f"there was an error removing the {kind.label} on this member: `{exc}`"

        logger.info(
            "[ROLE RECONCILER] Removed %s role from %s (case #%d, guild %s)",
            kind.label, member.id, case.case_number, guild.id,
        )
        return None

    async def reconcile_deleted(self, guild: discord.Guild, case: Case, actor_tag: str) -> Optional[str]:
        """
        Revoke whatever role ``case`` put on its target.

        Args:
            guild: Guild the case belongs to.
            case: The case being deleted.
            actor_tag: Tag of the moderator deleting the case, used in the audit reason.

        Returns:
            A user-visible error message, or None.
        """
        kind = ACTION_ROLE_KINDS.get(case.action)
        if kind is None:
            return None
        reason = f"{kind.label.capitalize()} removed by {actor_tag} | Removed Case #{case.case_number}"
        return await self._revoke(guild, case, kind, reason)

    async def expire_mute(self, guild: discord.Guild, case: Case) -> Optional[str]:
        """Lift a timed mute whose duration has run out."""
        kind = ACTION_ROLE_KINDS.get(case.action)
        if kind is not RoleKind.MUTE:
            return None
        return await self._revoke(guild, case, kind, f"Mute expired | Case #{case.case_number}")
