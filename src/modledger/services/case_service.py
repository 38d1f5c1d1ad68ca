"""
CaseService: creation, deletion and renumbering of moderation cases.

Case numbers are dense per guild. Deleting case N removes its log message,
takes back any role it applied, removes the row, then walks every later case
in ascending order and moves it down by one. Each step of the walk is its own
transaction followed by a re-stamp of the rendered log entry:

    for each case after N, ascending:
        UPDATE number            (commit; a StoreError stops the walk here)
        re-stamp "Case {n}"      (best effort; failure is logged and skipped)

Steps already committed are not rolled back when a later step fails.
:meth:`CaseService.renumber` re-runs the walk for a guild; cases already at
their expected number are skipped, so running it on a consistent guild
changes nothing.

Calls for one guild, reads included, are serialised by a per-guild
``asyncio.Lock``, so a reader never sees a walk half done. Different guilds
proceed independently.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from typing import Dict, List, Optional

import discord

from modledger.configuration.guild_settings import GuildSettingsManager
from modledger.database.db_connection import ConnectionManager, db_connection
from modledger.datatypes.case_datatypes import Case, NewCase
from modledger.datatypes.case_errors import CaseNotFoundError, StoreError
from modledger.datatypes.discord_datatypes import ChannelID, GuildID, ModerationTarget
from modledger.datatypes.guild_settings import SettingKey
from modledger.datatypes.result_datatypes import DeletionResult
from modledger.moderation.case_embed import build_case_embed
from modledger.repositories.case_repo import CaseRepository, case_repo
from modledger.services.audit_log_sync import AuditLogSynchronizer
from modledger.services.role_reconciler import RoleReconciler
from modledger.util.logger import get_logger

logger = get_logger("case_service")


class CaseService:
    """
    Owns the case number sequence of every guild.

    Args:
        settings: Per-guild settings (mod-log channel, role ids).
        synchronizer: Mod-log channel mirror.
        reconciler: Role revocation on deletion.
        repo: Case store.
        connection_manager: Shared database connection.
    """

    def __init__(
        self,
        settings: GuildSettingsManager,
        synchronizer: AuditLogSynchronizer,
        reconciler: RoleReconciler,
        repo: CaseRepository = case_repo,
        connection_manager: ConnectionManager = db_connection,
    ) -> None:
        self.settings = settings
        self.synchronizer = synchronizer
        self.reconciler = reconciler
        self._repo = repo
        self._connections = connection_manager
        self._per_guild_locks: Dict[GuildID, asyncio.Lock] = {}

    def _lock_for(self, guild_id: GuildID) -> asyncio.Lock:
        if guild_id not in self._per_guild_locks:
            self._per_guild_locks[guild_id] = asyncio.Lock()
        return self._per_guild_locks[guild_id]

    def _mod_log_channel(self, guild_id: GuildID) -> Optional[ChannelID]:
        channel_id = self.settings.get_setting(guild_id, SettingKey.MOD_LOG_CHANNEL)
        return ChannelID(channel_id) if channel_id is not None else None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, guild_id, number: int) -> Case:
        """
        Return case ``number`` of the guild.

        Raises:
            CaseNotFoundError: No such case.
        """
        guild_id = GuildID(guild_id)
        async with self._lock_for(guild_id):
            async with self._connections.read() as conn:
                case = await self._repo.find_by_number(conn, guild_id, number)
        if case is None:
            raise CaseNotFoundError(guild_id, number)
        return case

    async def list_numbers(self, guild_id) -> List[int]:
        """All case numbers of the guild, ascending."""
        guild_id = GuildID(guild_id)
        async with self._lock_for(guild_id):
            async with self._connections.read() as conn:
                cases = await self._repo.find_after(conn, guild_id, 0)
        return [case.case_number for case in cases]

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create(
        self,
        new_case: NewCase,
        target: ModerationTarget,
        moderator: Optional[ModerationTarget] = None,
    ) -> Case:
        """
        Record a case and post its log entry.

        If ``new_case.case_number`` is None the next free number is used. The
        log entry is posted only when the guild has a mod-log channel; a
        failed post leaves the case without a log message.

        Raises:
            StoreError: The insert failed (e.g. the supplied number is taken).
        """
        guild_id = GuildID(new_case.guild_id)
        async with self._lock_for(guild_id):
            async with self._connections.read() as conn:
                number = new_case.case_number
                if number is None:
                    number = await self._repo.next_case_number(conn, guild_id)
                reference = None
                if new_case.ref_case is not None:
                    reference = await self._repo.find_by_number(conn, guild_id, new_case.ref_case)
            record = replace(new_case, guild_id=guild_id, case_number=number)

            channel_id = self._mod_log_channel(guild_id)
            if channel_id is not None:
                embed = build_case_embed(record, target, moderator, reference)
                posted = await self.synchronizer.post_entry(channel_id, embed)
                if posted.ok:
                    record.audit_message = posted.value
                else:
                    logger.warning("[CASE SERVICE] Case #%d logged without a message: %s", number, posted.error)

            try:
                async with self._connections.transaction() as conn:
                    case_id = await self._repo.create(conn, record)
            except StoreError:
                await self.synchronizer.remove_entry(record.audit_message)
                raise

        logger.info(
            "[CASE SERVICE] Created case #%d (%s) against %s in guild %s",
            number, record.action.title, record.target_id, guild_id,
        )
        return Case(
            id=case_id,
            guild_id=guild_id,
            case_number=number,
            target_id=record.target_id,
            target_tag=record.target_tag,
            moderator_id=record.moderator_id,
            moderator_tag=record.moderator_tag,
            action=record.action,
            reason=record.reason,
            created_at=record.created_at,
            audit_message=record.audit_message,
            duration=record.duration,
            ref_case=record.ref_case,
        )

    # ------------------------------------------------------------------
    # Deletion and renumbering
    # ------------------------------------------------------------------

    async def delete(
        self,
        guild: discord.Guild,
        number: int,
        actor_tag: str,
        *,
        keep_roles: bool = False,
    ) -> DeletionResult:
        """
        Delete case ``number`` and close the gap it leaves.

        Args:
            guild: Guild owning the case.
            number: Case number to delete.
            actor_tag: Moderator performing the deletion (used in role audit reasons).
            keep_roles: Leave the target's mute or restriction role in place.

        Raises:
            CaseNotFoundError: No such case; nothing was changed.
            StoreError: The store failed; steps before the failure stay applied.
        """
        guild_id = GuildID(guild.id)
        async with self._lock_for(guild_id):
            async with self._connections.read() as conn:
                case = await self._repo.find_by_number(conn, guild_id, number)
            if case is None:
                raise CaseNotFoundError(guild_id, number)

            result = DeletionResult(case=case)

            if self._mod_log_channel(guild_id) is not None:
                removed = await self.synchronizer.remove_entry(case.audit_message)
                result.audit_removed = removed.ok and case.audit_message is not None

            if not keep_roles:
                warning = await self.reconciler.reconcile_deleted(guild, case, actor_tag)
                if warning:
                    result.warnings.append(warning)

            async with self._connections.transaction() as conn:
                await self._repo.delete(conn, case.id)

            result.renumbered = await self._walk(guild_id, after=number, first_number=number)

        logger.info(
            "[CASE SERVICE] Deleted case #%d in guild %s by %s, %d later case(s) renumbered",
            number, guild_id, actor_tag, result.renumbered,
        )
        return result

    async def renumber(self, guild_id, start: int = 1) -> int:
        """
        Make the guild's numbers from ``start`` onward dense again.

        Returns:
            How many cases changed number.
        """
        guild_id = GuildID(guild_id)
        async with self._lock_for(guild_id):
            changed = await self._walk(guild_id, after=start - 1, first_number=start)
        if changed:
            logger.info("[CASE SERVICE] Renumbered %d case(s) in guild %s from #%d", changed, guild_id, start)
        return changed

    async def _walk(self, guild_id: GuildID, *, after: int, first_number: int) -> int:
        async with self._connections.read() as conn:
            later = await self._repo.find_after(conn, guild_id, after)

        changed = 0
        for position, case in enumerate(later):
            new_number = first_number + position
            if case.case_number == new_number:
                continue

            async with self._connections.transaction() as conn:
                await self._repo.update_number(conn, case.id, new_number)
            old_number, case.case_number = case.case_number, new_number
            changed += 1

            restamped = await self.synchronizer.restamp_entry(case.audit_message, new_number)
            if not restamped.ok:
                logger.debug(
                    "[CASE SERVICE] Case #%d -> #%d stored but log entry not updated: %s",
                    old_number, new_number, restamped.error,
                )
        return changed
