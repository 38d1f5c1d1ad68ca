"""
Keeps the mod-log channel in step with the case store.

Each case may have one rendered embed in the guild's mod-log channel. The
store is the source of truth; the channel is a best-effort mirror. Every
method here returns a :class:`SyncResult` instead of raising, and the caller
decides whether a failure is logged or shown to a moderator.
"""

from __future__ import annotations

from typing import Optional

import discord

from modledger.datatypes.case_datatypes import AuditMessageRef
from modledger.datatypes.discord_datatypes import ChannelID, MessageID
from modledger.datatypes.result_datatypes import SyncResult
from modledger.util.logger import get_logger

logger = get_logger("audit_log_sync")


def case_footer(case_number: int) -> str:
    return f"Case {case_number}"


class AuditLogSynchronizer:
    """
    Posts, deletes and re-stamps case embeds in mod-log channels.

    Args:
        bot: py-cord client used to resolve channels.
    """

    def __init__(self, bot: discord.Client):
        self.bot = bot

    async def _resolve_channel(self, channel_id: ChannelID) -> Optional[discord.abc.Messageable]:
        channel = self.bot.get_channel(int(channel_id))
        if channel is None:
            channel = await self.bot.fetch_channel(int(channel_id))
        if not hasattr(channel, "fetch_message"):
            return None
        return channel

    async def post_entry(self, channel_id: ChannelID, embed: discord.Embed) -> SyncResult:
        """
        Send a case embed to the mod-log channel.

        On success ``result.value`` is the :class:`AuditMessageRef` of the new message.
        """
        try:
            channel = await self._resolve_channel(channel_id)
            if channel is None:
                return SyncResult.failure("post log entry", f"channel {channel_id} is not a text channel")
            message = await channel.send(embed=embed)
        except (discord.HTTPException, discord.InvalidData) as exc:
            logger.warning("[AUDIT LOG] Could not post entry to channel %s: %s", channel_id, exc)
            return SyncResult.failure("post log entry", exc)

        ref = AuditMessageRef(channel_id=ChannelID(channel_id), message_id=MessageID(message.id))
        return SyncResult.success(ref)

    async def remove_entry(self, ref: Optional[AuditMessageRef]) -> SyncResult:
        """Delete the rendered entry. A case without a recorded message is skipped."""
        if ref is None:
            return SyncResult.skipped()
        try:
            channel = await self._resolve_channel(ref.channel_id)
            if channel is None:
                return SyncResult.failure("remove log entry", f"channel {ref.channel_id} is not a text channel")
            message = await channel.fetch_message(int(ref.message_id))
            await message.delete()
        except (discord.HTTPException, discord.InvalidData) as exc:
            logger.debug("[AUDIT LOG] Could not remove log message %s: %s", ref.message_id, exc)
            return SyncResult.failure("remove log entry", exc)

        logger.debug("[AUDIT LOG] Removed log message %s", ref.message_id)
        return SyncResult.success()

    async def restamp_entry(self, ref: Optional[AuditMessageRef], new_number: int) -> SyncResult:
        """
        Rewrite the footer of the rendered entry to ``Case {new_number}``.

        The rest of the embed (author, description, thumbnail, timestamp,
        colour) is carried over unchanged.
        """
        if ref is None:
            return SyncResult.skipped()
        try:
            channel = await self._resolve_channel(ref.channel_id)
            if channel is None:
                return SyncResult.failure("re-stamp log entry", f"channel {ref.channel_id} is not a text channel")
            message = await channel.fetch_message(int(ref.message_id))
            if not message.embeds:
                return SyncResult.failure("re-stamp log entry", f"message {ref.message_id} has no embed")

            embed = message.embeds[0].copy()
            embed.set_footer(text=case_footer(new_number))
            await message.edit(embed=embed)
        except (discord.HTTPException, discord.InvalidData) as exc:
            logger.debug("[AUDIT LOG] Could not re-stamp log message %s: %s", ref.message_id, exc)
            return SyncResult.failure("re-stamp log entry", exc)

        return SyncResult.success()
