"""
Role listener: keeps the ledger in step with role changes made outside the bot.

When the bot itself adds or removes the mute role it marks the change in the
shared in-flight set first; the resulting member update is consumed here and
ignored. A mute or restriction role added by hand is recorded as a new case
with the bot as moderator, so the history still reflects it.
"""

from typing import Set

import discord
from discord.ext import commands

from modledger.bot.ledger import Ledger
from modledger.datatypes.case_datatypes import NewCase
from modledger.datatypes.case_errors import StoreError
from modledger.datatypes.discord_datatypes import GuildID, ModerationTarget
from modledger.datatypes.guild_settings import ROLE_KIND_ACTIONS, RoleKind
from modledger.util.logger import get_logger

logger = get_logger("role_listener")

MANUAL_ROLE_REASON = "Role added manually"


def _role_ids(member: discord.Member) -> Set[int]:
    return {role.id for role in member.roles}


class RoleListenerCog(commands.Cog):
    """Watches member updates for punitive roles."""

    def __init__(self, discord_bot_instance, ledger: Ledger):
        self.bot = discord_bot_instance
        self.ledger = ledger
        logger.info("[ROLE LISTENER] Role listener cog loaded")

    @commands.Cog.listener(name="on_member_update")
    async def on_member_update(self, before: discord.Member, after: discord.Member):
        before_ids = _role_ids(before)
        after_ids = _role_ids(after)
        added = after_ids - before_ids
        removed = before_ids - after_ids
        if not added and not removed:
            return

        guild = after.guild
        in_flight = self.ledger.in_flight
        for kind in RoleKind:
            role_id = self.ledger.settings.get_setting(guild.id, kind.setting_key)
            if role_id is None:
                continue

            if role_id in removed:
                if in_flight.consume(guild.id, after.id, kind):
                    logger.debug("[ROLE LISTENER] Ignoring %s removal on %s made by the bot", kind.label, after.id)
                else:
                    logger.info("[ROLE LISTENER] %s role removed by hand from %s in guild %s", kind.label, after.id, guild.id)

            if role_id in added:
                if in_flight.consume(guild.id, after.id, kind):
                    logger.debug("[ROLE LISTENER] Ignoring %s addition on %s made by the bot", kind.label, after.id)
                    continue
                await self.record_manual_role(guild, after, kind)

    async def record_manual_role(self, guild: discord.Guild, member: discord.Member, kind: RoleKind) -> None:
        """Create a case for a punitive role someone added without the bot."""
        if self.bot.user is None:
            return
        moderator = ModerationTarget.from_discord(self.bot.user)
        target = ModerationTarget.from_discord(member)
        new_case = NewCase(
            guild_id=GuildID(guild.id),
            target_id=target.user_id,
            target_tag=target.display_name,
            moderator_id=moderator.user_id,
            moderator_tag=moderator.display_name,
            action=ROLE_KIND_ACTIONS[kind],
            reason=MANUAL_ROLE_REASON,
        )
        try:
            case = await self.ledger.cases.create(new_case, target, moderator)
        except StoreError as exc:
            logger.error("[ROLE LISTENER] Could not record manual %s on %s: %s", kind.label, member.id, exc)
            return
        logger.info("[ROLE LISTENER] Recorded manual %s on %s as case #%d", kind.label, member.id, case.case_number)


def setup(discord_bot_instance, ledger: Ledger):
    """Register the RoleListenerCog with the bot."""
    discord_bot_instance.add_cog(RoleListenerCog(discord_bot_instance, ledger))
