"""Event listener Cog for Modledger.

Handles bot lifecycle events and guild removal clean-up.
"""

import discord
from discord.ext import commands

from modledger.bot.ledger import Ledger
from modledger.configuration.app_configuration import AppConfig, app_config
from modledger.datatypes.discord_datatypes import GuildID
from modledger.util.logger import get_logger

logger = get_logger("events_listener")


class EventsListenerCog(commands.Cog):
    """Cog containing bot lifecycle handlers."""

    def __init__(self, discord_bot_instance, ledger: Ledger, config: AppConfig = app_config):
        self.bot = discord_bot_instance
        self.ledger = ledger
        self.config = config
        self._mutes_restored = False
        logger.info("[EVENTS LISTENER] Events listener cog loaded")

    @commands.Cog.listener(name="on_ready")
    async def on_ready(self):
        """
        Handle bot startup.

        On the first ready event, timed mutes stored before the last shutdown
        are scheduled again. Later reconnects do not repeat this.
        """
        if self.bot.user:
            await self.bot.change_presence(
                status=discord.Status.online,
                activity=discord.Activity(type=discord.ActivityType.watching, name="the case log"),
            )
            logger.info("Bot connected as %s (ID: %s)", self.bot.user, self.bot.user.id)
        else:
            logger.warning("[EVENTS LISTENER] Bot partially connected, but user information not yet available.")

        if self.ledger.mute_scheduler is not None and not self._mutes_restored:
            self._mutes_restored = True
            try:
                await self.ledger.mute_scheduler.restore(self.config.mute_catch_up_seconds)
            except Exception as exc:
                logger.error("[EVENTS LISTENER] Could not restore timed mutes: %s", exc)

    @commands.Cog.listener(name="on_guild_remove")
    async def on_guild_remove(self, guild: discord.Guild):
        """Forget the settings of a guild the bot was removed from. Cases are kept."""
        guild_id = GuildID(guild.id)
        logger.debug("[EVENTS LISTENER] Bot removed from guild: %s (ID: %s)", guild.name, guild.id)

        if await self.ledger.settings.delete(guild_id):
            logger.debug("[EVENTS LISTENER] Cleaned up settings for guild %s", guild.id)
        else:
            logger.error("[EVENTS LISTENER] Failed to clean up settings for guild %s", guild.id)


def setup(discord_bot_instance, ledger: Ledger):
    """Register the EventsListenerCog with the bot."""
    discord_bot_instance.add_cog(EventsListenerCog(discord_bot_instance, ledger))
