"""
Settings cog: where the ledger posts its log and which roles it manages.

Commands
- /modlog set <channel>: Channel that receives case log entries.
- /muterole set <role>: Role applied by /mute.
- /restrictrole set <kind> <role>: Role for embed, emoji or reaction restrictions.
- /settings-dump: Export current settings as JSON for debugging.

All changes require the Manage Server permission. Responses are ephemeral to
avoid leaking configuration in public channels.
"""

import io
import json

import discord
from discord import Option
from discord.ext import commands

from modledger.configuration.guild_settings import GuildSettingsManager
from modledger.datatypes.guild_settings import RoleKind, SettingKey
from modledger.util.logger import get_logger

logger = get_logger("settings_cog")

RESTRICTION_KINDS = {
    "embed": RoleKind.EMBED,
    "emoji": RoleKind.EMOJI,
    "reaction": RoleKind.REACTION,
}


class GuildSettingsCog(commands.Cog):
    """Guild-level ledger settings, persisted through the guild settings manager."""

    modlog = discord.SlashCommandGroup("modlog", "Configure the moderation log channel.")
    muterole = discord.SlashCommandGroup("muterole", "Configure the mute role.")
    restrictrole = discord.SlashCommandGroup("restrictrole", "Configure restriction roles.")

    def __init__(self, discord_bot_instance, settings: GuildSettingsManager):
        self.discord_bot_instance = discord_bot_instance
        self.settings = settings
        logger.info("Settings cog loaded")

    async def _ensure_guild_context(self, ctx: discord.ApplicationContext) -> bool:
        if not ctx.guild_id:
            await ctx.respond("This command can only be used in a server.", ephemeral=True)
            return False
        return True

    def _has_manage_permission(self, ctx: discord.ApplicationContext) -> bool:
        member = ctx.user
        permissions = getattr(member, "guild_permissions", None)
        return bool(getattr(permissions, "manage_guild", False))

    async def _update(self, ctx: discord.ApplicationContext, key: SettingKey, value: int, confirmation: str) -> None:
        if not await self._ensure_guild_context(ctx):
            return
        if not self._has_manage_permission(ctx):
            await ctx.respond("You need the Manage Server permission to configure Modledger.", ephemeral=True)
            return

        if await self.settings.set_setting(ctx.guild_id, key, value):
            await ctx.respond(confirmation, ephemeral=True)
        else:
            await ctx.respond("Failed to save the setting. Please try again.", ephemeral=True)

    @modlog.command(name="set", description="Post case log entries in this channel.")
    async def modlog_set(
        self,
        ctx: discord.ApplicationContext,
        channel: Option(discord.TextChannel, "Channel for case log entries.", required=True),  # type: ignore
    ):
        await self._update(ctx, SettingKey.MOD_LOG_CHANNEL, channel.id, f"Case log entries will be posted in {channel.mention}.")

    @muterole.command(name="set", description="Role applied to muted members.")
    async def muterole_set(
        self,
        ctx: discord.ApplicationContext,
        role: Option(discord.Role, "The mute role.", required=True),  # type: ignore
    ):
        await self._update(ctx, SettingKey.MUTE_ROLE, role.id, f"Mute role set to {role.mention}.")

    @restrictrole.command(name="set", description="Role applied for a kind of restriction.")
    async def restrictrole_set(
        self,
        ctx: discord.ApplicationContext,
        kind: Option(str, "Restriction kind.", choices=list(RESTRICTION_KINDS), required=True),  # type: ignore
        role: Option(discord.Role, "The restriction role.", required=True),  # type: ignore
    ):
        role_kind = RESTRICTION_KINDS.get(kind)
        if role_kind is None:
            await ctx.respond("Unsupported restriction kind.", ephemeral=True)
            return
        await self._update(ctx, role_kind.setting_key, role.id, f"{role_kind.label.capitalize()} role set to {role.mention}.")

    @commands.slash_command(name="settings-dump", description="Show current per-guild settings as raw JSON. For debugging purposes.")
    async def settings_dump(self, application_context: discord.ApplicationContext):
        """Return the guild's settings as an ephemeral JSON file."""
        if application_context.guild_id is None:
            await application_context.respond("This command can only be used in a server.", ephemeral=True)
            return

        guild_id = application_context.guild_id
        settings = self.settings.get(guild_id)
        settings_json_string = json.dumps(settings.to_dict(), ensure_ascii=False, indent=2)
        file_obj = io.BytesIO(settings_json_string.encode("utf-8"))

        try:
            discord_file = discord.File(fp=file_obj, filename=f"guild_{guild_id}_settings.json")
            await application_context.respond(file=discord_file, ephemeral=True)
        except discord.InteractionResponded:
            try:
                file_obj.seek(0)
                discord_file = discord.File(fp=file_obj, filename=f"guild_{guild_id}_settings.json")
                await application_context.followup.send(file=discord_file, ephemeral=True)
            except discord.HTTPException as followup_error:
                logger.exception("Failed to send settings dump via followup: %s", followup_error)
        except discord.HTTPException as e:
            logger.exception("Failed to send settings dump for guild %s: %s", guild_id, e)


def setup(discord_bot_instance, settings: GuildSettingsManager):
    """Register the GuildSettingsCog with the bot."""
    discord_bot_instance.add_cog(GuildSettingsCog(discord_bot_instance, settings))
