from types import SimpleNamespace
from unittest.mock import AsyncMock

import discord
import pytest

from modledger.bot.cogs import guild_settings_cmds
from modledger.configuration.guild_settings import GuildSettingsManager
from modledger.datatypes.guild_settings import SettingKey


class Ctx:
    def __init__(self, guild_id=10, manage_guild=True):
        self.guild_id = guild_id
        self.user = SimpleNamespace(guild_permissions=SimpleNamespace(manage_guild=manage_guild))
        self.responses = []

    async def respond(self, *args, **kwargs):
        self.responses.append((args, kwargs))


def test_setup_adds_cog():
    captured = {}
    fake_bot = SimpleNamespace(add_cog=lambda cog: captured.setdefault("cog", cog))

    guild_settings_cmds.setup(fake_bot, GuildSettingsManager())

    assert isinstance(captured["cog"], guild_settings_cmds.GuildSettingsCog)


@pytest.mark.asyncio
async def test_modlog_set_persists_channel(connections):
    manager = GuildSettingsManager(connections)
    cog = guild_settings_cmds.GuildSettingsCog(SimpleNamespace(), manager)
    ctx = Ctx()

    await guild_settings_cmds.GuildSettingsCog.modlog_set.callback(cog, ctx, SimpleNamespace(id=555, mention="#log"))

    assert manager.get_setting(10, SettingKey.MOD_LOG_CHANNEL) == 555
    args, kwargs = ctx.responses[-1]
    assert args[0] == "Case log entries will be posted in #log."
    assert kwargs["ephemeral"] is True


@pytest.mark.asyncio
async def test_restrictrole_set_maps_kind(connections):
    manager = GuildSettingsManager(connections)
    cog = guild_settings_cmds.GuildSettingsCog(SimpleNamespace(), manager)
    ctx = Ctx()

    await guild_settings_cmds.GuildSettingsCog.restrictrole_set.callback(
        cog, ctx, "emoji", SimpleNamespace(id=321, mention="@NoEmoji")
    )

    assert manager.get_setting(10, SettingKey.EMOJI_RESTRICTION_ROLE) == 321
    assert ctx.responses[-1][0][0] == "Emoji restriction role set to @NoEmoji."


@pytest.mark.asyncio
async def test_muterole_set_requires_manage_guild(connections):
    manager = GuildSettingsManager(connections)
    cog = guild_settings_cmds.GuildSettingsCog(SimpleNamespace(), manager)
    ctx = Ctx(manage_guild=False)

    await guild_settings_cmds.GuildSettingsCog.muterole_set.callback(cog, ctx, SimpleNamespace(id=1, mention="@Muted"))

    assert manager.get_setting(10, SettingKey.MUTE_ROLE) is None
    assert "Manage Server" in ctx.responses[-1][0][0]


@pytest.mark.asyncio
async def test_settings_dump_sends_json_file():
    manager = GuildSettingsManager()
    manager.get(10).mute_role_id = 77
    cog = guild_settings_cmds.GuildSettingsCog(SimpleNamespace(), manager)
    ctx = Ctx()

    await guild_settings_cmds.GuildSettingsCog.settings_dump.callback(cog, ctx)

    kwargs = ctx.responses[-1][1]
    assert isinstance(kwargs["file"], discord.File)
    assert kwargs["file"].filename == "guild_10_settings.json"
    assert kwargs["ephemeral"] is True


@pytest.mark.asyncio
async def test_settings_dump_outside_guild():
    cog = guild_settings_cmds.GuildSettingsCog(SimpleNamespace(), GuildSettingsManager())
    ctx = Ctx(guild_id=None)

    await guild_settings_cmds.GuildSettingsCog.settings_dump.callback(cog, ctx)

    assert ctx.responses[-1][0][0] == "This command can only be used in a server."
