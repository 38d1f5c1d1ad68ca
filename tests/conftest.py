"""
Pytest configuration and fixtures for Modledger tests.
"""

import sys
from datetime import datetime, timedelta, timezone
from itertools import count
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

import discord
import pytest
import pytest_asyncio

from modledger.configuration.guild_settings import GuildSettingsManager
from modledger.database.db_connection import ConnectionManager
from modledger.database.db_schema import SchemaManager
from modledger.datatypes.case_datatypes import Case, CaseAction
from modledger.datatypes.discord_datatypes import GuildID, UserID
from modledger.datatypes.guild_settings import GuildSettings

GUILD_ID = 1000
MOD_LOG_CHANNEL_ID = 2000
MUTE_ROLE_ID = 3000
EMBED_ROLE_ID = 3001


def not_found() -> discord.NotFound:
    return discord.NotFound(MagicMock(status=404, reason="Not Found"), "Unknown Message")


def forbidden() -> discord.Forbidden:
    return discord.Forbidden(MagicMock(status=403, reason="Forbidden"), "Missing Permissions")


class FakeMessage:
    def __init__(self, channel: "FakeChannel", message_id: int, embed: discord.Embed) -> None:
        self.channel = channel
        self.id = message_id
        self.embeds = [embed]
        self.edits = 0

    async def delete(self) -> None:
        self.channel.messages.pop(self.id, None)

    async def edit(self, *, embed: discord.Embed) -> None:
        if self.channel.fail_edits:
            raise forbidden()
        self.embeds = [embed]
        self.edits += 1


class FakeChannel:
    """Mod-log channel that keeps sent messages in memory."""

    def __init__(self, channel_id: int = MOD_LOG_CHANNEL_ID) -> None:
        self.id = channel_id
        self.messages: dict[int, FakeMessage] = {}
        self.fail_edits = False
        self._ids = count(9000)

    async def send(self, *, embed: discord.Embed) -> FakeMessage:
        message = FakeMessage(self, next(self._ids), embed)
        self.messages[message.id] = message
        return message

    async def fetch_message(self, message_id: int) -> FakeMessage:
        if message_id not in self.messages:
            raise not_found()
        return self.messages[message_id]

    def footers(self) -> list[str]:
        return [m.embeds[0].footer.text for m in self.messages.values()]


class FakeBot:
    """Just enough of ``discord.Bot`` for channel resolution."""

    def __init__(self, *channels: FakeChannel) -> None:
        self.channels = {channel.id: channel for channel in channels}
        self.guilds: dict[int, object] = {}
        self.user = SimpleNamespace(id=1, name="modledger", display_avatar=None)

    def get_channel(self, channel_id: int):
        return self.channels.get(channel_id)

    async def fetch_channel(self, channel_id: int):
        raise not_found()

    def get_guild(self, guild_id: int):
        return self.guilds.get(guild_id)


_case_ids = count(1)


def make_case(action: CaseAction = CaseAction.WARN, number: int = 1, **overrides) -> Case:
    """Build an in-memory Case without touching the store."""
    values = dict(
        id=next(_case_ids),
        guild_id=GuildID(GUILD_ID),
        case_number=number,
        target_id=UserID(42),
        target_tag="target",
        moderator_id=UserID(7),
        moderator_tag="moderator",
        action=action,
        reason="reason",
        created_at=datetime.now(timezone.utc) - timedelta(minutes=1),
    )
    values.update(overrides)
    return Case(**values)


@pytest_asyncio.fixture
async def connections(tmp_path: Path):
    """A fresh database with the full schema, closed after the test."""
    manager = ConnectionManager()
    await manager.open(tmp_path / "ledger.db")
    async with manager.transaction() as conn:
        await SchemaManager.initialize_schema(conn)
    yield manager
    await manager.close()


@pytest.fixture
def settings(connections) -> GuildSettingsManager:
    """Settings for GUILD_ID with a mod-log channel, a mute role and an embed restriction role."""
    manager = GuildSettingsManager(connections)
    manager.guilds[GuildID(GUILD_ID)] = GuildSettings(
        guild_id=GuildID(GUILD_ID),
        mod_log_channel_id=MOD_LOG_CHANNEL_ID,
        mute_role_id=MUTE_ROLE_ID,
        embed_role_id=EMBED_ROLE_ID,
    )
    return manager


@pytest.fixture
def mod_log_channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def fake_bot(mod_log_channel: FakeChannel) -> FakeBot:
    return FakeBot(mod_log_channel)
