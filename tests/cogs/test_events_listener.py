from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from modledger.bot.cogs import events_listener


def make_bot():
    bot = MagicMock()
    bot.user = SimpleNamespace(id=1)
    bot.change_presence = AsyncMock()
    return bot


@pytest.mark.asyncio
async def test_on_ready_restores_mutes_once():
    scheduler = MagicMock(restore=AsyncMock(return_value=2))
    ledger = SimpleNamespace(mute_scheduler=scheduler, settings=MagicMock())
    config = SimpleNamespace(mute_catch_up_seconds=60)
    cog = events_listener.EventsListenerCog(make_bot(), ledger, config)

    await cog.on_ready()
    await cog.on_ready()

    scheduler.restore.assert_awaited_once_with(60)


@pytest.mark.asyncio
async def test_on_ready_without_scheduler():
    ledger = SimpleNamespace(mute_scheduler=None, settings=MagicMock())
    bot = make_bot()
    cog = events_listener.EventsListenerCog(bot, ledger, SimpleNamespace(mute_catch_up_seconds=60))

    await cog.on_ready()

    bot.change_presence.assert_awaited_once()


@pytest.mark.asyncio
async def test_on_guild_remove_deletes_settings():
    settings = MagicMock(delete=AsyncMock(return_value=True))
    ledger = SimpleNamespace(mute_scheduler=None, settings=settings)
    cog = events_listener.EventsListenerCog(make_bot(), ledger, SimpleNamespace(mute_catch_up_seconds=60))

    await cog.on_guild_remove(SimpleNamespace(id=99, name="gone"))

    settings.delete.assert_awaited_once()
    assert settings.delete.await_args.args[0] == 99
