"""
Tests for the member update listener.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import EMBED_ROLE_ID, GUILD_ID, MUTE_ROLE_ID, FakeBot, make_case
from modledger.bot.cogs import role_listener
from modledger.bot.ledger import Ledger
from modledger.datatypes.case_datatypes import CaseAction
from modledger.datatypes.case_errors import StoreError
from modledger.datatypes.guild_settings import RoleKind
from modledger.services.role_reconciler import RoleReconciler


def snapshot(*role_ids):
    return SimpleNamespace(
        id=42,
        guild=SimpleNamespace(id=GUILD_ID),
        roles=[SimpleNamespace(id=role_id) for role_id in role_ids],
        display_avatar=None,
    )


@pytest.fixture
def ledger(settings):
    return Ledger(
        settings=settings,
        cases=MagicMock(create=AsyncMock(return_value=make_case(CaseAction.MUTE, number=1))),
        history=MagicMock(),
        reconciler=RoleReconciler(settings),
        mute_scheduler=None,
    )


@pytest.fixture
def cog(ledger):
    return role_listener.RoleListenerCog(FakeBot(), ledger)


@pytest.mark.asyncio
async def test_bot_initiated_mute_removal_is_consumed(cog, ledger):
    ledger.in_flight.add(GUILD_ID, 42, RoleKind.MUTE)

    await cog.on_member_update(snapshot(1, MUTE_ROLE_ID), snapshot(1))

    assert len(ledger.in_flight) == 0
    ledger.cases.create.assert_not_awaited()


@pytest.mark.asyncio
async def test_bot_initiated_mute_addition_is_consumed(cog, ledger):
    ledger.in_flight.add(GUILD_ID, 42, RoleKind.MUTE)

    await cog.on_member_update(snapshot(), snapshot(MUTE_ROLE_ID))

    assert len(ledger.in_flight) == 0
    ledger.cases.create.assert_not_awaited()


@pytest.mark.asyncio
async def test_manual_mute_is_recorded_with_bot_as_moderator(cog, ledger):
    await cog.on_member_update(snapshot(), snapshot(MUTE_ROLE_ID))

    ledger.cases.create.assert_awaited_once()
    new_case, target, moderator = ledger.cases.create.await_args.args
    assert new_case.action is CaseAction.MUTE
    assert new_case.reason == role_listener.MANUAL_ROLE_REASON
    assert new_case.moderator_id == 1
    assert target.user_id == 42


@pytest.mark.asyncio
async def test_manual_restriction_is_recorded(cog, ledger):
    await cog.on_member_update(snapshot(), snapshot(EMBED_ROLE_ID))

    assert ledger.cases.create.await_args.args[0].action is CaseAction.EMBED_RESTRICTION


@pytest.mark.asyncio
async def test_manual_removal_creates_no_case(cog, ledger):
    await cog.on_member_update(snapshot(MUTE_ROLE_ID), snapshot())

    ledger.cases.create.assert_not_awaited()


@pytest.mark.asyncio
async def test_unrelated_role_changes_are_ignored(cog, ledger):
    await cog.on_member_update(snapshot(1), snapshot(1, 2))
    await cog.on_member_update(snapshot(1), snapshot(1))

    ledger.cases.create.assert_not_awaited()


@pytest.mark.asyncio
async def test_store_failure_is_logged_not_raised(cog, ledger):
    ledger.cases.create.side_effect = StoreError("locked")

    await cog.on_member_update(snapshot(), snapshot(MUTE_ROLE_ID))

    ledger.cases.create.assert_awaited_once()


@pytest.mark.asyncio
async def test_member_update_after_revoke_consumes_the_mark(cog, ledger):
    target = SimpleNamespace(id=42, remove_roles=AsyncMock())
    guild = SimpleNamespace(id=GUILD_ID, fetch_member=AsyncMock(return_value=target))

    await ledger.reconciler.reconcile_deleted(guild, make_case(CaseAction.MUTE, number=3), "admin")
    assert len(ledger.in_flight) == 1

    await cog.on_member_update(snapshot(1, MUTE_ROLE_ID), snapshot(1))

    assert len(ledger.in_flight) == 0
    ledger.cases.create.assert_not_awaited()
