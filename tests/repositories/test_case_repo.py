"""
Tests for the cases table repository.
"""

import time
from datetime import datetime, timedelta, timezone

import pytest

from conftest import GUILD_ID
from modledger.datatypes.case_datatypes import AuditMessageRef, CaseAction, NewCase
from modledger.datatypes.case_errors import StoreError
from modledger.datatypes.discord_datatypes import ChannelID, GuildID, MessageID, UserID
from modledger.repositories.case_repo import CaseRepository


def new_case(number, *, guild=GUILD_ID, target=42, action=CaseAction.WARN, **kwargs) -> NewCase:
    return NewCase(
        guild_id=GuildID(guild),
        target_id=UserID(target),
        target_tag=f"user{target}",
        moderator_id=UserID(7),
        moderator_tag="moderator",
        action=action,
        reason=f"reason {number}",
        case_number=number,
        **kwargs,
    )


async def insert(connections, *cases: NewCase) -> list[int]:
    repo = CaseRepository()
    ids = []
    async with connections.transaction() as conn:
        for case in cases:
            ids.append(await repo.create(conn, case))
    return ids


@pytest.mark.asyncio
async def test_create_and_find_by_number_round_trips_fields(connections):
    repo = CaseRepository()
    created_at = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)
    ref = AuditMessageRef(channel_id=ChannelID(55), message_id=MessageID(66))
    [case_id] = await insert(
        connections,
        new_case(1, action=CaseAction.MUTE, duration=600, ref_case=None, audit_message=ref, created_at=created_at),
    )

    async with connections.read() as conn:
        case = await repo.find_by_number(conn, GuildID(GUILD_ID), 1)

    assert case is not None
    assert case.id == case_id
    assert case.action is CaseAction.MUTE
    assert case.duration == 600
    assert case.created_at == created_at
    assert case.audit_message == ref
    assert case.target_id == UserID(42)
    assert case.reason == "reason 1"


@pytest.mark.asyncio
async def test_create_without_number_is_rejected(connections):
    with pytest.raises(StoreError):
        await insert(connections, new_case(None))


@pytest.mark.asyncio
async def test_duplicate_number_in_same_guild_raises_store_error(connections):
    await insert(connections, new_case(1))
    with pytest.raises(StoreError):
        await insert(connections, new_case(1))


@pytest.mark.asyncio
async def test_same_number_in_different_guilds_is_allowed(connections):
    ids = await insert(connections, new_case(1), new_case(1, guild=GUILD_ID + 1))
    assert len(ids) == 2


@pytest.mark.asyncio
async def test_find_after_is_ascending_and_excludes_bound(connections):
    repo = CaseRepository()
    await insert(connections, new_case(3), new_case(1), new_case(5), new_case(2))

    async with connections.read() as conn:
        later = await repo.find_after(conn, GuildID(GUILD_ID), 1)

    assert [c.case_number for c in later] == [2, 3, 5]


@pytest.mark.asyncio
async def test_update_number_collision_raises_store_error(connections):
    repo = CaseRepository()
    ids = await insert(connections, new_case(1), new_case(2))

    with pytest.raises(StoreError):
        async with connections.transaction() as conn:
            await repo.update_number(conn, ids[1], 1)

    async with connections.read() as conn:
        assert (await repo.find_by_id(conn, ids[1])).case_number == 2


@pytest.mark.asyncio
async def test_update_number_on_missing_row_raises_store_error(connections):
    repo = CaseRepository()
    with pytest.raises(StoreError):
        async with connections.transaction() as conn:
            await repo.update_number(conn, 999, 1)


@pytest.mark.asyncio
async def test_find_by_target_optionally_scoped_to_guild(connections):
    repo = CaseRepository()
    await insert(
        connections,
        new_case(1, target=42),
        new_case(2, target=43),
        new_case(1, target=42, guild=GUILD_ID + 1),
    )

    async with connections.read() as conn:
        everywhere = await repo.find_by_target(conn, UserID(42))
        here = await repo.find_by_target(conn, UserID(42), GuildID(GUILD_ID))

    assert len(everywhere) == 2
    assert [c.case_number for c in here] == [1]


@pytest.mark.asyncio
async def test_next_case_number(connections):
    repo = CaseRepository()
    async with connections.read() as conn:
        assert await repo.next_case_number(conn, GuildID(GUILD_ID)) == 1

    await insert(connections, new_case(1), new_case(4))
    async with connections.read() as conn:
        assert await repo.next_case_number(conn, GuildID(GUILD_ID)) == 5


@pytest.mark.asyncio
async def test_delete_removes_row(connections):
    repo = CaseRepository()
    [case_id] = await insert(connections, new_case(1))

    async with connections.transaction() as conn:
        await repo.delete(conn, case_id)

    async with connections.read() as conn:
        assert await repo.find_by_id(conn, case_id) is None


@pytest.mark.asyncio
async def test_find_timed_mutes_filters_ended_and_permanent(connections):
    repo = CaseRepository()
    now = datetime.now(timezone.utc)
    await insert(
        connections,
        new_case(1, action=CaseAction.MUTE, duration=3600, created_at=now),
        new_case(2, action=CaseAction.MUTE, duration=60, created_at=now - timedelta(days=2)),
        new_case(3, action=CaseAction.MUTE, duration=None, created_at=now),
        new_case(4, action=CaseAction.WARN, created_at=now),
    )

    async with connections.read() as conn:
        active = await repo.find_timed_mutes(conn, int(time.time()))

    assert [c.case_number for c in active] == [1]
