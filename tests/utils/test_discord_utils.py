from types import SimpleNamespace
from unittest.mock import MagicMock

import discord

from modledger.util.discord_utils import has_permissions, moderation_block_reason


def member(user_id, administrator=False, **permissions):
    m = MagicMock(spec=discord.Member)
    m.id = user_id
    m.guild_permissions = SimpleNamespace(administrator=administrator, **permissions)
    return m


def test_has_permissions_requires_member_with_all_flags():
    ctx = SimpleNamespace(author=member(1, manage_messages=True, manage_roles=False))

    assert has_permissions(ctx, manage_messages=True) is True
    assert has_permissions(ctx, manage_messages=True, manage_roles=True) is False
    assert has_permissions(SimpleNamespace(author=SimpleNamespace(id=1)), manage_messages=True) is False


def test_moderation_block_reason():
    ctx = SimpleNamespace(author=member(1))

    assert moderation_block_reason(ctx, member(2)) is None
    assert moderation_block_reason(ctx, SimpleNamespace(id=2)) == "The specified user is not a member of this server."
    assert moderation_block_reason(ctx, member(1)) == "You cannot perform moderation actions on yourself."
    assert moderation_block_reason(ctx, member(3, administrator=True)) == (
        "You cannot perform moderation actions against administrators."
    )
