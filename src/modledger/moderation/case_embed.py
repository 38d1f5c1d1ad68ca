"""
Embeds for mod-log entries and history summaries.

The footer of a log entry is the only part the ledger edits later
(``Case {n}``); everything else is written once at creation.
"""

from __future__ import annotations

from typing import Optional

import discord

from modledger.datatypes.case_datatypes import Case, CaseAction, NewCase
from modledger.datatypes.discord_datatypes import ModerationTarget
from modledger.services.audit_log_sync import case_footer
from modledger.services.history import HistorySummary
from modledger.util.format_utils import format_duration, humanize_timestamp


def case_jump_url(case: Case) -> Optional[str]:
    """Link to the rendered log message of ``case``, if it has one."""
    if case.audit_message is None:
        return None
    ref = case.audit_message
    return f"https://discord.com/channels/{case.guild_id}/{ref.channel_id}/{ref.message_id}"


def build_case_embed(
    new_case: NewCase,
    target: ModerationTarget,
    moderator: Optional[ModerationTarget] = None,
    reference: Optional[Case] = None,
) -> discord.Embed:
    """
    Render the mod-log entry for a case.

    Args:
        new_case: The case being logged; ``case_number`` must be set.
        target: Member or user acted upon.
        moderator: Acting moderator, shown as the embed author.
        reference: Earlier case this one refers to, linked when it has a log message.
    """
    lines = [
        f"**Member:** {target.label()}",
        f"**Action:** {new_case.action.title}",
    ]
    if new_case.action is CaseAction.MUTE and new_case.duration:
        lines.append(f"**Length:** {format_duration(new_case.duration)}")
    lines.append(f"**Reason:** {new_case.reason}")

    if reference is not None:
        url = case_jump_url(reference)
        ref_text = f"[{reference.case_number}]({url})" if url else str(reference.case_number)
        lines.append(f"**Ref case:** {ref_text}")

    embed = discord.Embed(
        description="\n".join(lines),
        timestamp=new_case.created_at,
    )
    if moderator is not None:
        if moderator.avatar_url:
            embed.set_author(name=moderator.label(), icon_url=moderator.avatar_url)
        else:
            embed.set_author(name=moderator.label())
    if target.avatar_url:
        embed.set_thumbnail(url=target.avatar_url)
    embed.set_footer(text=case_footer(new_case.case_number))
    return embed


def build_history_embed(target: ModerationTarget, summary: HistorySummary) -> discord.Embed:
    """Render the ``/history`` summary for a member."""
    embed = discord.Embed(color=summary.color)
    if target.avatar_url:
        embed.set_author(name=target.label(), icon_url=target.avatar_url)
        embed.set_thumbnail(url=target.avatar_url)
    else:
        embed.set_author(name=target.label())
    embed.set_footer(text=summary.footer_text())
    return embed


def build_case_details_embed(case: Case) -> discord.Embed:
    """Plain view of a stored case for ``/case show``."""
    lines = [
        f"**Member:** {case.target_tag} ({case.target_id})",
        f"**Moderator:** {case.moderator_tag} ({case.moderator_id})",
        f"**Action:** {case.action.title}",
    ]
    if case.action is CaseAction.MUTE and case.duration:
        lines.append(f"**Length:** {format_duration(case.duration)}")
    lines.append(f"**Reason:** {case.reason}")
    lines.append(f"**Created:** {humanize_timestamp(case.created_at)}")
    if case.ref_case is not None:
        lines.append(f"**Ref case:** {case.ref_case}")
    url = case_jump_url(case)
    if url:
        lines.append(f"[Jump to log entry]({url})")

    embed = discord.Embed(description="\n".join(lines), timestamp=case.created_at)
    embed.set_footer(text=case_footer(case.case_number))
    return embed
