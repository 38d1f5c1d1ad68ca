"""
Case cog: slash commands that create, inspect and delete moderation cases.

Commands
- /case delete <number> [keep_roles]: Delete a case and renumber the later ones.
- /case show <number>: Show a stored case.
- /case renumber: Close any gaps left by an interrupted deletion.
- /history <member>: Count a member's past cases.
- /warn <member> [reason] [ref]: Record a warning, optionally linking an earlier case.
- /mute <member> <duration> [reason] [ref]: Apply the mute role and record the case.

Every failure is reported to the invoker ephemerally and names the step that
failed. Role problems met while deleting a case do not stop the deletion;
they are appended to the confirmation.

Quick usage example
    from modledger.bot.cogs.case_cmds import CaseCog
    bot.add_cog(CaseCog(bot, ledger))
"""

import discord
from discord import Option
from discord.ext import commands

from modledger.bot.ledger import Ledger
from modledger.datatypes.case_datatypes import Case, CaseAction, NewCase
from modledger.datatypes.case_errors import CaseNotFoundError, StoreError
from modledger.datatypes.discord_datatypes import GuildID, ModerationTarget, UserID
from modledger.datatypes.guild_settings import RoleKind, SettingKey
from modledger.moderation.case_embed import build_case_details_embed, build_history_embed
from modledger.util.discord_utils import has_permissions, moderation_block_reason
from modledger.util.format_utils import DURATION_CHOICES, PERMANENT_DURATION, format_duration, parse_duration_label
from modledger.util.logger import get_logger

logger = get_logger("case_cog")

NO_PERMISSION = "You do not have permission to use this command."
GUILD_ONLY = "This command can only be used in a server."


def deletion_message(number: int, renumbered: int, warnings: list[str]) -> str:
    """Confirmation text for ``/case delete``."""
    message = f"Successfully deleted case #{number}"
    if renumbered:
        message += f" and renumbered {renumbered} later case{'s' if renumbered != 1 else ''}"
    if warnings:
        message += ", however " + "; ".join(warnings)
    return message + "."


class CaseCog(commands.Cog):
    """Cog containing the case ledger commands.

    The ledger passed in carries the services shared with the role listener
    and the mute scheduler.
    """

    case = discord.SlashCommandGroup("case", "Inspect and delete moderation cases.")

    def __init__(self, discord_bot_instance, ledger: Ledger):
        self.discord_bot_instance = discord_bot_instance
        self.ledger = ledger
        logger.info("Case cog loaded")

    async def _guard(self, ctx: discord.ApplicationContext, **permissions) -> bool:
        """Defer, then check guild context and permissions. Sends the refusal itself."""
        await ctx.defer(ephemeral=True)
        if ctx.guild is None:
            await ctx.send_followup(GUILD_ONLY)
            return False
        if not has_permissions(ctx, **permissions):
            await ctx.send_followup(NO_PERMISSION)
            return False
        return True

    async def _record(
        self,
        ctx: discord.ApplicationContext,
        target: discord.Member,
        action: CaseAction,
        reason: str,
        duration: int | None = None,
        ref: int | None = None,
    ) -> Case:
        moderator = ModerationTarget.from_discord(ctx.author)
        subject = ModerationTarget.from_discord(target)
        new_case = NewCase(
            guild_id=GuildID(ctx.guild.id),
            target_id=subject.user_id,
            target_tag=subject.display_name,
            moderator_id=moderator.user_id,
            moderator_tag=moderator.display_name,
            action=action,
            reason=reason,
            duration=duration,
            ref_case=ref,
        )
        return await self.ledger.cases.create(new_case, subject, moderator)

    # ------------------------------------------------------------------
    # /case
    # ------------------------------------------------------------------

    @case.command(name="delete", description="Delete a case and renumber the cases after it.")
    async def case_delete(
        self,
        ctx: discord.ApplicationContext,
        number: Option(int, "Case number to delete.", min_value=1, required=True),  # type: ignore
        keep_roles: Option(bool, "Leave the member's mute or restriction role in place.", default=False),  # type: ignore
    ) -> None:
        """Delete a case, take back its role unless asked not to, and close the gap."""
        if not await self._guard(ctx, manage_messages=True):
            return

        try:
            result = await self.ledger.cases.delete(ctx.guild, number, str(ctx.author), keep_roles=keep_roles)
        except CaseNotFoundError as exc:
            await ctx.send_followup(str(exc))
            return
        except StoreError as exc:
            logger.error("[CASE COG] Deleting case #%d in guild %s failed: %s", number, ctx.guild.id, exc)
            await ctx.send_followup(
                f"Could not delete case #{number}: the case store failed ({exc}). "
                "Cases renumbered before the failure keep their new numbers; run `/case renumber` to finish."
            )
            return

        if self.ledger.mute_scheduler is not None and result.case.action is CaseAction.MUTE:
            await self.ledger.mute_scheduler.cancel(result.case.id)

        await ctx.send_followup(deletion_message(number, result.renumbered, result.warnings))

    @case.command(name="show", description="Show a stored case.")
    async def case_show(
        self,
        ctx: discord.ApplicationContext,
        number: Option(int, "Case number to show.", min_value=1, required=True),  # type: ignore
    ) -> None:
        if not await self._guard(ctx, manage_messages=True):
            return

        try:
            case = await self.ledger.cases.get(ctx.guild.id, number)
        except CaseNotFoundError as exc:
            await ctx.send_followup(str(exc))
            return
        except StoreError as exc:
            logger.error("[CASE COG] Reading case #%d failed: %s", number, exc)
            await ctx.send_followup(f"Could not read case #{number}: {exc}")
            return

        await ctx.send_followup(embed=build_case_details_embed(case))

    @case.command(name="renumber", description="Close gaps in this server's case numbers.")
    async def case_renumber(self, ctx: discord.ApplicationContext) -> None:
        if not await self._guard(ctx, manage_guild=True):
            return

        try:
            changed = await self.ledger.cases.renumber(ctx.guild.id)
        except StoreError as exc:
            logger.error("[CASE COG] Renumbering guild %s failed: %s", ctx.guild.id, exc)
            await ctx.send_followup(f"Renumbering stopped early: {exc}")
            return

        if changed:
            await ctx.send_followup(f"Renumbered {changed} case{'s' if changed != 1 else ''}.")
        else:
            await ctx.send_followup("Case numbers are already consistent.")

    # ------------------------------------------------------------------
    # /history
    # ------------------------------------------------------------------

    @commands.slash_command(name="history", description="Show how many cases a member has.")
    async def history(
        self,
        ctx: discord.ApplicationContext,
        member: Option(discord.User, "Member to look up.", required=True),  # type: ignore
    ) -> None:
        if not await self._guard(ctx, manage_messages=True):
            return

        try:
            summary = await self.ledger.history.summarize(UserID(member.id), GuildID(ctx.guild.id))
        except StoreError as exc:
            logger.error("[CASE COG] History lookup for %s failed: %s", member.id, exc)
            await ctx.send_followup(f"Could not load the history of {member}: {exc}")
            return

        await ctx.send_followup(embed=build_history_embed(ModerationTarget.from_discord(member), summary))

    # ------------------------------------------------------------------
    # /warn and /mute
    # ------------------------------------------------------------------

    @commands.slash_command(name="warn", description="Warns a user for a specified reason.")
    async def warn(
        self,
        ctx: discord.ApplicationContext,
        member: Option(discord.Member, "The user to warn.", required=True),  # type: ignore
        reason: Option(str, "Reason for the warning.", default="No reason provided."),  # type: ignore
        ref: Option(int, "Case this one refers to.", min_value=1, required=False, default=None),  # type: ignore
    ) -> None:
        if not await self._guard(ctx, manage_messages=True):
            return
        if blocked := moderation_block_reason(ctx, member):
            await ctx.send_followup(blocked)
            return

        try:
            case = await self._record(ctx, member, CaseAction.WARN, reason, ref=ref)
        except StoreError as exc:
            logger.error("[CASE COG] Recording warning for %s failed: %s", member.id, exc)
            await ctx.send_followup(f"Could not record the warning: {exc}")
            return

        await ctx.send_followup(f"Warned {member} (case #{case.case_number}).")

    @commands.slash_command(name="mute", description="Mute a user with the configured mute role.")
    async def mute(
        self,
        ctx: discord.ApplicationContext,
        member: Option(discord.Member, "The user to mute.", required=True),  # type: ignore
        duration: Option(str, "How long the mute lasts.", choices=DURATION_CHOICES, default=PERMANENT_DURATION),  # type: ignore
        reason: Option(str, "Reason for the mute.", default="No reason provided."),  # type: ignore
        ref: Option(int, "Case this one refers to.", min_value=1, required=False, default=None),  # type: ignore
    ) -> None:
        """Add the mute role, record the case and schedule the unmute for timed mutes."""
        if not await self._guard(ctx, manage_roles=True):
            return
        if blocked := moderation_block_reason(ctx, member):
            await ctx.send_followup(blocked)
            return

        role_id = self.ledger.settings.get_setting(ctx.guild.id, SettingKey.MUTE_ROLE)
        if role_id is None:
            await ctx.send_followup("No mute role is configured. Set one with `/muterole set` first.")
            return

        seconds = parse_duration_label(duration)
        in_flight = self.ledger.in_flight
        in_flight.add(ctx.guild.id, member.id, RoleKind.MUTE)
        try:
            await member.add_roles(discord.Object(id=role_id), reason=f"Muted by {ctx.author} | {reason}")
        except (discord.HTTPException, discord.InvalidData) as exc:
            in_flight.discard(ctx.guild.id, member.id, RoleKind.MUTE)
            logger.warning("[CASE COG] Adding mute role to %s failed: %s", member.id, exc)
            await ctx.send_followup(f"Could not add the mute role: `{exc}`")
            return

        try:
            case = await self._record(ctx, member, CaseAction.MUTE, reason, duration=seconds or None, ref=ref)
        except StoreError as exc:
            logger.error("[CASE COG] Recording mute for %s failed: %s", member.id, exc)
            await ctx.send_followup(f"{member} was muted but the case could not be recorded: {exc}")
            return

        if self.ledger.mute_scheduler is not None and case.duration:
            await self.ledger.mute_scheduler.schedule(case)

        length = f"for {format_duration(case.duration)}" if case.duration else "permanently"
        await ctx.send_followup(f"Muted {member} {length} (case #{case.case_number}).")


def setup(discord_bot_instance, ledger: Ledger):
    """Register the CaseCog with the bot."""
    discord_bot_instance.add_cog(CaseCog(discord_bot_instance, ledger))
