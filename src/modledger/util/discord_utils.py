"""
Small helpers shared by the cogs.
"""

import discord


def has_permissions(application_context: discord.ApplicationContext, **required_permissions) -> bool:
    """
    Check if the command issuer has all specified permissions in the guild.

    Args:
        application_context (discord.ApplicationContext): The command context.
        **required_permissions: Permission flags to check.

    Returns:
        bool: True if all permissions are present, False otherwise.
    """
    if not isinstance(application_context.author, discord.Member):
        return False
    return all(
        getattr(application_context.author.guild_permissions, permission_name, False)
        for permission_name in required_permissions
    )


def moderation_block_reason(application_context: discord.ApplicationContext, target: discord.abc.User) -> str | None:
    """
    Return why ``target`` cannot be moderated by the invoker, or None if it can.

    Members only, no self-moderation, administrators are protected.
    """
    if not isinstance(target, discord.Member):
        return "The specified user is not a member of this server."
    if target.id == application_context.author.id:
        return "You cannot perform moderation actions on yourself."
    if target.guild_permissions.administrator:
        return "You cannot perform moderation actions against administrators."
    return None
