"""
Repository for the ``guild_settings`` table.
"""

from __future__ import annotations

from typing import Dict

import aiosqlite

from modledger.datatypes.discord_datatypes import GuildID
from modledger.datatypes.guild_settings import GuildSettings
from modledger.util.logger import get_logger

logger = get_logger("guild_settings_repo")

_SETTING_COLUMNS = ("mod_log_channel_id", "mute_role_id", "embed_role_id", "emoji_role_id", "reaction_role_id")


class GuildSettingsRepository:
    """CRUD for the guild_settings table."""

    async def get_all(self, conn: aiosqlite.Connection) -> Dict[GuildID, GuildSettings]:
        """Load every stored guild."""
        async with conn.execute(
            f"SELECT guild_id, {', '.join(_SETTING_COLUMNS)} FROM guild_settings"
        ) as cursor:
            rows = await cursor.fetchall()

        result: Dict[GuildID, GuildSettings] = {}
        for row in rows:
            guild_id = GuildID(row["guild_id"])
            result[guild_id] = GuildSettings(
                guild_id=guild_id,
                **{column: row[column] for column in _SETTING_COLUMNS},
            )
        return result

    async def upsert(self, conn: aiosqlite.Connection, settings: GuildSettings) -> None:
        """Insert or replace the row for ``settings.guild_id``."""
        assignments = ", ".join(f"{column} = excluded.{column}" for column in _SETTING_COLUMNS)
        await conn.execute(
            f"""
            INSERT INTO guild_settings (guild_id, {', '.join(_SETTING_COLUMNS)})
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(guild_id) DO UPDATE SET
                {assignments},
                updated_at = CURRENT_TIMESTAMP
            """,
            (int(settings.guild_id), *(getattr(settings, column) for column in _SETTING_COLUMNS)),
        )

    async def delete(self, conn: aiosqlite.Connection, guild_id: GuildID) -> None:
        """Remove the settings row of a guild."""
        await conn.execute("DELETE FROM guild_settings WHERE guild_id = ?", (int(guild_id),))
