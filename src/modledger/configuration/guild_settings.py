"""
Per-guild settings: in-memory cache backed by the ``guild_settings`` table.

The ledger only ever reads settings through :meth:`GuildSettingsManager.get_setting`.
Writes come from the settings cog and are persisted immediately inside a
write transaction, one guild at a time.
"""

import asyncio
from typing import Any, Dict, Optional

from modledger.database.db_connection import ConnectionManager, db_connection
from modledger.datatypes.discord_datatypes import GuildID
from modledger.datatypes.guild_settings import GuildSettings, SettingKey
from modledger.repositories.guild_settings_repo import GuildSettingsRepository
from modledger.util.logger import get_logger

logger = get_logger("guild_settings_manager")


class GuildSettingsManager:
    """
    Cache of :class:`GuildSettings` keyed by guild.

    Call :meth:`load` once after the database is open. Reads never touch the
    database; writes update the cache and then persist under a per-guild lock.
    """

    def __init__(self, connection_manager: ConnectionManager = db_connection):
        self.guilds: Dict[GuildID, GuildSettings] = {}
        self._connections = connection_manager
        self._repo = GuildSettingsRepository()
        self._per_guild_locks: Dict[GuildID, asyncio.Lock] = {}

    def _lock_for(self, guild_id: GuildID) -> asyncio.Lock:
        if guild_id not in self._per_guild_locks:
            self._per_guild_locks[guild_id] = asyncio.Lock()
        return self._per_guild_locks[guild_id]

    async def load(self) -> int:
        """Load every stored guild into the cache. Returns the number of guilds loaded."""
        async with self._connections.read() as conn:
            self.guilds = await self._repo.get_all(conn)
        logger.info("[GUILD SETTINGS MANAGER] Loaded settings for %d guild(s)", len(self.guilds))
        return len(self.guilds)

    def get(self, guild_id) -> GuildSettings:
        """Return the cached settings, creating empty defaults for unknown guilds."""
        guild_id = GuildID(guild_id)
        settings = self.guilds.get(guild_id)
        if settings is None:
            settings = GuildSettings(guild_id=guild_id)
            self.guilds[guild_id] = settings
        return settings

    def get_setting(self, guild_id, key: SettingKey, default: Any = None) -> Any:
        """
        Look up one setting.

        Args:
            guild_id: Guild to look up.
            key: Which setting.
            default: Returned when the guild has no value for ``key``.
        """
        settings = self.guilds.get(GuildID(guild_id))
        if settings is None:
            return default
        value = getattr(settings, key.value)
        return default if value is None else value

    async def set_setting(self, guild_id, key: SettingKey, value: Optional[int]) -> bool:
        """
        Update one setting and persist the guild.

        Returns:
            True if persisted, False if the write failed (the cache keeps the old value).
        """
        guild_id = GuildID(guild_id)
        settings = self.get(guild_id)
        previous = getattr(settings, key.value)
        setattr(settings, key.value, int(value) if value is not None else None)
        if not await self.persist(guild_id):
            setattr(settings, key.value, previous)
            return False
        logger.debug("[GUILD SETTINGS MANAGER] Set %s=%s for guild %s", key.value, value, guild_id)
        return True

    async def persist(self, guild_id: GuildID) -> bool:
        settings = self.get(guild_id)
        async with self._lock_for(guild_id):
            try:
                async with self._connections.transaction() as conn:
                    await self._repo.upsert(conn, settings)
            except Exception as exc:
                logger.error("[GUILD SETTINGS MANAGER] Failed to persist guild %s: %s", guild_id, exc)
                return False
        return True

    async def delete(self, guild_id) -> bool:
        """Forget a guild in memory and on disk."""
        guild_id = GuildID(guild_id)
        self.guilds.pop(guild_id, None)
        async with self._lock_for(guild_id):
            try:
                async with self._connections.transaction() as conn:
                    await self._repo.delete(conn, guild_id)
            except Exception as exc:
                logger.error("[GUILD SETTINGS MANAGER] Failed to delete guild %s: %s", guild_id, exc)
                return False
        return True


guild_settings_manager = GuildSettingsManager()
