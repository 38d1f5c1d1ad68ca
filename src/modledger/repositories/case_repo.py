"""
Repository for the ``cases`` table.

Timestamps are stored as INTEGER unix seconds. Every method takes an open
connection; callers run writes inside ``db_connection.transaction()`` so a
renumbering step commits on its own and a failure leaves earlier steps in
place.

SQLite errors are re-raised as :class:`StoreError`.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

import aiosqlite

from modledger.datatypes.case_datatypes import AuditMessageRef, Case, CaseAction, NewCase
from modledger.datatypes.case_errors import StoreError
from modledger.datatypes.discord_datatypes import ChannelID, GuildID, MessageID, UserID
from modledger.util.logger import get_logger

logger = get_logger("case_repo")

_COLUMNS = (
    "id, guild_id, case_id, log_channel_id, log_message_id, target_id, target_tag, "
    "mod_id, mod_tag, action, reason, duration, ref_case_id, created_at"
)


def _row_to_case(row) -> Case:
    audit_message = None
    if row["log_channel_id"] is not None and row["log_message_id"] is not None:
        audit_message = AuditMessageRef(
            channel_id=ChannelID(row["log_channel_id"]),
            message_id=MessageID(row["log_message_id"]),
        )
    return Case(
        id=row["id"],
        guild_id=GuildID(row["guild_id"]),
        case_number=row["case_id"],
        target_id=UserID(row["target_id"]),
        target_tag=row["target_tag"],
        moderator_id=UserID(row["mod_id"]),
        moderator_tag=row["mod_tag"],
        action=CaseAction(row["action"]),
        reason=row["reason"],
        created_at=datetime.fromtimestamp(row["created_at"], tz=timezone.utc),
        audit_message=audit_message,
        duration=row["duration"],
        ref_case=row["ref_case_id"],
    )


class CaseRepository:
    """Low-level CRUD for the ``cases`` table."""

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(self, conn: aiosqlite.Connection, new_case: NewCase) -> int:
        """
        Insert a case and return its store id.

        ``new_case.case_number`` must already be set.

        Raises:
            StoreError: The number is already taken in the guild, or the write failed.
        """
        if new_case.case_number is None:
            raise StoreError("Cannot insert a case without a case number")

        ref = new_case.audit_message
        try:
            cursor = await conn.execute(
                """
                INSERT INTO cases (guild_id, case_id, log_channel_id, log_message_id, target_id, target_tag,
                                   mod_id, mod_tag, action, reason, duration, ref_case_id, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    int(new_case.guild_id),
                    new_case.case_number,
                    int(ref.channel_id) if ref else None,
                    int(ref.message_id) if ref else None,
                    int(new_case.target_id),
                    new_case.target_tag,
                    int(new_case.moderator_id),
                    new_case.moderator_tag,
                    int(new_case.action),
                    new_case.reason,
                    new_case.duration,
                    new_case.ref_case,
                    int(new_case.created_at.timestamp()),
                ),
            )
        except aiosqlite.IntegrityError as exc:
            raise StoreError(
                f"Case #{new_case.case_number} already exists in guild {new_case.guild_id}"
            ) from exc
        except aiosqlite.Error as exc:
            raise StoreError(f"Failed to insert case #{new_case.case_number}: {exc}") from exc

        return cursor.lastrowid

    async def update_number(self, conn: aiosqlite.Connection, case_id: int, new_number: int) -> None:
        """
        Point update of a case's visible number.

        Raises:
            StoreError: The new number collides with another case, or the row is gone.
        """
        try:
            cursor = await conn.execute(
                "UPDATE cases SET case_id = ? WHERE id = ?",
                (new_number, case_id),
            )
        except aiosqlite.IntegrityError as exc:
            raise StoreError(f"Case number {new_number} is already in use") from exc
        except aiosqlite.Error as exc:
            raise StoreError(f"Failed to renumber case id {case_id}: {exc}") from exc

        if cursor.rowcount == 0:
            raise StoreError(f"Case id {case_id} no longer exists")

    async def delete(self, conn: aiosqlite.Connection, case_id: int) -> None:
        """Remove a case row by store id."""
        try:
            await conn.execute("DELETE FROM cases WHERE id = ?", (case_id,))
        except aiosqlite.Error as exc:
            raise StoreError(f"Failed to delete case id {case_id}: {exc}") from exc

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _fetch(self, conn: aiosqlite.Connection, where: str, params: tuple) -> List[Case]:
        try:
            async with conn.execute(f"SELECT {_COLUMNS} FROM cases WHERE {where}", params) as cursor:
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise StoreError(f"Case query failed: {exc}") from exc
        return [_row_to_case(row) for row in rows]

    async def find_by_number(
        self, conn: aiosqlite.Connection, guild_id: GuildID, number: int
    ) -> Optional[Case]:
        """Return the case with the given number in the guild, or None."""
        cases = await self._fetch(conn, "guild_id = ? AND case_id = ?", (int(guild_id), number))
        return cases[0] if cases else None

    async def find_by_id(self, conn: aiosqlite.Connection, case_id: int) -> Optional[Case]:
        """Return the case with the given store id, or None if it was deleted."""
        cases = await self._fetch(conn, "id = ?", (case_id,))
        return cases[0] if cases else None

    async def find_after(self, conn: aiosqlite.Connection, guild_id: GuildID, number: int) -> List[Case]:
        """Return every case numbered above ``number``, ascending. Ties fall back to creation order."""
        return await self._fetch(
            conn,
            "guild_id = ? AND case_id > ? ORDER BY case_id ASC, id ASC",
            (int(guild_id), number),
        )

    async def find_by_target(
        self, conn: aiosqlite.Connection, target_id: UserID, guild_id: Optional[GuildID] = None
    ) -> List[Case]:
        """Return the cases against a user, optionally limited to one guild. Order is unspecified."""
        if guild_id is None:
            return await self._fetch(conn, "target_id = ?", (int(target_id),))
        return await self._fetch(conn, "target_id = ? AND guild_id = ?", (int(target_id), int(guild_id)))

    async def find_timed_mutes(self, conn: aiosqlite.Connection, ending_after: int) -> List[Case]:
        """Return timed mute cases whose end (unix seconds) is later than ``ending_after``."""
        return await self._fetch(
            conn,
            "action = ? AND duration IS NOT NULL AND duration > 0 AND created_at + duration > ? "
            "ORDER BY created_at + duration ASC",
            (int(CaseAction.MUTE), ending_after),
        )

    async def next_case_number(self, conn: aiosqlite.Connection, guild_id: GuildID) -> int:
        """Return one past the highest case number in the guild (1 for an empty guild)."""
        try:
            async with conn.execute(
                "SELECT COALESCE(MAX(case_id), 0) FROM cases WHERE guild_id = ?",
                (int(guild_id),),
            ) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise StoreError(f"Failed to read latest case number: {exc}") from exc
        return int(row[0]) + 1


case_repo = CaseRepository()
