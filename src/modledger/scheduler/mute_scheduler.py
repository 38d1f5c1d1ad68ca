"""
Lifts timed mutes once their duration has elapsed.

Jobs are keyed by the case's store id, which survives renumbering. When a job
fires the case is read again: if it was deleted in the meantime there is
nothing left to undo, otherwise the mute role is removed through the
:class:`RoleReconciler` so the resulting member update is not logged as a
manual role change.
"""
import asyncio
import heapq
import time
from dataclasses import dataclass
from typing import Dict, Optional

import discord

from modledger.database.db_connection import ConnectionManager, db_connection
from modledger.datatypes.case_datatypes import Case
from modledger.datatypes.discord_datatypes import GuildID
from modledger.repositories.case_repo import CaseRepository, case_repo
from modledger.services.role_reconciler import RoleReconciler
from modledger.util.logger import get_logger

logger = get_logger("mute_scheduler")


@dataclass
class MuteExpiry:
    """
    A pending mute expiry.

    Attributes:
        guild_id (GuildID): Guild the mute was applied in.
        case_id (int): Store id of the mute case.
        ends_at (float): Unix time at which the mute ends.
    """
    guild_id: GuildID
    case_id: int
    ends_at: float


class MuteScheduler:
    """
    Central scheduler for timed mutes.

    Attributes:
        heap (list): Min-heap of (run_at, job_id, payload) tuples, run_at in loop time.
        pending_keys (Dict): Maps a case store id to its job id.
        cancelled_ids (set): Job ids to skip when they reach the top of the heap.
        counter (int): Monotonically increasing job id counter.
        runner_task (asyncio.Task | None): Background task processing the schedule.
        condition (asyncio.Condition): Coordination primitive for task wakeup.
    """

    def __init__(
        self,
        bot: discord.Bot,
        reconciler: RoleReconciler,
        repo: CaseRepository = case_repo,
        connection_manager: ConnectionManager = db_connection,
    ) -> None:
        self.bot = bot
        self.reconciler = reconciler
        self._repo = repo
        self._connections = connection_manager
        self.heap: list[tuple[float, int, MuteExpiry]] = []
        self.pending_keys: Dict[int, int] = {}
        self.cancelled_ids: set[int] = set()
        self.counter: int = 0
        self.runner_task: asyncio.Task[None] | None = None
        self.condition: asyncio.Condition = asyncio.Condition()

    def ensure_runner(self) -> None:
        """Create the background runner task if it's not already active."""
        loop = asyncio.get_running_loop()
        if self.runner_task is None or self.runner_task.done():
            self.runner_task = loop.create_task(self.run(), name="modledger-mute-scheduler")

    async def schedule(self, case: Case) -> bool:
        """
        Schedule the end of a timed mute, replacing any earlier job for the same case.

        Mutes that have already ended are lifted right away. Permanent mutes are
        not scheduled.

        Returns:
            bool: True if a job was scheduled or run, False for a permanent mute.
        """
        expires_at = case.expires_at
        if expires_at is None:
            return False

        payload = MuteExpiry(guild_id=GuildID(case.guild_id), case_id=case.id, ends_at=expires_at.timestamp())
        delay = payload.ends_at - time.time()
        if delay <= 0:
            await self.execute(payload)
            return True

        loop = asyncio.get_running_loop()
        run_at = loop.time() + delay

        async with self.condition:
            self.ensure_runner()
            if case.id in self.pending_keys:
                self.cancelled_ids.add(self.pending_keys[case.id])

            self.counter += 1
            job_id = self.counter
            heapq.heappush(self.heap, (run_at, job_id, payload))
            self.pending_keys[case.id] = job_id
            self.condition.notify_all()

        logger.debug("[MUTE SCHEDULER] Case id %d ends in %.0fs", case.id, delay)
        return True

    async def cancel(self, case_id: int) -> bool:
        """
        Cancel the pending expiry of a case.

        Returns:
            bool: True if a job was found and cancelled.
        """
        async with self.condition:
            job_id = self.pending_keys.pop(case_id, None)
            if job_id is None:
                return False

            self.cancelled_ids.add(job_id)
            self.condition.notify_all()
            return True

    async def restore(self, catch_up_seconds: int) -> int:
        """
        Reschedule timed mutes from the store after a restart.

        Mutes that ended less than ``catch_up_seconds`` ago are lifted
        immediately; older ones are assumed to have been handled already.

        Returns:
            int: Number of mutes scheduled.
        """
        ending_after = int(time.time()) - max(0, catch_up_seconds)
        async with self._connections.read() as conn:
            cases = await self._repo.find_timed_mutes(conn, ending_after)

        restored = 0
        for case in cases:
            if await self.schedule(case):
                restored += 1
        if restored:
            logger.info("[MUTE SCHEDULER] Restored %d timed mute(s)", restored)
        return restored

    async def shutdown(self) -> None:
        """Stop the scheduler and drop all pending jobs. Safe to call multiple times."""
        async with self.condition:
            if self.runner_task:
                self.runner_task.cancel()
            self.heap.clear()
            self.pending_keys.clear()
            self.cancelled_ids.clear()
            self.condition.notify_all()

        if self.runner_task:
            try:
                await self.runner_task
            except asyncio.CancelledError:
                pass
            finally:
                self.runner_task = None

    async def run(self) -> None:
        """Background loop that runs jobs when their time comes."""
        loop = asyncio.get_running_loop()
        while True:
            async with self.condition:
                while self.heap and self.heap[0][1] in self.cancelled_ids:
                    _, job_id, _ = heapq.heappop(self.heap)
                    self.cancelled_ids.discard(job_id)

                if not self.heap:
                    await self.condition.wait()
                    continue

                run_at, _, _ = self.heap[0]
                delay = run_at - loop.time()

                if delay > 0:
                    try:
                        await asyncio.wait_for(self.condition.wait(), timeout=delay)
                    except asyncio.TimeoutError:
                        pass
                    continue

                _, job_id, payload = heapq.heappop(self.heap)
                if self.pending_keys.get(payload.case_id) == job_id:
                    del self.pending_keys[payload.case_id]

            try:
                await self.execute(payload)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.error("[MUTE SCHEDULER] Failed to lift mute for case id %d: %s", payload.case_id, exc)

    async def execute(self, payload: MuteExpiry) -> None:
        """
        Lift one mute.

        The guild must be in the bot's cache; a guild the bot has left is skipped.
        """
        guild: Optional[discord.Guild] = self.bot.get_guild(payload.guild_id.to_int())
        if guild is None:
            logger.debug("[MUTE SCHEDULER] Guild %s unavailable, skipping case id %d", payload.guild_id, payload.case_id)
            return

        async with self._connections.read() as conn:
            case = await self._repo.find_by_id(conn, payload.case_id)
        if case is None:
            logger.debug("[MUTE SCHEDULER] Case id %d was deleted before its mute ended", payload.case_id)
            return

        error = await self.reconciler.expire_mute(guild, case)
        if error:
            logger.warning("[MUTE SCHEDULER] Case #%d: %s", case.case_number, error)
        else:
            logger.info("[MUTE SCHEDULER] Mute from case #%d ended in guild %s", case.case_number, guild.id)
