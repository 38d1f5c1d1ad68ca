"""
Per-member moderation history: counts per display bucket and a severity colour.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from modledger.database.db_connection import ConnectionManager, db_connection
from modledger.datatypes.case_datatypes import ActionBucket, Case
from modledger.datatypes.discord_datatypes import GuildID, UserID
from modledger.repositories.case_repo import CaseRepository, case_repo

# Buckets shown in a history summary, in display order. Unbans are not counted.
HISTORY_BUCKETS: List[ActionBucket] = [
    ActionBucket.WARN,
    ActionBucket.RESTRICTION,
    ActionBucket.MUTE,
    ActionBucket.KICK,
    ActionBucket.BAN,
]

_NOUNS: Dict[ActionBucket, str] = {
    ActionBucket.WARN: "warning",
    ActionBucket.RESTRICTION: "restriction",
    ActionBucket.MUTE: "mute",
    ActionBucket.KICK: "kick",
    ActionBucket.BAN: "ban",
}


def pluralize(count: int, noun: str) -> str:
    """``1 kick``, ``0 kicks``, ``2 kicks``."""
    return f"{count} {noun}{'' if count == 1 else 's'}"


@dataclass(slots=True)
class HistorySummary:
    counts: Dict[ActionBucket, int] = field(default_factory=lambda: {b: 0 for b in HISTORY_BUCKETS})
    color_index: int = 0
    color: int = 0

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def footer_text(self) -> str:
        parts = [pluralize(self.counts[b], _NOUNS[b]) for b in HISTORY_BUCKETS]
        return f"{', '.join(parts[:-1])}, and {parts[-1]}."


def summarize_cases(cases: Iterable[Case], colors: List[int]) -> HistorySummary:
    """
    Fold cases into a :class:`HistorySummary`. Order of ``cases`` does not matter.

    The colour index is ``min(total, len(colors) - 1)``.
    """
    if not colors:
        raise ValueError("at least one colour tier is required")

    summary = HistorySummary()
    for case in cases:
        bucket = case.action.bucket
        if bucket in summary.counts:
            summary.counts[bucket] += 1

    summary.color_index = min(summary.total, len(colors) - 1)
    summary.color = colors[summary.color_index]
    return summary


class HistoryAggregator:
    """Read-only projection of the case store for ``/history``."""

    def __init__(
        self,
        colors: List[int],
        repo: CaseRepository = case_repo,
        connection_manager: ConnectionManager = db_connection,
    ):
        self.colors = colors
        self._repo = repo
        self._connections = connection_manager

    async def summarize(self, target_id: UserID, guild_id: Optional[GuildID] = None) -> HistorySummary:
        async with self._connections.read() as conn:
            cases = await self._repo.find_by_target(conn, target_id, guild_id)
        return summarize_cases(cases, self.colors)
