"""
Result types returned by best-effort Discord operations and by case deletion.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional

from modledger.datatypes.case_datatypes import Case
from modledger.datatypes.case_errors import ExternalSyncError


@dataclass(slots=True)
class SyncResult:
    """
    Outcome of a call into Discord that the ledger treats as best effort.

    Attributes:
        ok: True when the call completed.
        error: The failure, when ``ok`` is False.
        value: Optional payload, e.g. the posted message.
    """

    ok: bool
    error: Optional[ExternalSyncError] = None
    value: Any = None

    @classmethod
    def success(cls, value: Any = None) -> "SyncResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, operation: str, cause: BaseException | str) -> "SyncResult":
        return cls(ok=False, error=ExternalSyncError(operation, cause))

    @classmethod
    def skipped(cls) -> "SyncResult":
        """Nothing to do (no channel configured, no message recorded)."""
        return cls(ok=True)


@dataclass(slots=True)
class DeletionResult:
    """
    Summary of a completed case deletion.

    ``warnings`` holds the user-visible failures reported by role
    reconciliation; the deletion itself succeeded regardless.
    """

    case: Case
    renumbered: int = 0
    audit_removed: bool = False
    warnings: List[str] = field(default_factory=list)
