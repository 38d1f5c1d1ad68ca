"""Exceptions raised by the case ledger."""

from __future__ import annotations


class CaseError(Exception):
    """Base class for case ledger failures."""


class CaseNotFoundError(CaseError):
    """The referenced case number does not exist in the guild."""

    def __init__(self, guild_id, case_number: int) -> None:
        super().__init__(f"Case #{case_number} does not exist.")
        self.guild_id = guild_id
        self.case_number = case_number


class StoreError(CaseError):
    """The case store rejected a write or could not be reached."""


class ExternalSyncError(CaseError):
    """
    A best-effort Discord call failed.

    Never raised by the ledger itself; instances are carried inside
    :class:`~modledger.datatypes.result_datatypes.SyncResult` so callers can
    log or report them.
    """

    def __init__(self, operation: str, cause: BaseException | str) -> None:
        super().__init__(f"{operation} failed: {cause}")
        self.operation = operation
        self.cause = cause
