"""
Case ledger services.

- **case_service.py**: Case creation, deletion and renumbering.
- **audit_log_sync.py**: Keeps the mod-log channel in step with the store.
- **role_reconciler.py**: Takes punitive roles back off members.
- **history.py**: Per-member case counts for /history.
"""
