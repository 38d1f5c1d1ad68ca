"""
Modledger - Moderation case ledger for Discord

Modledger records every moderation action as a numbered case per server and
keeps that record consistent when cases are deleted.

Core Components:

- **Case Store**: SQLite-backed cases with dense, per-guild case numbers
- **Renumbering**: Deleting a case moves every later case down by one and
  re-stamps its mod-log message
- **Role Reconciliation**: Deleting or expiring a mute or restriction case
  takes the role back off the member
- **History**: Per-member counts of warnings, restrictions, mutes, kicks and
  bans with a severity colour
- **Guild Settings**: Mod-log channel and punitive role ids per server

Usage:
    from modledger.main import main
    main()
"""
