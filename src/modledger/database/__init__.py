"""
Database package for Modledger.

Provides the single shared aiosqlite connection, schema creation and the
lifecycle coordinator.

Public API:
    - database: Global Database instance
    - get_db: Get the global Database instance
    - db_connection: Global ConnectionManager used by repositories
"""
