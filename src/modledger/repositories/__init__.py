"""Repositories over the SQLite tables. Every method takes an open connection."""
