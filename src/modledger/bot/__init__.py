"""
Discord-facing layer of Modledger: service wiring and cogs.
"""
