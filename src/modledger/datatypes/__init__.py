"""Dataclasses, enums and exceptions shared across Modledger."""
