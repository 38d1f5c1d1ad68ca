"""
Utility functions and helpers for Modledger.

- **logger.py**: Centralized logging configuration with colored console output,
  a rotating per-session log file, and suppression of noisy library loggers.
  Uses prompt_toolkit for console output.

- **discord_utils.py**: Permission and target checks shared by the cogs.

- **format_utils.py**: Mute duration choices and human readable durations.
"""
