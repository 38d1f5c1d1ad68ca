"""
Configuration management for Modledger.

- **app_configuration.py**: YAML configuration loader for global settings
  (database path, history colours, mute scheduler). Falls back to defaults on
  missing or malformed config files.

- **guild_settings.py**: Per-guild settings (mod-log channel, punitive role ids)
  cached in memory and persisted to SQLite.
"""
