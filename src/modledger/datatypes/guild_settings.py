"""
Persistent per-guild configuration values.

Database schema:
- guild_settings table with columns: guild_id, mod_log_channel_id, mute_role_id,
  embed_role_id, emoji_role_id, reaction_role_id
"""
from dataclasses import dataclass, fields
from enum import Enum
from typing import Dict, Optional

from modledger.datatypes.case_datatypes import CaseAction
from modledger.datatypes.discord_datatypes import GuildID


class SettingKey(Enum):
    """Keys understood by ``GuildSettingsManager.get_setting``. Values are column names."""

    MOD_LOG_CHANNEL = "mod_log_channel_id"
    MUTE_ROLE = "mute_role_id"
    EMBED_RESTRICTION_ROLE = "embed_role_id"
    EMOJI_RESTRICTION_ROLE = "emoji_role_id"
    REACTION_RESTRICTION_ROLE = "reaction_role_id"


class RoleKind(Enum):
    """Punitive role families the ledger reconciles."""

    MUTE = "MUTE"
    EMBED = "EMBED"
    EMOJI = "EMOJI"
    REACTION = "REACTION"

    @property
    def setting_key(self) -> SettingKey:
        return ROLE_SETTING_KEYS[self]

    @property
    def label(self) -> str:
        return ROLE_LABELS[self]


ROLE_SETTING_KEYS: Dict[RoleKind, SettingKey] = {
    RoleKind.MUTE: SettingKey.MUTE_ROLE,
    RoleKind.EMBED: SettingKey.EMBED_RESTRICTION_ROLE,
    RoleKind.EMOJI: SettingKey.EMOJI_RESTRICTION_ROLE,
    RoleKind.REACTION: SettingKey.REACTION_RESTRICTION_ROLE,
}

ROLE_LABELS: Dict[RoleKind, str] = {
    RoleKind.MUTE: "mute",
    RoleKind.EMBED: "embed restriction",
    RoleKind.EMOJI: "emoji restriction",
    RoleKind.REACTION: "reaction restriction",
}

# Actions whose deletion or expiry must take a role back off the member
ACTION_ROLE_KINDS: Dict[CaseAction, RoleKind] = {
    CaseAction.MUTE: RoleKind.MUTE,
    CaseAction.EMBED_RESTRICTION: RoleKind.EMBED,
    CaseAction.EMOJI_RESTRICTION: RoleKind.EMOJI,
    CaseAction.REACTION_RESTRICTION: RoleKind.REACTION,
}

ROLE_KIND_ACTIONS: Dict[RoleKind, CaseAction] = {kind: action for action, kind in ACTION_ROLE_KINDS.items()}


@dataclass(slots=True)
class GuildSettings:
    """Per-guild configuration. Every id is optional; a missing id disables its feature."""

    guild_id: GuildID
    mod_log_channel_id: Optional[int] = None
    mute_role_id: Optional[int] = None
    embed_role_id: Optional[int] = None
    emoji_role_id: Optional[int] = None
    reaction_role_id: Optional[int] = None

    def role_id_for(self, kind: RoleKind) -> Optional[int]:
        return getattr(self, kind.setting_key.value)

    def to_dict(self) -> Dict[str, Optional[int]]:
        return {f.name: (int(getattr(self, f.name)) if getattr(self, f.name) is not None else None) for f in fields(self)}
