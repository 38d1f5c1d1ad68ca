"""
Wiring of the ledger services shared by the cogs, the listener and the scheduler.

Quick usage example
    ledger = build_ledger(bot)
    case_cmds.setup(bot, ledger)
"""

from dataclasses import dataclass
from typing import Optional

import discord

from modledger.configuration.app_configuration import AppConfig, app_config
from modledger.configuration.guild_settings import GuildSettingsManager, guild_settings_manager
from modledger.scheduler.mute_scheduler import MuteScheduler
from modledger.services.audit_log_sync import AuditLogSynchronizer
from modledger.services.case_service import CaseService
from modledger.services.history import HistoryAggregator
from modledger.services.role_reconciler import InFlightSet, RoleReconciler


@dataclass
class Ledger:
    """Services one bot instance works with."""

    settings: GuildSettingsManager
    cases: CaseService
    history: HistoryAggregator
    reconciler: RoleReconciler
    mute_scheduler: Optional[MuteScheduler]

    @property
    def in_flight(self) -> InFlightSet:
        return self.reconciler.in_flight


def build_ledger(
    bot: discord.Bot,
    config: AppConfig = app_config,
    settings: GuildSettingsManager = guild_settings_manager,
) -> Ledger:
    """Create the services for ``bot``. The mute scheduler is omitted when disabled in config."""
    reconciler = RoleReconciler(settings, InFlightSet())
    synchronizer = AuditLogSynchronizer(bot)
    scheduler = MuteScheduler(bot, reconciler) if config.mute_scheduler_enabled else None
    return Ledger(
        settings=settings,
        cases=CaseService(settings, synchronizer, reconciler),
        history=HistoryAggregator(config.history_colors),
        reconciler=reconciler,
        mute_scheduler=scheduler,
    )
