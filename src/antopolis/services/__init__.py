"""Service layer for the Antopolis battle subsystem.

Services depend on the ``IColonyStore`` protocol, so tests can hand them an
``InMemoryColonyStore`` (or a mock) instead of the SQL adapter:

- AttackRegistry: attacks in flight and per-colony loop descriptors
- OutcomeApplier: casualties, plunder and history writes
- AttackScheduler: per-colony decision loops and attack resolution
- BattleService: player-facing operations used by the HTTP routes
"""

from antopolis.services.attack_scheduler import AttackScheduler, ScheduledColony, SchedulerStatus
from antopolis.services.battle_service import (
    BattleService,
    IncomingAttackView,
    RaidResult,
    TargetOption,
)
from antopolis.services.outcome_applier import OutcomeApplier, engaged_forces
from antopolis.services.registry import AttackRegistry

__all__ = [
    "AttackRegistry",
    "AttackScheduler",
    "BattleService",
    "IncomingAttackView",
    "OutcomeApplier",
    "RaidResult",
    "ScheduledColony",
    "SchedulerStatus",
    "TargetOption",
    "engaged_forces",
]
