"""Colony Store Protocol Interface.

This module defines the protocol (interface) for the colony store that the
attack scheduler reads colony snapshots from and writes battle results to.
"""

from datetime import datetime
from typing import Protocol

from antopolis.domain.models import (
    Army,
    AttackID,
    AttackRecord,
    BattleSummary,
    ColonyID,
    ColonySnapshot,
    ResourceBundle,
    UserID,
)
from antopolis.domain.rules_config import DifficultySettings


class IColonyStore(Protocol):
    """Protocol defining the colony store consumed by the battle subsystem.

    Every method may suspend.  Implementations raise
    ``TransientStoreError`` when the backing storage fails; a missing colony
    is reported as ``None`` rather than an exception.
    """

    async def get_active_ai_colonies(self) -> list[ColonySnapshot]:
        """Return every active AI-controlled colony."""
        ...

    async def list_active_colonies(self) -> list[ColonySnapshot]:
        """Return every active colony, AI or player."""
        ...

    async def get_colony_details(self, colony_id: ColonyID) -> ColonySnapshot | None:
        """Return a snapshot of one colony or ``None`` if it does not exist."""
        ...

    async def get_difficulty_settings(self, user_id: UserID | None) -> DifficultySettings:
        """Return the difficulty settings that apply to a user's colonies."""
        ...

    async def store_attack(self, record: AttackRecord) -> None:
        """Persist a newly committed attack."""
        ...

    async def mark_attack_resolved(self, attack_id: AttackID, resolved_at: datetime) -> None:
        """Flag a stored attack as resolved."""
        ...

    async def apply_casualties(self, colony_id: ColonyID, casualties: Army) -> None:
        """Remove dead units from a colony."""
        ...

    async def transfer_resources(
        self, from_id: ColonyID, to_id: ColonyID, bundle: ResourceBundle
    ) -> ResourceBundle:
        """Move resources between colonies and return what was actually moved."""
        ...

    async def create_battle_record(self, summary: BattleSummary) -> None:
        """Append an entry to the battle history."""
        ...

    async def list_battle_records(
        self, colony_id: ColonyID, *, limit: int | None = None, offset: int = 0
    ) -> list[BattleSummary]:
        """Battle history involving a colony, newest first."""
        ...
