"""Write settled battles back to the colony store."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from antopolis.domain.enums import AttackType, BattleType, Victor
from antopolis.domain.models import (
    Army,
    AttackRecord,
    BattleOutcome,
    BattleSummary,
    ColonyID,
    ResourceBundle,
    SideArmies,
)
from antopolis.interfaces import IColonyStore

logger = logging.getLogger(__name__)


def engaged_forces(outcome: BattleOutcome) -> SideArmies:
    """Armies that took the field, rebuilt from casualties plus survivors."""

    def _side(casualties: Army, survivors: Army) -> Army:
        units = set(casualties) | set(survivors)
        return {unit: casualties.get(unit, 0) + survivors.get(unit, 0) for unit in units}

    return SideArmies(
        attacker=_side(outcome.total_casualties.attacker, outcome.army_survivors.attacker),
        defender=_side(outcome.total_casualties.defender, outcome.army_survivors.defender),
    )


class OutcomeApplier:
    """Apply casualties, plunder and history for a finished battle.

    Writes for different battles are serialized through one lock so two
    battles touching the same colony never interleave their updates.
    """

    def __init__(self, store: IColonyStore) -> None:
        self._store = store
        self._write_lock = asyncio.Lock()

    async def settle(
        self,
        *,
        attacker_id: ColonyID,
        defender_id: ColonyID,
        outcome: BattleOutcome,
        plunder: ResourceBundle,
        battle_type: BattleType,
        attack_type: AttackType | None = None,
        settled_at: datetime | None = None,
    ) -> BattleSummary:
        """Push one outcome to the store and return the history entry written.

        Plunder only moves when the attacker won, and never more than the
        defender still holds.
        """
        async with self._write_lock:
            await self._store.apply_casualties(attacker_id, outcome.total_casualties.attacker)
            await self._store.apply_casualties(defender_id, outcome.total_casualties.defender)

            transferred: ResourceBundle = {}
            if outcome.victor is Victor.ATTACKER and plunder:
                transferred = await self._store.transfer_resources(
                    defender_id, attacker_id, plunder
                )

            summary = BattleSummary(
                id=outcome.battle_id,
                attacker_id=attacker_id,
                defender_id=defender_id,
                battle_type=battle_type,
                outcome=outcome,
                forces_involved=engaged_forces(outcome),
                rewards=transferred,
                attack_type=attack_type,
                timestamp=settled_at or outcome.timestamp,
            )
            await self._store.create_battle_record(summary)

        logger.debug(
            "Settled %s %s: %s vs %s -> %s",
            battle_type,
            outcome.battle_id,
            attacker_id,
            defender_id,
            outcome.outcome,
        )
        return summary

    async def apply_attack(self, record: AttackRecord, *, resolved_at: datetime) -> BattleSummary:
        """Settle an AI attack that has reached its target."""

        summary = await self.settle(
            attacker_id=record.attacker_colony_id,
            defender_id=record.target_colony_id,
            outcome=record.precomputed_outcome,
            plunder=record.plunder,
            battle_type=BattleType.AI_ATTACK,
            attack_type=record.attack_type,
            settled_at=resolved_at,
        )
        await self._store.mark_attack_resolved(record.id, resolved_at)
        return summary
