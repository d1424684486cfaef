"""Battle Service for Antopolis.

Facade used by the HTTP layer: one-off simulations, player raids, target
listings, incoming attack views, retreats, history and statistics.
"""

from __future__ import annotations

import logging
import math
import random
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime

from antopolis.domain.combat import calculate_battle_rewards, simulate_battle
from antopolis.domain.enums import AttackType, BattleType, Formation, UnitType, Victor
from antopolis.domain.errors import NotFoundError, ValidationError
from antopolis.domain.models import (
    AttackRecord,
    BattleConditions,
    BattleOutcome,
    BattleRewards,
    BattleSummary,
    ColonyID,
    ColonySnapshot,
)
from antopolis.domain.retreat import RetreatResult, retreat
from antopolis.domain.rules_config import DEFAULT_RULES, RulesConfig
from antopolis.domain.statistics import BattleStatistics, compute_battle_statistics
from antopolis.domain.targeting import (
    TargetCandidate,
    TargetScore,
    attack_garrison,
    defense_forces,
    determine_attack_type,
    find_candidates,
    score_target,
)
from antopolis.interfaces import IColonyStore
from antopolis.services.attack_scheduler import AttackScheduler
from antopolis.services.outcome_applier import OutcomeApplier

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TargetOption:
    """A colony the player or AI could attack, with how attractive it is."""

    candidate: TargetCandidate
    score: TargetScore
    attack_type: AttackType


@dataclass(frozen=True, slots=True)
class RaidResult:
    outcome: BattleOutcome
    rewards: BattleRewards
    summary: BattleSummary


@dataclass(frozen=True, slots=True)
class IncomingAttackView:
    """An attack in flight as the defending colony sees it."""

    record: AttackRecord
    time_to_arrival_ms: int
    can_intercept: bool


class BattleService:
    """Service for player-facing battle operations."""

    def __init__(
        self,
        store: IColonyStore,
        scheduler: AttackScheduler,
        applier: OutcomeApplier,
        *,
        rules: RulesConfig = DEFAULT_RULES,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._scheduler = scheduler
        self._applier = applier
        self._rules = rules
        self._rng = rng or random.Random()
        self._clock = clock or (lambda: datetime.now(UTC))

    def simulate(
        self,
        attacker_army: Mapping[UnitType, int],
        defender_army: Mapping[UnitType, int],
        conditions: BattleConditions | None = None,
    ) -> BattleOutcome:
        """Run a battle without touching any colony."""

        return simulate_battle(
            attacker_army, defender_army, conditions, rng=self._rng, rules=self._rules
        )

    async def list_targets(self, colony_id: ColonyID) -> list[TargetOption]:
        """Colonies in range of ``colony_id``, most attractive first.

        Raises:
            NotFoundError: if the colony does not exist.
        """
        colony = await self._require_colony(colony_id)
        settings = await self._store.get_difficulty_settings(colony.user_id)
        colonies = await self._store.list_active_colonies()

        options = [
            TargetOption(
                candidate=candidate,
                score=score_target(colony, candidate, settings, rules=self._rules),
                attack_type=determine_attack_type(colony, candidate.colony, rules=self._rules),
            )
            for candidate in find_candidates(colony, colonies, rules=self._rules)
        ]
        options.sort(key=lambda option: option.score.total, reverse=True)
        return options

    async def execute_raid(
        self,
        attacker_id: ColonyID,
        target_id: ColonyID,
        army: Mapping[UnitType, int],
        *,
        formation: Formation = Formation.BALANCED,
    ) -> RaidResult:
        """Fight a player raid right away and write the result through.

        The target defends with its standing garrison on its home terrain.

        Raises:
            ValidationError: for a self-raid, an empty army on either side, or
                more units of a type than the attacker can send.
            NotFoundError: if either colony does not exist.
        """
        if attacker_id == target_id:
            raise ValidationError("A colony cannot raid itself", field="target_colony_id")

        attacker = await self._require_colony(attacker_id)
        target = await self._require_colony(target_id)
        garrison = attack_garrison(attacker, rules=self._rules)
        for unit, count in army.items():
            if count > garrison.get(unit, 0):
                raise ValidationError(
                    f"{attacker_id} can send at most {garrison.get(unit, 0)} {unit}",
                    field=f"army.{unit}",
                )

        conditions = BattleConditions(
            terrain=target.terrain,
            attacker_formation=formation,
            defender_formation=Formation.DEFENSIVE,
        )
        outcome = self.simulate(army, defense_forces(target, rules=self._rules), conditions)

        if outcome.victor is Victor.ATTACKER:
            rewards = calculate_battle_rewards(outcome, attacker, target, rules=self._rules)
        elif outcome.victor is Victor.DEFENDER:
            rewards = calculate_battle_rewards(outcome, target, attacker, rules=self._rules)
        else:
            rewards = calculate_battle_rewards(outcome, None, None, rules=self._rules)

        summary = await self._applier.settle(
            attacker_id=attacker.id,
            defender_id=target.id,
            outcome=outcome,
            plunder=rewards.resources if outcome.victor is Victor.ATTACKER else {},
            battle_type=BattleType.PLAYER_RAID,
            settled_at=self._clock(),
        )
        logger.info(
            "Raid %s by %s on %s ended in %s",
            outcome.battle_id,
            attacker.id,
            target.id,
            outcome.outcome,
        )
        return RaidResult(outcome=outcome, rewards=rewards, summary=summary)

    async def incoming_attacks(self, colony_id: ColonyID) -> list[IncomingAttackView]:
        """Attacks heading for ``colony_id`` that have not landed yet."""

        await self._require_colony(colony_id)
        now = self._clock()
        window = self._rules.scheduler.intercept_window_ms
        views = []
        for record in self._scheduler.incoming_attacks_against(colony_id):
            remaining = max(
                0, math.floor((record.estimated_arrival - now).total_seconds() * 1000)
            )
            views.append(
                IncomingAttackView(
                    record=record, time_to_arrival_ms=remaining, can_intercept=remaining > window
                )
            )
        return views

    async def history(
        self, colony_id: ColonyID, *, limit: int = 20, offset: int = 0
    ) -> list[BattleSummary]:
        if limit < 1:
            raise ValidationError("limit must be at least 1", field="limit")
        if offset < 0:
            raise ValidationError("offset cannot be negative", field="offset")
        await self._require_colony(colony_id)
        return await self._store.list_battle_records(colony_id, limit=limit, offset=offset)

    def retreat(self, remaining_army: Mapping[UnitType, int]) -> RetreatResult:
        return retreat(remaining_army, rules=self._rules)

    async def stats(self, colony_id: ColonyID) -> BattleStatistics:
        await self._require_colony(colony_id)
        records = await self._store.list_battle_records(colony_id)
        return compute_battle_statistics(colony_id, records)

    async def _require_colony(self, colony_id: ColonyID) -> ColonySnapshot:
        colony = await self._store.get_colony_details(colony_id)
        if colony is None:
            raise NotFoundError("colony", colony_id)
        return colony
