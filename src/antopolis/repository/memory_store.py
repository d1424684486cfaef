"""Process-local colony store."""

from __future__ import annotations

import copy
from collections.abc import Iterable
from datetime import datetime

from antopolis.domain.enums import AttackStatus, DifficultyLevel
from antopolis.domain.errors import NotFoundError
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
from antopolis.domain.rules_config import DIFFICULTY_PRESETS, DifficultySettings
from antopolis.repository.accounting import deduct_casualties, plan_transfer


class InMemoryColonyStore:
    """Keep colonies, attacks and battle history in dictionaries.

    Reads hand out deep copies so callers only ever see snapshots.
    """

    def __init__(
        self,
        colonies: Iterable[ColonySnapshot] = (),
        *,
        default_difficulty: DifficultyLevel = DifficultyLevel.NORMAL,
    ) -> None:
        self.colonies: dict[ColonyID, ColonySnapshot] = {}
        self.attacks: dict[AttackID, AttackRecord] = {}
        self.battle_records: list[BattleSummary] = []
        self.difficulty_levels: dict[UserID, DifficultyLevel] = {}
        self.default_difficulty = default_difficulty
        for colony in colonies:
            self.add_colony(colony)

    def add_colony(self, colony: ColonySnapshot) -> None:
        self.colonies[colony.id] = copy.deepcopy(colony)

    def set_difficulty(self, user_id: UserID, level: DifficultyLevel) -> None:
        self.difficulty_levels[user_id] = level

    async def get_active_ai_colonies(self) -> list[ColonySnapshot]:
        return [
            copy.deepcopy(colony)
            for colony in self.colonies.values()
            if colony.is_ai and colony.is_active
        ]

    async def list_active_colonies(self) -> list[ColonySnapshot]:
        return [copy.deepcopy(colony) for colony in self.colonies.values() if colony.is_active]

    async def get_colony_details(self, colony_id: ColonyID) -> ColonySnapshot | None:
        colony = self.colonies.get(colony_id)
        return copy.deepcopy(colony) if colony is not None else None

    async def get_difficulty_settings(self, user_id: UserID | None) -> DifficultySettings:
        level = self.difficulty_levels.get(user_id, self.default_difficulty) if user_id else None
        return DIFFICULTY_PRESETS[level or self.default_difficulty]

    async def store_attack(self, record: AttackRecord) -> None:
        self.attacks[record.id] = copy.deepcopy(record)

    async def mark_attack_resolved(self, attack_id: AttackID, resolved_at: datetime) -> None:
        record = self.attacks.get(attack_id)
        if record is None:
            raise NotFoundError("attack", attack_id)
        record.status = AttackStatus.RESOLVED
        record.resolved_at = resolved_at

    async def apply_casualties(self, colony_id: ColonyID, casualties: Army) -> None:
        colony = self._require(colony_id)
        adjustment = deduct_casualties(
            army=colony.army,
            population=colony.population,
            used_military_capacity=colony.used_military_capacity,
            casualties=casualties,
        )
        colony.army = adjustment.army
        colony.population = adjustment.population
        colony.used_military_capacity = adjustment.used_military_capacity

    async def transfer_resources(
        self, from_id: ColonyID, to_id: ColonyID, bundle: ResourceBundle
    ) -> ResourceBundle:
        source = self._require(from_id)
        destination = self._require(to_id)
        moved = plan_transfer(source.resources, bundle)
        for resource, amount in moved.items():
            source.resources[resource] = source.resources.get(resource, 0) - amount
            destination.resources[resource] = destination.resources.get(resource, 0) + amount
        return moved

    async def create_battle_record(self, summary: BattleSummary) -> None:
        self.battle_records.append(copy.deepcopy(summary))

    async def list_battle_records(
        self, colony_id: ColonyID, *, limit: int | None = None, offset: int = 0
    ) -> list[BattleSummary]:
        matching = [
            record
            for record in self.battle_records
            if colony_id in (record.attacker_id, record.defender_id)
        ]
        matching.sort(key=lambda record: record.timestamp or datetime.min, reverse=True)
        end = None if limit is None else offset + limit
        return copy.deepcopy(matching[offset:end])

    def _require(self, colony_id: ColonyID) -> ColonySnapshot:
        colony = self.colonies.get(colony_id)
        if colony is None:
            raise NotFoundError("colony", colony_id)
        return colony
