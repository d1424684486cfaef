"""SQLAlchemy-backed colony store.

Sessions are synchronous; every public coroutine pushes its work onto a
worker thread with ``asyncio.to_thread`` so the event loop driving the
scheduler is never blocked on I/O.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any, TypeVar

from pydantic import TypeAdapter
from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from antopolis.domain.enums import (
    AttackStatus,
    AttackType,
    BattleType,
    DifficultyLevel,
    Personality,
    Terrain,
)
from antopolis.domain.errors import NotFoundError, TransientStoreError
from antopolis.domain.models import (
    Army,
    AttackID,
    AttackRecord,
    BattleID,
    BattleOutcome,
    BattleSummary,
    ColonyID,
    ColonySnapshot,
    Position,
    ResourceBundle,
    SideArmies,
    UserID,
)
from antopolis.domain.rules_config import DIFFICULTY_PRESETS, DifficultySettings
from antopolis.models import AttackRow, BattleRow, ColonyRow, DifficultySettingRow, as_utc
from antopolis.repository.accounting import deduct_casualties, plan_transfer

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SqlColonyStore:
    """Persist colonies, AI attacks and battle history through SQLAlchemy."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        default_difficulty: DifficultyLevel = DifficultyLevel.NORMAL,
    ) -> None:
        self._session_factory = session_factory
        self.default_difficulty = default_difficulty
        self._army: TypeAdapter[Army] = TypeAdapter(Army)
        self._resources: TypeAdapter[ResourceBundle] = TypeAdapter(ResourceBundle)
        self._outcome: TypeAdapter[BattleOutcome] = TypeAdapter(BattleOutcome)
        self._sides: TypeAdapter[SideArmies] = TypeAdapter(SideArmies)

    # ------------------------------------------------------------------ reads

    async def get_active_ai_colonies(self) -> list[ColonySnapshot]:
        return await self._call(self._select_colonies, ai_only=True)

    async def list_active_colonies(self) -> list[ColonySnapshot]:
        return await self._call(self._select_colonies, ai_only=False)

    async def get_colony_details(self, colony_id: ColonyID) -> ColonySnapshot | None:
        return await self._call(self._get_colony, colony_id)

    async def get_difficulty_settings(self, user_id: UserID | None) -> DifficultySettings:
        level = await self._call(self._difficulty_level, user_id)
        return DIFFICULTY_PRESETS[level]

    async def list_battle_records(
        self, colony_id: ColonyID, *, limit: int | None = None, offset: int = 0
    ) -> list[BattleSummary]:
        return await self._call(self._select_battles, colony_id, limit, offset)

    async def get_attack(self, attack_id: AttackID) -> AttackRecord | None:
        return await self._call(self._get_attack, attack_id)

    # ----------------------------------------------------------------- writes

    async def store_attack(self, record: AttackRecord) -> None:
        await self._call(self._insert_attack, record)

    async def mark_attack_resolved(self, attack_id: AttackID, resolved_at: datetime) -> None:
        await self._call(self._resolve_attack, attack_id, resolved_at)

    async def apply_casualties(self, colony_id: ColonyID, casualties: Army) -> None:
        await self._call(self._bury, colony_id, casualties)

    async def transfer_resources(
        self, from_id: ColonyID, to_id: ColonyID, bundle: ResourceBundle
    ) -> ResourceBundle:
        return await self._call(self._transfer, from_id, to_id, bundle)

    async def create_battle_record(self, summary: BattleSummary) -> None:
        await self._call(self._insert_battle, summary)

    def upsert_colony(self, colony: ColonySnapshot) -> None:
        """Insert or overwrite a colony row (seeding and tests)."""

        with self._session_factory.begin() as session:
            row = session.get(ColonyRow, colony.id) or ColonyRow(id=colony.id)
            row.name = colony.name
            row.user_id = colony.user_id
            row.is_ai = colony.is_ai
            row.is_active = colony.is_active
            row.population = colony.population
            row.used_military_capacity = colony.used_military_capacity
            row.resources = self._resources.dump_python(colony.resources, mode="json")
            row.position_x = colony.base_position.x
            row.position_y = colony.base_position.y
            row.personality = colony.personality.value
            row.total_ticks = colony.total_ticks
            row.territory_size = colony.territory_size
            row.terrain = colony.terrain.value
            row.army = (
                self._army.dump_python(colony.army, mode="json")
                if colony.army is not None
                else None
            )
            session.add(row)

    def set_difficulty(self, user_id: UserID, level: DifficultyLevel) -> None:
        with self._session_factory.begin() as session:
            row = session.get(DifficultySettingRow, user_id)
            if row is None:
                session.add(DifficultySettingRow(user_id=user_id, difficulty_level=level.value))
            else:
                row.difficulty_level = level.value

    # ---------------------------------------------------------------- helpers

    async def _call(self, fn: Callable[..., T], /, *args: Any, **kwargs: Any) -> T:
        try:
            return await asyncio.to_thread(fn, *args, **kwargs)
        except SQLAlchemyError as exc:
            logger.warning("Colony store operation %s failed: %s", fn.__name__, exc)
            raise TransientStoreError(f"{fn.__name__.lstrip('_')} failed: {exc}") from exc

    def _select_colonies(self, *, ai_only: bool) -> list[ColonySnapshot]:
        stmt = select(ColonyRow).where(ColonyRow.is_active.is_(True))
        if ai_only:
            stmt = stmt.where(ColonyRow.is_ai.is_(True))
        with self._session_factory() as session:
            return [self._to_snapshot(row) for row in session.scalars(stmt.order_by(ColonyRow.id))]

    def _get_colony(self, colony_id: ColonyID) -> ColonySnapshot | None:
        with self._session_factory() as session:
            row = session.get(ColonyRow, colony_id)
            return self._to_snapshot(row) if row is not None else None

    def _difficulty_level(self, user_id: UserID | None) -> DifficultyLevel:
        if user_id is None:
            return self.default_difficulty
        with self._session_factory() as session:
            row = session.get(DifficultySettingRow, user_id)
            if row is None:
                return self.default_difficulty
            return DifficultyLevel(row.difficulty_level)

    def _get_attack(self, attack_id: AttackID) -> AttackRecord | None:
        with self._session_factory() as session:
            row = session.get(AttackRow, attack_id)
            return self._to_attack(row) if row is not None else None

    def _select_battles(
        self, colony_id: ColonyID, limit: int | None, offset: int
    ) -> list[BattleSummary]:
        stmt = (
            select(BattleRow)
            .where(or_(BattleRow.attacker_id == colony_id, BattleRow.defender_id == colony_id))
            .order_by(BattleRow.occurred_at.desc(), BattleRow.id)
            .offset(offset)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        with self._session_factory() as session:
            return [self._to_summary(row) for row in session.scalars(stmt)]

    def _insert_attack(self, record: AttackRecord) -> None:
        with self._session_factory.begin() as session:
            session.add(
                AttackRow(
                    id=record.id,
                    attacker_colony_id=record.attacker_colony_id,
                    target_colony_id=record.target_colony_id,
                    attacker_name=record.attacker_name,
                    attack_type=record.attack_type.value,
                    forces_sent=self._army.dump_python(record.forces_sent, mode="json"),
                    plunder=self._resources.dump_python(record.plunder, mode="json"),
                    precomputed_outcome=self._outcome.dump_python(
                        record.precomputed_outcome, mode="json"
                    ),
                    status=record.status.value,
                    created_at=record.created_at,
                    estimated_arrival=record.estimated_arrival,
                    resolved_at=record.resolved_at,
                )
            )

    def _resolve_attack(self, attack_id: AttackID, resolved_at: datetime) -> None:
        with self._session_factory.begin() as session:
            row = session.get(AttackRow, attack_id)
            if row is None:
                raise NotFoundError("attack", attack_id)
            row.status = AttackStatus.RESOLVED.value
            row.resolved_at = resolved_at

    def _bury(self, colony_id: ColonyID, casualties: Army) -> None:
        with self._session_factory.begin() as session:
            row = self._require_colony(session, colony_id)
            adjustment = deduct_casualties(
                army=self._army.validate_python(row.army) if row.army is not None else None,
                population=row.population,
                used_military_capacity=row.used_military_capacity,
                casualties=casualties,
            )
            if adjustment.army is not None:
                row.army = self._army.dump_python(adjustment.army, mode="json")
            row.population = adjustment.population
            row.used_military_capacity = adjustment.used_military_capacity

    def _transfer(
        self, from_id: ColonyID, to_id: ColonyID, bundle: ResourceBundle
    ) -> ResourceBundle:
        with self._session_factory.begin() as session:
            source = self._require_colony(session, from_id)
            destination = self._require_colony(session, to_id)
            source_resources = self._resources.validate_python(source.resources or {})
            destination_resources = self._resources.validate_python(destination.resources or {})
            moved = plan_transfer(source_resources, bundle)
            for resource, amount in moved.items():
                source_resources[resource] = source_resources.get(resource, 0) - amount
                destination_resources[resource] = destination_resources.get(resource, 0) + amount
            # JSON columns only notice reassignment, not in-place mutation.
            source.resources = self._resources.dump_python(source_resources, mode="json")
            destination.resources = self._resources.dump_python(
                destination_resources, mode="json"
            )
            return moved

    def _insert_battle(self, summary: BattleSummary) -> None:
        with self._session_factory.begin() as session:
            session.add(
                BattleRow(
                    id=summary.id,
                    attacker_id=summary.attacker_id,
                    defender_id=summary.defender_id,
                    battle_type=summary.battle_type.value,
                    attack_type=summary.attack_type.value if summary.attack_type else None,
                    verdict=summary.outcome.outcome.value,
                    outcome=self._outcome.dump_python(summary.outcome, mode="json"),
                    forces_involved=self._sides.dump_python(summary.forces_involved, mode="json"),
                    rewards=self._resources.dump_python(summary.rewards, mode="json"),
                    occurred_at=summary.timestamp or summary.outcome.timestamp,
                )
            )

    @staticmethod
    def _require_colony(session: Session, colony_id: ColonyID) -> ColonyRow:
        row = session.get(ColonyRow, colony_id)
        if row is None:
            raise NotFoundError("colony", colony_id)
        return row

    def _to_snapshot(self, row: ColonyRow) -> ColonySnapshot:
        return ColonySnapshot(
            id=ColonyID(row.id),
            name=row.name,
            user_id=UserID(row.user_id) if row.user_id is not None else None,
            is_ai=row.is_ai,
            is_active=row.is_active,
            population=row.population,
            used_military_capacity=row.used_military_capacity,
            resources=self._resources.validate_python(row.resources or {}),
            base_position=Position(row.position_x, row.position_y),
            personality=Personality(row.personality),
            total_ticks=row.total_ticks,
            territory_size=row.territory_size,
            terrain=Terrain(row.terrain),
            army=self._army.validate_python(row.army) if row.army is not None else None,
        )

    def _to_attack(self, row: AttackRow) -> AttackRecord:
        return AttackRecord(
            id=AttackID(row.id),
            attacker_colony_id=ColonyID(row.attacker_colony_id),
            target_colony_id=ColonyID(row.target_colony_id),
            attack_type=AttackType(row.attack_type),
            forces_sent=self._army.validate_python(row.forces_sent),
            estimated_arrival=as_utc(row.estimated_arrival),
            created_at=as_utc(row.created_at),
            precomputed_outcome=self._outcome.validate_python(row.precomputed_outcome),
            plunder=self._resources.validate_python(row.plunder or {}),
            attacker_name=row.attacker_name,
            status=AttackStatus(row.status),
            resolved_at=as_utc(row.resolved_at),
        )

    def _to_summary(self, row: BattleRow) -> BattleSummary:
        return BattleSummary(
            id=BattleID(row.id),
            attacker_id=ColonyID(row.attacker_id),
            defender_id=ColonyID(row.defender_id),
            battle_type=BattleType(row.battle_type),
            outcome=self._outcome.validate_python(row.outcome),
            forces_involved=self._sides.validate_python(row.forces_involved),
            rewards=self._resources.validate_python(row.rewards or {}),
            attack_type=AttackType(row.attack_type) if row.attack_type else None,
            timestamp=as_utc(row.occurred_at),
        )
