"""HTTP routes for the Antopolis battle API."""

from __future__ import annotations

import asyncio
from functools import lru_cache
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field, TypeAdapter

from antopolis.api.runtime import ApiState
from antopolis.database import check_database_health
from antopolis.domain.enums import Formation, Terrain
from antopolis.domain.models import BattleConditions, ColonyID, parse_army

router = APIRouter()


def get_state(request: Request) -> ApiState:
    state = getattr(request.app.state, "api_state", None)
    if state is None:  # pragma: no cover - FastAPI should always initialise state
        raise RuntimeError("API state not initialised")
    return state


ApiStateDep = Annotated[ApiState, Depends(get_state)]


@lru_cache
def _adapter(kind: type) -> TypeAdapter:
    return TypeAdapter(kind)


def _to_json(value: Any) -> Any:
    """JSON-ready rendition of a domain dataclass."""

    return _adapter(type(value)).dump_python(value, mode="json")


class ConditionsModel(BaseModel):
    terrain: Terrain = Terrain.GRASSLAND
    attacker_formation: Formation = Formation.BALANCED
    defender_formation: Formation = Formation.DEFENSIVE


class SimulateRequest(BaseModel):
    attacker_army: dict[str, Any] = Field(default_factory=dict)
    defender_army: dict[str, Any] = Field(default_factory=dict)
    conditions: ConditionsModel | None = None


class ExecuteRaidRequest(BaseModel):
    attacker_colony_id: str = Field(min_length=1)
    target_colony_id: str = Field(min_length=1)
    army: dict[str, Any] = Field(default_factory=dict)
    formation: Formation = Formation.BALANCED


class RetreatRequest(BaseModel):
    remaining_army: dict[str, Any] = Field(default_factory=dict)


class TargetView(BaseModel):
    colony_id: str
    name: str
    distance: float
    military_strength: float
    resource_value: int
    attack_type: str
    score: float
    score_breakdown: dict[str, float]


class IncomingAttackModel(BaseModel):
    id: str
    attacker_colony_id: str
    attacker_name: str | None
    attack_type: str
    forces_sent: dict[str, int]
    estimated_arrival: str
    time_to_arrival_ms: int
    can_intercept: bool
    status: str


@router.get("/health")
async def health(state: ApiStateDep) -> dict[str, object]:
    database = None
    if state.engine is not None:
        database = await asyncio.to_thread(check_database_health, state.engine)
    return {
        "status": "ok" if database is not False else "degraded",
        "database": database,
        "scheduler_initialized": state.scheduler.initialized,
    }


@router.post("/battles/simulate")
async def simulate_battle(request: SimulateRequest, state: ApiStateDep) -> dict[str, Any]:
    attacker = parse_army(request.attacker_army, field_name="attacker_army")
    defender = parse_army(request.defender_army, field_name="defender_army")
    conditions = None
    if request.conditions is not None:
        conditions = BattleConditions(
            terrain=request.conditions.terrain,
            attacker_formation=request.conditions.attacker_formation,
            defender_formation=request.conditions.defender_formation,
        )
    outcome = state.battles.simulate(attacker, defender, conditions)
    return _to_json(outcome)


@router.get("/battles/targets/{colony_id}")
async def list_targets(colony_id: str, state: ApiStateDep) -> dict[str, object]:
    options = await state.battles.list_targets(ColonyID(colony_id))
    targets = [
        TargetView(
            colony_id=option.candidate.colony.id,
            name=option.candidate.colony.name,
            distance=option.candidate.distance,
            military_strength=option.candidate.military_strength,
            resource_value=option.candidate.resource_value,
            attack_type=str(option.attack_type),
            score=option.score.total,
            score_breakdown={
                "strength": option.score.strength_score,
                "resources": option.score.resource_score,
                "distance": option.score.distance_score,
                "personality": option.score.personality_bonus,
            },
        )
        for option in options
    ]
    return {"colony_id": colony_id, "targets": targets}


@router.post("/battles/execute")
async def execute_raid(request: ExecuteRaidRequest, state: ApiStateDep) -> dict[str, object]:
    army = parse_army(request.army, field_name="army")
    result = await state.battles.execute_raid(
        ColonyID(request.attacker_colony_id),
        ColonyID(request.target_colony_id),
        army,
        formation=request.formation,
    )
    plundered = {str(resource): amount for resource, amount in result.summary.rewards.items()}
    return {
        "battle_id": result.outcome.battle_id,
        "outcome": _to_json(result.outcome),
        "rewards": _to_json(result.rewards),
        "plundered": plundered,
    }


@router.get("/battles/incoming/{colony_id}")
async def incoming_attacks(colony_id: str, state: ApiStateDep) -> dict[str, object]:
    views = await state.battles.incoming_attacks(ColonyID(colony_id))
    attacks = [
        IncomingAttackModel(
            id=view.record.id,
            attacker_colony_id=view.record.attacker_colony_id,
            attacker_name=view.record.attacker_name,
            attack_type=str(view.record.attack_type),
            forces_sent={str(unit): count for unit, count in view.record.forces_sent.items()},
            estimated_arrival=view.record.estimated_arrival.isoformat(),
            time_to_arrival_ms=view.time_to_arrival_ms,
            can_intercept=view.can_intercept,
            status=str(view.record.status),
        )
        for view in views
    ]
    return {"colony_id": colony_id, "attacks": attacks}


@router.get("/battles/history/{colony_id}")
async def battle_history(
    colony_id: str,
    state: ApiStateDep,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> dict[str, object]:
    records = await state.battles.history(ColonyID(colony_id), limit=limit, offset=offset)
    return {
        "colony_id": colony_id,
        "battles": [_to_json(record) for record in records],
        "limit": limit,
        "offset": offset,
    }


@router.post("/battles/retreat/{battle_id}")
async def retreat_from_battle(
    battle_id: str, request: RetreatRequest, state: ApiStateDep
) -> dict[str, object]:
    army = parse_army(request.remaining_army, field_name="remaining_army")
    result = state.battles.retreat(army)
    return {"battle_id": battle_id, **_to_json(result)}


@router.get("/battles/stats/{colony_id}")
async def battle_stats(colony_id: str, state: ApiStateDep) -> dict[str, Any]:
    stats = await state.battles.stats(ColonyID(colony_id))
    return _to_json(stats)


@router.get("/battles/scheduler/status")
async def scheduler_status(state: ApiStateDep) -> dict[str, Any]:
    return _to_json(state.scheduler.status())


@router.post("/battles/scheduler/start")
async def start_scheduler(state: ApiStateDep) -> dict[str, Any]:
    started = await state.scheduler.initialize()
    return {"started": started, **_to_json(state.scheduler.status())}


@router.post("/battles/scheduler/stop")
async def stop_scheduler(state: ApiStateDep) -> dict[str, Any]:
    await state.scheduler.shutdown_all()
    return _to_json(state.scheduler.status())


@router.post("/battles/scheduler/colonies/{colony_id}/start")
async def start_colony_scheduler(colony_id: str, state: ApiStateDep) -> dict[str, Any]:
    descriptor = await state.scheduler.start_for_colony(ColonyID(colony_id))
    return {
        "colony_id": descriptor.colony_id,
        "interval_ms": descriptor.interval_ms,
        "next_attack_window": descriptor.next_attack_window.isoformat(),
        "last_attack": descriptor.last_attack.isoformat() if descriptor.last_attack else None,
        "difficulty_settings": _to_json(descriptor.difficulty_settings),
    }


@router.post("/battles/scheduler/colonies/{colony_id}/stop")
async def stop_colony_scheduler(colony_id: str, state: ApiStateDep) -> dict[str, object]:
    stopped = await state.scheduler.stop_for_colony(ColonyID(colony_id))
    return {"colony_id": colony_id, "stopped": stopped}
