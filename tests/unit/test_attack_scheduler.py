"""Unit tests for the AI attack scheduler."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from antopolis.domain.enums import (
    AttackStatus,
    BattleType,
    Personality,
    ResourceType,
    Terrain,
    Victor,
)
from antopolis.domain.errors import SchedulingInitError, TransientStoreError, ValidationError
from antopolis.domain.models import ColonyID, ColonySnapshot, Position, UserID
from antopolis.repository import InMemoryColonyStore
from antopolis.services import AttackScheduler
from antopolis.utils.rng import PinnedRandom

AI = ColonyID("ai-1")
PLAYER = ColonyID("player-1")


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


def _store() -> InMemoryColonyStore:
    return InMemoryColonyStore(
        [
            ColonySnapshot(
                id=AI,
                name="Red Swarm",
                user_id=UserID("player"),
                is_ai=True,
                population=200,
                used_military_capacity=60,
                base_position=Position(0, 0),
                personality=Personality.AGGRESSIVE,
            ),
            ColonySnapshot(
                id=PLAYER,
                name="Home",
                user_id=UserID("player"),
                population=100,
                used_military_capacity=10,
                resources={
                    ResourceType.FOOD: 400,
                    ResourceType.WOOD: 200,
                    ResourceType.STONE: 100,
                    ResourceType.MINERALS: 50,
                },
                base_position=Position(10, 0),
                terrain=Terrain.FOREST,
            ),
        ]
    )


def _scheduler(store, *, clock=None, time_multiplier: float = 1.0) -> AttackScheduler:
    return AttackScheduler(
        store,
        rng=PinnedRandom(0.25),
        clock=clock or FakeClock(),
        time_multiplier=time_multiplier,
    )


async def _wait_until(predicate, timeout: float = 2.0) -> None:
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout=timeout)


@pytest.mark.asyncio
async def test_evaluate_commits_attack_on_best_target():
    store = _store()
    clock = FakeClock()
    scheduler = _scheduler(store, clock=clock)

    record = await scheduler.evaluate(AI)

    assert record is not None
    assert record.target_colony_id == PLAYER
    assert record.status is AttackStatus.INCOMING
    assert record.estimated_arrival == clock.now + timedelta(seconds=30)
    assert record.precomputed_outcome.conditions.terrain is Terrain.FOREST
    assert sum(record.forces_sent.values()) > 0
    assert scheduler.incoming_attacks_for(AI) == 1
    assert store.attacks[record.id].status is AttackStatus.INCOMING
    if record.precomputed_outcome.victor is Victor.ATTACKER:
        assert record.plunder
    await scheduler.close()


@pytest.mark.asyncio
async def test_concurrency_cap_and_cooldown():
    store = _store()
    clock = FakeClock()
    scheduler = _scheduler(store, clock=clock)

    assert await scheduler.evaluate(AI) is not None
    assert await scheduler.evaluate(AI) is None  # cooldown

    clock.advance(seconds=61)
    assert await scheduler.evaluate(AI) is not None
    assert scheduler.incoming_attacks_for(AI) == 2

    clock.advance(seconds=61)
    assert not await scheduler.is_eligible_for_attack(AI)
    assert await scheduler.evaluate(AI) is None
    assert scheduler.incoming_attacks_for(AI) == 2
    await scheduler.close()


@pytest.mark.asyncio
async def test_probability_gate_can_skip_attack():
    store = _store()
    scheduler = AttackScheduler(store, rng=PinnedRandom(0.9), clock=FakeClock())
    assert await scheduler.evaluate(AI) is None
    assert scheduler.incoming_attacks_for(AI) == 0


@pytest.mark.asyncio
async def test_resolve_applies_outcome_and_removes_record():
    store = _store()
    scheduler = _scheduler(store)
    record = await scheduler.evaluate(AI)
    assert record is not None
    outcome = record.precomputed_outcome

    summary = await scheduler.resolve(record.id)

    assert summary is not None
    assert summary.battle_type is BattleType.AI_ATTACK
    assert summary.attack_type is record.attack_type
    assert scheduler.registry.get(record.id) is None
    assert record.status is AttackStatus.RESOLVED
    assert store.attacks[record.id].status is AttackStatus.RESOLVED
    assert [b.id for b in store.battle_records] == [outcome.battle_id]

    ai = await store.get_colony_details(AI)
    player = await store.get_colony_details(PLAYER)
    assert ai.population == 200 - sum(outcome.total_casualties.attacker.values())
    assert player.population == 100 - sum(outcome.total_casualties.defender.values())
    if outcome.victor is Victor.ATTACKER:
        for resource, amount in summary.rewards.items():
            assert ai.resources.get(resource, 0) == amount
        assert player.resources[ResourceType.FOOD] == 400 - summary.rewards[ResourceType.FOOD]
    else:
        assert summary.rewards == {}

    assert await scheduler.resolve(record.id) is None
    assert scheduler.status().resolved_attacks == 1
    await scheduler.close()


@pytest.mark.asyncio
async def test_failed_resolve_write_still_drops_record(caplog):
    store = _store()
    scheduler = _scheduler(store)
    record = await scheduler.evaluate(AI)
    assert record is not None
    store.create_battle_record = AsyncMock(side_effect=TransientStoreError("disk full"))

    with caplog.at_level(logging.ERROR, logger="antopolis.services.attack_scheduler"):
        assert await scheduler.resolve(record.id) is None

    assert scheduler.registry.get(record.id) is None
    assert scheduler.incoming_attacks_for(AI) == 0
    assert record.id in caplog.text
    await scheduler.close()


@pytest.mark.asyncio
async def test_evaluate_isolates_store_faults():
    store = AsyncMock()
    store.get_colony_details.side_effect = TransientStoreError("connection reset")
    scheduler = AttackScheduler(store, rng=PinnedRandom(0.25), clock=FakeClock())

    assert await scheduler.evaluate(AI) is None

    store.get_colony_details.side_effect = RuntimeError("boom")
    assert await scheduler.evaluate(AI) is None

    store.get_colony_details.side_effect = None
    store.get_colony_details.return_value = None
    assert await scheduler.evaluate(AI) is None


@pytest.mark.asyncio
async def test_failed_attack_store_means_no_attack():
    store = _store()
    store.store_attack = AsyncMock(side_effect=TransientStoreError("read only"))
    scheduler = _scheduler(store)

    assert await scheduler.evaluate(AI) is None
    assert scheduler.incoming_attacks_for(AI) == 0
    assert scheduler.status().pending_resolutions == 0


@pytest.mark.asyncio
async def test_initialize_raises_when_colonies_cannot_be_listed():
    store = AsyncMock()
    store.get_active_ai_colonies.side_effect = TransientStoreError("down")
    scheduler = AttackScheduler(store)

    with pytest.raises(SchedulingInitError):
        await scheduler.initialize()
    assert not scheduler.initialized


@pytest.mark.asyncio
async def test_initialize_starts_one_loop_per_ai_colony():
    store = _store()
    scheduler = _scheduler(store)

    assert await scheduler.initialize() == 1
    status = scheduler.status()
    assert status.initialized
    assert [s.colony_id for s in status.active_schedulers] == [AI]
    assert status.active_schedulers[0].interval_ms == 180_000

    await scheduler.start_for_colony(AI)
    assert len(scheduler.status().active_schedulers) == 1

    await scheduler.shutdown_all()
    assert scheduler.status().active_schedulers == ()
    assert not scheduler.is_running(AI)


@pytest.mark.asyncio
async def test_recurring_loop_launches_and_resolves_attacks():
    store = _store()
    scheduler = AttackScheduler(store, rng=PinnedRandom(0.25), time_multiplier=1e-5)

    await scheduler.start_for_colony(AI)
    await _wait_until(lambda: len(store.battle_records) >= 1)
    await scheduler.close()

    assert store.battle_records[0].battle_type is BattleType.AI_ATTACK
    assert any(a.status is AttackStatus.RESOLVED for a in store.attacks.values())


@pytest.mark.asyncio
async def test_stopping_a_colony_lets_attacks_in_flight_land():
    store = _store()
    scheduler = _scheduler(store, time_multiplier=1e-4)
    await scheduler.start_for_colony(AI)
    record = await scheduler.evaluate(AI)
    assert record is not None

    assert await scheduler.stop_for_colony(AI)
    assert not await scheduler.stop_for_colony(AI)

    await _wait_until(lambda: scheduler.registry.get(record.id) is None)
    assert store.attacks[record.id].status is AttackStatus.RESOLVED
    await scheduler.close()


@pytest.mark.asyncio
async def test_close_abandons_pending_resolutions(caplog):
    store = _store()
    scheduler = _scheduler(store)
    record = await scheduler.evaluate(AI)
    assert record is not None
    assert scheduler.status().pending_resolutions == 1

    with caplog.at_level(logging.WARNING, logger="antopolis.services.attack_scheduler"):
        await scheduler.close()

    assert f"Abandoning 1 unresolved attacks: {record.id}" in caplog.text

    assert scheduler.status().pending_resolutions == 0
    assert store.attacks[record.id].status is AttackStatus.INCOMING
    assert store.battle_records == []


@pytest.mark.asyncio
async def test_player_colonies_get_no_attack_loop():
    store = _store()
    scheduler = _scheduler(store)

    with pytest.raises(ValidationError) as excinfo:
        await scheduler.start_for_colony(PLAYER)

    assert excinfo.value.field == "colony_id"
    assert not scheduler.is_running(PLAYER)
    assert scheduler.registry.get_descriptor(PLAYER) is None
    assert await scheduler.evaluate(PLAYER) is None
    assert store.attacks == {}


@pytest.mark.asyncio
async def test_arrival_time_follows_time_multiplier():
    store = _store()
    clock = FakeClock()
    scheduler = _scheduler(store, clock=clock, time_multiplier=0.5)

    record = await scheduler.evaluate(AI)

    assert record is not None
    assert record.estimated_arrival == clock.now + timedelta(seconds=15)
    await scheduler.close()
