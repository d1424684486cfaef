"""Integration tests for the SQLAlchemy colony store.

Each test runs against a fresh SQLite file so WAL pragmas and
timezone handling go through the real driver.
"""

from datetime import UTC, datetime, timedelta

import pytest

from antopolis.config import Settings
from antopolis.database import (
    check_database_health,
    create_db_engine,
    create_session_factory,
    get_table_names,
    init_db,
)
from antopolis.domain.combat import simulate_battle
from antopolis.domain.enums import (
    AttackStatus,
    AttackType,
    BattleType,
    DifficultyLevel,
    Personality,
    ResourceType,
    Terrain,
    UnitType,
)
from antopolis.domain.errors import NotFoundError
from antopolis.domain.models import (
    AttackID,
    AttackRecord,
    BattleID,
    BattleSummary,
    ColonyID,
    ColonySnapshot,
    Position,
    SideArmies,
    UserID,
)
from antopolis.domain.rules_config import DIFFICULTY_PRESETS
from antopolis.repository import SqlColonyStore
from antopolis.utils.rng import PinnedRandom

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
AI = ColonyID("ai-1")
HOME = ColonyID("home")


@pytest.fixture
def engine(tmp_path):
    engine = create_db_engine(Settings(database_url=f"sqlite:///{tmp_path}/antopolis-test.db"))
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine):
    store = SqlColonyStore(create_session_factory(engine))
    store.upsert_colony(
        ColonySnapshot(
            id=AI,
            name="Red Swarm",
            is_ai=True,
            population=200,
            used_military_capacity=60,
            personality=Personality.AGGRESSIVE,
            total_ticks=250,
        )
    )
    store.upsert_colony(
        ColonySnapshot(
            id=HOME,
            name="Home",
            user_id=UserID("u1"),
            population=120,
            used_military_capacity=20,
            resources={ResourceType.FOOD: 300, ResourceType.WOOD: 40},
            base_position=Position(3, 4),
            terrain=Terrain.SWAMP,
            army={UnitType.SOLDIER: 12, UnitType.WORKER: 8},
        )
    )
    return store


def _summary(battle_id: str, at: datetime) -> BattleSummary:
    outcome = simulate_battle(
        {UnitType.SOLDIER: 20}, {UnitType.SOLDIER: 4}, rng=PinnedRandom()
    )
    return BattleSummary(
        id=BattleID(battle_id),
        attacker_id=AI,
        defender_id=HOME,
        battle_type=BattleType.AI_ATTACK,
        outcome=outcome,
        forces_involved=SideArmies(
            attacker={UnitType.SOLDIER: 20}, defender={UnitType.SOLDIER: 4}
        ),
        rewards={ResourceType.FOOD: 15},
        attack_type=AttackType.RAID,
        timestamp=at,
    )


def test_schema_is_created(engine):
    assert {"colonies", "difficulty_settings", "ai_attacks", "battle_history"} <= set(
        get_table_names(engine)
    )
    assert check_database_health(engine)


@pytest.mark.asyncio
async def test_colony_reads(store):
    ai_colonies = await store.get_active_ai_colonies()
    assert [colony.id for colony in ai_colonies] == [AI]
    assert ai_colonies[0].army is None
    assert ai_colonies[0].personality is Personality.AGGRESSIVE

    everyone = await store.list_active_colonies()
    assert [colony.id for colony in everyone] == [AI, HOME]

    home = await store.get_colony_details(HOME)
    assert home.base_position == Position(3, 4)
    assert home.terrain is Terrain.SWAMP
    assert home.resources == {ResourceType.FOOD: 300, ResourceType.WOOD: 40}
    assert home.army == {UnitType.SOLDIER: 12, UnitType.WORKER: 8}

    assert await store.get_colony_details(ColonyID("ghost")) is None


@pytest.mark.asyncio
async def test_difficulty_lookup(store):
    assert await store.get_difficulty_settings(None) == DIFFICULTY_PRESETS[DifficultyLevel.NORMAL]
    assert await store.get_difficulty_settings(UserID("u1")) == DIFFICULTY_PRESETS[
        DifficultyLevel.NORMAL
    ]

    store.set_difficulty(UserID("u1"), DifficultyLevel.HARD)
    assert await store.get_difficulty_settings(UserID("u1")) == DIFFICULTY_PRESETS[
        DifficultyLevel.HARD
    ]
    store.set_difficulty(UserID("u1"), DifficultyLevel.EASY)
    assert await store.get_difficulty_settings(UserID("u1")) == DIFFICULTY_PRESETS[
        DifficultyLevel.EASY
    ]


@pytest.mark.asyncio
async def test_attack_round_trip_and_resolution(store):
    outcome = simulate_battle(
        {UnitType.SOLDIER: 30}, {UnitType.SOLDIER: 12}, rng=PinnedRandom()
    )
    record = AttackRecord(
        id=AttackID("attack_0001"),
        attacker_colony_id=AI,
        target_colony_id=HOME,
        attack_type=AttackType.RAID,
        forces_sent={UnitType.SOLDIER: 30},
        estimated_arrival=NOW + timedelta(seconds=30),
        created_at=NOW,
        precomputed_outcome=outcome,
        plunder={ResourceType.FOOD: 90},
        attacker_name="Red Swarm",
    )

    await store.store_attack(record)
    loaded = await store.get_attack(record.id)

    assert loaded is not None
    assert loaded.status is AttackStatus.INCOMING
    assert loaded.estimated_arrival == record.estimated_arrival
    assert loaded.estimated_arrival.tzinfo is not None
    assert loaded.forces_sent == record.forces_sent
    assert loaded.plunder == record.plunder
    assert loaded.precomputed_outcome == outcome

    await store.mark_attack_resolved(record.id, NOW + timedelta(seconds=31))
    resolved = await store.get_attack(record.id)
    assert resolved.status is AttackStatus.RESOLVED
    assert resolved.resolved_at == NOW + timedelta(seconds=31)

    with pytest.raises(NotFoundError):
        await store.mark_attack_resolved(AttackID("missing"), NOW)


@pytest.mark.asyncio
async def test_casualties_and_transfers(store):
    await store.apply_casualties(HOME, {UnitType.SOLDIER: 5, UnitType.WORKER: 10})
    home = await store.get_colony_details(HOME)
    assert home.army == {UnitType.SOLDIER: 7, UnitType.WORKER: 0}
    assert home.population == 105
    assert home.used_military_capacity == 15

    moved = await store.transfer_resources(
        HOME, AI, {ResourceType.FOOD: 120, ResourceType.WOOD: 100, ResourceType.STONE: 5}
    )
    assert moved == {ResourceType.FOOD: 120, ResourceType.WOOD: 40}

    home = await store.get_colony_details(HOME)
    ai = await store.get_colony_details(AI)
    assert home.resources == {ResourceType.FOOD: 180, ResourceType.WOOD: 0}
    assert ai.resources == {ResourceType.FOOD: 120, ResourceType.WOOD: 40}

    with pytest.raises(NotFoundError):
        await store.apply_casualties(ColonyID("ghost"), {UnitType.SOLDIER: 1})


@pytest.mark.asyncio
async def test_battle_history_is_newest_first(store):
    for index in range(3):
        await store.create_battle_record(_summary(f"battle-{index}", NOW + timedelta(minutes=index)))

    records = await store.list_battle_records(HOME)
    assert [record.id for record in records] == ["battle-2", "battle-1", "battle-0"]
    assert records[0].timestamp == NOW + timedelta(minutes=2)
    assert records[0].rewards == {ResourceType.FOOD: 15}
    assert records[0].attack_type is AttackType.RAID
    assert records[0].forces_involved.defender == {UnitType.SOLDIER: 4}

    page = await store.list_battle_records(AI, limit=1, offset=1)
    assert [record.id for record in page] == ["battle-1"]
    assert await store.list_battle_records(ColonyID("elsewhere")) == []
