"""Unit tests for per-colony battle statistics."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from antopolis.domain.combat import simulate_battle
from antopolis.domain.enums import BattleType, ResourceType, TacticalRating, UnitType
from antopolis.domain.models import BattleID, BattleSummary, ColonyID, SideArmies
from antopolis.domain.statistics import compute_battle_statistics
from antopolis.utils.rng import PinnedRandom

START = datetime(2024, 1, 1, tzinfo=UTC)


def _summary(
    index: int,
    attacker: str,
    defender: str,
    attacker_army: dict[UnitType, int],
    defender_army: dict[UnitType, int],
    rewards: dict[ResourceType, int] | None = None,
) -> BattleSummary:
    outcome = simulate_battle(attacker_army, defender_army, rng=PinnedRandom())
    return BattleSummary(
        id=BattleID(f"battle_{index}"),
        attacker_id=ColonyID(attacker),
        defender_id=ColonyID(defender),
        battle_type=BattleType.PLAYER_RAID,
        outcome=outcome,
        forces_involved=SideArmies(attacker=attacker_army, defender=defender_army),
        rewards=rewards or {},
        timestamp=START + timedelta(hours=index),
    )


def test_statistics_for_colony_without_battles():
    stats = compute_battle_statistics(ColonyID("lonely"), [])
    assert stats.total_battles == 0
    assert stats.win_rate == 0.0
    assert stats.average_tactical_rating is None
    assert stats.last_battle is None


def test_statistics_count_wins_losses_and_rewards():
    records = [
        _summary(
            1, "red", "blue", {UnitType.SOLDIER: 100}, {UnitType.SOLDIER: 1},
            rewards={ResourceType.FOOD: 150},
        ),
        _summary(2, "blue", "red", {UnitType.WORKER: 2}, {UnitType.GUARD: 50}),
        _summary(3, "green", "blue", {UnitType.SOLDIER: 5}, {UnitType.SOLDIER: 5}),
    ]

    red = compute_battle_statistics(ColonyID("red"), records)

    assert red.total_battles == 2
    assert red.victories == 2
    assert red.defeats == 0
    assert red.win_rate == 1.0
    assert red.total_rewards == {ResourceType.FOOD: 150}
    assert red.strongest_victory is not None
    assert red.strongest_victory.battle_id == "battle_1"
    assert red.strongest_victory.rating is TacticalRating.BRILLIANT
    assert red.last_battle == START + timedelta(hours=2)

    blue = compute_battle_statistics(ColonyID("blue"), records)

    assert blue.total_battles == 3
    assert blue.victories == 1
    assert blue.defeats == 2
    assert blue.total_rewards == {}
    assert blue.total_casualties[UnitType.SOLDIER] >= 1
    assert blue.win_rate == 1 / 3
