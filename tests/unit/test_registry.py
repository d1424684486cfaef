"""Unit tests for the attack registry."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from antopolis.domain.combat import simulate_battle
from antopolis.domain.enums import AttackStatus, AttackType, DifficultyLevel, UnitType
from antopolis.domain.models import AttackID, AttackRecord, ColonyID, SchedulerDescriptor
from antopolis.domain.rules_config import DIFFICULTY_PRESETS
from antopolis.services.registry import AttackRegistry
from antopolis.utils.rng import PinnedRandom

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


def _record(attack_id: str, attacker: str = "ai", target: str = "player", *, eta: int = 30):
    return AttackRecord(
        id=AttackID(attack_id),
        attacker_colony_id=ColonyID(attacker),
        target_colony_id=ColonyID(target),
        attack_type=AttackType.RAID,
        forces_sent={UnitType.SOLDIER: 10},
        estimated_arrival=NOW + timedelta(seconds=eta),
        created_at=NOW,
        precomputed_outcome=simulate_battle(
            {UnitType.SOLDIER: 10}, {UnitType.SOLDIER: 2}, rng=PinnedRandom()
        ),
    )


def test_arrival_must_follow_creation():
    with pytest.raises(ValueError):
        _record("bad", eta=0)


def test_status_only_moves_forward():
    registry = AttackRegistry()
    record = _record("a1")
    registry.insert(record)
    observed = [registry.get(AttackID("a1")).status]

    registry.mark_resolved(AttackID("a1"), NOW + timedelta(seconds=30))
    observed.append(registry.get(AttackID("a1")).status)

    assert observed == [AttackStatus.INCOMING, AttackStatus.RESOLVED]
    with pytest.raises(ValueError):
        registry.mark_resolved(AttackID("a1"), NOW + timedelta(seconds=31))
    assert record.status is AttackStatus.RESOLVED

    registry.remove(AttackID("a1"))
    assert registry.get(AttackID("a1")) is None
    assert registry.resolved_count == 1


def test_insert_rejects_duplicates_and_resolved_records():
    registry = AttackRegistry()
    registry.insert(_record("a1"))
    with pytest.raises(ValueError):
        registry.insert(_record("a1"))

    resolved = _record("a2")
    resolved.mark_resolved(NOW)
    with pytest.raises(ValueError):
        registry.insert(resolved)


def test_incoming_counts_per_attacker_and_target():
    registry = AttackRegistry()
    registry.insert(_record("a1", "ai-1", "p-1", eta=90))
    registry.insert(_record("a2", "ai-1", "p-2"))
    registry.insert(_record("a3", "ai-2", "p-1", eta=45))

    assert registry.incoming_count(ColonyID("ai-1")) == 2
    assert registry.incoming_count(ColonyID("ai-2")) == 1
    assert registry.incoming_count(ColonyID("p-1")) == 0
    assert [r.id for r in registry.incoming_against(ColonyID("p-1"))] == ["a3", "a1"]

    registry.mark_resolved(AttackID("a1"), NOW)
    assert registry.incoming_count(ColonyID("ai-1")) == 1
    assert len(registry) == 3


def test_descriptors():
    registry = AttackRegistry()
    settings = DIFFICULTY_PRESETS[DifficultyLevel.NORMAL]
    for colony_id in ("b", "a"):
        registry.set_descriptor(
            SchedulerDescriptor(
                colony_id=ColonyID(colony_id),
                difficulty_settings=settings,
                interval_ms=1_000,
                next_attack_window=NOW,
            )
        )
    assert [d.colony_id for d in registry.descriptors()] == ["a", "b"]
    assert registry.remove_descriptor(ColonyID("a")) is not None
    assert registry.get_descriptor(ColonyID("a")) is None
