"""Target selection and attack planning for AI colonies.

All functions are pure: they read colony snapshots and rule tables and
never touch the store or the attack registry.
"""

from __future__ import annotations

import math
import random
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from .enums import AttackType, Formation, Personality, ResourceType, UnitType
from .models import Army, ColonySnapshot
from .rules_config import DEFAULT_RULES, DifficultySettings, RulesConfig

RAID_RATIO = 2.0
ASSAULT_RATIO = 1.5
SKIRMISH_RATIO = 1.0

_VALUED_RESOURCES = (
    ResourceType.FOOD,
    ResourceType.WOOD,
    ResourceType.STONE,
    ResourceType.MINERALS,
)


@dataclass(frozen=True, slots=True)
class TargetCandidate:
    """A colony within striking range, with the figures used to score it."""

    colony: ColonySnapshot
    distance: float
    military_strength: float
    resource_value: int


@dataclass(frozen=True, slots=True)
class TargetScore:
    """Breakdown of a target's attractiveness."""

    strength_score: float
    resource_score: float
    distance_score: float
    personality_bonus: float
    total: float


def military_strength(colony: ColonySnapshot, *, rules: RulesConfig = DEFAULT_RULES) -> float:
    return colony.used_military_capacity + colony.population * (
        rules.targeting.population_strength_factor
    )


def resource_value(colony: ColonySnapshot) -> int:
    return sum(colony.resources.get(resource, 0) for resource in _VALUED_RESOURCES)


def find_candidates(
    attacker: ColonySnapshot,
    colonies: Iterable[ColonySnapshot],
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> list[TargetCandidate]:
    """Every other active colony within the maximum attack distance."""

    candidates: list[TargetCandidate] = []
    for colony in colonies:
        if colony.id == attacker.id or not colony.is_active:
            continue
        distance = attacker.base_position.distance_to(colony.base_position)
        if distance > rules.targeting.max_distance:
            continue
        candidates.append(
            TargetCandidate(
                colony=colony,
                distance=distance,
                military_strength=military_strength(colony, rules=rules),
                resource_value=resource_value(colony),
            )
        )
    return candidates


def personality_bonus(
    personality: Personality,
    candidate: TargetCandidate,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> float:
    targeting = rules.targeting
    match personality:
        case Personality.AGGRESSIVE:
            preferred = candidate.military_strength > targeting.strong_target_threshold
        case Personality.OPPORTUNIST:
            preferred = candidate.military_strength < targeting.weak_target_threshold
        case Personality.EXPANSIONIST:
            preferred = candidate.colony.territory_size > targeting.large_territory_threshold
        case Personality.DEFENSIVE | Personality.MILITANT | Personality.BALANCED:
            return targeting.balanced_bonus
    return targeting.preferred_bonus if preferred else targeting.fallback_bonus


def score_target(
    attacker: ColonySnapshot,
    candidate: TargetCandidate,
    settings: DifficultySettings,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> TargetScore:
    """Weighted attractiveness of ``candidate`` for ``attacker`` in [0, 1]."""

    targeting = rules.targeting
    attacker_strength = military_strength(attacker, rules=rules)
    if candidate.military_strength > 0:
        ratio = attacker_strength / candidate.military_strength
    else:
        ratio = targeting.unopposed_strength_ratio

    strength_score = min(1.0, max(0.1, ratio - 0.5))
    resource_score = min(1.0, candidate.resource_value / targeting.resource_saturation)
    distance_score = max(0.1, 1.0 - candidate.distance / targeting.max_distance)
    bonus = personality_bonus(attacker.personality, candidate, rules=rules)

    weighted = (
        strength_score * targeting.strength_weight
        + resource_score * targeting.resource_weight
        + distance_score * targeting.distance_weight
        + bonus * targeting.personality_weight
    ) * settings.aggression_multiplier

    return TargetScore(
        strength_score=strength_score,
        resource_score=resource_score,
        distance_score=distance_score,
        personality_bonus=bonus,
        total=min(1.0, weighted),
    )


def select_best_target(
    attacker: ColonySnapshot,
    candidates: Iterable[TargetCandidate],
    settings: DifficultySettings,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> tuple[TargetCandidate, TargetScore] | None:
    """Highest scoring candidate, or ``None`` when nothing clears the threshold."""

    best: tuple[TargetCandidate, TargetScore] | None = None
    for candidate in candidates:
        score = score_target(attacker, candidate, settings, rules=rules)
        if best is None or score.total > best[1].total:
            best = (candidate, score)

    if best is None or best[1].total < rules.targeting.min_selection_score:
        return None
    return best


def is_eligible_for_attack(
    colony: ColonySnapshot,
    settings: DifficultySettings,
    *,
    incoming_attacks: int,
    last_attack: datetime | None,
    now: datetime,
    rules: RulesConfig = DEFAULT_RULES,
) -> bool:
    """Concurrency cap, minimum strength and cooldown gate."""

    if incoming_attacks >= settings.max_concurrent_attacks:
        return False
    if military_strength(colony, rules=rules) < rules.scheduler.min_military_strength:
        return False
    cooldown = timedelta(milliseconds=rules.scheduler.min_cooldown_ms)
    return not (last_attack is not None and now - last_attack < cooldown)


def determine_attack_type(
    attacker: ColonySnapshot,
    target: ColonySnapshot,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> AttackType:
    ratio = military_strength(attacker, rules=rules) / max(
        1.0, military_strength(target, rules=rules)
    )
    if ratio > RAID_RATIO:
        return AttackType.RAID
    if ratio > ASSAULT_RATIO:
        return AttackType.ASSAULT
    if ratio > SKIRMISH_RATIO:
        return AttackType.SKIRMISH
    return AttackType.PROBE


def select_formation(personality: Personality) -> Formation:
    match personality:
        case Personality.AGGRESSIVE | Personality.MILITANT:
            return Formation.AGGRESSIVE
        case Personality.DEFENSIVE:
            return Formation.DEFENSIVE
        case Personality.OPPORTUNIST | Personality.EXPANSIONIST | Personality.BALANCED:
            return Formation.BALANCED


def calculate_attack_interval(
    colony: ColonySnapshot,
    settings: DifficultySettings,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> int:
    """Milliseconds between evaluations; shrinks as the colony matures."""

    scheduler = rules.scheduler
    progression = min(
        scheduler.max_progression_factor, colony.total_ticks / scheduler.progression_ticks
    )
    return math.floor(
        settings.base_attack_interval_ms / (1 + progression * settings.progression_scaling)
    )


def travel_time_ms(distance: float, *, rules: RulesConfig = DEFAULT_RULES) -> int:
    scheduler = rules.scheduler
    return max(scheduler.min_travel_time_ms, math.ceil(distance * scheduler.travel_ms_per_distance))


def attack_garrison(colony: ColonySnapshot, *, rules: RulesConfig = DEFAULT_RULES) -> Army:
    """Units a colony can send out; the stored army wins over the estimate."""

    if colony.army is not None:
        return {unit: count for unit, count in colony.army.items() if count > 0}
    scheduler = rules.scheduler
    return _drop_empty(
        {
            UnitType.WORKER: math.floor(colony.population * scheduler.attack_worker_share),
            UnitType.SOLDIER: colony.used_military_capacity,
            UnitType.SCOUT: math.floor(colony.population * scheduler.attack_scout_share),
        }
    )


def defense_forces(colony: ColonySnapshot, *, rules: RulesConfig = DEFAULT_RULES) -> Army:
    """Units that stand to defend a colony when it is attacked."""

    if colony.army is not None:
        return {unit: count for unit, count in colony.army.items() if count > 0}
    scheduler = rules.scheduler
    return _drop_empty(
        {
            UnitType.WORKER: math.floor(colony.population * scheduler.defense_worker_share),
            UnitType.SOLDIER: colony.used_military_capacity,
            UnitType.SCOUT: math.floor(colony.population * scheduler.defense_scout_share),
        }
    )


def commit_forces(
    colony: ColonySnapshot,
    rng: random.Random,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> Army:
    """Send a random 60-90% share of the available garrison."""

    scheduler = rules.scheduler
    ratio = scheduler.min_commitment + rng.random() * (
        scheduler.max_commitment - scheduler.min_commitment
    )
    garrison = attack_garrison(colony, rules=rules)
    return _drop_empty({unit: math.floor(count * ratio) for unit, count in garrison.items()})


def _drop_empty(army: Army) -> Army:
    return {unit: count for unit, count in army.items() if count > 0}
