"""Declarative rule configuration for combat, targeting and scheduling."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from .enums import DifficultyLevel, Formation, ResourceType, TacticalRating, Terrain, UnitType


def _require_complete(table: dict, members: type[StrEnum], name: str) -> None:
    missing = [member.value for member in members if member not in table]
    if missing:
        raise ValueError(f"{name} is missing entries for: {', '.join(missing)}")


@dataclass(frozen=True, slots=True)
class FormationModifier:
    """Strength multipliers applied while attacking or defending."""

    attack: float
    defense: float


@dataclass(frozen=True, slots=True)
class TerrainModifier:
    """Per-role strength multipliers for a terrain."""

    attacker: float
    defender: float


@dataclass(frozen=True, slots=True)
class CombatRules:
    """Static tables used by the combat engine."""

    base_strength: dict[UnitType, float] = field(
        default_factory=lambda: {
            UnitType.WORKER: 1.0,
            UnitType.SOLDIER: 3.0,
            UnitType.SCOUT: 1.5,
            UnitType.GUARD: 4.0,
            UnitType.ELITE: 5.0,
        }
    )
    defender_survivability: dict[UnitType, float] = field(
        default_factory=lambda: {
            UnitType.WORKER: 0.8,
            UnitType.SOLDIER: 1.0,
            UnitType.SCOUT: 0.6,
            UnitType.GUARD: 1.2,
            UnitType.ELITE: 1.3,
        }
    )
    survival_modifiers: dict[UnitType, float] = field(
        default_factory=lambda: {
            UnitType.WORKER: 1.2,
            UnitType.SOLDIER: 0.8,
            UnitType.SCOUT: 1.0,
            UnitType.GUARD: 0.7,
            UnitType.ELITE: 0.6,
        }
    )
    formations: dict[Formation, FormationModifier] = field(
        default_factory=lambda: {
            Formation.AGGRESSIVE: FormationModifier(attack=1.2, defense=0.8),
            Formation.DEFENSIVE: FormationModifier(attack=0.8, defense=1.3),
            Formation.BALANCED: FormationModifier(attack=1.0, defense=1.0),
            Formation.GUERRILLA: FormationModifier(attack=1.1, defense=0.9),
        }
    )
    terrain: dict[Terrain, TerrainModifier] = field(
        default_factory=lambda: {
            Terrain.FOREST: TerrainModifier(attacker=0.9, defender=1.1),
            Terrain.DESERT: TerrainModifier(attacker=1.0, defender=1.0),
            Terrain.MOUNTAIN: TerrainModifier(attacker=0.8, defender=1.2),
            Terrain.GRASSLAND: TerrainModifier(attacker=1.1, defender=0.9),
            Terrain.SWAMP: TerrainModifier(attacker=0.7, defender=1.0),
            Terrain.CAVE: TerrainModifier(attacker=0.6, defender=1.4),
        }
    )
    phase_count: int = 3
    base_casualty_rate: float = 0.15
    max_casualty_rate: float = 0.4
    phase_escalation: float = 0.1
    randomness_band: float = 0.15
    # opponent/own strength ratio beyond which a side is overrun
    overrun_ratio: float = 10.0

    def __post_init__(self) -> None:
        _require_complete(self.base_strength, UnitType, "base_strength")
        _require_complete(self.defender_survivability, UnitType, "defender_survivability")
        _require_complete(self.survival_modifiers, UnitType, "survival_modifiers")
        _require_complete(self.formations, Formation, "formations")
        _require_complete(self.terrain, Terrain, "terrain")


@dataclass(frozen=True, slots=True)
class RewardRules:
    """Plunder granted to the victor of a battle."""

    base_rewards: dict[ResourceType, int] = field(
        default_factory=lambda: {
            ResourceType.FOOD: 100,
            ResourceType.WOOD: 50,
            ResourceType.STONE: 30,
            ResourceType.MINERALS: 20,
            ResourceType.WATER: 40,
        }
    )
    efficiency_multipliers: dict[TacticalRating, float] = field(
        default_factory=lambda: {
            TacticalRating.BRILLIANT: 1.5,
            TacticalRating.GOOD: 1.2,
            TacticalRating.FAIR: 1.0,
            TacticalRating.POOR: 0.8,
            TacticalRating.DISASTROUS: 0.6,
        }
    )
    reference_population: int = 100
    max_size_multiplier: float = 2.0

    def __post_init__(self) -> None:
        _require_complete(self.efficiency_multipliers, TacticalRating, "efficiency_multipliers")


@dataclass(frozen=True, slots=True)
class TargetingRules:
    """Weights and thresholds for picking a target colony."""

    max_distance: float = 50.0
    strength_weight: float = 0.4
    resource_weight: float = 0.3
    distance_weight: float = 0.2
    personality_weight: float = 0.1
    min_selection_score: float = 0.3
    resource_saturation: float = 500.0
    unopposed_strength_ratio: float = 2.0
    population_strength_factor: float = 0.3
    preferred_bonus: float = 0.3
    fallback_bonus: float = 0.1
    balanced_bonus: float = 0.15
    strong_target_threshold: float = 50.0
    weak_target_threshold: float = 30.0
    large_territory_threshold: int = 8


@dataclass(frozen=True, slots=True)
class SchedulerRules:
    """Timing and eligibility constants for the attack scheduler."""

    min_military_strength: float = 10.0
    min_cooldown_ms: int = 60_000
    min_travel_time_ms: int = 30_000
    travel_ms_per_distance: int = 1_000
    progression_ticks: int = 1_000
    max_progression_factor: float = 2.0
    min_commitment: float = 0.6
    max_commitment: float = 0.9
    intercept_window_ms: int = 60_000
    attack_worker_share: float = 0.1
    attack_scout_share: float = 0.05
    defense_worker_share: float = 0.2
    defense_scout_share: float = 0.1


@dataclass(frozen=True, slots=True)
class RetreatRules:
    """Penalties paid by an army withdrawing from battle."""

    casualty_rates: dict[UnitType, float] = field(
        default_factory=lambda: {
            UnitType.SOLDIER: 0.2,
            UnitType.WORKER: 0.15,
            UnitType.SCOUT: 0.1,
            UnitType.GUARD: 0.25,
            UnitType.ELITE: 0.1,
        }
    )
    food_penalty: int = 50
    morale_penalty: int = -10
    cooldown_penalty_ms: int = 3_600_000

    def __post_init__(self) -> None:
        _require_complete(self.casualty_rates, UnitType, "casualty_rates")


@dataclass(frozen=True, slots=True)
class DifficultySettings:
    """Per-player tuning of the AI attack loop."""

    base_attack_interval_ms: int
    aggression_multiplier: float
    attack_chance: float
    max_concurrent_attacks: int
    progression_scaling: float

    def __post_init__(self) -> None:
        if not 0.0 <= self.attack_chance <= 1.0:
            raise ValueError("attack_chance must lie in [0, 1]")
        if self.base_attack_interval_ms <= 0:
            raise ValueError("base_attack_interval_ms must be positive")
        if self.max_concurrent_attacks < 0:
            raise ValueError("max_concurrent_attacks cannot be negative")


DIFFICULTY_PRESETS: dict[DifficultyLevel, DifficultySettings] = {
    DifficultyLevel.EASY: DifficultySettings(
        base_attack_interval_ms=300_000,
        aggression_multiplier=0.6,
        attack_chance=0.3,
        max_concurrent_attacks=1,
        progression_scaling=0.8,
    ),
    DifficultyLevel.NORMAL: DifficultySettings(
        base_attack_interval_ms=180_000,
        aggression_multiplier=1.0,
        attack_chance=0.5,
        max_concurrent_attacks=2,
        progression_scaling=1.0,
    ),
    DifficultyLevel.HARD: DifficultySettings(
        base_attack_interval_ms=120_000,
        aggression_multiplier=1.4,
        attack_chance=0.7,
        max_concurrent_attacks=3,
        progression_scaling=1.2,
    ),
}


@dataclass(frozen=True, slots=True)
class RulesConfig:
    """Aggregate of every rule table."""

    combat: CombatRules = field(default_factory=CombatRules)
    rewards: RewardRules = field(default_factory=RewardRules)
    targeting: TargetingRules = field(default_factory=TargetingRules)
    scheduler: SchedulerRules = field(default_factory=SchedulerRules)
    retreat: RetreatRules = field(default_factory=RetreatRules)


DEFAULT_RULES = RulesConfig()
