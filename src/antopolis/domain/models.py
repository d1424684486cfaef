"""Dataclasses describing armies, colonies, battles and attacks.

The rules layer operates only on these records.  Store adapters translate
between them and whatever persistence sits behind the colony store
(SQLAlchemy rows, in-memory dictionaries, JSON payloads).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import NewType

from .enums import (
    AttackStatus,
    AttackType,
    BattleType,
    BattleVerdict,
    Formation,
    Personality,
    ResourceType,
    Role,
    TacticalRating,
    Terrain,
    UnitType,
    Victor,
)
from .errors import ValidationError
from .rules_config import DifficultySettings

# --- Identifiers ----------------------------------------------------------------

ColonyID = NewType("ColonyID", str)
UserID = NewType("UserID", str)
AttackID = NewType("AttackID", str)
BattleID = NewType("BattleID", str)

Army = dict[UnitType, int]
ResourceBundle = dict[ResourceType, int]


# --- Army helpers ---------------------------------------------------------------


def army_size(army: Mapping[UnitType, int]) -> int:
    """Total number of units in an army."""

    return sum(army.values())


def parse_army(raw: Mapping[str, object] | None, *, field_name: str) -> Army:
    """Build a typed army from loosely typed input.

    Raises:
        ValidationError: on unknown unit types, non-integer or negative counts.
    """
    if raw is None:
        raise ValidationError(f"{field_name} is required", field=field_name)

    army: Army = {}
    for key, value in raw.items():
        try:
            unit = UnitType(key)
        except ValueError as exc:
            raise ValidationError(
                f"unknown unit type '{key}' in {field_name}", field=field_name
            ) from exc
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(
                f"{field_name}.{key} must be an integer", field=f"{field_name}.{key}"
            )
        if value < 0:
            raise ValidationError(
                f"{field_name}.{key} cannot be negative", field=f"{field_name}.{key}"
            )
        army[unit] = army.get(unit, 0) + value
    return army


# --- Colonies -------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Position:
    """Base coordinates of a colony on the world map."""

    x: float = 0.0
    y: float = 0.0

    def distance_to(self, other: Position) -> float:
        return ((other.x - self.x) ** 2 + (other.y - self.y) ** 2) ** 0.5


@dataclass(slots=True)
class ColonySnapshot:
    """Point-in-time copy of a colony read from the store.

    A snapshot is never refreshed in place; anything read before an await
    may already be stale by the time it is used.
    """

    id: ColonyID
    name: str
    user_id: UserID | None = None
    is_ai: bool = False
    is_active: bool = True
    population: int = 0
    used_military_capacity: int = 0
    resources: ResourceBundle = field(default_factory=dict)
    base_position: Position = field(default_factory=Position)
    personality: Personality = Personality.BALANCED
    total_ticks: int = 0
    territory_size: int = 0
    terrain: Terrain = Terrain.GRASSLAND
    army: Army | None = None


# --- Battles --------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class BattleConditions:
    """Optional battle parameters; unset fields fall back to the defaults."""

    terrain: Terrain = Terrain.GRASSLAND
    attacker_formation: Formation = Formation.BALANCED
    defender_formation: Formation = Formation.DEFENSIVE


@dataclass(slots=True)
class BattleState:
    """Mutable per-side state that only lives for one simulation."""

    role: Role
    army: Army
    formation: Formation
    modifier: float
    strength: float
    original_size: int
    casualties: Army


@dataclass(frozen=True, slots=True)
class SideValues:
    """A float per side (strength, loss rate...)."""

    attacker: float
    defender: float


@dataclass(frozen=True, slots=True)
class SideArmies:
    """An army-shaped mapping per side."""

    attacker: Army
    defender: Army


@dataclass(frozen=True, slots=True)
class PhaseResult:
    """What happened during one phase of a battle."""

    phase: int
    attacker_casualties: Army
    defender_casualties: Army
    remaining_strength: SideValues
    battle_ended: bool


@dataclass(frozen=True, slots=True)
class BattleEfficiency:
    """Loss rates of both sides and the rating they imply."""

    attacker_loss_rate: float
    defender_loss_rate: float
    tactical_rating: TacticalRating


@dataclass(frozen=True, slots=True)
class BattleOutcome:
    """Immutable result of ``simulate_battle``."""

    battle_id: BattleID
    outcome: BattleVerdict
    victor: Victor
    final_strength: SideValues
    total_casualties: SideArmies
    army_survivors: SideArmies
    battle_efficiency: BattleEfficiency
    conditions: BattleConditions
    phases: tuple[PhaseResult, ...]
    timestamp: datetime


@dataclass(frozen=True, slots=True)
class BattleRewards:
    """Plunder for the victor together with the multipliers that priced it."""

    resources: ResourceBundle
    message: str
    efficiency_multiplier: float = 0.0
    strength_multiplier: float = 0.0


@dataclass(slots=True)
class BattleSummary:
    """Battle history entry written once an engagement is settled."""

    id: BattleID
    attacker_id: ColonyID
    defender_id: ColonyID
    battle_type: BattleType
    outcome: BattleOutcome
    forces_involved: SideArmies
    rewards: ResourceBundle = field(default_factory=dict)
    attack_type: AttackType | None = None
    timestamp: datetime | None = None


# --- Scheduling -----------------------------------------------------------------


@dataclass(slots=True)
class AttackRecord:
    """One AI attack from commitment until resolution."""

    id: AttackID
    attacker_colony_id: ColonyID
    target_colony_id: ColonyID
    attack_type: AttackType
    forces_sent: Army
    estimated_arrival: datetime
    created_at: datetime
    precomputed_outcome: BattleOutcome
    plunder: ResourceBundle = field(default_factory=dict)
    attacker_name: str | None = None
    status: AttackStatus = AttackStatus.INCOMING
    resolved_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.estimated_arrival <= self.created_at:
            raise ValueError("estimated_arrival must be later than created_at")

    def mark_resolved(self, at: datetime) -> None:
        """Move the record from ``incoming`` to ``resolved``; never backwards."""

        if self.status is not AttackStatus.INCOMING:
            raise ValueError(f"attack {self.id} is already {self.status}")
        self.status = AttackStatus.RESOLVED
        self.resolved_at = at


@dataclass(slots=True)
class SchedulerDescriptor:
    """Bookkeeping for one AI colony's recurring decision loop."""

    colony_id: ColonyID
    difficulty_settings: DifficultySettings
    interval_ms: int
    next_attack_window: datetime
    last_attack: datetime | None = None
