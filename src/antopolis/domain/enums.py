"""Enumerations shared by the combat and scheduling rules."""

from __future__ import annotations

from enum import StrEnum


class UnitType(StrEnum):
    """Ant castes that can take part in a battle."""

    WORKER = "worker"
    SOLDIER = "soldier"
    SCOUT = "scout"
    GUARD = "guard"
    ELITE = "elite"


class Role(StrEnum):
    """Side of an engagement."""

    ATTACKER = "attacker"
    DEFENDER = "defender"


class Formation(StrEnum):
    """Tactical stance adopted by one side."""

    AGGRESSIVE = "aggressive"
    DEFENSIVE = "defensive"
    BALANCED = "balanced"
    GUERRILLA = "guerrilla"


class Terrain(StrEnum):
    """Terrain a battle is fought on."""

    FOREST = "forest"
    DESERT = "desert"
    MOUNTAIN = "mountain"
    GRASSLAND = "grassland"
    SWAMP = "swamp"
    CAVE = "cave"


class Personality(StrEnum):
    """Behaviour tag of an AI colony."""

    AGGRESSIVE = "aggressive"
    OPPORTUNIST = "opportunist"
    EXPANSIONIST = "expansionist"
    DEFENSIVE = "defensive"
    MILITANT = "militant"
    BALANCED = "balanced"


class ResourceType(StrEnum):
    """Stockpiles that can be plundered."""

    FOOD = "food"
    WOOD = "wood"
    STONE = "stone"
    MINERALS = "minerals"
    WATER = "water"


class BattleVerdict(StrEnum):
    """Overall outcome of a simulated battle."""

    ATTACKER_VICTORY = "attacker_victory"
    DEFENDER_VICTORY = "defender_victory"
    MUTUAL_DESTRUCTION = "mutual_destruction"


class Victor(StrEnum):
    """Winning side, or ``none`` when both armies were destroyed."""

    ATTACKER = "attacker"
    DEFENDER = "defender"
    NONE = "none"


class TacticalRating(StrEnum):
    """Qualitative label derived from the relative loss rates."""

    BRILLIANT = "brilliant"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    DISASTROUS = "disastrous"


class AttackType(StrEnum):
    """Scale of an AI attack, chosen from the strength ratio."""

    RAID = "raid"
    ASSAULT = "assault"
    SKIRMISH = "skirmish"
    PROBE = "probe"


class AttackStatus(StrEnum):
    """Lifecycle of an attack record."""

    INCOMING = "incoming"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"


class BattleType(StrEnum):
    """Origin of a battle history entry."""

    PLAYER_RAID = "player_raid"
    AI_ATTACK = "ai_attack"


class DifficultyLevel(StrEnum):
    """Difficulty presets available to players."""

    EASY = "easy"
    NORMAL = "normal"
    HARD = "hard"
