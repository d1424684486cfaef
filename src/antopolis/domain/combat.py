"""Battle resolution rules.

A battle is fought in up to three phases.  Each side's strength is priced
once at the start (composition, formation, terrain and a bounded random
factor); afterwards strength is recomputed from the surviving units with the
same multipliers, so randomness is never rolled twice for one side.
"""

from __future__ import annotations

import math
import random
import uuid
from collections.abc import Mapping
from datetime import UTC, datetime

from .enums import BattleVerdict, Formation, Role, TacticalRating, Terrain, UnitType, Victor
from .errors import ValidationError
from .models import (
    Army,
    BattleConditions,
    BattleEfficiency,
    BattleID,
    BattleOutcome,
    BattleRewards,
    BattleState,
    ColonySnapshot,
    PhaseResult,
    SideArmies,
    SideValues,
    army_size,
)
from .rules_config import DEFAULT_RULES, CombatRules, RulesConfig

BRILLIANT_MARGIN = 0.3
GOOD_MARGIN = 0.1
FAIR_MARGIN = -0.1
POOR_MARGIN = -0.3


def simulate_battle(
    attacker_army: Mapping[UnitType, int],
    defender_army: Mapping[UnitType, int],
    conditions: BattleConditions | None = None,
    *,
    rng: random.Random | None = None,
    rules: RulesConfig = DEFAULT_RULES,
) -> BattleOutcome:
    """Resolve a battle between two army compositions.

    The input mappings are never mutated.

    Raises:
        ValidationError: if either army is empty or holds a negative count.
    """
    _validate_army(attacker_army, "attacker_army")
    _validate_army(defender_army, "defender_army")

    conditions = conditions or BattleConditions()
    rng = rng or random.Random()
    combat = rules.combat

    attacker = _initial_state(
        attacker_army, Role.ATTACKER, conditions.attacker_formation, conditions.terrain, rng, combat
    )
    defender = _initial_state(
        defender_army, Role.DEFENDER, conditions.defender_formation, conditions.terrain, rng, combat
    )

    phases: list[PhaseResult] = []
    for phase in range(1, combat.phase_count + 1):
        result = _run_phase(attacker, defender, phase, combat)
        phases.append(result)
        if result.battle_ended:
            break

    verdict, victor = _determine_victor(attacker.strength, defender.strength)
    attacker_loss = _loss_rate(attacker)
    defender_loss = _loss_rate(defender)

    return BattleOutcome(
        battle_id=BattleID(f"battle_{uuid.uuid4().hex[:12]}"),
        outcome=verdict,
        victor=victor,
        final_strength=SideValues(attacker=attacker.strength, defender=defender.strength),
        total_casualties=SideArmies(
            attacker=dict(attacker.casualties), defender=dict(defender.casualties)
        ),
        army_survivors=SideArmies(attacker=dict(attacker.army), defender=dict(defender.army)),
        battle_efficiency=BattleEfficiency(
            attacker_loss_rate=attacker_loss,
            defender_loss_rate=defender_loss,
            tactical_rating=tactical_rating(attacker_loss, defender_loss),
        ),
        conditions=conditions,
        phases=tuple(phases),
        timestamp=datetime.now(UTC),
    )


def calculate_army_strength(
    army: Mapping[UnitType, int],
    role: Role,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> float:
    """Unmodified strength of an army in the given role."""

    return _raw_strength(army, role, rules.combat)


def tactical_rating(attacker_loss_rate: float, defender_loss_rate: float) -> TacticalRating:
    """Bucket the loss-rate margin into one of five tiers."""

    margin = defender_loss_rate - attacker_loss_rate
    if margin > BRILLIANT_MARGIN:
        return TacticalRating.BRILLIANT
    if margin > GOOD_MARGIN:
        return TacticalRating.GOOD
    if margin > FAIR_MARGIN:
        return TacticalRating.FAIR
    if margin > POOR_MARGIN:
        return TacticalRating.POOR
    return TacticalRating.DISASTROUS


def calculate_battle_rewards(
    outcome: BattleOutcome,
    winner: ColonySnapshot | None,
    loser: ColonySnapshot | None,
    *,
    rules: RulesConfig = DEFAULT_RULES,
) -> BattleRewards:
    """Price the plunder owed to the victor of ``outcome``.

    Returns an empty bundle when nobody won.  Otherwise the base bundle is
    scaled by the tactical rating and by the size of the defeated colony.
    """
    if outcome.victor is Victor.NONE:
        return BattleRewards(resources={}, message="No rewards - mutual destruction")

    reward_rules = rules.rewards
    rating = outcome.battle_efficiency.tactical_rating
    efficiency_multiplier = reward_rules.efficiency_multipliers[rating]

    population = reward_rules.reference_population
    if loser is not None and loser.population > 0:
        population = loser.population
    strength_multiplier = min(
        population / reward_rules.reference_population, reward_rules.max_size_multiplier
    )

    resources = {
        resource: math.floor(amount * efficiency_multiplier * strength_multiplier)
        for resource, amount in reward_rules.base_rewards.items()
    }
    recipient = f" for {winner.name}" if winner is not None else ""
    return BattleRewards(
        resources=resources,
        message=f"Victory rewards{recipient} ({rating} tactical performance)",
        efficiency_multiplier=efficiency_multiplier,
        strength_multiplier=strength_multiplier,
    )


def _validate_army(army: Mapping[UnitType, int], field_name: str) -> None:
    if army is None:
        raise ValidationError(f"{field_name} is required", field=field_name)
    for unit, count in army.items():
        if count < 0:
            raise ValidationError(
                f"{field_name}.{unit} cannot be negative", field=f"{field_name}.{unit}"
            )
    if army_size(army) == 0:
        side = "Attacker" if field_name.startswith("attacker") else "Defender"
        raise ValidationError(f"{side} army cannot be empty", field=field_name)


def _initial_state(
    army: Mapping[UnitType, int],
    role: Role,
    formation: Formation,
    terrain: Terrain,
    rng: random.Random,
    combat: CombatRules,
) -> BattleState:
    formation_mod = combat.formations[formation]
    terrain_mod = combat.terrain[terrain]
    if role is Role.ATTACKER:
        modifier = formation_mod.attack * terrain_mod.attacker
    else:
        modifier = formation_mod.defense * terrain_mod.defender
    modifier *= 1 + (rng.random() * 2 - 1) * combat.randomness_band

    snapshot: Army = dict(army)
    return BattleState(
        role=role,
        army=snapshot,
        formation=formation,
        modifier=modifier,
        strength=max(_raw_strength(snapshot, role, combat) * modifier, 0.0),
        original_size=army_size(snapshot),
        casualties={unit: 0 for unit in snapshot},
    )


def _raw_strength(army: Mapping[UnitType, int], role: Role, combat: CombatRules) -> float:
    strength = 0.0
    for unit, count in army.items():
        survivability = combat.defender_survivability[unit] if role is Role.DEFENDER else 1.0
        strength += combat.base_strength[unit] * survivability * count
    return strength


def _run_phase(
    attacker: BattleState,
    defender: BattleState,
    phase: int,
    combat: CombatRules,
) -> PhaseResult:
    total = attacker.strength + defender.strength
    attacker_share = attacker.strength / total

    # both sides are priced from pre-phase counts before anything is applied
    attacker_losses = _phase_casualties(
        attacker,
        disadvantage=1 - attacker_share,
        overrun=attacker.strength * combat.overrun_ratio < defender.strength,
        phase=phase,
        combat=combat,
    )
    defender_losses = _phase_casualties(
        defender,
        disadvantage=attacker_share,
        overrun=defender.strength * combat.overrun_ratio < attacker.strength,
        phase=phase,
        combat=combat,
    )
    _apply_casualties(attacker, attacker_losses)
    _apply_casualties(defender, defender_losses)

    attacker.strength = _raw_strength(attacker.army, attacker.role, combat) * attacker.modifier
    defender.strength = _raw_strength(defender.army, defender.role, combat) * defender.modifier

    return PhaseResult(
        phase=phase,
        attacker_casualties=attacker_losses,
        defender_casualties=defender_losses,
        remaining_strength=SideValues(attacker=attacker.strength, defender=defender.strength),
        battle_ended=attacker.strength <= 0 or defender.strength <= 0,
    )


def _phase_casualties(
    state: BattleState,
    *,
    disadvantage: float,
    overrun: bool,
    phase: int,
    combat: CombatRules,
) -> Army:
    escalation = 1 + (phase - 1) * combat.phase_escalation
    rate = min(combat.base_casualty_rate * disadvantage * escalation, combat.max_casualty_rate)

    casualties: Army = {}
    for unit, count in state.army.items():
        if count <= 0:
            continue
        phase_cap = math.ceil(count * combat.max_casualty_rate)
        if overrun:
            lost = phase_cap
        else:
            lost = math.floor(count * rate * combat.survival_modifiers[unit])
        casualties[unit] = min(lost, phase_cap, count)
    return casualties


def _apply_casualties(state: BattleState, casualties: Army) -> None:
    for unit, lost in casualties.items():
        state.army[unit] = max(0, state.army[unit] - lost)
        state.casualties[unit] = state.casualties.get(unit, 0) + lost


def _determine_victor(
    attacker_strength: float, defender_strength: float
) -> tuple[BattleVerdict, Victor]:
    attacker_alive = attacker_strength > 0
    defender_alive = defender_strength > 0
    if attacker_alive and defender_alive:
        if attacker_strength > defender_strength:
            return BattleVerdict.ATTACKER_VICTORY, Victor.ATTACKER
        return BattleVerdict.DEFENDER_VICTORY, Victor.DEFENDER
    if attacker_alive:
        return BattleVerdict.ATTACKER_VICTORY, Victor.ATTACKER
    if defender_alive:
        return BattleVerdict.DEFENDER_VICTORY, Victor.DEFENDER
    return BattleVerdict.MUTUAL_DESTRUCTION, Victor.NONE


def _loss_rate(state: BattleState) -> float:
    if state.original_size <= 0:
        return 0.0
    return sum(state.casualties.values()) / state.original_size
