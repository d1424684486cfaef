"""Retreat penalties for an army withdrawing from battle."""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass

from .enums import ResourceType, UnitType
from .models import Army, ResourceBundle
from .rules_config import DEFAULT_RULES, RulesConfig


@dataclass(frozen=True, slots=True)
class RetreatResult:
    """Survivors of a retreat and the penalties paid for it."""

    original_army: Army
    casualties: Army
    surviving_army: Army
    resource_penalty: ResourceBundle
    morale_penalty: int
    cooldown_penalty_ms: int


def retreat(
    remaining_army: Mapping[UnitType, int], *, rules: RulesConfig = DEFAULT_RULES
) -> RetreatResult:
    """Withdraw ``remaining_army`` paying the fixed retreat penalties."""

    retreat_rules = rules.retreat
    casualties: Army = {}
    survivors: Army = {}
    for unit, count in remaining_army.items():
        lost = math.floor(count * retreat_rules.casualty_rates[unit])
        casualties[unit] = lost
        survivors[unit] = max(0, count - lost)

    return RetreatResult(
        original_army=dict(remaining_army),
        casualties=casualties,
        surviving_army=survivors,
        resource_penalty={ResourceType.FOOD: retreat_rules.food_penalty},
        morale_penalty=retreat_rules.morale_penalty,
        cooldown_penalty_ms=retreat_rules.cooldown_penalty_ms,
    )
