"""Bookkeeping shared by the colony store adapters."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from antopolis.domain.enums import ResourceType, UnitType
from antopolis.domain.models import Army, ResourceBundle

NON_MILITARY_UNITS = frozenset({UnitType.WORKER})


@dataclass(frozen=True, slots=True)
class CasualtyAdjustment:
    army: Army | None
    population: int
    used_military_capacity: int


def deduct_casualties(
    *,
    army: Mapping[UnitType, int] | None,
    population: int,
    used_military_capacity: int,
    casualties: Mapping[UnitType, int],
) -> CasualtyAdjustment:
    """New colony counts after burying ``casualties``; nothing drops below zero."""

    remaining = None
    if army is not None:
        remaining = dict(army)
        for unit, lost in casualties.items():
            if unit in remaining:
                remaining[unit] = max(0, remaining[unit] - lost)

    total = sum(casualties.values())
    military = sum(lost for unit, lost in casualties.items() if unit not in NON_MILITARY_UNITS)
    return CasualtyAdjustment(
        army=remaining,
        population=max(0, population - total),
        used_military_capacity=max(0, used_military_capacity - military),
    )


def plan_transfer(
    available: Mapping[ResourceType, int], requested: Mapping[ResourceType, int]
) -> ResourceBundle:
    """Portion of ``requested`` that the source can actually give up."""

    moved: ResourceBundle = {}
    for resource, amount in requested.items():
        portion = min(max(amount, 0), max(available.get(resource, 0), 0))
        if portion:
            moved[resource] = portion
    return moved
