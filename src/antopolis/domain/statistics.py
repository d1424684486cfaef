"""Per-colony battle statistics derived from battle history."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from .combat import tactical_rating
from .enums import TacticalRating, Victor
from .models import Army, BattleID, BattleSummary, ColonyID, ResourceBundle


@dataclass(frozen=True, slots=True)
class NotableVictory:
    battle_id: BattleID
    opponent_id: ColonyID
    rating: TacticalRating
    timestamp: datetime | None


@dataclass(slots=True)
class BattleStatistics:
    """Aggregate combat record of one colony."""

    colony_id: ColonyID
    total_battles: int = 0
    victories: int = 0
    defeats: int = 0
    draws: int = 0
    win_rate: float = 0.0
    total_casualties: Army = field(default_factory=dict)
    total_rewards: ResourceBundle = field(default_factory=dict)
    average_tactical_rating: TacticalRating | None = None
    combat_efficiency: float = 0.0
    last_battle: datetime | None = None
    strongest_victory: NotableVictory | None = None


def compute_battle_statistics(
    colony_id: ColonyID, records: Iterable[BattleSummary]
) -> BattleStatistics:
    """Fold the colony's battle history into a single statistics record.

    Loss rates are read from the colony's own side, so a defender that
    bloodied its attacker is credited with a good rating.
    """
    stats = BattleStatistics(colony_id=colony_id)
    own_losses: list[float] = []
    enemy_losses: list[float] = []
    best_margin: float | None = None

    for record in records:
        if colony_id == record.attacker_id:
            own_side, opponent = Victor.ATTACKER, record.defender_id
        elif colony_id == record.defender_id:
            own_side, opponent = Victor.DEFENDER, record.attacker_id
        else:
            continue

        outcome = record.outcome
        efficiency = outcome.battle_efficiency
        casualties = outcome.total_casualties
        if own_side is Victor.ATTACKER:
            own_loss, enemy_loss = efficiency.attacker_loss_rate, efficiency.defender_loss_rate
            own_casualties = casualties.attacker
        else:
            own_loss, enemy_loss = efficiency.defender_loss_rate, efficiency.attacker_loss_rate
            own_casualties = casualties.defender

        stats.total_battles += 1
        own_losses.append(own_loss)
        enemy_losses.append(enemy_loss)
        for unit, lost in own_casualties.items():
            stats.total_casualties[unit] = stats.total_casualties.get(unit, 0) + lost

        if outcome.victor is Victor.NONE:
            stats.draws += 1
        elif outcome.victor is own_side:
            stats.victories += 1
            if own_side is Victor.ATTACKER:
                for resource, amount in record.rewards.items():
                    stats.total_rewards[resource] = stats.total_rewards.get(resource, 0) + amount
            margin = enemy_loss - own_loss
            if best_margin is None or margin > best_margin:
                best_margin = margin
                stats.strongest_victory = NotableVictory(
                    battle_id=record.id,
                    opponent_id=opponent,
                    rating=tactical_rating(own_loss, enemy_loss),
                    timestamp=record.timestamp,
                )
        else:
            stats.defeats += 1

        if record.timestamp is not None and (
            stats.last_battle is None or record.timestamp > stats.last_battle
        ):
            stats.last_battle = record.timestamp

    if stats.total_battles:
        stats.win_rate = stats.victories / stats.total_battles
        mean_own = sum(own_losses) / len(own_losses)
        mean_enemy = sum(enemy_losses) / len(enemy_losses)
        stats.average_tactical_rating = tactical_rating(mean_own, mean_enemy)
        stats.combat_efficiency = mean_enemy - mean_own
    return stats
