"""Battle history table.

This module contains the model for settled battles, player raids and AI
attacks alike.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, CheckConstraint, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class BattleRow(Base):
    """A settled battle.

    Attributes:
        id: Battle identifier (the simulation's battle id)
        attacker_id / defender_id: Colonies involved
        battle_type: ``player_raid`` or ``ai_attack``
        attack_type: AI attack classification, ``None`` for raids
        verdict: Battle verdict, duplicated from the outcome for filtering
        outcome: Full JSON battle outcome
        forces_involved: JSON with both committed armies
        rewards: JSON resources the attacker plundered
        occurred_at: When the battle was settled
    """

    __tablename__ = "battle_history"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    attacker_id: Mapped[str] = mapped_column(String, nullable=False)
    defender_id: Mapped[str] = mapped_column(String, nullable=False)
    battle_type: Mapped[str] = mapped_column(String, nullable=False)
    attack_type: Mapped[str | None] = mapped_column(String, nullable=True)
    verdict: Mapped[str] = mapped_column(String, nullable=False)
    outcome: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    forces_involved: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    rewards: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint(
            "battle_type IN ('player_raid', 'ai_attack')", name="check_battle_type"
        ),
        Index("idx_battle_history_attacker", "attacker_id", "occurred_at"),
        Index("idx_battle_history_defender", "defender_id", "occurred_at"),
    )

    def __repr__(self) -> str:
        return f"<BattleRow(id={self.id!r}, type={self.battle_type!r}, verdict={self.verdict!r})>"
