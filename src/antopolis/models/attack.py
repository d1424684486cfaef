"""AI attack table.

One row per committed AI attack.  The precomputed outcome is stored as JSON
so that the result the defender eventually sees is the one priced when the
forces were sent.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, CheckConstraint, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class AttackRow(Base):
    """Represents an AI attack in flight or already resolved."""

    __tablename__ = "ai_attacks"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    attacker_colony_id: Mapped[str] = mapped_column(String, nullable=False)
    target_colony_id: Mapped[str] = mapped_column(String, nullable=False)
    attacker_name: Mapped[str | None] = mapped_column(String, nullable=True)
    attack_type: Mapped[str] = mapped_column(String, nullable=False)
    forces_sent: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    plunder: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    precomputed_outcome: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="incoming")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    estimated_arrival: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('incoming', 'resolved', 'cancelled')", name="check_attack_status"
        ),
        Index("idx_ai_attacks_target_status", "target_colony_id", "status"),
        Index("idx_ai_attacks_attacker_status", "attacker_colony_id", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<AttackRow(id={self.id!r}, {self.attacker_colony_id!r} -> "
            f"{self.target_colony_id!r}, status={self.status!r})>"
        )
