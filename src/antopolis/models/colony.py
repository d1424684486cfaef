"""Colony and difficulty tables.

Colonies are owned by the wider game; the battle subsystem reads them and
writes back casualties and plundered resources.
"""

from typing import Any

from sqlalchemy import JSON, Boolean, CheckConstraint, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class ColonyRow(Base, TimestampMixin):
    """A colony as persisted.

    Attributes:
        id: Colony identifier
        name: Display name
        user_id: Owning user, ``None`` for unowned AI colonies
        is_ai: Whether the colony is controlled by the attack scheduler
        is_active: Inactive colonies are ignored by targeting
        population: Total ants
        used_military_capacity: Ants currently in military roles
        resources: JSON mapping resource name -> amount
        position_x / position_y: Base coordinates
        personality: AI personality name
        total_ticks: Simulation ticks the colony has lived
        territory_size: Tiles controlled
        terrain: Terrain of the colony's home tiles
        army: Optional JSON army composition (unit type -> count)
    """

    __tablename__ = "colonies"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    user_id: Mapped[str | None] = mapped_column(String, nullable=True)
    is_ai: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    population: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    used_military_capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    resources: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    position_x: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    position_y: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    personality: Mapped[str] = mapped_column(String, nullable=False, default="balanced")
    total_ticks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    territory_size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    terrain: Mapped[str] = mapped_column(String, nullable=False, default="grassland")
    army: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    __table_args__ = (
        CheckConstraint("population >= 0", name="check_population_non_negative"),
        CheckConstraint(
            "used_military_capacity >= 0", name="check_military_capacity_non_negative"
        ),
        Index("idx_colonies_ai_active", "is_ai", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<ColonyRow(id={self.id!r}, name={self.name!r}, ai={self.is_ai})>"


class DifficultySettingRow(Base, TimestampMixin):
    """Per-user difficulty level chosen from the presets."""

    __tablename__ = "difficulty_settings"

    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    difficulty_level: Mapped[str] = mapped_column(String, nullable=False, default="normal")

    __table_args__ = (
        CheckConstraint(
            "difficulty_level IN ('easy', 'normal', 'hard')",
            name="check_difficulty_level",
        ),
    )

    def __repr__(self) -> str:
        return f"<DifficultySettingRow(user_id={self.user_id!r}, level={self.difficulty_level!r})>"
