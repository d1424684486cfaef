"""SQLAlchemy models for the Antopolis battle subsystem."""

from .attack import AttackRow
from .base import Base, TimestampMixin, as_utc
from .battle import BattleRow
from .colony import ColonyRow, DifficultySettingRow

__all__ = [
    "AttackRow",
    "Base",
    "BattleRow",
    "ColonyRow",
    "DifficultySettingRow",
    "TimestampMixin",
    "as_utc",
]
