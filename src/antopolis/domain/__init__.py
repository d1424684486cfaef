"""Rules layer for colony warfare.

Everything in this package is pure and operates on in-memory records:

* Enumerations and dataclasses describing armies, colonies, battles and
  attacks (see :mod:`enums` and :mod:`models`).
* Rule tables and difficulty presets (see :mod:`rules_config`).
* Battle resolution and plunder pricing (see :mod:`combat`).
* Target scoring and attack planning (see :mod:`targeting`).
* Retreat penalties and battle statistics.

Persistence and scheduling live in :mod:`antopolis.repository` and
:mod:`antopolis.services`.
"""

from . import combat, enums, errors, models, retreat, rules_config, statistics, targeting

__all__ = [
    "combat",
    "enums",
    "errors",
    "models",
    "retreat",
    "rules_config",
    "statistics",
    "targeting",
]
