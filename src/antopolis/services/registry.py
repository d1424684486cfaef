"""In-process bookkeeping for AI attacks and per-colony scheduler loops."""

from __future__ import annotations

import logging
from datetime import datetime

from antopolis.domain.enums import AttackStatus
from antopolis.domain.models import AttackID, AttackRecord, ColonyID, SchedulerDescriptor

logger = logging.getLogger(__name__)


class AttackRegistry:
    """Holds attacks from commitment until resolution, plus loop descriptors.

    Only the event loop thread touches the registry, so no lock is taken.
    A record leaves the registry once it is resolved; history lives in the
    colony store.
    """

    def __init__(self) -> None:
        self._attacks: dict[AttackID, AttackRecord] = {}
        self._descriptors: dict[ColonyID, SchedulerDescriptor] = {}
        self.resolved_count = 0

    # --- attacks -----------------------------------------------------------------

    def insert(self, record: AttackRecord) -> None:
        if record.status is not AttackStatus.INCOMING:
            raise ValueError(f"attack {record.id} must be incoming to be registered")
        if record.id in self._attacks:
            raise ValueError(f"attack {record.id} is already registered")
        self._attacks[record.id] = record

    def get(self, attack_id: AttackID) -> AttackRecord | None:
        return self._attacks.get(attack_id)

    def mark_resolved(self, attack_id: AttackID, at: datetime) -> AttackRecord:
        record = self._attacks.get(attack_id)
        if record is None:
            raise KeyError(attack_id)
        record.mark_resolved(at)
        return record

    def remove(self, attack_id: AttackID) -> AttackRecord | None:
        record = self._attacks.pop(attack_id, None)
        if record is not None and record.status is AttackStatus.RESOLVED:
            self.resolved_count += 1
        return record

    def incoming_count(self, attacker_id: ColonyID) -> int:
        """Attacks launched by ``attacker_id`` that have not landed yet."""

        return sum(
            1
            for record in self._attacks.values()
            if record.attacker_colony_id == attacker_id
            and record.status is AttackStatus.INCOMING
        )

    def incoming_against(self, target_id: ColonyID) -> list[AttackRecord]:
        """Attacks heading for ``target_id``, soonest arrival first."""

        records = [
            record
            for record in self._attacks.values()
            if record.target_colony_id == target_id and record.status is AttackStatus.INCOMING
        ]
        return sorted(records, key=lambda record: record.estimated_arrival)

    def __len__(self) -> int:
        return len(self._attacks)

    # --- descriptors -------------------------------------------------------------

    def set_descriptor(self, descriptor: SchedulerDescriptor) -> None:
        self._descriptors[descriptor.colony_id] = descriptor

    def get_descriptor(self, colony_id: ColonyID) -> SchedulerDescriptor | None:
        return self._descriptors.get(colony_id)

    def remove_descriptor(self, colony_id: ColonyID) -> SchedulerDescriptor | None:
        return self._descriptors.pop(colony_id, None)

    def descriptors(self) -> list[SchedulerDescriptor]:
        return sorted(self._descriptors.values(), key=lambda descriptor: descriptor.colony_id)
