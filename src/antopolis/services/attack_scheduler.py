"""Recurring attack decisions for AI colonies.

Each AI colony gets its own asyncio task that sleeps for the colony's
interval and then runs one evaluation.  Committed attacks get a one-shot
resolution task that fires when the attackers arrive.  Everything runs on
one event loop; store calls are the only suspension points.
"""

from __future__ import annotations

import asyncio
import logging
import random
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from antopolis.domain.combat import calculate_battle_rewards, simulate_battle
from antopolis.domain.enums import AttackStatus, Formation, Victor
from antopolis.domain.errors import (
    NotFoundError,
    SchedulingInitError,
    TransientStoreError,
    ValidationError,
)
from antopolis.domain.models import (
    AttackID,
    AttackRecord,
    BattleConditions,
    BattleSummary,
    ColonyID,
    ColonySnapshot,
    SchedulerDescriptor,
)
from antopolis.domain.rules_config import DEFAULT_RULES, DifficultySettings, RulesConfig
from antopolis.domain.targeting import (
    TargetCandidate,
    calculate_attack_interval,
    commit_forces,
    defense_forces,
    determine_attack_type,
    find_candidates,
    is_eligible_for_attack,
    select_best_target,
    select_formation,
    travel_time_ms,
)
from antopolis.interfaces import IColonyStore
from antopolis.services.outcome_applier import OutcomeApplier
from antopolis.services.registry import AttackRegistry

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class ScheduledColony:
    colony_id: ColonyID
    interval_ms: int
    last_attack: datetime | None
    next_attack_window: datetime


@dataclass(frozen=True, slots=True)
class SchedulerStatus:
    """Point-in-time view of the scheduler."""

    initialized: bool
    active_schedulers: tuple[ScheduledColony, ...]
    incoming_attacks: int
    resolved_attacks: int
    pending_resolutions: int


class AttackScheduler:
    """Drive one decision loop per AI colony and resolve the attacks it commits."""

    MIN_DELAY_SECONDS = 0.0

    def __init__(
        self,
        store: IColonyStore,
        *,
        registry: AttackRegistry | None = None,
        applier: OutcomeApplier | None = None,
        rules: RulesConfig = DEFAULT_RULES,
        rng: random.Random | None = None,
        clock: Clock = _utc_now,
        time_multiplier: float = 1.0,
    ) -> None:
        if time_multiplier <= 0:
            raise ValueError("time_multiplier must be positive")
        self._store = store
        self.registry = registry or AttackRegistry()
        self._applier = applier or OutcomeApplier(store)
        self._rules = rules
        self._rng = rng or random.Random()
        self._clock = clock
        self._time_multiplier = time_multiplier
        self._loops: dict[ColonyID, asyncio.Task[None]] = {}
        self._stop_events: dict[ColonyID, asyncio.Event] = {}
        self._locks: dict[ColonyID, asyncio.Lock] = {}
        self._last_attacks: dict[ColonyID, datetime] = {}
        self._resolutions: dict[AttackID, asyncio.Task[BattleSummary | None]] = {}
        self.initialized = False

    # --- lifecycle ---------------------------------------------------------------

    async def initialize(self) -> int:
        """Start a loop for every active AI colony and return how many started.

        Raises:
            SchedulingInitError: if the AI colonies cannot be listed.
        """
        try:
            colonies = await self._store.get_active_ai_colonies()
        except Exception as exc:
            raise SchedulingInitError(f"could not list active AI colonies: {exc}") from exc

        started = 0
        for colony in colonies:
            if not colony.is_ai:
                logger.info("Colony %s is not AI-controlled; not scheduling it", colony.id)
                continue
            try:
                await self.start_for_colony(colony.id)
            except (NotFoundError, TransientStoreError) as exc:
                logger.warning("Could not start attack loop for colony %s: %s", colony.id, exc)
                continue
            started += 1

        self.initialized = True
        logger.info("Attack scheduler initialized with %d AI colonies", started)
        return started

    async def start_for_colony(self, colony_id: ColonyID) -> SchedulerDescriptor:
        """Arm (or re-arm) the recurring evaluation loop of one colony.

        Raises:
            NotFoundError: if the colony does not exist.
            ValidationError: if the colony is not AI-controlled.
        """
        colony = await self._require_colony(colony_id)
        if not colony.is_ai:
            raise ValidationError(f"colony {colony_id} is not AI-controlled", field="colony_id")
        settings = await self._store.get_difficulty_settings(colony.user_id)
        interval_ms = calculate_attack_interval(colony, settings, rules=self._rules)

        await self._stop_loop(colony_id)
        descriptor = SchedulerDescriptor(
            colony_id=colony_id,
            difficulty_settings=settings,
            interval_ms=interval_ms,
            next_attack_window=self._clock() + timedelta(milliseconds=interval_ms),
            last_attack=self._last_attacks.get(colony_id),
        )
        self.registry.set_descriptor(descriptor)

        stop_event = asyncio.Event()
        self._stop_events[colony_id] = stop_event
        loop = asyncio.get_running_loop()
        self._loops[colony_id] = loop.create_task(
            self._run_loop(colony_id, stop_event), name=f"antopolis-attack-loop-{colony_id}"
        )
        logger.info("Attack loop armed for colony %s every %d ms", colony_id, interval_ms)
        return descriptor

    async def stop_for_colony(self, colony_id: ColonyID) -> bool:
        """Cancel future evaluations; attacks already under way still land."""

        stopped = await self._stop_loop(colony_id)
        self.registry.remove_descriptor(colony_id)
        if stopped:
            logger.info("Attack loop stopped for colony %s", colony_id)
        return stopped

    async def shutdown_all(self) -> None:
        for colony_id in list(self._loops):
            await self.stop_for_colony(colony_id)
        self.initialized = False

    async def close(self) -> None:
        """Stop every loop and abandon attacks that have not landed yet.

        Abandoned attacks stay ``incoming`` in the store.
        """
        await self.shutdown_all()
        pending = {
            attack_id: task for attack_id, task in self._resolutions.items() if not task.done()
        }
        if pending:
            logger.warning(
                "Abandoning %d unresolved attacks: %s", len(pending), ", ".join(sorted(pending))
            )
        for task in pending.values():
            task.cancel()
        await asyncio.gather(*pending.values(), return_exceptions=True)
        self._resolutions.clear()

    # --- queries -----------------------------------------------------------------

    def is_running(self, colony_id: ColonyID) -> bool:
        task = self._loops.get(colony_id)
        return task is not None and not task.done()

    def incoming_attacks_for(self, colony_id: ColonyID) -> int:
        return self.registry.incoming_count(colony_id)

    def incoming_attacks_against(self, colony_id: ColonyID) -> list[AttackRecord]:
        return self.registry.incoming_against(colony_id)

    async def is_eligible_for_attack(self, colony_id: ColonyID) -> bool:
        colony = await self._require_colony(colony_id)
        settings = await self._store.get_difficulty_settings(colony.user_id)
        return self._eligible(colony, settings)

    def status(self) -> SchedulerStatus:
        active = tuple(
            ScheduledColony(
                colony_id=descriptor.colony_id,
                interval_ms=descriptor.interval_ms,
                last_attack=descriptor.last_attack,
                next_attack_window=descriptor.next_attack_window,
            )
            for descriptor in self.registry.descriptors()
            if self.is_running(descriptor.colony_id)
        )
        return SchedulerStatus(
            initialized=self.initialized,
            active_schedulers=active,
            incoming_attacks=len(self.registry),
            resolved_attacks=self.registry.resolved_count,
            pending_resolutions=sum(1 for task in self._resolutions.values() if not task.done()),
        )

    # --- evaluation --------------------------------------------------------------

    async def evaluate(self, colony_id: ColonyID) -> AttackRecord | None:
        """Run one decision for ``colony_id``; never raises.

        Returns the committed attack, or ``None`` when no attack happened.
        """
        async with self._lock_for(colony_id):
            try:
                return await self._evaluate(colony_id)
            except NotFoundError as exc:
                logger.info("Skipping evaluation for colony %s: %s", colony_id, exc)
            except TransientStoreError as exc:
                logger.warning("Colony store unavailable while evaluating %s: %s", colony_id, exc)
            except Exception:
                logger.exception("Attack evaluation failed for colony %s", colony_id)
        return None

    async def _evaluate(self, colony_id: ColonyID) -> AttackRecord | None:
        colony = await self._require_colony(colony_id)
        if not colony.is_ai:
            logger.warning("Colony %s is not AI-controlled; not attacking", colony_id)
            return None
        settings = await self._store.get_difficulty_settings(colony.user_id)
        if not self._eligible(colony, settings):
            logger.debug("Colony %s is not eligible to attack", colony_id)
            return None

        colonies = await self._store.list_active_colonies()
        choice = select_best_target(
            colony, find_candidates(colony, colonies, rules=self._rules), settings, rules=self._rules
        )
        if choice is None:
            logger.debug("Colony %s found no worthwhile target", colony_id)
            return None

        if self._rng.random() >= settings.attack_chance:
            logger.debug("Colony %s decided not to attack this time", colony_id)
            return None

        candidate, score = choice
        logger.debug(
            "Colony %s picked %s (score %.2f)", colony_id, candidate.colony.id, score.total
        )
        return await self._commit(colony, candidate)

    async def _commit(
        self, colony: ColonySnapshot, candidate: TargetCandidate
    ) -> AttackRecord | None:
        target = candidate.colony
        forces = commit_forces(colony, self._rng, rules=self._rules)
        if not forces:
            logger.debug("Colony %s has no units to send", colony.id)
            return None
        defenders = defense_forces(target, rules=self._rules)
        if not defenders:
            logger.debug("Target %s has no defenders to fight", target.id)
            return None

        conditions = BattleConditions(
            terrain=target.terrain,
            attacker_formation=select_formation(colony.personality),
            defender_formation=Formation.DEFENSIVE,
        )
        outcome = simulate_battle(forces, defenders, conditions, rng=self._rng, rules=self._rules)
        plunder = {}
        if outcome.victor is Victor.ATTACKER:
            plunder = calculate_battle_rewards(outcome, colony, target, rules=self._rules).resources

        now = self._clock()
        travel_ms = travel_time_ms(candidate.distance, rules=self._rules)
        record = AttackRecord(
            id=AttackID(f"attack_{uuid.uuid4().hex[:12]}"),
            attacker_colony_id=colony.id,
            target_colony_id=target.id,
            attack_type=determine_attack_type(colony, target, rules=self._rules),
            forces_sent=forces,
            estimated_arrival=now + timedelta(seconds=self._delay_seconds(travel_ms)),
            created_at=now,
            precomputed_outcome=outcome,
            plunder=plunder,
            attacker_name=colony.name,
        )
        await self._store.store_attack(record)

        self.registry.insert(record)
        self._last_attacks[colony.id] = now
        descriptor = self.registry.get_descriptor(colony.id)
        if descriptor is not None:
            descriptor.last_attack = now
        self._arm_resolution(record, travel_ms)

        logger.info(
            "Colony %s launched %s %s on %s with %d units, arriving in %d ms",
            colony.id,
            record.attack_type,
            record.id,
            target.id,
            sum(forces.values()),
            travel_ms,
        )
        return record

    # --- resolution --------------------------------------------------------------

    async def resolve(self, attack_id: AttackID) -> BattleSummary | None:
        """Land an attack: apply its frozen outcome and drop it from the registry.

        A failed store write is logged with everything needed to replay it by
        hand; the attack is not retried.
        """
        record = self.registry.get(attack_id)
        if record is None or record.status is not AttackStatus.INCOMING:
            logger.warning("Attack %s is not awaiting resolution", attack_id)
            return None

        resolved_at = self._clock()
        self.registry.mark_resolved(attack_id, resolved_at)
        summary = None
        try:
            summary = await self._applier.apply_attack(record, resolved_at=resolved_at)
        except Exception:
            outcome = record.precomputed_outcome
            logger.exception(
                "Failed to write result of attack %s (%s -> %s, %s, plunder=%s); "
                "colony state needs manual reconciliation",
                attack_id,
                record.attacker_colony_id,
                record.target_colony_id,
                outcome.outcome,
                {str(resource): amount for resource, amount in record.plunder.items()},
            )
        finally:
            self.registry.remove(attack_id)

        if summary is not None:
            logger.info(
                "Attack %s resolved: %s (%s)",
                attack_id,
                summary.outcome.outcome,
                summary.outcome.battle_efficiency.tactical_rating,
            )
        return summary

    def _arm_resolution(self, record: AttackRecord, travel_ms: int) -> None:
        loop = asyncio.get_running_loop()
        task = loop.create_task(
            self._resolve_after(record.id, self._delay_seconds(travel_ms)),
            name=f"antopolis-resolve-{record.id}",
        )
        self._resolutions[record.id] = task
        task.add_done_callback(lambda _task: self._resolutions.pop(record.id, None))

    async def _resolve_after(self, attack_id: AttackID, delay: float) -> BattleSummary | None:
        await asyncio.sleep(delay)
        return await self.resolve(attack_id)

    # --- internals ---------------------------------------------------------------

    async def _run_loop(self, colony_id: ColonyID, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            descriptor = self.registry.get_descriptor(colony_id)
            if descriptor is None:
                return
            try:
                await asyncio.wait_for(
                    stop_event.wait(), timeout=self._delay_seconds(descriptor.interval_ms)
                )
                return
            except TimeoutError:
                pass
            descriptor.next_attack_window = self._clock() + timedelta(
                milliseconds=descriptor.interval_ms
            )
            await self.evaluate(colony_id)

    async def _stop_loop(self, colony_id: ColonyID) -> bool:
        task = self._loops.pop(colony_id, None)
        stop_event = self._stop_events.pop(colony_id, None)
        if task is None:
            return False
        if stop_event is not None:
            stop_event.set()
        if task is not asyncio.current_task():
            await task
        return True

    def _eligible(self, colony: ColonySnapshot, settings: DifficultySettings) -> bool:
        return is_eligible_for_attack(
            colony,
            settings,
            incoming_attacks=self.registry.incoming_count(colony.id),
            last_attack=self._last_attacks.get(colony.id),
            now=self._clock(),
            rules=self._rules,
        )

    async def _require_colony(self, colony_id: ColonyID) -> ColonySnapshot:
        colony = await self._store.get_colony_details(colony_id)
        if colony is None:
            raise NotFoundError("colony", colony_id)
        return colony

    def _lock_for(self, colony_id: ColonyID) -> asyncio.Lock:
        lock = self._locks.get(colony_id)
        if lock is None:
            lock = self._locks[colony_id] = asyncio.Lock()
        return lock

    def _delay_seconds(self, milliseconds: int) -> float:
        return max(self.MIN_DELAY_SECONDS, milliseconds / 1000 * self._time_multiplier)
