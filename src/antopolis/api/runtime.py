"""Runtime state backing the Antopolis HTTP API."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy.engine import Engine

from antopolis.config import Settings, get_settings
from antopolis.database import create_db_engine, create_session_factory
from antopolis.domain.rules_config import DEFAULT_RULES, RulesConfig
from antopolis.interfaces import IColonyStore
from antopolis.repository import SqlColonyStore
from antopolis.services import AttackRegistry, AttackScheduler, BattleService, OutcomeApplier
from antopolis.utils.rng import build_random

logger = logging.getLogger(__name__)


class ApiState:
    """Aggregated services shared by the FastAPI layer.

    Owns the one attack scheduler of the process.  Pass ``store`` to run
    against something other than the configured database.
    """

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        store: IColonyStore | None = None,
        rules: RulesConfig = DEFAULT_RULES,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.rules = rules
        self.engine: Engine | None = None
        if store is None:
            self.engine = create_db_engine(self.settings)
            store = SqlColonyStore(create_session_factory(self.engine))
        self.store = store
        self.rng = build_random(self.settings.rng_seed)

        clock_kwargs = {"clock": clock} if clock is not None else {}
        self.registry = AttackRegistry()
        self.applier = OutcomeApplier(store)
        self.scheduler = AttackScheduler(
            store,
            registry=self.registry,
            applier=self.applier,
            rules=rules,
            rng=self.rng,
            time_multiplier=self.settings.scheduler_time_multiplier,
            **clock_kwargs,
        )
        self.battles = BattleService(
            store, self.scheduler, self.applier, rules=rules, rng=self.rng, clock=clock
        )

    async def startup(self) -> None:
        if self.settings.scheduler_autostart:
            await self.scheduler.initialize()

    async def shutdown(self) -> None:
        await self.scheduler.close()
        if self.engine is not None:
            self.engine.dispose()


def build_state() -> ApiState:
    """Factory used by the API to initialize state."""

    return ApiState()
