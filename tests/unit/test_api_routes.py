"""Tests for the FastAPI layer."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from antopolis.api.app import create_app
from antopolis.api.runtime import ApiState
from antopolis.config import Settings
from antopolis.domain.enums import Personality, ResourceType, UnitType
from antopolis.domain.models import ColonyID, ColonySnapshot, Position, UserID
from antopolis.repository import InMemoryColonyStore


def _store() -> InMemoryColonyStore:
    return InMemoryColonyStore(
        [
            ColonySnapshot(
                id=ColonyID("ai-1"),
                name="Red Swarm",
                is_ai=True,
                population=200,
                used_military_capacity=60,
                personality=Personality.MILITANT,
            ),
            ColonySnapshot(
                id=ColonyID("home"),
                name="Home",
                user_id=UserID("u1"),
                population=120,
                used_military_capacity=20,
                resources={ResourceType.FOOD: 300},
                base_position=Position(3, 4),
                army={UnitType.SOLDIER: 2},
            ),
        ]
    )


def _make_app(store: InMemoryColonyStore | None = None):
    store = store or _store()

    def factory() -> ApiState:
        settings = Settings(rng_seed="api-tests", scheduler_time_multiplier=1.0)
        return ApiState(settings=settings, store=store)

    app = create_app(state_factory=factory)
    transport = ASGITransport(app=app)
    return app, transport


@pytest.mark.asyncio
async def test_health_and_simulate():
    app, transport = _make_app()

    async with (
        app.router.lifespan_context(app),
        AsyncClient(transport=transport, base_url="http://test") as client,
    ):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

        response = await client.post(
            "/battles/simulate",
            json={
                "attacker_army": {"soldier": 10, "worker": 5},
                "defender_army": {"soldier": 8, "guard": 3},
                "conditions": {
                    "terrain": "forest",
                    "attacker_formation": "aggressive",
                    "defender_formation": "defensive",
                },
            },
        )
        assert response.status_code == 200
        payload = response.json()
        assert payload["victor"] in {"attacker", "defender"}
        assert set(payload["total_casualties"]["attacker"]) == {"soldier", "worker"}
        assert set(payload["total_casualties"]["defender"]) == {"soldier", "guard"}
        assert payload["battle_efficiency"]["tactical_rating"] in {
            "brilliant",
            "good",
            "fair",
            "poor",
            "disastrous",
        }


@pytest.mark.asyncio
async def test_validation_errors_carry_the_field():
    app, transport = _make_app()

    async with (
        app.router.lifespan_context(app),
        AsyncClient(transport=transport, base_url="http://test") as client,
    ):
        response = await client.post(
            "/battles/simulate",
            json={"attacker_army": {}, "defender_army": {"soldier": 5}},
        )
        assert response.status_code == 400
        assert response.json()["field"] == "attacker_army"

        response = await client.post(
            "/battles/simulate",
            json={"attacker_army": {"dragon": 1}, "defender_army": {"soldier": 5}},
        )
        assert response.status_code == 400
        assert response.json()["field"] == "attacker_army"

        response = await client.post(
            "/battles/execute",
            json={"attacker_colony_id": "home", "target_colony_id": "nowhere", "army": {"soldier": 1}},
        )
        assert response.status_code == 404


@pytest.mark.asyncio
async def test_raid_history_and_stats():
    store = _store()
    app, transport = _make_app(store)

    async with (
        app.router.lifespan_context(app),
        AsyncClient(transport=transport, base_url="http://test") as client,
    ):
        response = await client.get("/battles/targets/home")
        assert response.status_code == 200
        assert [t["colony_id"] for t in response.json()["targets"]] == ["ai-1"]

        response = await client.post(
            "/battles/execute",
            json={"attacker_colony_id": "ai-1", "target_colony_id": "home", "army": {"soldier": 60}},
        )
        assert response.status_code == 200
        raid = response.json()
        assert raid["outcome"]["victor"] == "attacker"
        assert raid["plundered"]["food"] > 0

        response = await client.get("/battles/history/home", params={"limit": 5})
        assert response.status_code == 200
        battles = response.json()["battles"]
        assert [b["id"] for b in battles] == [raid["battle_id"]]
        assert battles[0]["battle_type"] == "player_raid"

        response = await client.get("/battles/stats/home")
        assert response.status_code == 200
        stats = response.json()
        assert stats["total_battles"] == 1
        assert stats["defeats"] == 1

        response = await client.post(
            f"/battles/retreat/{raid['battle_id']}",
            json={"remaining_army": {"soldier": 10, "scout": 5}},
        )
        assert response.status_code == 200
        assert response.json()["surviving_army"] == {"soldier": 8, "scout": 5}

    home = await store.get_colony_details(ColonyID("home"))
    assert home.resources[ResourceType.FOOD] == 300 - raid["plundered"]["food"]


@pytest.mark.asyncio
async def test_scheduler_control_endpoints():
    app, transport = _make_app()

    async with (
        app.router.lifespan_context(app),
        AsyncClient(transport=transport, base_url="http://test") as client,
    ):
        response = await client.get("/battles/scheduler/status")
        assert response.status_code == 200
        assert response.json()["initialized"] is False

        response = await client.post("/battles/scheduler/start")
        assert response.status_code == 200
        started = response.json()
        assert started["started"] == 1
        assert [s["colony_id"] for s in started["active_schedulers"]] == ["ai-1"]

        response = await client.post("/battles/scheduler/colonies/ai-1/stop")
        assert response.json() == {"colony_id": "ai-1", "stopped": True}

        response = await client.post("/battles/scheduler/colonies/ai-1/start")
        assert response.status_code == 200
        assert response.json()["interval_ms"] == 180_000

        response = await client.post("/battles/scheduler/colonies/ghost/start")
        assert response.status_code == 404

        response = await client.post("/battles/scheduler/colonies/home/start")
        assert response.status_code == 400
        assert response.json()["field"] == "colony_id"

        response = await client.get("/battles/incoming/home")
        assert response.status_code == 200
        assert response.json()["attacks"] == []

        response = await client.post("/battles/scheduler/stop")
        assert response.status_code == 200
        assert response.json()["active_schedulers"] == []
