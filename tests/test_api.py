"""Tests for the HTTP API using FastAPI's TestClient with in-memory repositories."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from api.dependencies import (
    get_activity_repository,
    get_route_service,
    get_task_processor,
    get_task_repository,
)
from main import app

from conftest import ATHLETE_ID, make_activity, make_loop_points


class RecordingTaskProcessor:
    def __init__(self):
        self.started: list[str] = []

    def start_task_in_background(self, task_id: str) -> None:
        self.started.append(task_id)


@pytest.fixture
def task_processor():
    return RecordingTaskProcessor()


@pytest.fixture
def client(route_service, activity_repo, task_repo, task_processor):
    app.dependency_overrides[get_route_service] = lambda: route_service
    app.dependency_overrides[get_activity_repository] = lambda: activity_repo
    app.dependency_overrides[get_task_repository] = lambda: task_repo
    app.dependency_overrides[get_task_processor] = lambda: task_processor
    yield TestClient(app)
    app.dependency_overrides.clear()


def _payload(activity_id: int, day: int, **kwargs) -> dict:
    start = datetime(2026, 3, day, 7, 30, tzinfo=timezone.utc)
    return make_activity(activity_id, start, **kwargs).model_dump(mode="json")


def test_ingest_activity_assigns_route(client, route_repo):
    response = client.post(
        f"/api/v1/athlete/{ATHLETE_ID}/activities",
        json=_payload(1, 1, points=make_loop_points())
    )

    assert response.status_code == 200
    assert response.json() == {"activity_id": 1, "assigned": True}
    assert 1 in route_repo.mappings


def test_ingest_activity_without_gps_is_stored_unassigned(client, activity_repo):
    response = client.post(f"/api/v1/athlete/{ATHLETE_ID}/activities", json=_payload(1, 1))

    assert response.status_code == 200
    assert response.json()["assigned"] is False
    assert 1 in activity_repo.activities


def test_ingest_activity_for_other_athlete_is_rejected(client):
    response = client.post("/api/v1/athlete/7/activities", json=_payload(1, 1))
    assert response.status_code == 400


def test_get_activity_route_and_history(client):
    client.post(f"/api/v1/athlete/{ATHLETE_ID}/activities", json=_payload(1, 1, points=make_loop_points()))
    client.post(
        f"/api/v1/athlete/{ATHLETE_ID}/activities",
        json=_payload(2, 8, points=make_loop_points(jitter=0.0001, seed=2), use_streams=True)
    )

    response = client.get(f"/api/v1/athlete/{ATHLETE_ID}/activities/1/route")

    assert response.status_code == 200
    body = response.json()
    assert body["route"]["run_count"] == 2
    assert [entry["activity_id"] for entry in body["history"]] == [2, 1]

    route_id = body["route"]["route_id"]
    history = client.get(f"/api/v1/athlete/{ATHLETE_ID}/routes/{route_id}/history", params={"limit": 1})
    assert history.status_code == 200
    assert [entry["activity_id"] for entry in history.json()] == [2]

    routes = client.get(f"/api/v1/athlete/{ATHLETE_ID}/routes")
    assert [route["route_id"] for route in routes.json()] == [route_id]


def test_get_activity_route_not_found(client, activity_repo):
    assert client.get(f"/api/v1/athlete/{ATHLETE_ID}/activities/1/route").status_code == 404

    client.post(f"/api/v1/athlete/{ATHLETE_ID}/activities", json=_payload(1, 1))
    response = client.get(f"/api/v1/athlete/{ATHLETE_ID}/activities/1/route")
    assert response.status_code == 404
    assert response.json()["detail"] == "Activity 1 has no route"


def test_route_history_of_other_athlete_is_not_found(client):
    client.post(f"/api/v1/athlete/{ATHLETE_ID}/activities", json=_payload(1, 1, points=make_loop_points()))
    route_id = client.get(f"/api/v1/athlete/{ATHLETE_ID}/routes").json()[0]["route_id"]

    assert client.get(f"/api/v1/athlete/7/routes/{route_id}/history").status_code == 404
    assert client.get(f"/api/v1/athlete/{ATHLETE_ID}/routes/missing/history").status_code == 404


def test_route_history_limit_is_validated(client):
    response = client.get(f"/api/v1/athlete/{ATHLETE_ID}/routes/any/history", params={"limit": 0})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_assign_stored_activity_endpoint(client, activity_repo, route_repo):
    await activity_repo.store_activity(
        make_activity(5, datetime(2026, 3, 1, tzinfo=timezone.utc), make_loop_points())
    )

    response = client.post(f"/api/v1/athlete/{ATHLETE_ID}/activities/5/route")
    assert response.status_code == 200
    assert response.json() == {"activity_id": 5, "assigned": True}

    assert client.post("/api/v1/athlete/7/activities/5/route").status_code == 404
    assert len(route_repo.mappings) == 1


def test_create_and_get_task(client, task_processor):
    response = client.post("/api/v1/tasks", json={"athlete_id": ATHLETE_ID, "task_type": "route_backfill"})

    assert response.status_code == 201
    task = response.json()
    assert task["status"] == "pending"
    assert task["task_type"] == "route_backfill"
    assert task_processor.started == [task["task_id"]]

    fetched = client.get(f"/api/v1/tasks/{task['task_id']}")
    assert fetched.status_code == 200
    assert fetched.json()["athlete_id"] == ATHLETE_ID

    listed = client.get("/api/v1/tasks", params={"athlete_id": ATHLETE_ID})
    assert [t["task_id"] for t in listed.json()] == [task["task_id"]]

    assert client.delete(f"/api/v1/tasks/{task['task_id']}").status_code == 204
    assert client.get(f"/api/v1/tasks/{task['task_id']}").status_code == 404
    assert client.delete(f"/api/v1/tasks/{task['task_id']}").status_code == 404


def test_api_status(client):
    response = client.get("/api/v1/status")
    assert response.json() == {"status": "operational", "version": "v1"}
