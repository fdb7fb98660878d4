from __future__ import annotations

from collections.abc import Generator

import fakeredis
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from conftest import FAST_SETTINGS
from sejarah.main import create_app
from sejarah.progress_store import ProgressStore


@pytest.fixture()
def server() -> fakeredis.FakeServer:
    return fakeredis.FakeServer()


def _app(server: fakeredis.FakeServer) -> FastAPI:
    # The lifespan closes its client, so every app gets a fresh one on the shared server.
    return create_app(
        settings=FAST_SETTINGS,
        redis_factory=lambda: fakeredis.FakeRedis(server=server, decode_responses=True),
    )


def _peek(server: fakeredis.FakeServer) -> fakeredis.FakeRedis:
    return fakeredis.FakeRedis(server=server, decode_responses=True)


@pytest.fixture()
def client(server: fakeredis.FakeServer) -> Generator[TestClient, None, None]:
    app = _app(server)
    with TestClient(app) as c:
        yield c


def test_healthcheck_and_fresh_game(client: TestClient) -> None:
    assert client.get("/healthcheck").json() == {"status": "ok"}

    resp = client.get("/game")
    assert resp.status_code == 200
    data = resp.json()
    assert data["is_loading"] is False
    assert data["save_error"] is None
    assert data["game_state"]["completed_states"] == []
    assert data["game_state"]["money"] == 100


def test_regions_listing(client: TestClient) -> None:
    client.post("/game/regions/perlis/complete")

    regions = {r["id"]: r for r in client.get("/regions").json()}

    assert len(regions) == 14
    assert regions["perak"]["timer_seconds"] == 600
    assert regions["perak"]["question_count"] == 5
    assert regions["perlis"]["is_completed"] is True
    assert regions["kedah"]["is_completed"] is False


def test_region_questions(client: TestClient) -> None:
    resp = client.get("/regions/pahang/questions")
    assert resp.status_code == 200
    assert [q["type"] for q in resp.json()] == ["matching", "matching"]

    assert client.get("/regions/atlantis/questions").status_code == 404


def test_answer_flow(client: TestClient) -> None:
    wrong = client.post("/game/answer", json={"question_id": "perlis_2", "answer": False})
    assert wrong.status_code == 200
    assert wrong.json()["is_correct"] is False
    assert wrong.json()["money_change"] == -2

    right = client.post("/game/answer", json={"question_id": "perak-1", "answer": "  abdul rahman "})
    assert right.json()["is_correct"] is True

    state = client.get("/game").json()["game_state"]
    assert state["answers"] == {"perlis_2": False, "perak-1": "  abdul rahman "}
    assert state["wrong_answer_count"] == 1
    assert state["health"] == 95

    reset = client.post("/game/wrong-answers/reset").json()
    assert reset["game_state"]["wrong_answer_count"] == 0


def test_answer_unknown_question_is_unprocessable(client: TestClient) -> None:
    resp = client.post("/game/answer", json={"question_id": "nope-1", "answer": "x"})
    assert resp.status_code == 422
    assert "Unknown question" in resp.json()["detail"]


def test_region_mutations(client: TestClient) -> None:
    client.post("/game/answer", json={"question_id": "perak-1", "answer": "x"})
    client.post("/game/regions/perak/question-index", json={"index": 3})

    cleared = client.post("/game/regions/perak/clear-answers").json()["game_state"]
    assert cleared["answers"] == {}
    assert cleared["question_index_by_state"] == {}

    selected = client.post("/game/regions/melaka/select").json()["game_state"]
    assert selected["current_state"] == "melaka"

    failed = client.post("/game/regions/melaka/fail").json()["game_state"]
    assert failed["show_gagal_modal"] is True
    assert failed["completed_states"] == []

    done = client.post("/game/regions/melaka/complete").json()["game_state"]
    assert done["completed_states"] == ["melaka"]
    assert done["show_success_modal"] is True

    modals = client.post("/game/modals", json={"show_success_modal": False, "show_gagal_modal": False}).json()
    assert modals["game_state"]["show_success_modal"] is False
    assert modals["game_state"]["show_gagal_modal"] is False
    assert modals["game_state"]["completed_states"] == ["melaka"]


def test_bad_region_and_index_are_unprocessable(client: TestClient) -> None:
    assert client.post("/game/regions/atlantis/complete").status_code == 422
    assert client.post("/game/timer/start/atlantis").status_code == 422
    assert client.post("/game/regions/perak/question-index", json={"index": -1}).status_code == 422


def test_timer_endpoints(client: TestClient) -> None:
    assert client.get("/game/timer").json() == {
        "timer": None,
        "remaining": None,
        "expired": False,
        "display": None,
        "color": None,
    }

    client.post("/game/timer/start/selangor")
    t = client.get("/game/timer").json()
    assert t["timer"]["duration"] == 600
    assert 599 <= t["remaining"] <= 600
    assert t["expired"] is False
    assert t["display"] in {"10:00", "09:59"}
    assert t["color"] == "#4CAF50"

    paused = client.post("/game/timer/pause").json()["game_state"]["state_timer"]
    assert paused["is_paused"] is True
    resumed = client.post("/game/timer/resume").json()["game_state"]["state_timer"]
    assert resumed["is_paused"] is False

    assert client.post("/game/timer/clear").json()["game_state"]["state_timer"] is None

    # Regions without a countdown leave no timer.
    assert client.post("/game/timer/start/perlis").json()["game_state"]["state_timer"] is None


def test_profile_validation(client: TestClient) -> None:
    bad = client.post("/game/profile", json={"name": "A", "age": "5"})
    assert bad.status_code == 422
    assert bad.json()["detail"] == {
        "name": "Nama terlalu pendek (min 2 aksara)",
        "age": "Umur minimum adalah 6 tahun",
    }

    not_a_number = client.post("/game/profile", json={"name": "Aisyah", "age": "sembilan"})
    assert not_a_number.json()["detail"] == {"age": "Umur mesti nombor"}

    ok = client.post("/game/profile", json={"name": " Aisyah ", "age": "9"})
    assert ok.status_code == 200
    assert ok.json()["game_state"]["player_profile"] == {"name": "Aisyah", "age": 9}


def test_tutorial_and_font_scaling(client: TestClient) -> None:
    client.post("/game/tutorial/complete")
    data = client.post("/game/settings/font-scaling", json={"allow": True}).json()
    assert data["game_state"]["has_seen_tutorial"] is True
    assert data["game_state"]["allow_font_scaling"] is True


def test_reset(client: TestClient) -> None:
    client.post("/game/regions/perlis/complete")
    client.post("/game/profile", json={"name": "Aisyah", "age": 9})

    data = client.post("/game/reset").json()

    assert data["game_state"]["completed_states"] == []
    assert data["game_state"]["player_profile"] is None


def test_progress_is_saved_on_shutdown_and_reloaded(server: fakeredis.FakeServer) -> None:
    with TestClient(_app(server)) as c:
        c.post("/game/regions/kedah/complete")
        c.post("/game/tutorial/complete")

    saved = ProgressStore(r=_peek(server)).load()
    assert saved is not None
    assert [s.value for s in saved.completed_states] == ["kedah"]

    with TestClient(_app(server)) as c:
        state = c.get("/game").json()["game_state"]

    assert state["completed_states"] == ["kedah"]
    assert state["has_seen_tutorial"] is True
    assert state["show_success_modal"] is False


def test_corrupt_progress_reports_load_warning(server: fakeredis.FakeServer) -> None:
    _peek(server).set("dbp_sejarah_game_progress", "garbage")

    with TestClient(_app(server)) as c:
        data = c.get("/game").json()

    assert data["load_warning"] is not None
    assert data["game_state"]["completed_states"] == []


def test_server_entry_point_runs_uvicorn(monkeypatch: pytest.MonkeyPatch) -> None:
    import sejarah.main

    calls: list[tuple[object, dict]] = []
    monkeypatch.setattr(sejarah.main.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    monkeypatch.setenv("SEJARAH_HOST", "0.0.0.0")
    monkeypatch.setenv("SEJARAH_PORT", "9001")
    monkeypatch.setenv("SEJARAH_LOG_LEVEL", "warning")

    sejarah.main.main()

    assert calls == [(sejarah.main.app, {"host": "0.0.0.0", "port": 9001, "log_level": "warning"})]
