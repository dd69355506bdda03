from __future__ import annotations

import fakeredis
from fastapi.testclient import TestClient

from typefall.score_store import HIGH_SCORE_KEY


def _create(client: TestClient, **body: object) -> dict:
    payload = {"seed": 42, "start": True}
    payload.update(body)
    resp = client.post("/session", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_healthcheck_and_info(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, _ = client_and_redis
    assert client.get("/healthcheck").json() == {"status": "ok"}
    assert client.get("/info").json()["name"] == "typefall"


def test_create_session_defaults_to_menu(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, r = client_and_redis
    r.set(HIGH_SCORE_KEY, "70")

    data = _create(client, start=False)
    assert data["phase"] == "menu"
    assert data["high_score"] == 70
    assert data["difficulty"] == "medium"

    listed = client.get("/session").json()["sessions"]
    assert listed == [data["session_id"]]


def test_play_a_word_end_to_end(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, _ = client_and_redis
    data = _create(client)
    sid = data["session_id"]
    assert data["phase"] == "playing"
    assert data["lives"] == 5

    assert client.post(f"/session/{sid}/geometry", json={"width": 800, "height": 600}).status_code == 200

    # Medium spawns every 2000 ms.
    snap = client.post(f"/session/{sid}/advance", json={"elapsed_ms": 500, "steps": 4}).json()
    assert len(snap["words"]) == 1
    word = snap["words"][0]

    snap = client.post(f"/session/{sid}/input", json={"text": word["text"][:2].upper()}).json()
    assert snap["input"] == word["text"][:2]
    assert snap["highlighted_word_id"] == word["id"]

    client.post(f"/session/{sid}/input", json={"text": word["text"]})
    snap = client.post(f"/session/{sid}/submit").json()
    assert snap["score"] == 10
    assert snap["words"] == []
    assert snap["words_typed"] == 1


def test_pause_blocks_advance_and_input(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, _ = client_and_redis
    sid = _create(client)["session_id"]
    client.post(f"/session/{sid}/geometry", json={"width": 800, "height": 600})
    before = client.post(f"/session/{sid}/advance", json={"elapsed_ms": 1000, "steps": 2}).json()

    paused = client.post(f"/session/{sid}/pause").json()
    assert paused["paused"] is True
    assert client.post(f"/session/{sid}/pause").json() == paused

    after = client.post(f"/session/{sid}/advance", json={"elapsed_ms": 1000, "steps": 5}).json()
    assert after["words"] == before["words"]
    assert client.post(f"/session/{sid}/input", json={"text": "abc"}).json()["input"] == ""

    resumed = client.post(f"/session/{sid}/resume").json()
    assert resumed["paused"] is False


def test_running_out_of_lives_persists_high_score(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, r = client_and_redis
    sid = _create(client)["session_id"]
    client.post(f"/session/{sid}/geometry", json={"width": 800, "height": 600})

    # Score one word, then let everything else fall.
    snap = client.post(f"/session/{sid}/advance", json={"elapsed_ms": 2000, "steps": 1}).json()
    client.post(f"/session/{sid}/input", json={"text": snap["words"][0]["text"]})
    assert client.post(f"/session/{sid}/submit").json()["score"] == 10

    snap = client.post(f"/session/{sid}/advance", json={"elapsed_ms": 1000, "steps": 500}).json()
    assert snap["phase"] == "game_over"
    assert snap["lives"] == 0
    assert snap["high_score"] == 10

    assert r.get(HIGH_SCORE_KEY) == "10"
    assert client.get("/highscore").json() == {"high_score": 10}


def test_timed_session_counts_down(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, _ = client_and_redis
    data = _create(client, mode="timed", duration_s=30)
    sid = data["session_id"]
    assert data["time_remaining_s"] == 30
    assert data["lives"] is None

    snap = client.post(f"/session/{sid}/advance", json={"elapsed_ms": 1000, "steps": 10}).json()
    assert snap["time_remaining_s"] == 20

    snap = client.post(f"/session/{sid}/advance", json={"elapsed_ms": 1000, "steps": 100}).json()
    assert snap["time_remaining_s"] == 0
    assert snap["phase"] == "game_over"


def test_settings_routes_restart_or_reject(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, _ = client_and_redis
    sid = _create(client)["session_id"]
    client.post(f"/session/{sid}/geometry", json={"width": 800, "height": 600})
    client.post(f"/session/{sid}/advance", json={"elapsed_ms": 2000, "steps": 2})

    snap = client.post(f"/session/{sid}/difficulty", json={"difficulty": "hard"}).json()
    assert snap["difficulty"] == "hard"
    assert snap["words"] == []

    bad = client.post(f"/session/{sid}/difficulty", json={"difficulty": "brutal"})
    assert bad.status_code == 422
    assert "brutal" in bad.json()["detail"]
    assert client.get(f"/session/{sid}").json()["difficulty"] == "hard"

    assert client.post(f"/session/{sid}/duration", json={"duration_s": 45}).status_code == 422
    assert client.post(f"/session/{sid}/mode", json={"mode": "zen"}).status_code == 422
    assert client.post(f"/session/{sid}/restart", json={"difficulty": "nope"}).status_code == 422

    snap = client.post(f"/session/{sid}/restart", json={"mode": "timed", "duration_s": 90}).json()
    assert snap["mode"] == "timed"
    assert snap["time_remaining_s"] == 90

    assert client.post(f"/session/{sid}/menu").json()["phase"] == "menu"


def test_create_rejects_unknown_duration(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, _ = client_and_redis
    resp = client.post("/session", json={"duration_s": 17})
    assert resp.status_code == 422


def test_unknown_session_404_and_delete(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, _ = client_and_redis
    missing = "00000000-0000-0000-0000-000000000000"
    assert client.get(f"/session/{missing}").status_code == 404
    assert client.post(f"/session/{missing}/submit").status_code == 404

    sid = _create(client)["session_id"]
    assert client.delete(f"/session/{sid}").status_code == 204
    assert client.get(f"/session/{sid}").status_code == 404
    assert client.delete(f"/session/{sid}").status_code == 404


def test_ws_session_updates_broadcast(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, _ = client_and_redis
    sid = _create(client)["session_id"]

    with client.websocket_connect(f"/ws/session/{sid}") as ws:
        res = client.post(f"/session/{sid}/input", json={"text": "ca"})
        assert res.status_code == 200

        msg = ws.receive_json()
        assert msg["type"] == "session_updated"
        assert msg["session_id"] == sid
        assert msg["input"] == "ca"
