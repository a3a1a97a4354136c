import pytest
from fastapi.testclient import TestClient

from server.main import ALL_SIMULATIONS, app, sessions, ws_manager


@pytest.fixture
def client():
    sessions.clear()
    with TestClient(app) as c:
        yield c
    sessions.clear()


def start(client, **body):
    resp = client.post("/api/simulation/start", json=body)
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_root_and_health(client):
    assert client.get("/").json() == {"message": "BB84 QKD Simulator API"}
    health = client.get("/api/health").json()
    assert health["status"] == "ok"
    assert health["sessions"] == 0


def test_start_generates_bits(client):
    data = start(client, bit_count=16, seed=3)
    state = data["state"]
    assert data["simulationId"].startswith("sim-")
    assert state["phase"] == "transmission"
    assert len(state["senderBits"]) == 16
    assert state["receiverBits"] == []


def test_full_session_through_named_steps(client):
    sim_id = start(client, bit_count=64, hacker_mode=True, seed=5)["simulationId"]

    measured = client.post(f"/api/simulation/{sim_id}/run", json={"step": "measure"}).json()
    assert measured["phase"] == "sifting"
    assert measured["isHackerPresent"] is True
    assert len(measured["receiverBits"]) == 64

    sifted = client.post(f"/api/simulation/{sim_id}/run", json={"step": "sift"}).json()
    assert sifted["phase"] == "error-check"

    done = client.post(f"/api/simulation/{sim_id}/run", json={"step": "complete"}).json()
    assert done["phase"] == "complete"
    assert done["sharedKey"] == sifted["sharedKey"]

    assert client.get(f"/api/simulation/{sim_id}").json() == done


def test_advance_follows_the_phases(client):
    sim_id = start(client, bit_count=10, seed=1)["simulationId"]
    phases = [
        client.post(f"/api/simulation/{sim_id}/advance").json()["phase"]
        for _ in range(3)
    ]
    assert phases == ["sifting", "error-check", "complete"]
    assert client.post(f"/api/simulation/{sim_id}/advance").status_code == 409


def test_invalid_step_is_rejected(client):
    sim_id = start(client, bit_count=4)["simulationId"]
    resp = client.post(f"/api/simulation/{sim_id}/run", json={"step": "teleport"})
    assert resp.status_code == 422


def test_unknown_simulation_is_404(client):
    assert client.get("/api/simulation/sim-missing").status_code == 404
    assert client.post("/api/simulation/sim-missing/reset").status_code == 404
    assert client.delete("/api/simulation/sim-missing").status_code == 404


def test_configure_hacker_merges(client):
    sim_id = start(client, bit_count=4)["simulationId"]
    resp = client.post(
        f"/api/simulation/{sim_id}/configure-hacker", json={"interception_rate": 1.0},
    )
    assert resp.json() == {
        "interception_rate": 1.0, "measurement_error_rate": 0.1, "resend_error_rate": 0.1,
    }
    assert client.get(f"/api/simulation/{sim_id}/hacker-config").json()["interception_rate"] == 1.0


def test_configure_hacker_validates_probabilities(client):
    sim_id = start(client, bit_count=4)["simulationId"]
    resp = client.post(
        f"/api/simulation/{sim_id}/configure-hacker", json={"interception_rate": 1.5},
    )
    assert resp.status_code == 422


def test_start_validates_bit_count(client):
    assert client.post("/api/simulation/start", json={"bit_count": 0}).status_code == 422


def test_analysis(client):
    sim_id = start(
        client, bit_count=2000, hacker_mode=True, seed=9,
        hacker_config={"interception_rate": 1.0},
    )["simulationId"]
    for _ in range(3):
        client.post(f"/api/simulation/{sim_id}/advance")

    analysis = client.get(f"/api/simulation/{sim_id}/analysis").json()
    assert analysis["status"] == "compromised"
    assert analysis["eavesdropper_detected"] is True
    assert analysis["analysis"]["theoretical_error_rate"] == 12.5
    assert analysis["expected_error_rate"] == pytest.approx(32.0)
    assert analysis["intercepted_count"] == 2000


def test_sessions_are_independent(client):
    a = start(client, bit_count=8, seed=1)["simulationId"]
    b = start(client, bit_count=12, seed=1)["simulationId"]
    client.post(f"/api/simulation/{a}/advance")

    assert client.get(f"/api/simulation/{a}").json()["phase"] == "sifting"
    assert client.get(f"/api/simulation/{b}").json()["phase"] == "transmission"
    listed = {s["simulationId"]: s for s in client.get("/api/simulations").json()}
    assert listed[a]["bitCount"] == 8 and listed[b]["bitCount"] == 12


def test_listing_reports_creation_time_and_update_count(client):
    sim_id = start(client, bit_count=8, seed=4)["simulationId"]
    client.post(f"/api/simulation/{sim_id}/advance")

    (info,) = client.get("/api/simulations").json()
    assert info["simulationId"] == sim_id
    assert info["createdAt"] > 0
    # one snapshot from generating the bits, one from transmitting them
    assert info["updateCount"] == 2


def test_reset_and_delete(client):
    data = start(client, bit_count=8)
    sim_id = data["simulationId"]
    old_session = data["state"]["sessionId"]

    reset = client.post(f"/api/simulation/{sim_id}/reset").json()
    assert reset["phase"] == "preparation"
    assert reset["senderBits"] == []
    assert reset["sessionId"] != old_session

    assert client.delete(f"/api/simulation/{sim_id}").json() == {"deleted": True}
    assert client.get(f"/api/simulation/{sim_id}").status_code == 404


def test_websocket_receives_updates(client):
    with client.websocket_connect("/ws") as ws:
        sim_id = start(client, bit_count=6, seed=2)["simulationId"]
        event = ws.receive_json()
        assert event["type"] == "simulationUpdate"
        assert event["data"]["simulationId"] == sim_id
        assert event["data"]["state"]["phase"] == "transmission"

        client.post(f"/api/simulation/{sim_id}/advance")
        event = ws.receive_json()
        assert event["data"]["state"]["phase"] == "sifting"

        ws.send_json({"type": "ping"})
        assert ws.receive_json()["type"] == "pong"


def test_websocket_ignores_malformed_frames(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_text("not json")
        ws.send_json([1, 2])
        ws.send_json({"no": "type"})
        ws.send_json({"type": "ping"})
        assert ws.receive_json()["type"] == "pong"


def test_closed_websocket_is_removed_from_registry(client):
    sim_id = start(client, bit_count=4, seed=1)["simulationId"]
    with client.websocket_connect("/ws") as ws:
        with client.websocket_connect(f"/ws/{sim_id}") as sim_ws:
            ws.send_json({"type": "ping"})
            ws.receive_json()
            sim_ws.send_json({"type": "ping"})
            sim_ws.receive_json()
            assert len(ws_manager.get_connected()) == 2
            assert ws_manager.channel_members(sim_id)

    assert ws_manager.get_connected() == []
    assert ws_manager.channel_members(ALL_SIMULATIONS) == set()
    assert ws_manager.channel_members(sim_id) == set()
    assert client.get("/api/health").json()["connections"] == 0


def test_malformed_frame_does_not_leak_connection(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_text("{broken")
        ws.send_json({"type": "ping"})
        assert ws.receive_json()["type"] == "pong"

    assert ws_manager.get_connected() == []
    assert ws_manager.channel_members(ALL_SIMULATIONS) == set()
