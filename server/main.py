"""
main.py — FastAPI application entry point.
BB84 simulation relay server.

Provides REST + WebSocket APIs for:
  - Creating simulation sessions (one engine each)
  - Configuring the eavesdropper and channel noise
  - Advancing sessions through the protocol phases
  - Fetching state snapshots and analysis
  - Broadcasting every state change to connected listeners
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import List

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from qkd_engine import Phase, expected_error_rate, summarise

from .config import CORS_ORIGINS, MAX_SESSIONS
from .models import (
    HackerConfigModel,
    HackerConfigUpdate,
    RunStepRequest,
    SessionSummaryModel,
    SimulationInfo,
    SimulationStateModel,
    SimulationStep,
    StartSimulationRequest,
    StartSimulationResponse,
)
from .session_manager import SessionLimitReached, SessionManager, SimulationSession
from .websocket_manager import ConnectionManager

logger = logging.getLogger(__name__)

ALL_SIMULATIONS = "*"


# ── Global state ─────────────────────────────────────────────────────── #

sessions = SessionManager(max_sessions=MAX_SESSIONS)
ws_manager = ConnectionManager()


app = FastAPI(
    title="BB84 QKD Simulator",
    description="Simulated BB84 quantum key distribution with an optional eavesdropper",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Helpers ──────────────────────────────────────────────────────────── #

def _get_session(simulation_id: str) -> SimulationSession:
    session = sessions.get(simulation_id)
    if session is None:
        raise HTTPException(404, "Simulation not found")
    return session


def _state_payload(session: SimulationSession) -> dict:
    return session.last_state.to_dict()


def _info(session: SimulationSession) -> SimulationInfo:
    state = session.last_state
    return SimulationInfo(
        simulationId=session.simulation_id,
        sessionId=state.session_id,
        phase=state.phase.value,
        hackerMode=session.hacker_mode,
        bitCount=len(state.sender_bits),
        createdAt=session.created_at,
        updateCount=session.update_count,
    )


async def _send_update(session: SimulationSession) -> None:
    message = ws_manager.make_event("simulationUpdate", {
        "simulationId": session.simulation_id,
        "state": _state_payload(session),
    })
    await ws_manager.broadcast_to_channel(ALL_SIMULATIONS, message)
    await ws_manager.broadcast_to_channel(session.simulation_id, message)


# ===================================================================== #
#  SIMULATION ROUTES                                                      #
# ===================================================================== #

@app.get("/")
async def root():
    return {"message": "BB84 QKD Simulator API"}


@app.post("/api/simulation/start", response_model=StartSimulationResponse)
async def start_simulation(body: StartSimulationRequest):
    """Create a session and let the sender prepare her photons."""
    try:
        session = sessions.create(body.bit_count, body.hacker_mode, body.seed)
    except SessionLimitReached as e:
        raise HTTPException(429, str(e))

    if body.hacker_config is not None:
        session.engine.configure_hacker(**body.hacker_config.model_dump())
    if body.noise is not None:
        session.engine.configure_noise(**body.noise.model_dump())

    session.controller.step_once()
    await _send_update(session)
    return StartSimulationResponse(
        simulationId=session.simulation_id,
        state=_state_payload(session),
    )


@app.get("/api/simulations", response_model=List[SimulationInfo])
async def list_simulations():
    return [_info(s) for s in sessions.list()]


@app.get("/api/simulation/{simulation_id}", response_model=SimulationStateModel)
async def get_simulation_state(simulation_id: str):
    session = _get_session(simulation_id)
    return session.engine.get_state().to_dict()


@app.post("/api/simulation/{simulation_id}/configure-hacker", response_model=HackerConfigModel)
async def configure_hacker(simulation_id: str, body: HackerConfigUpdate):
    session = _get_session(simulation_id)
    config = session.engine.configure_hacker(**body.model_dump())
    logger.info("Simulation %s hacker config: %s", simulation_id, config)
    return config.to_dict()


@app.get("/api/simulation/{simulation_id}/hacker-config", response_model=HackerConfigModel)
async def get_hacker_config(simulation_id: str):
    session = _get_session(simulation_id)
    return session.engine.get_hacker_config().to_dict()


@app.post("/api/simulation/{simulation_id}/run", response_model=SimulationStateModel)
async def run_step(simulation_id: str, body: RunStepRequest):
    """Run one named protocol step, regardless of the current phase."""
    session = _get_session(simulation_id)
    engine = session.engine

    if body.step is SimulationStep.MEASURE:
        engine.transmit_and_measure(engine.get_state().sender_bits, session.hacker_mode)
    elif body.step is SimulationStep.SIFT:
        engine.sift_key()
    elif body.step is SimulationStep.COMPLETE:
        engine.complete()

    await _send_update(session)
    return _state_payload(session)


@app.post("/api/simulation/{simulation_id}/advance", response_model=SimulationStateModel)
async def advance_simulation(simulation_id: str):
    """Perform whatever the current phase calls for next."""
    session = _get_session(simulation_id)
    if session.controller.step_once() is None:
        raise HTTPException(409, "Simulation already complete")
    await _send_update(session)
    return _state_payload(session)


@app.get("/api/simulation/{simulation_id}/analysis", response_model=SessionSummaryModel)
async def get_analysis(simulation_id: str):
    session = _get_session(simulation_id)
    state = session.engine.get_state()
    summary = summarise(state).to_dict()
    summary["expected_error_rate"] = expected_error_rate(
        session.engine.get_hacker_config(),
        state.is_hacker_present,
        session.engine.get_noise_model(),
    )
    return summary


@app.post("/api/simulation/{simulation_id}/reset", response_model=SimulationStateModel)
async def reset_simulation(simulation_id: str):
    session = _get_session(simulation_id)
    session.controller.reset()
    await _send_update(session)
    return _state_payload(session)


@app.delete("/api/simulation/{simulation_id}")
async def delete_simulation(simulation_id: str):
    if not sessions.remove(simulation_id):
        raise HTTPException(404, "Simulation not found")
    ws_manager.drop_channel(simulation_id)
    await ws_manager.broadcast(ws_manager.make_event("simulationDeleted", {
        "simulationId": simulation_id,
    }))
    return {"deleted": True}


# ===================================================================== #
#  WEBSOCKET                                                              #
# ===================================================================== #

async def _listen(websocket: WebSocket, channel: str):
    client_id = await ws_manager.connect(websocket)
    ws_manager.join_channel(client_id, channel)
    try:
        while True:
            text = await websocket.receive_text()
            try:
                data = json.loads(text)
            except ValueError:
                logger.warning("Ignoring malformed frame from client %d", client_id)
                continue
            if not isinstance(data, dict):
                continue
            if data.get("type") == "ping":
                await ws_manager.send_personal(client_id, ws_manager.make_event("pong"))
    except WebSocketDisconnect:
        pass
    finally:
        ws_manager.disconnect(client_id)


@app.websocket("/ws")
async def websocket_all(websocket: WebSocket):
    await _listen(websocket, ALL_SIMULATIONS)


@app.websocket("/ws/{simulation_id}")
async def websocket_simulation(websocket: WebSocket, simulation_id: str):
    await _listen(websocket, simulation_id)


# ===================================================================== #
#  HEALTH                                                                 #
# ===================================================================== #

@app.get("/api/health")
async def health():
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "sessions": len(sessions),
        "completed_sessions": sum(
            1 for s in sessions.list() if s.last_state.phase is Phase.COMPLETE
        ),
        "connections": len(ws_manager.get_connected()),
    }
