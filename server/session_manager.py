"""
session_manager.py — One engine per simulation session.

Sessions never share engines or state.  Each session subscribes an observer
to its engine that keeps the latest published snapshot for broadcasting.
"""
from __future__ import annotations

import logging
import time
import uuid
from typing import Dict, List, Optional

from controller.simulation_controller import SimulationController
from qkd_engine import BB84Engine, SimulationState

logger = logging.getLogger(__name__)


class SessionLimitReached(Exception):
    """Raised when creating a session would exceed the configured cap."""


class SimulationSession:
    """A controller-driven engine plus the bookkeeping the API needs."""

    def __init__(self, simulation_id: str, controller: SimulationController):
        self.simulation_id = simulation_id
        self.controller = controller
        self.created_at = time.time()
        self.update_count = 0
        self.last_state: SimulationState = controller.engine.get_state()
        self._unsubscribe = controller.engine.subscribe(self._on_update)

    @property
    def engine(self) -> BB84Engine:
        return self.controller.engine

    @property
    def hacker_mode(self) -> bool:
        return self.controller.hacker_present

    def close(self) -> None:
        self._unsubscribe()

    def _on_update(self, state: SimulationState) -> None:
        self.last_state = state
        self.update_count += 1


class SessionManager:
    """Registry of live simulation sessions."""

    def __init__(self, max_sessions: int = 100):
        self.max_sessions = max_sessions
        self._sessions: Dict[str, SimulationSession] = {}

    def create(
        self,
        bit_count: int,
        hacker_mode: bool = False,
        seed: Optional[int] = None,
    ) -> SimulationSession:
        if len(self._sessions) >= self.max_sessions:
            raise SessionLimitReached(f"Session limit of {self.max_sessions} reached")

        simulation_id = f"sim-{uuid.uuid4().hex[:12]}"
        controller = SimulationController(
            engine=BB84Engine(seed=seed),
            bit_count=bit_count,
            hacker_present=hacker_mode,
        )
        session = SimulationSession(simulation_id, controller)
        self._sessions[simulation_id] = session
        logger.info(
            "Created simulation %s (%d bits, hacker_mode=%s, seed=%s)",
            simulation_id, bit_count, hacker_mode, seed,
        )
        return session

    def get(self, simulation_id: str) -> Optional[SimulationSession]:
        return self._sessions.get(simulation_id)

    def remove(self, simulation_id: str) -> bool:
        session = self._sessions.pop(simulation_id, None)
        if session is None:
            return False
        session.close()
        logger.info("Removed simulation %s", simulation_id)
        return True

    def list(self) -> List[SimulationSession]:
        return list(self._sessions.values())

    def clear(self) -> None:
        for simulation_id in list(self._sessions):
            self.remove(simulation_id)

    def __len__(self) -> int:
        return len(self._sessions)
