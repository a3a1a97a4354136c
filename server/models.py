"""
models.py — Pydantic schemas for request/response validation.
"""
from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from .config import MAX_BIT_COUNT, START_BIT_COUNT


# ── Engine configuration ─────────────────────────────────────────────── #

class HackerConfigModel(BaseModel):
    interception_rate: float
    measurement_error_rate: float
    resend_error_rate: float

class HackerConfigUpdate(BaseModel):
    """Partial update; omitted fields keep their current value."""
    interception_rate: Optional[float] = Field(None, ge=0.0, le=1.0)
    measurement_error_rate: Optional[float] = Field(None, ge=0.0, le=1.0)
    resend_error_rate: Optional[float] = Field(None, ge=0.0, le=1.0)

class NoiseConfigUpdate(BaseModel):
    depolarization: Optional[float] = Field(None, ge=0.0, le=1.0)
    dark_count: Optional[float] = Field(None, ge=0.0, le=1.0)


# ── Simulation control ───────────────────────────────────────────────── #

class StartSimulationRequest(BaseModel):
    bit_count: int = Field(START_BIT_COUNT, ge=1, le=MAX_BIT_COUNT)
    hacker_mode: bool = False
    hacker_config: Optional[HackerConfigUpdate] = None
    noise: Optional[NoiseConfigUpdate] = None
    seed: Optional[int] = None

class SimulationStep(str, Enum):
    MEASURE = "measure"
    SIFT = "sift"
    COMPLETE = "complete"

class RunStepRequest(BaseModel):
    step: SimulationStep


# ── State ────────────────────────────────────────────────────────────── #

class QuantumBitModel(BaseModel):
    id: str
    value: int
    basis: str
    polarization: int
    timestamp: int

class SimulationStateModel(BaseModel):
    senderBits: List[QuantumBitModel] = []
    receiverBits: List[QuantumBitModel] = []
    interceptedBits: List[QuantumBitModel] = []
    sharedKey: str = ""
    errorRate: float = 0.0
    isHackerPresent: bool = False
    phase: str = "preparation"
    sessionId: str
    startTime: int = 0
    endTime: int = 0

class StartSimulationResponse(BaseModel):
    simulationId: str
    state: SimulationStateModel

class SimulationInfo(BaseModel):
    simulationId: str
    sessionId: str
    phase: str
    hackerMode: bool
    bitCount: int
    createdAt: float
    updateCount: int


# ── Analysis ─────────────────────────────────────────────────────────── #

class ChannelAnalysisModel(BaseModel):
    basis_matching_rate: float
    sifted_key_length: int
    theoretical_error_rate: float

class SessionSummaryModel(BaseModel):
    session_id: str
    phase: str
    bit_count: int
    intercepted_count: int
    sifted_key_length: int
    shared_key: str
    error_rate: float
    status: str
    eavesdropper_detected: bool
    is_hacker_present: bool
    analysis: ChannelAnalysisModel
    duration_ms: int
    error_rate_history: List[float] = []
    expected_error_rate: float = 0.0
