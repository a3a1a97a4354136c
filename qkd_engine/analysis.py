"""
Security decision and derived analytics over simulation state.

Nothing here mutates the state it is given.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .channel import NoiseModel
from .config import (
    SECURITY_THRESHOLD,
    THEORETICAL_ERROR_RATE_CLEAN,
    THEORETICAL_ERROR_RATE_WITH_EAVESDROPPER,
)
from .eavesdropper import HackerConfig, InterceptResendAttack
from .qubit import QuantumBit
from .state import SimulationState

SECURE = "secure"
COMPROMISED = "compromised"


def is_secure(error_rate: float) -> bool:
    return error_rate <= SECURITY_THRESHOLD


def detect_eavesdropping(error_rate: float) -> bool:
    """Error rates above ~11 % indicate an eavesdropper on the channel."""
    return not is_secure(error_rate)


def classify(error_rate: float) -> str:
    return SECURE if is_secure(error_rate) else COMPROMISED


def calculate_error_rate(
    sender_bits: Sequence[QuantumBit], receiver_bits: Sequence[QuantumBit],
) -> float:
    """Percentage of basis-matched positions whose values disagree."""
    errors = 0
    comparisons = 0
    for sent, received in zip(sender_bits, receiver_bits):
        if sent.basis == received.basis:
            comparisons += 1
            if sent.value != received.value:
                errors += 1
    return 100.0 * errors / comparisons if comparisons else 0.0


def error_rate_history(state: SimulationState) -> List[float]:
    """Rolling error rate (percent) after each sifted position."""
    history = []
    errors, compared = 0, 0
    for sent, received in zip(state.sender_bits, state.receiver_bits):
        if sent.basis != received.basis:
            continue
        compared += 1
        if sent.value != received.value:
            errors += 1
        history.append(100.0 * errors / compared)
    return history


def expected_error_rate(
    config: HackerConfig,
    hacker_present: bool,
    noise: Optional[NoiseModel] = None,
) -> float:
    """
    Expected error rate (percent) of the engine's own probabilistic model.

    Unlike the fixed theoretical reference, this accounts for the
    eavesdropper's measurement and resend errors and for receiver noise.
    """
    p_eve = InterceptResendAttack(config).expected_error_contribution if hacker_present else 0.0
    p_noise = noise.error_probability if noise is not None else 0.0
    # Noise flips a correct reading into an error and an erroneous one back
    p_error = p_eve * (1.0 - p_noise) + (1.0 - p_eve) * p_noise
    return 100.0 * p_error


def format_binary_key(key: str, group_size: int = 8) -> str:
    if group_size <= 0:
        return key
    return " ".join(key[i:i + group_size] for i in range(0, len(key), group_size))


@dataclass
class ChannelAnalysis:
    basis_matching_rate: float      # percent of index-aligned pairs
    sifted_key_length: int
    theoretical_error_rate: float   # fixed reference, not a recomputation


def analyze_channel(state: SimulationState) -> ChannelAnalysis:
    matching = sum(
        1 for sent, received in zip(state.sender_bits, state.receiver_bits)
        if sent.basis == received.basis
    )
    total = len(state.sender_bits)
    return ChannelAnalysis(
        basis_matching_rate=100.0 * matching / total if total else 0.0,
        sifted_key_length=len(state.shared_key),
        theoretical_error_rate=(
            THEORETICAL_ERROR_RATE_WITH_EAVESDROPPER
            if state.is_hacker_present else THEORETICAL_ERROR_RATE_CLEAN
        ),
    )


@dataclass
class SessionSummary:
    """Headline numbers for one session, as shown by the CLI and the API."""
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
    analysis: ChannelAnalysis
    duration_ms: int
    error_rate_history: List[float] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def summarise(state: SimulationState) -> SessionSummary:
    return SessionSummary(
        session_id=state.session_id,
        phase=state.phase.value,
        bit_count=len(state.sender_bits),
        intercepted_count=len(state.intercepted_bits),
        sifted_key_length=len(state.shared_key),
        shared_key=state.shared_key,
        error_rate=state.error_rate,
        status=classify(state.error_rate),
        eavesdropper_detected=detect_eavesdropping(state.error_rate),
        is_hacker_present=state.is_hacker_present,
        analysis=analyze_channel(state),
        duration_ms=state.duration_ms,
        error_rate_history=error_rate_history(state),
    )
