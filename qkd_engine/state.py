"""
Simulation state owned by the engine and the snapshots handed to observers.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List

from .qubit import QuantumBit


class Phase(str, Enum):
    PREPARATION = "preparation"
    TRANSMISSION = "transmission"
    SIFTING = "sifting"
    ERROR_CHECK = "error-check"
    COMPLETE = "complete"


@dataclass
class SimulationState:
    """Aggregated results for one BB84 session."""
    session_id: str
    sender_bits: List[QuantumBit] = field(default_factory=list)
    receiver_bits: List[QuantumBit] = field(default_factory=list)
    intercepted_bits: List[QuantumBit] = field(default_factory=list)
    shared_key: str = ""
    error_rate: float = 0.0          # percent, set by sifting
    is_hacker_present: bool = False
    phase: Phase = Phase.PREPARATION
    start_time: int = 0              # epoch ms
    end_time: int = 0

    def snapshot(self) -> "SimulationState":
        """An independent copy; bits are immutable so copying the lists suffices."""
        return replace(
            self,
            sender_bits=list(self.sender_bits),
            receiver_bits=list(self.receiver_bits),
            intercepted_bits=list(self.intercepted_bits),
        )

    @property
    def duration_ms(self) -> int:
        if not self.start_time or not self.end_time:
            return 0
        return self.end_time - self.start_time

    def to_dict(self) -> Dict[str, Any]:
        return {
            "senderBits": [b.to_dict() for b in self.sender_bits],
            "receiverBits": [b.to_dict() for b in self.receiver_bits],
            "interceptedBits": [b.to_dict() for b in self.intercepted_bits],
            "sharedKey": self.shared_key,
            "errorRate": self.error_rate,
            "isHackerPresent": self.is_hacker_present,
            "phase": self.phase.value,
            "sessionId": self.session_id,
            "startTime": self.start_time,
            "endTime": self.end_time,
        }
