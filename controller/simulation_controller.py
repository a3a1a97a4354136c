"""
SimulationController
====================
Sits between the simulation engine and whatever drives it (CLI, server).

It owns:
  - A BB84Engine instance
  - The run settings (bit count, eavesdropper on/off)
  - The pacing between phases

The engine has no notion of time; the controller decides *when* each phase
runs and reports progress through the log.
"""
import logging
import time
from typing import Callable, Optional

from qkd_engine import BB84Engine, Phase, SessionSummary, summarise
from qkd_engine.config import DEFAULT_BIT_COUNT

logger = logging.getLogger(__name__)


class SimulationController:

    def __init__(
        self,
        engine: Optional[BB84Engine] = None,
        bit_count: int = DEFAULT_BIT_COUNT,
        hacker_present: bool = False,
        phase_delay: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.engine = engine or BB84Engine()

        # Settings (may be changed between runs)
        self.bit_count = bit_count
        self.hacker_present = hacker_present
        self.phase_delay = phase_delay

        self._sleep = sleep

    # ------------------------------------------------------------------ #
    #  Public API                                                          #
    # ------------------------------------------------------------------ #
    def step_once(self) -> Optional[Phase]:
        """
        Performs the operation the current phase calls for.

        Returns the phase the engine ends up in, or None when the session
        is already complete.
        """
        engine = self.engine
        phase = engine.phase

        if phase is Phase.PREPARATION:
            engine.generate_bits(self.bit_count)
            logger.info(
                "Session %s started: %d qubits, eavesdropper=%s",
                engine.session_id, self.bit_count, "ON" if self.hacker_present else "OFF",
            )
        elif phase is Phase.TRANSMISSION:
            engine.transmit_and_measure(engine.get_state().sender_bits, self.hacker_present)
        elif phase is Phase.SIFTING:
            engine.sift_key()
        elif phase is Phase.ERROR_CHECK:
            engine.complete()
            self._log_result()
        else:
            return None

        return engine.phase

    def run(self) -> SessionSummary:
        """Starts a fresh session and drives it to completion."""
        self.reset()
        while self.step_once() not in (Phase.COMPLETE, None):
            if self.phase_delay > 0:
                self._sleep(self.phase_delay)
        return self.summary()

    def reset(self) -> None:
        self.engine.reset()
        logger.info("Reset to session %s", self.engine.session_id)

    def summary(self) -> SessionSummary:
        return summarise(self.engine.get_state())

    @property
    def is_complete(self) -> bool:
        return self.engine.phase is Phase.COMPLETE

    # ------------------------------------------------------------------ #
    #  Internal                                                            #
    # ------------------------------------------------------------------ #
    def _log_result(self) -> None:
        summary = self.summary()
        if summary.eavesdropper_detected:
            logger.warning(
                "Session %s complete. Error rate=%.2f%%. Sifted key: %d bits. "
                "Eavesdropper DETECTED -- key compromised!",
                summary.session_id, summary.error_rate, summary.sifted_key_length,
            )
        else:
            logger.info(
                "Session %s complete. Error rate=%.2f%%. Sifted key: %d bits. "
                "Secure key established.",
                summary.session_id, summary.error_rate, summary.sifted_key_length,
            )
