"""
BB84Engine: the protocol state machine.

Phases advance preparation -> transmission -> sifting -> error-check ->
complete as the caller invokes, in order:

    engine.generate_bits(count)
    engine.transmit_and_measure(bits, hacker_present)
    engine.sift_key()
    engine.complete()

Call order is not enforced.  Every mutating call publishes a snapshot to
the subscribed observers, synchronously and in registration order.
"""
import itertools
import logging
import random
import time
import uuid
from typing import Callable, List, Optional, Tuple

from .channel import NoiseModel, QuantumChannel
from .config import DEFAULT_BIT_COUNT, EMISSION_INTERVAL_MS, SESSION_ID_PREFIX
from .eavesdropper import HackerConfig, InterceptResendAttack
from .qubit import QuantumBit, random_basis, random_bit
from .state import Phase, SimulationState

logger = logging.getLogger(__name__)

Observer = Callable[[SimulationState], None]


def _new_session_id() -> str:
    return f"{SESSION_ID_PREFIX}-{uuid.uuid4().hex[:12]}"


class BB84Engine:
    """Single-session BB84 simulation engine."""

    def __init__(
        self,
        seed: Optional[int] = None,
        rng: Optional[random.Random] = None,
        hacker_config: Optional[HackerConfig] = None,
        noise_model: Optional[NoiseModel] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._rng = rng if rng is not None else random.Random(seed)
        self._hacker_config = hacker_config or HackerConfig()
        self._noise_model = noise_model or NoiseModel()
        self._clock = clock

        self._observers: List[Tuple[int, Observer]] = []
        self._tokens = itertools.count()

        self._state = SimulationState(session_id=_new_session_id())

    # ------------------------------------------------------------------ #
    #  Configuration                                                       #
    # ------------------------------------------------------------------ #
    def configure_hacker(self, **changes: Optional[float]) -> HackerConfig:
        """Merges the given fields into the eavesdropper config."""
        self._hacker_config = self._hacker_config.merged(**changes)
        return self._hacker_config

    def get_hacker_config(self) -> HackerConfig:
        return self._hacker_config

    def configure_noise(self, **changes: Optional[float]) -> NoiseModel:
        self._noise_model = self._noise_model.merged(**changes)
        return self._noise_model

    def get_noise_model(self) -> NoiseModel:
        return self._noise_model

    # ------------------------------------------------------------------ #
    #  Protocol phases                                                     #
    # ------------------------------------------------------------------ #
    def generate_bits(self, count: int = DEFAULT_BIT_COUNT) -> List[QuantumBit]:
        """The sender prepares *count* photons with random values and bases."""
        bits = []
        for i in range(count):
            value = random_bit(self._rng)
            basis = random_basis(self._rng)
            bits.append(QuantumBit.encode(
                id=f"sender-{i}",
                value=value,
                basis=basis,
                timestamp=i * EMISSION_INTERVAL_MS,
            ))

        self._state.sender_bits = bits
        self._state.phase = Phase.TRANSMISSION
        self._state.start_time = self._now_ms()
        logger.debug("%s: generated %d bits", self._state.session_id, len(bits))
        self._publish()
        return list(bits)

    def transmit_and_measure(
        self, sender_bits: List[QuantumBit], hacker_present: bool = False,
    ) -> List[QuantumBit]:
        """
        Sends every photon through the channel and measures it at the receiver.

        With *hacker_present*, each photon may first be intercepted and
        replaced by the eavesdropper.  Indices are processed independently.
        """
        attack = InterceptResendAttack(self._hacker_config) if hacker_present else None
        channel = QuantumChannel(self._noise_model)

        receiver_bits = []
        intercepted_bits = []
        for index, photon in enumerate(sender_bits):
            incoming = photon
            if attack is not None:
                incoming, intercepted = attack.apply(photon, index, self._rng)
                if intercepted is not None:
                    intercepted_bits.append(intercepted)
            receiver_bits.append(channel.receive(incoming, index, self._rng))

        self._state.receiver_bits = receiver_bits
        self._state.intercepted_bits = intercepted_bits
        self._state.is_hacker_present = hacker_present
        self._state.phase = Phase.SIFTING
        logger.debug(
            "%s: transmitted %d photons, %d intercepted",
            self._state.session_id, len(receiver_bits), len(intercepted_bits),
        )
        self._publish()
        return list(receiver_bits)

    def sift_key(self) -> str:
        """Keeps the sender's values where both bases agree and measures the error rate."""
        sifted = []
        errors = 0
        comparisons = 0
        for sent, received in zip(self._state.sender_bits, self._state.receiver_bits):
            if sent.basis != received.basis:
                continue
            sifted.append(str(sent.value))
            comparisons += 1
            if sent.value != received.value:
                errors += 1

        self._state.shared_key = "".join(sifted)
        self._state.error_rate = 100.0 * errors / comparisons if comparisons else 0.0
        self._state.phase = Phase.ERROR_CHECK
        logger.debug(
            "%s: sifted %d bits, %d errors (%.2f%%)",
            self._state.session_id, comparisons, errors, self._state.error_rate,
        )
        self._publish()
        return self._state.shared_key

    def complete(self) -> SimulationState:
        self._state.phase = Phase.COMPLETE
        self._state.end_time = self._now_ms()
        self._publish()
        return self._state.snapshot()

    def reset(self) -> None:
        """Discards all bits and results and starts a new session."""
        self._state = SimulationState(session_id=_new_session_id())
        logger.debug("reset to session %s", self._state.session_id)
        self._publish()

    def run(self, count: int = DEFAULT_BIT_COUNT, hacker_present: bool = False) -> SimulationState:
        """Runs every phase at once and returns the final snapshot."""
        bits = self.generate_bits(count)
        self.transmit_and_measure(bits, hacker_present)
        self.sift_key()
        return self.complete()

    # ------------------------------------------------------------------ #
    #  Observers                                                           #
    # ------------------------------------------------------------------ #
    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Registers *observer*; the returned callable removes it (idempotent)."""
        token = next(self._tokens)
        self._observers.append((token, observer))

        def unsubscribe() -> None:
            self._observers = [(t, o) for t, o in self._observers if t != token]

        return unsubscribe

    def get_state(self) -> SimulationState:
        return self._state.snapshot()

    @property
    def phase(self) -> Phase:
        return self._state.phase

    @property
    def session_id(self) -> str:
        return self._state.session_id

    # ------------------------------------------------------------------ #
    #  Internal                                                            #
    # ------------------------------------------------------------------ #
    def _publish(self) -> None:
        for _, observer in list(self._observers):
            observer(self._state.snapshot())

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)
