"""
Quantum channel between the sender and the receiver.

The receiver picks a random basis for every incoming photon.  Optional
detector noise is applied after the measurement:
  - Depolarization : the measured bit is flipped with probability p_depol
  - Dark counts    : the measured bit is replaced by a random one with p_dark
Both default to zero, in which case no extra random draws are made.
"""
import random
from dataclasses import asdict, dataclass, fields, replace
from typing import Dict, Optional

from .config import TRANSMISSION_DELAY_MS
from .qubit import QuantumBit, random_basis, random_bit


@dataclass(frozen=True)
class NoiseModel:
    """Receiver side noise.  All values are probabilities [0, 1]."""
    depolarization: float = 0.0
    dark_count: float = 0.0

    def merged(self, **changes: Optional[float]) -> "NoiseModel":
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise TypeError(f"Unknown noise field(s): {', '.join(sorted(unknown))}")
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    @property
    def error_probability(self) -> float:
        """Probability that noise alone turns a correct reading into an error."""
        p_flip = self.depolarization
        p_dark = self.dark_count
        # A dark count overrides whatever the depolarization step left behind
        return (1.0 - p_dark) * p_flip + p_dark * 0.5

    def apply(self, value: int, rng: random.Random) -> int:
        if self.depolarization and rng.random() < self.depolarization:
            value = 1 - value
        if self.dark_count and rng.random() < self.dark_count:
            value = random_bit(rng)
        return value

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


class QuantumChannel:
    """Delivers photons to the receiver and performs his measurement."""

    def __init__(self, noise_model: Optional[NoiseModel] = None):
        self.noise_model = noise_model or NoiseModel()

    def receive(self, photon: QuantumBit, index: int, rng: random.Random) -> QuantumBit:
        """
        Measures *photon* in a freshly drawn basis and returns the receiver's bit.

        The receiver's value equals the photon's value when the bases agree and
        is a coin flip otherwise.
        """
        receiver_basis = random_basis(rng)
        value = photon.measure(receiver_basis, rng)
        value = self.noise_model.apply(value, rng)
        return QuantumBit.encode(
            id=f"receiver-{index}",
            value=value,
            basis=receiver_basis,
            timestamp=photon.timestamp + TRANSMISSION_DELAY_MS,
        )
