"""
eavesdropper.py
===============
Intercept-resend eavesdropper (Eve) for the BB84 simulation.

For every photon Eve chooses to intercept she:
  1. measures it in a random basis, misreading the result with probability
     ``measurement_error_rate`` (even when her basis is right);
  2. resends a fresh photon in her own basis, carrying a random bit with
     probability ``resend_error_rate`` instead of what she measured.

The resent photon replaces the original on its way to the receiver.
"""
from __future__ import annotations

import random
from dataclasses import asdict, dataclass, fields, replace
from typing import Dict, Optional, Tuple

from .config import (
    DEFAULT_INTERCEPTION_RATE,
    DEFAULT_MEASUREMENT_ERROR_RATE,
    DEFAULT_RESEND_ERROR_RATE,
)
from .qubit import QuantumBit, random_basis, random_bit


@dataclass(frozen=True)
class HackerConfig:
    """Eavesdropper behaviour.  All values are probabilities [0, 1] (not checked)."""
    interception_rate: float = DEFAULT_INTERCEPTION_RATE
    measurement_error_rate: float = DEFAULT_MEASUREMENT_ERROR_RATE
    resend_error_rate: float = DEFAULT_RESEND_ERROR_RATE

    def merged(self, **changes: Optional[float]) -> "HackerConfig":
        """Returns a copy with the given fields replaced; ``None`` keeps the old value."""
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise TypeError(f"Unknown hacker config field(s): {', '.join(sorted(unknown))}")
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def _flip(value: int) -> int:
    return 1 - value


class InterceptResendAttack:
    """
    Intercept-resend attack with imperfect measurement and resend.

    ``apply`` consumes random draws in a fixed order so that a seeded
    generator reproduces the same interception pattern.
    """

    def __init__(self, config: Optional[HackerConfig] = None):
        self.config = config or HackerConfig()

    def apply(
        self, photon: QuantumBit, index: int, rng: random.Random,
    ) -> Tuple[QuantumBit, Optional[QuantumBit]]:
        """
        Returns ``(photon_out, intercepted)``.

        If Eve leaves the photon alone, ``photon_out`` is *photon* and
        ``intercepted`` is None.  Otherwise ``intercepted`` records Eve's
        (basis, measured value) and ``photon_out`` is her resent photon.
        """
        cfg = self.config
        if not rng.random() < cfg.interception_rate:
            return photon, None

        eve_basis = random_basis(rng)
        if eve_basis == photon.basis:
            eve_value = photon.value
            if rng.random() < cfg.measurement_error_rate:
                eve_value = _flip(eve_value)
        else:
            # Wrong basis: outcome is random, then the misread applies on top
            eve_value = random_bit(rng)
            if rng.random() < cfg.measurement_error_rate:
                eve_value = _flip(eve_value)

        intercepted = photon.reencode(f"eavesdropper-{index}", eve_value, eve_basis)

        if rng.random() < cfg.resend_error_rate:
            resend_value = random_bit(rng)
        else:
            resend_value = eve_value
        resent = photon.reencode(photon.id, resend_value, eve_basis)

        return resent, intercepted

    @property
    def expected_error_contribution(self) -> float:
        """
        Probability that a sifted position carries an error because of Eve.

        Wrong basis (1/2): the receiver measures Eve's photon in the
        sender's basis and gets a coin flip.  Right basis (1/2): the resent
        value is wrong if Eve misread it and resent faithfully, or if the
        resend was randomised and came out wrong.
        """
        cfg = self.config
        m, r = cfg.measurement_error_rate, cfg.resend_error_rate
        right_basis_error = (1.0 - r) * m + r * 0.5
        return cfg.interception_rate * (0.5 * 0.5 + 0.5 * right_basis_error)
