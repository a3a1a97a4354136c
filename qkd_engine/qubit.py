"""
QuantumBit: a single simulated photon emission or measurement event.

Polarization map:
  Rectilinear (+) basis:  0° = bit 0,  90° = bit 1
  Diagonal    (×) basis: 45° = bit 0, 135° = bit 1
"""
from __future__ import annotations

import random
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict


class Basis(str, Enum):
    RECTILINEAR = "rectilinear"
    DIAGONAL = "diagonal"

    @property
    def symbol(self) -> str:
        return "+" if self is Basis.RECTILINEAR else "x"


POLARIZATIONS = {
    (Basis.RECTILINEAR, 0): 0,
    (Basis.RECTILINEAR, 1): 90,
    (Basis.DIAGONAL, 0): 45,
    (Basis.DIAGONAL, 1): 135,
}

# Used by the command line bit table
POLARIZATION_SYMBOLS = {
    0:   "→",
    90:  "↑",
    45:  "↗",
    135: "↖",
}


def polarization_for(basis: Basis, value: int) -> int:
    """Returns the polarization angle (degrees) encoding *value* in *basis*."""
    key = (Basis(basis), value)
    if key not in POLARIZATIONS:
        raise ValueError(f"Bit value must be 0 or 1, got {value!r}")
    return POLARIZATIONS[key]


def random_bit(rng: random.Random) -> int:
    return 0 if rng.random() < 0.5 else 1


def random_basis(rng: random.Random) -> Basis:
    return Basis.RECTILINEAR if rng.random() < 0.5 else Basis.DIAGONAL


@dataclass(frozen=True)
class QuantumBit:
    """A photon carrying a classical bit encoded in one of the two bases."""

    id: str
    value: int
    basis: Basis
    polarization: int
    timestamp: int

    def __post_init__(self):
        if self.value not in (0, 1):
            raise ValueError(f"Bit value must be 0 or 1, got {self.value!r}")
        # Accept plain strings ("diagonal") from deserialised payloads
        object.__setattr__(self, "basis", Basis(self.basis))
        expected = polarization_for(self.basis, self.value)
        if self.polarization != expected:
            raise ValueError(
                f"Polarization {self.polarization}° does not encode "
                f"bit {self.value} in the {self.basis.value} basis"
            )

    # ------------------------------------------------------------------ #
    #  Factory                                                             #
    # ------------------------------------------------------------------ #
    @classmethod
    def encode(cls, id: str, value: int, basis: Basis, timestamp: int) -> "QuantumBit":
        """Creates a bit whose polarization is derived from (basis, value)."""
        return cls(
            id=id,
            value=value,
            basis=Basis(basis),
            polarization=polarization_for(basis, value),
            timestamp=timestamp,
        )

    # ------------------------------------------------------------------ #
    #  Quantum mechanics                                                   #
    # ------------------------------------------------------------------ #
    def measure(self, measurement_basis: Basis, rng: random.Random) -> int:
        """
        Returns the bit read out when measuring in *measurement_basis*.

        Matching bases give the encoded bit; a mismatch gives a uniformly
        random outcome.
        """
        if self.basis == measurement_basis:
            return self.value
        return random_bit(rng)

    def reencode(self, id: str, value: int, basis: Basis) -> "QuantumBit":
        """A fresh photon at the same emission time carrying (basis, value)."""
        return replace(
            self,
            id=id,
            value=value,
            basis=Basis(basis),
            polarization=polarization_for(basis, value),
        )

    # ------------------------------------------------------------------ #
    #  Properties                                                          #
    # ------------------------------------------------------------------ #
    @property
    def symbol(self) -> str:
        return POLARIZATION_SYMBOLS.get(self.polarization, "?")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "value": self.value,
            "basis": self.basis.value,
            "polarization": self.polarization,
            "timestamp": self.timestamp,
        }

    def __repr__(self) -> str:
        return (
            f"QuantumBit(id={self.id!r}, value={self.value}, "
            f"basis='{self.basis.symbol}', pol={self.polarization}°, {self.symbol})"
        )
