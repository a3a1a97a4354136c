import pytest

from qkd_engine import Basis, NoiseModel, QuantumBit, QuantumChannel


def photon(value=1, basis=Basis.DIAGONAL):
    return QuantumBit.encode("sender-2", value, basis, 200)


def test_matching_basis_reads_exact_value(scripted):
    rng = scripted([0.7])    # receiver picks diagonal
    received = QuantumChannel().receive(photon(), 2, rng)
    assert received.id == "receiver-2"
    assert (received.basis, received.value, received.polarization) == (Basis.DIAGONAL, 1, 135)
    assert received.timestamp == 250
    assert rng.remaining == 0


def test_mismatched_basis_reads_random_value(scripted):
    rng = scripted([0.2, 0.3])    # rectilinear, then random bit 0
    received = QuantumChannel().receive(photon(), 2, rng)
    assert (received.basis, received.value, received.polarization) == (Basis.RECTILINEAR, 0, 0)


def test_depolarization_flips_the_reading(scripted):
    rng = scripted([0.7, 0.01])
    received = QuantumChannel(NoiseModel(depolarization=0.05)).receive(photon(), 2, rng)
    assert received.value == 0
    assert received.polarization == 45


def test_dark_count_replaces_the_reading(scripted):
    rng = scripted([0.7, 0.001, 0.2])
    received = QuantumChannel(NoiseModel(dark_count=0.01)).receive(photon(), 2, rng)
    assert received.value == 0


def test_noise_error_probability():
    assert NoiseModel().error_probability == 0.0
    assert NoiseModel(depolarization=0.1).error_probability == pytest.approx(0.1)
    assert NoiseModel(dark_count=0.2).error_probability == pytest.approx(0.1)


def test_noise_merged_rejects_unknown_fields():
    with pytest.raises(TypeError):
        NoiseModel().merged(loss=0.1)
