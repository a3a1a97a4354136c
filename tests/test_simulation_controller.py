import logging

from controller.simulation_controller import SimulationController
from qkd_engine import BB84Engine, Phase


def test_step_once_walks_the_phases():
    controller = SimulationController(engine=BB84Engine(seed=1), bit_count=12)
    phases = [controller.step_once() for _ in range(5)]
    assert phases == [Phase.TRANSMISSION, Phase.SIFTING, Phase.ERROR_CHECK, Phase.COMPLETE, None]
    assert controller.is_complete
    assert len(controller.engine.get_state().sender_bits) == 12


def test_run_paces_between_phases_outside_the_engine():
    pauses = []
    controller = SimulationController(
        engine=BB84Engine(seed=1), bit_count=20, phase_delay=0.25, sleep=pauses.append,
    )
    summary = controller.run()
    assert pauses == [0.25, 0.25, 0.25]
    assert summary.phase == "complete"
    assert summary.bit_count == 20


def test_run_starts_a_new_session_each_time():
    controller = SimulationController(engine=BB84Engine(seed=1), bit_count=10)
    first = controller.run().session_id
    second = controller.run().session_id
    assert first != second


def test_run_with_full_interception_is_flagged(caplog):
    engine = BB84Engine(seed=8)
    engine.configure_hacker(interception_rate=1.0)
    controller = SimulationController(engine=engine, bit_count=2000, hacker_present=True)
    with caplog.at_level(logging.INFO, logger="controller.simulation_controller"):
        summary = controller.run()
    assert summary.eavesdropper_detected
    assert summary.intercepted_count == 2000
    assert any(r.levelno == logging.WARNING for r in caplog.records)


def test_clean_run_is_secure(caplog):
    controller = SimulationController(engine=BB84Engine(seed=8), bit_count=500)
    with caplog.at_level(logging.INFO, logger="controller.simulation_controller"):
        summary = controller.run()
    assert summary.status == "secure"
    assert "Secure key established" in caplog.text
