"""
BB84 QKD Simulator — Entry Point
=================================
Run a simulation from the command line:

    python main_app.py run --bits 200 --eve --seed 7

or start the relay server:

    python main_app.py serve --port 8000
"""
import argparse
import logging
import sys

from controller.simulation_controller import SimulationController
from qkd_engine import BB84Engine, expected_error_rate, format_binary_key
from qkd_engine.config import DEFAULT_BIT_COUNT
from server import config as server_config


def probability(text: str) -> float:
    value = float(text)
    if not 0.0 <= value <= 1.0:
        raise argparse.ArgumentTypeError(f"{text} is not a probability in [0, 1]")
    return value


def positive_int(text: str) -> int:
    value = int(text)
    if value < 1:
        raise argparse.ArgumentTypeError(f"{text} is not a positive integer")
    return value


def create_cli_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="BB84 quantum key distribution simulator.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--verbosity", choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=server_config.LOG_LEVEL, help="Logging verbosity level.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run one simulation and print the result.",
                         formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    run.add_argument("--bits", type=positive_int, default=DEFAULT_BIT_COUNT, help="Number of photons to send.")
    run.add_argument("--eve", action="store_true", help="Enable the intercept-resend eavesdropper.")
    run.add_argument("--interception-rate", type=probability, default=None)
    run.add_argument("--measurement-error-rate", type=probability, default=None)
    run.add_argument("--resend-error-rate", type=probability, default=None)
    run.add_argument("--depolarization", type=probability, default=None, help="Receiver bit-flip noise.")
    run.add_argument("--dark-count", type=probability, default=None, help="Receiver dark-count noise.")
    run.add_argument("--seed", type=int, default=None, help="Seed for reproducible runs.")
    run.add_argument("--delay", type=float, default=0.0, help="Seconds to pause between phases.")
    run.add_argument("--show-bits", action="store_true", help="Print the per-photon table.")

    serve = sub.add_parser("serve", help="Start the HTTP/WebSocket relay server.",
                           formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    serve.add_argument("--host", default=server_config.HOST)
    serve.add_argument("--port", type=int, default=server_config.PORT)
    serve.add_argument("--reload", action="store_true")
    return parser


def print_bit_table(state) -> None:
    intercepted = {b.id.rsplit("-", 1)[1]: b for b in state.intercepted_bits}
    print(f"{'#':>5}  {'sender':>8}  {'eve':>8}  {'receiver':>8}  match")
    for i, (sent, received) in enumerate(zip(state.sender_bits, state.receiver_bits)):
        eve = intercepted.get(str(i))
        eve_col = f"{eve.value}{eve.basis.symbol} {eve.symbol}" if eve else "-"
        match = "yes" if sent.basis == received.basis else ""
        print(
            f"{i:>5}  {sent.value}{sent.basis.symbol} {sent.symbol:>4}  {eve_col:>8}  "
            f"{received.value}{received.basis.symbol} {received.symbol:>4}  {match}"
        )


def run_simulation(args: argparse.Namespace) -> int:
    engine = BB84Engine(seed=args.seed)
    engine.configure_hacker(
        interception_rate=args.interception_rate,
        measurement_error_rate=args.measurement_error_rate,
        resend_error_rate=args.resend_error_rate,
    )
    engine.configure_noise(depolarization=args.depolarization, dark_count=args.dark_count)

    controller = SimulationController(
        engine=engine,
        bit_count=args.bits,
        hacker_present=args.eve,
        phase_delay=args.delay,
    )
    summary = controller.run()

    if args.show_bits:
        print_bit_table(engine.get_state())

    expected = expected_error_rate(engine.get_hacker_config(), args.eve, engine.get_noise_model())
    print(f"Session:              {summary.session_id}")
    print(f"Photons sent:         {summary.bit_count}")
    print(f"Intercepted:          {summary.intercepted_count}")
    print(f"Basis matching rate:  {summary.analysis.basis_matching_rate:.2f}%")
    print(f"Sifted key length:    {summary.sifted_key_length}")
    print(f"Error rate:           {summary.error_rate:.2f}%")
    print(f"Theoretical rate:     {summary.analysis.theoretical_error_rate:.2f}%")
    print(f"Model expectation:    {expected:.2f}%")
    print(f"Status:               {summary.status.upper()}")
    print(f"Shared key:           {format_binary_key(summary.shared_key) or '(empty)'}")
    return 0 if not summary.eavesdropper_detected else 2


def serve(args: argparse.Namespace) -> int:
    import uvicorn
    uvicorn.run("server.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def main(argv=None) -> int:
    args = create_cli_parser().parse_args(argv)
    logging.basicConfig(
        level=args.verbosity,
        format="%(asctime)s [%(levelname)s] [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    if args.command == "serve":
        return serve(args)
    return run_simulation(args)


if __name__ == "__main__":
    sys.exit(main())
