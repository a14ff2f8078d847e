"""Command-line entry point: run one indoor scenario and print the summary."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional, Sequence

from .analysis.report import format_report, summary_lines
from .core.config import ScenarioConfig
from .core.errors import InvalidConfiguration
from .core.simulation import Simulation

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="indoor-lora-sim",
        description="Simulate an indoor LoRaWAN deployment and report packet outcomes.",
    )
    parser.add_argument("--config", help="JSON scenario file; flags below override it")
    parser.add_argument("--n-devices", type=int, help="Number of end devices")
    parser.add_argument("--n-gateways", type=int, help="Number of gateways")
    parser.add_argument("--simulation-time", type=float, help="Simulated time (s)")
    parser.add_argument("--app-period", type=float, help="Application period (s)")
    parser.add_argument("--seed", type=int, help="Random seed")
    parser.add_argument(
        "--no-realistic-channel",
        dest="realistic_channel_model",
        action="store_const",
        const=False,
        help="Use distance attenuation only",
    )
    parser.add_argument(
        "--confirmed",
        action="store_const",
        const=True,
        help="Acknowledge every received uplink from the best gateway",
    )
    parser.add_argument(
        "--print",
        dest="print",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Write device, gateway and building listings",
    )
    parser.add_argument("--output-dir", default=".", help="Directory for the listings (default: .)")
    parser.add_argument("--report", action="store_true", help="Print the detailed report as well")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v for INFO, -vv for DEBUG")
    return parser


_OVERRIDES = (
    "n_devices",
    "n_gateways",
    "simulation_time",
    "app_period",
    "seed",
    "realistic_channel_model",
    "confirmed",
    "print",
)


def load_config(args: argparse.Namespace) -> ScenarioConfig:
    """Merge the optional scenario file with command-line overrides."""
    base = ScenarioConfig.from_file(args.config) if args.config else ScenarioConfig.create()
    data = base.model_dump(by_alias=True)
    for name in _OVERRIDES:
        value = getattr(args, name)
        if value is not None:
            data[name] = value
    return ScenarioConfig.create(**data)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    level = logging.WARNING - 10 * min(args.verbose, 2)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        config = load_config(args)
        sim = Simulation(config)
    except InvalidConfiguration as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2

    if config.print_listings:
        sim.write_listings(args.output_dir)

    result = sim.run()
    lines: List[str] = summary_lines(result)
    print("\n".join(lines))
    if args.report:
        print(format_report(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
