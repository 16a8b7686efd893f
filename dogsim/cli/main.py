"""Command-line entry points for running simulations and plotting vitals."""

from __future__ import annotations

import argparse
from dataclasses import replace

from dogsim.configs.loader import ConfigLoader, StreamConfig, TelemetryConfig
from dogsim.main import configure_logging, run
from dogsim.visualization.plotting import plot_dog_vitals


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dogsim")
    sub = parser.add_subparsers(dest="command", required=True)

    run_cmd = sub.add_parser("run", help="run the simulation")
    run_cmd.add_argument("--config", default="configs/default.yaml")
    run_cmd.add_argument("--duration", type=float, default=None, help="seconds to run (default: until Ctrl-C)")
    run_cmd.add_argument("--db", default=None, help="record vitals to this SQLite file")
    run_cmd.add_argument("--url", default=None, help="PUT vitals to this location server base URL")
    run_cmd.add_argument("--stream-port", type=int, default=None, help="serve arena snapshots over websockets")
    run_cmd.add_argument("--quiet", action="store_true", help="do not log each vitals report")

    plot_cmd = sub.add_parser("plot", help="plot one dog's recorded vitals")
    plot_cmd.add_argument("--dog", type=int, required=True)
    plot_cmd.add_argument("--db", default="dog_vitals.db")
    plot_cmd.add_argument("--out", default="artifacts/vitals.png")
    return parser


def run_cli(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    if args.command == "run":
        config = ConfigLoader.load(args.config)
        telemetry: TelemetryConfig = config.telemetry
        if args.db:
            telemetry = replace(telemetry, db_path=args.db)
        if args.url:
            telemetry = replace(telemetry, url=args.url)
        if args.quiet:
            telemetry = replace(telemetry, log=False)
        stream: StreamConfig = config.stream
        if args.stream_port is not None:
            stream = replace(stream, port=args.stream_port)
        config = replace(config, telemetry=telemetry, stream=stream)

        configure_logging(config.log_level)
        run(config, duration=args.duration)
        return 0

    if args.command == "plot":
        path = plot_dog_vitals(args.db, args.dog, args.out)
        print(path)
        return 0

    return 1


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
