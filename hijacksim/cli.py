# hijacksim/cli.py

from __future__ import annotations
import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import Any

import yaml

from hijacksim import config as config_module
from hijacksim.engine.event_bus import TRIAL_COMPLETED, EventBus
from hijacksim.engine.trial_runner import AdoptionConfig, TrialRunner
from hijacksim.errors import InvalidTopology, OrchestratorError
from hijacksim.output.report import format_lines, write_json
from hijacksim.scenarios.generator import ScenarioGenerator
from hijacksim.scenarios.scenario import AttackType
from hijacksim.topology.caida import build_graph, load_as_rel

EXIT_OK = 0
EXIT_CONFIG_MISSING = 1
EXIT_CONFIG_INVALID = 2
EXIT_TOPOLOGY = 3
EXIT_ORCHESTRATOR = 4
EXIT_REPORT = 5


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hijacksim.cli",
        description="Simulate BGP hijacks on an AS-relationship topology under partial defense adoption",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "config",
        type=Path,
        help="Path to the run configuration YAML file",
    )
    parser.add_argument(
        "--topology",
        type=Path,
        help="CAIDA as-rel text file (overrides the config file)",
    )
    parser.add_argument("--trials", type=int, help="Trials per variant and adoption percentage")
    parser.add_argument("--seed", type=int, help="Base random seed")
    parser.add_argument(
        "--workers",
        type=int,
        help="Worker processes; 1 runs trials in-process",
    )
    parser.add_argument(
        "--attack",
        choices=[attack.value for attack in AttackType],
        help="Attack type",
    )
    parser.add_argument(
        "--variant",
        action="append",
        dest="variants",
        help="Policy variant, e.g. ROV or ROV+ASPA (repeatable)",
    )
    parser.add_argument(
        "--adoption",
        action="append",
        type=float,
        dest="adoption_percentages",
        help="Adoption percentage (repeatable)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Seconds after which no new trials are started",
    )
    parser.add_argument(
        "--output",
        choices=["cli", "json"],
        default="cli",
        help="Output mode: 'cli' prints a table to stdout; 'json' dumps the aggregates to a JSON file",
    )
    parser.add_argument(
        "--json-file",
        type=Path,
        default=Path("hijacksim_results.json"),
        help="Path to JSON output file if --output=json",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Do not print progress lines to stderr",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.config.exists():
        print(f"Config file not found: {args.config}", file=sys.stderr)
        return EXIT_CONFIG_MISSING

    # Load and validate configuration
    try:
        cfg = config_module.load(args.config).with_overrides(
            topology=args.topology,
            trials=args.trials,
            seed=args.seed,
            workers=args.workers,
            attack=args.attack,
            variants=args.variants,
            adoption_percentages=args.adoption_percentages,
            timeout=args.timeout,
        )
        if cfg.topology is None:
            raise ValueError("No topology given in the config file or with --topology")
    except (OSError, ValueError, yaml.YAMLError) as exc:
        print(f"Invalid config: {exc}", file=sys.stderr)
        return EXIT_CONFIG_INVALID

    # Build the topology once, before any trial runs
    try:
        graph = build_graph(load_as_rel(cfg.topology))
    except (OSError, InvalidTopology) as exc:
        print(f"Failed to load topology: {exc}", file=sys.stderr)
        return EXIT_TOPOLOGY

    try:
        generator = ScenarioGenerator(
            graph,
            attack_type=cfg.attack,
            num_attackers=cfg.num_attackers,
            num_victims=cfg.num_victims,
            victim_prefix=cfg.victim_prefix,
            attacker_prefix=cfg.attacker_prefix,
        )
        adoption = AdoptionConfig(tuple(cfg.variants), tuple(cfg.adoption_percentages))
    except ValueError as exc:
        print(f"Invalid config: {exc}", file=sys.stderr)
        return EXIT_CONFIG_INVALID

    event_bus = EventBus()
    if not args.no_progress:
        event_bus.subscribe(progress_printer(), TRIAL_COMPLETED)

    runner = TrialRunner(
        graph,
        generator,
        adoption,
        trial_count=cfg.trials,
        workers=cfg.workers,
        seed=cfg.seed,
        timeout=cfg.timeout,
        event_bus=event_bus,
    )

    try:
        summary = runner.run()
    except OrchestratorError as exc:
        print(f"Simulation failed: {exc}", file=sys.stderr)
        return EXIT_ORCHESTRATOR
    finally:
        event_bus.close()

    if summary.timed_out:
        print(
            f"[WARN] Timeout reached: {summary.completed} of {summary.total} trials ran",
            file=sys.stderr,
        )

    if args.output == "cli":
        for line in format_lines(summary):
            print(line)
        return EXIT_OK

    try:
        write_json(summary, args.json_file)
        print(f"Results JSON dumped to {args.json_file}")
    except (OSError, TypeError, ValueError) as exc:
        print(f"Failed to write JSON file: {exc}", file=sys.stderr)
        return EXIT_REPORT

    return EXIT_OK


def progress_printer(stream=None):
    """
    Subscriber for trial.completed events, printing roughly twenty
    progress lines per run.
    """

    def handle_event(event: dict[str, Any]) -> None:
        completed, total = event["completed"], event["total"]
        step = max(1, total // 20)
        if completed % step == 0 or completed == total:
            print(
                f"[INFO] {completed}/{total} trials ({event['variant']} at {event['percentage']:g}%)",
                file=stream or sys.stderr,
            )

    return handle_event


if __name__ == "__main__":

    signal.signal(signal.SIGPIPE, signal.SIG_DFL)  # Ignore broken pipe
    sys.exit(main())
