"""
Formatting of orchestrator aggregates.

Two forms: plain text lines for the terminal and a JSON document. Both
are built from the same per-group rows.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from hijacksim.engine.trial_runner import RunSummary
from hijacksim.scenarios.classifier import Outcome


def summary_rows(summary: RunSummary) -> list[dict[str, Any]]:
    """
    One row per (variant, adoption percentage) group that ran at least
    one trial.
    """
    aggregate = summary.aggregate
    rows = []
    for variant, percentage in summary.groups:
        trials = aggregate.trials[(variant, percentage)]
        if not trials:
            continue

        shares = aggregate.percentages(variant, percentage)
        stats = aggregate.statistics(variant, percentage, Outcome.ATTACKER_WINS)
        rows.append(
            {
                "variant": variant,
                "adoption_percentage": percentage,
                "trials": trials,
                "counts": {
                    outcome.value: aggregate.count(variant, percentage, outcome)
                    for outcome in Outcome
                },
                "percentages": {outcome.value: shares[outcome] for outcome in Outcome},
                "attacker_success": {
                    "mean": stats.mean,
                    "stdev": stats.stdev,
                    "ci95": stats.ci95,
                },
            }
        )
    return rows


def to_dict(summary: RunSummary) -> dict[str, Any]:
    return {
        "total_trials": summary.total,
        "completed_trials": summary.completed,
        "timed_out": summary.timed_out,
        "elapsed_seconds": round(summary.elapsed, 3),
        "results": summary_rows(summary),
    }


def format_lines(summary: RunSummary) -> list[str]:
    lines = [
        f"{'variant':<20} {'adopt%':>7} {'trials':>7} "
        f"{'attacker%':>10} {'victim%':>9} {'blackhole%':>11} {'ci95':>7}"
    ]
    for row in summary_rows(summary):
        pct = row["percentages"]
        lines.append(
            f"{row['variant']:<20} {row['adoption_percentage']:>7.1f} {row['trials']:>7d} "
            f"{pct[Outcome.ATTACKER_WINS.value]:>10.2f} "
            f"{pct[Outcome.VICTIM_WINS.value]:>9.2f} "
            f"{pct[Outcome.BLACKHOLED.value]:>11.2f} "
            f"{row['attacker_success']['ci95']:>7.2f}"
        )

    status = "timed out" if summary.timed_out else "complete"
    lines.append(f"{summary.completed}/{summary.total} trials, {status}")
    return lines


def write_json(summary: RunSummary, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(to_dict(summary), f, indent=2)
