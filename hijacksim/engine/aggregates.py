"""
Cross-trial aggregation of outcome labels.
"""

from __future__ import annotations

import math
import statistics
from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from hijacksim.scenarios.classifier import Outcome

GroupKey = tuple[str, float]


@dataclass(frozen=True)
class TrialTally:
    """
    Outcome counts of one trial, attacker and victim ASes excluded.

    This is what leaves a worker; the full per-AS TrialResult does not.
    """

    variant: str
    percentage: float
    trial_index: int
    counts: Mapping[Outcome, int]

    @classmethod
    def from_outcomes(
        cls,
        variant: str,
        percentage: float,
        trial_index: int,
        outcomes: Mapping[int, Outcome],
        excluded: Iterable[int] = (),
    ) -> "TrialTally":
        skip = set(excluded)
        counts = Counter(
            outcome for asn, outcome in outcomes.items() if asn not in skip
        )
        return cls(variant, percentage, trial_index, dict(counts))

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def fraction(self, outcome: Outcome) -> float:
        total = self.total
        return self.counts.get(outcome, 0) / total if total else 0.0


@dataclass(frozen=True)
class GroupStatistics:
    trials: int
    mean: float
    stdev: float
    ci95: float


@dataclass
class OutcomeAggregate:
    """
    Counters keyed by (variant, adoption percentage, outcome).
    """

    counts: Counter = field(default_factory=Counter)
    trials: Counter = field(default_factory=Counter)
    per_trial: dict[GroupKey, dict[Outcome, list[float]]] = field(default_factory=dict)

    def add(self, tally: TrialTally) -> None:
        key = (tally.variant, tally.percentage)
        self.trials[key] += 1
        for outcome, count in tally.counts.items():
            self.counts[(tally.variant, tally.percentage, outcome)] += count

        fractions = self.per_trial.setdefault(key, {outcome: [] for outcome in Outcome})
        for outcome in Outcome:
            fractions[outcome].append(100 * tally.fraction(outcome))

    @property
    def groups(self) -> list[GroupKey]:
        return sorted(self.trials)

    @property
    def total_trials(self) -> int:
        return sum(self.trials.values())

    def count(self, variant: str, percentage: float, outcome: Outcome) -> int:
        return self.counts[(variant, percentage, outcome)]

    def percentages(self, variant: str, percentage: float) -> dict[Outcome, float]:
        """
        Share of AS outcomes per label, pooled over all trials of a group.
        """
        totals = {outcome: self.count(variant, percentage, outcome) for outcome in Outcome}
        overall = sum(totals.values())
        if not overall:
            return {outcome: 0.0 for outcome in Outcome}
        return {outcome: 100 * value / overall for outcome, value in totals.items()}

    def statistics(
        self, variant: str, percentage: float, outcome: Outcome = Outcome.ATTACKER_WINS
    ) -> GroupStatistics:
        """
        Mean, standard deviation and 95% confidence half-width of the
        per-trial percentage of ASes with ``outcome``.
        """
        samples = self.per_trial.get((variant, percentage), {}).get(outcome, [])
        if not samples:
            return GroupStatistics(0, 0.0, 0.0, 0.0)

        mean = statistics.fmean(samples)
        stdev = statistics.stdev(samples) if len(samples) > 1 else 0.0
        ci95 = 1.96 * stdev / math.sqrt(len(samples))
        return GroupStatistics(len(samples), mean, stdev, ci95)
