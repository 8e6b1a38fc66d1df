"""
Unit tests for hijacksim/engine/aggregates.py
"""
import pytest

from hijacksim.engine.aggregates import OutcomeAggregate, TrialTally
from hijacksim.scenarios.classifier import Outcome

ATK, VIC, BH = Outcome.ATTACKER_WINS, Outcome.VICTIM_WINS, Outcome.BLACKHOLED


def test_tally_excludes_attackers_and_victims():
    outcomes = {1: VIC, 2: ATK, 3: ATK, 4: VIC, 5: BH}
    tally = TrialTally.from_outcomes("ROV", 50.0, 0, outcomes, excluded={1, 2})

    assert tally.counts == {ATK: 1, VIC: 1, BH: 1}
    assert tally.total == 3
    assert tally.fraction(ATK) == pytest.approx(1 / 3)


def test_empty_tally_fraction_is_zero():
    tally = TrialTally("ROV", 0.0, 0, {})
    assert tally.fraction(ATK) == 0.0


class TestOutcomeAggregate:
    def _aggregate(self):
        aggregate = OutcomeAggregate()
        aggregate.add(TrialTally("ROV", 10.0, 0, {ATK: 3, VIC: 1}))
        aggregate.add(TrialTally("ROV", 10.0, 1, {ATK: 1, VIC: 3}))
        aggregate.add(TrialTally("ASPA", 10.0, 0, {VIC: 4}))
        return aggregate

    def test_counts_keyed_by_variant_percentage_outcome(self):
        aggregate = self._aggregate()

        assert aggregate.count("ROV", 10.0, ATK) == 4
        assert aggregate.count("ROV", 10.0, VIC) == 4
        assert aggregate.count("ROV", 10.0, BH) == 0
        assert aggregate.count("ASPA", 10.0, VIC) == 4
        assert aggregate.trials[("ROV", 10.0)] == 2
        assert aggregate.total_trials == 3
        assert aggregate.groups == [("ASPA", 10.0), ("ROV", 10.0)]

    def test_percentages(self):
        shares = self._aggregate().percentages("ROV", 10.0)
        assert shares == {ATK: 50.0, VIC: 50.0, BH: 0.0}

    def test_percentages_of_unknown_group(self):
        shares = OutcomeAggregate().percentages("ROV", 99.0)
        assert shares == {ATK: 0.0, VIC: 0.0, BH: 0.0}

    def test_statistics(self):
        stats = self._aggregate().statistics("ROV", 10.0)

        assert stats.trials == 2
        assert stats.mean == pytest.approx(50.0)
        # samples 75 and 25
        assert stats.stdev == pytest.approx(35.3553, rel=1e-4)
        assert stats.ci95 == pytest.approx(1.96 * 35.3553 / 2 ** 0.5, rel=1e-4)

    def test_statistics_single_trial(self):
        stats = self._aggregate().statistics("ASPA", 10.0)
        assert stats.trials == 1
        assert stats.mean == 0.0
        assert stats.stdev == 0.0
        assert stats.ci95 == 0.0

    def test_statistics_of_unknown_group(self):
        assert OutcomeAggregate().statistics("ROV", 1.0).trials == 0
