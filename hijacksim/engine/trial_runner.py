"""
Trial orchestrator for the hijacksim simulator.

A batch is ``trial_count`` trials for every (policy variant, adoption
percentage) pair. Each trial resets the graph's routing state, draws a
fresh scenario, seeds it, propagates, classifies and hands back a
compact tally. Only the parent process folds tallies into the
aggregate, in submission order, so the result does not depend on the
number of workers.

With more than one worker, trials run in a multiprocessing pool whose
initializer gives every worker process its own copy of the graph. The
relationship structure is never written after build, and each copy's
RIBs belong to exactly one worker, so nothing on the hot path is locked.
"""

from __future__ import annotations

import logging
import multiprocessing as mp
import os
import time
from collections import deque
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from hijacksim.engine.aggregates import OutcomeAggregate, TrialTally
from hijacksim.engine.event_bus import TRIAL_COMPLETED, EventBus
from hijacksim.engine.propagation_engine import PropagationEngine
from hijacksim.errors import EngineFailure
from hijacksim.policy.variants import normalise_variant
from hijacksim.scenarios.classifier import classify
from hijacksim.scenarios.generator import ScenarioGenerator
from hijacksim.scenarios.scenario import seed as seed_scenario
from hijacksim.topology.as_graph import ASGraph

logger = logging.getLogger(__name__)

# in-flight trials per worker before the parent waits on the oldest
PREFETCH_PER_WORKER = 4


@dataclass(frozen=True)
class AdoptionConfig:
    """
    Policy variants under test and the adoption percentages for each.
    """

    variants: tuple[str, ...]
    percentages: tuple[float, ...]

    def __post_init__(self) -> None:
        if not self.variants:
            raise ValueError("AdoptionConfig needs at least one variant")
        if not self.percentages:
            raise ValueError("AdoptionConfig needs at least one adoption percentage")

        variants = tuple(normalise_variant(variant) for variant in self.variants)
        percentages = tuple(float(pct) for pct in self.percentages)
        for pct in percentages:
            if not 0 <= pct <= 100:
                raise ValueError(f"Adoption percentage {pct} outside 0-100")

        object.__setattr__(self, "variants", variants)
        object.__setattr__(self, "percentages", percentages)

    def groups(self) -> list[tuple[str, float]]:
        return [(v, p) for v in self.variants for p in self.percentages]


@dataclass(frozen=True)
class TrialTask:
    variant: str
    percentage: float
    trial_index: int


@dataclass
class RunSummary:
    aggregate: OutcomeAggregate
    total: int
    completed: int
    timed_out: bool = False
    elapsed: float = 0.0
    groups: list[tuple[str, float]] = field(default_factory=list)


def run_trial(
    graph: ASGraph, generator: ScenarioGenerator, task: TrialTask, seed: int = 0
) -> TrialTally:
    """
    Execute one trial on ``graph`` and tally its outcomes.

    The per-AS TrialResult never leaves this function.
    """
    graph.reset_ribs()
    scenario = generator.draw(task.variant, task.percentage, task.trial_index, seed)
    seed_scenario(graph, scenario)
    PropagationEngine(graph, scenario.records).run()
    outcomes = classify(graph, scenario)
    return TrialTally.from_outcomes(
        task.variant,
        task.percentage,
        task.trial_index,
        outcomes,
        excluded=scenario.attacker_asns | scenario.victim_asns,
    )


# Worker process state, set once per process by _init_worker
_worker_graph: ASGraph | None = None
_worker_generator: ScenarioGenerator | None = None
_worker_seed: int = 0


def _init_worker(generator: ScenarioGenerator, seed: int) -> None:
    global _worker_graph, _worker_generator, _worker_seed
    _worker_generator = generator
    _worker_graph = generator.graph
    _worker_seed = seed


def _worker_trial(task: TrialTask) -> TrialTally:
    return run_trial(_worker_graph, _worker_generator, task, _worker_seed)


class TrialRunner:
    """
    Runs a batch of trials and aggregates their outcomes.
    """

    def __init__(
        self,
        graph: ASGraph,
        scenario_generator: ScenarioGenerator,
        adoption_config: AdoptionConfig,
        trial_count: int,
        workers: int | None = None,
        seed: int = 0,
        timeout: float | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        """
        Args:
            graph: Topology shared by all trials
            scenario_generator: Draws the scenario of each trial
            adoption_config: Variants and adoption percentages under test
            trial_count: Trials per (variant, percentage) pair
            workers: Worker processes; None uses every CPU, 1 runs in-process
            seed: Base seed for scenario draws
            timeout: Seconds after which no new trials are started
            event_bus: Receives one progress event per completed trial
        """
        if trial_count < 1:
            raise ValueError("trial_count must be at least 1")
        if workers is not None and workers < 1:
            raise ValueError("workers must be at least 1")
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be positive")

        self.graph = graph
        self.scenario_generator = scenario_generator
        self.adoption_config = adoption_config
        self.trial_count = trial_count
        self.workers = workers or os.cpu_count() or 1
        self.seed = seed
        self.timeout = timeout
        self.event_bus = event_bus

        self.completed = 0
        self.total = trial_count * len(adoption_config.groups())

    def tasks(self) -> Iterator[TrialTask]:
        """
        Trials in submission order: trial index outermost, so a timeout
        leaves every group with roughly the same number of trials.
        """
        for trial_index in range(self.trial_count):
            for variant, percentage in self.adoption_config.groups():
                yield TrialTask(variant, percentage, trial_index)

    def run(self) -> RunSummary:
        """
        Execute the batch.

        Raises:
            EngineFailure: a trial failed; nothing is returned for the
                trials that did complete.
        """
        self.completed = 0
        started = time.monotonic()
        deadline = started + self.timeout if self.timeout is not None else None

        logger.info(
            "Running %d trials (%d per group, %d groups) on %d worker(s)",
            self.total,
            self.trial_count,
            len(self.adoption_config.groups()),
            self.workers,
        )

        aggregate = OutcomeAggregate()
        if self.workers == 1:
            timed_out = self._run_serial(aggregate, deadline)
        else:
            timed_out = self._run_pool(aggregate, deadline)

        elapsed = time.monotonic() - started
        if timed_out:
            logger.warning(
                "Timeout after %.1fs: %d of %d trials completed",
                elapsed,
                self.completed,
                self.total,
            )
        else:
            logger.info("Completed %d trials in %.1fs", self.completed, elapsed)

        return RunSummary(
            aggregate=aggregate,
            total=self.total,
            completed=self.completed,
            timed_out=timed_out,
            elapsed=elapsed,
            groups=self.adoption_config.groups(),
        )

    def _run_serial(self, aggregate: OutcomeAggregate, deadline: float | None) -> bool:
        for task in self.tasks():
            if _expired(deadline):
                return True
            try:
                tally = run_trial(self.graph, self.scenario_generator, task, self.seed)
            except Exception as exc:
                raise self._failure(task, exc) from exc
            self._fold(aggregate, tally)
        return False

    def _run_pool(self, aggregate: OutcomeAggregate, deadline: float | None) -> bool:
        timed_out = False
        limit = self.workers * PREFETCH_PER_WORKER
        pending: deque = deque()
        tasks: Iterable[TrialTask] = self.tasks()

        with mp.Pool(
            self.workers,
            initializer=_init_worker,
            initargs=(self.scenario_generator, self.seed),
        ) as pool:
            for task in tasks:
                if _expired(deadline):
                    timed_out = True
                    break
                pending.append((task, pool.apply_async(_worker_trial, (task,))))
                if len(pending) >= limit:
                    self._collect(aggregate, pending, pool)

            # in-flight trials always finish, even past the deadline
            while pending:
                self._collect(aggregate, pending, pool)

        return timed_out

    def _collect(self, aggregate: OutcomeAggregate, pending: deque, pool) -> None:
        task, result = pending.popleft()
        try:
            tally = result.get()
        except Exception as exc:
            pool.terminate()
            raise self._failure(task, exc) from exc
        self._fold(aggregate, tally)

    def _fold(self, aggregate: OutcomeAggregate, tally: TrialTally) -> None:
        aggregate.add(tally)
        self.completed += 1
        if self.event_bus is not None:
            self.event_bus.publish(
                {
                    "event_type": TRIAL_COMPLETED,
                    "completed": self.completed,
                    "total": self.total,
                    "variant": tally.variant,
                    "percentage": tally.percentage,
                    "trial_index": tally.trial_index,
                }
            )

    @staticmethod
    def _failure(task: TrialTask, exc: Exception) -> EngineFailure:
        logger.error(
            "Trial %d (%s at %s%%) failed: %s",
            task.trial_index,
            task.variant,
            task.percentage,
            exc,
        )
        return EngineFailure(
            f"Trial {task.trial_index} ({task.variant} at {task.percentage}%) "
            f"failed: {exc}",
            trial_index=task.trial_index,
            variant=task.variant,
            percentage=task.percentage,
        )


def _expired(deadline: float | None) -> bool:
    return deadline is not None and time.monotonic() >= deadline
