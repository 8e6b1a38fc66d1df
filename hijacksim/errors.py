"""
Error taxonomy for the hijacksim route propagation simulator.

Policy rejections are not errors. They are ordinary return values of a
policy's import step (see ``hijacksim.policy.base.Reject``).

Everything here is fatal at some level:

- InvalidTopology aborts before any trial runs
- EngineError aborts the current trial
- OrchestratorError aborts the whole batch
"""

from __future__ import annotations


class SimulationError(Exception):
    """Base class for all simulator errors."""


class InvalidTopology(SimulationError):
    """Malformed or cyclic AS relationship input."""


class EngineError(SimulationError):
    """
    A propagation invariant was violated inside a trial.

    These indicate programming or graph-construction bugs, never
    expected routing behaviour.
    """

    def __init__(self, message: str, asn: int | None = None) -> None:
        super().__init__(message)
        self.asn = asn

    def __reduce__(self):
        return (type(self), (self.args[0], self.asn))


class MissingPolicyError(EngineError):
    """An AS reached trial start without an assigned policy."""


class LoopDetectedError(EngineError):
    """A selected route contains the owning AS in its AS-path."""


class OrchestratorError(SimulationError):
    """The trial batch could not be completed."""


class EngineFailure(OrchestratorError):
    """A trial's engine run failed; the batch is abandoned."""

    def __init__(
        self,
        message: str,
        trial_index: int | None = None,
        variant: str | None = None,
        percentage: float | None = None,
    ) -> None:
        super().__init__(message)
        self.trial_index = trial_index
        self.variant = variant
        self.percentage = percentage

    def __reduce__(self):
        return (
            type(self),
            (self.args[0], self.trial_index, self.variant, self.percentage),
        )
