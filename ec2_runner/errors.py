"""Error hierarchy.

Every error raised inside a unit pipeline is scoped to that unit: the
pipeline wraps it in :class:`UnitError` so the orchestrator can attribute
it without aborting sibling units.
"""

from __future__ import annotations


class RunnerError(Exception):
    """Base class for ec2-runner errors."""


class ConfigError(RunnerError):
    """Invalid or incomplete workflow inputs."""


class ProviderError(RunnerError):
    """EC2 rejected a call, or throttling retries were exhausted."""


class RegistryError(RunnerError):
    """A GitHub runner API call failed."""


class NoMatchError(RunnerError):
    """No AMI satisfied the selection criteria."""


class WaitTimeoutError(RunnerError, TimeoutError):
    """A bounded wait exceeded its ceiling."""


class UnitError(RunnerError):
    """Failure of a single unit's pipeline."""

    def __init__(self, unit: str, cause: BaseException) -> None:
        self.unit = unit
        self.cause = cause
        super().__init__(f"{type(cause).__name__}: {cause}")
