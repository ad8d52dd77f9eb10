"""Concurrent execution of every unit in a batch.

All units start together and the batch waits for every one of them to
settle; a fast failure never cancels or hides a slower sibling.
"""

from __future__ import annotations

import asyncio
from typing import Protocol

from .errors import UnitError
from .observability.logger import logger
from .spec import Batch, BatchResult, Launched, UnitSpec

log = logger.bind(component="orchestrator")


class Pipeline(Protocol):
    async def run(self, spec: UnitSpec) -> Launched | None: ...


def _describe(error: BaseException) -> str:
    cause = error.cause if isinstance(error, UnitError) else error
    return str(cause) or type(cause).__name__


async def run_batch(batch: Batch, pipeline: Pipeline) -> BatchResult:
    """Run every unit of ``batch`` and collect the outcome.

    Only units whose pipeline completed appear in ``launched``; each failed
    unit is logged under its own prefix and recorded in ``failures``.
    """
    log.debug(
        "Running {action} for {n} unit(s)", action=batch.action.value, n=len(batch.units),
    )
    outcomes = await asyncio.gather(
        *(pipeline.run(unit) for unit in batch.units),
        return_exceptions=True,
    )

    result = BatchResult(action=batch.action, is_batch=batch.is_batch)
    escaped: BaseException | None = None

    for unit, outcome in zip(batch.units, outcomes, strict=True):
        match outcome:
            case Launched() as launched:
                result.launched[unit.unit] = launched
            case Exception() as error:
                logger.bind(unit=unit.unit).error("{message}", message=_describe(error))
                result.failures[unit.unit] = error
            case BaseException() as error:
                result.failures[unit.unit] = error
                escaped = escaped or error
            case None:
                pass

    if escaped is not None:
        raise escaped

    return result
