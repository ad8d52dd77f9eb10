"""Self-hosted runner registration, discovery and removal."""

from __future__ import annotations

import asyncio
from typing import Protocol

from ec2_runner.constants import (
    RUNNER_ONLINE_GRACE,
    RUNNER_ONLINE_INTERVAL,
    RUNNER_ONLINE_TIMEOUT,
    RUNNERS_PAGE_SIZE,
    RunnerStatus,
)
from ec2_runner.errors import RegistryError
from ec2_runner.infra.http import HttpError
from ec2_runner.observability.logger import BoundLogger, logger
from ec2_runner.spec import Runner
from ec2_runner.wait import wait_for_ready

from .types import RegistrationTokenResponse, RunnerResponse, RunnersListResponse


class RunnerAPI(Protocol):
    async def create_registration_token(self) -> RegistrationTokenResponse: ...
    async def list_runners(self, *, page: int, per_page: int) -> RunnersListResponse: ...
    async def delete_runner(self, runner_id: int) -> None: ...


def _to_runner(raw: RunnerResponse) -> Runner:
    return Runner(
        id=raw["id"],
        name=raw["name"],
        status=raw["status"],
        labels=frozenset(label["name"] for label in raw.get("labels", [])),
    )


class RunnerRegistry:
    """Operations against the repository's self-hosted runner list.

    None of the calls are retried: registration tokens are short-lived and
    a failed poll ends the wait.
    """

    def __init__(
        self,
        api: RunnerAPI,
        *,
        page_size: int = RUNNERS_PAGE_SIZE,
        grace: float = RUNNER_ONLINE_GRACE,
        interval: float = RUNNER_ONLINE_INTERVAL,
        timeout: float = RUNNER_ONLINE_TIMEOUT,
    ) -> None:
        self._api = api
        self._page_size = page_size
        self._grace = grace
        self._interval = interval
        self._timeout = timeout

    async def registration_token(self, log: BoundLogger | None = None) -> str:
        log = log or logger
        log.debug("Getting registration token")
        try:
            response = await self._api.create_registration_token()
            return response["token"]
        except (HttpError, KeyError, TypeError) as e:
            log.error("Error getting registration token")
            raise RegistryError(f"Could not create registration token: {e}") from e

    async def list_runners(self, log: BoundLogger | None = None) -> list[Runner]:
        """Fetch every runner, page by page, until ``total_count`` is reached."""
        log = log or logger
        runners: list[Runner] = []
        page = 1
        try:
            while True:
                response = await self._api.list_runners(page=page, per_page=self._page_size)
                batch = response["runners"]
                log.debug("Got {n} runners", n=len(batch))
                runners.extend(_to_runner(raw) for raw in batch)
                if len(runners) >= response["total_count"] or not batch:
                    return runners
                page += 1
        except (HttpError, KeyError, TypeError) as e:
            raise RegistryError(f"Could not list runners: {e}") from e

    async def find_runner(self, label: str, log: BoundLogger | None = None) -> Runner | None:
        log = log or logger
        log.debug('Getting runner for label "{label}"', label=label)
        runners = await self.list_runners(log)
        return next((r for r in runners if label in r.labels), None)

    async def wait_online(self, label: str, log: BoundLogger | None = None) -> Runner:
        """Wait for the runner carrying ``label`` to come online.

        Sleeps a fixed grace period first, then polls. The polling budget
        does not include the grace period.

        Raises:
            WaitTimeoutError: The runner was not online within the budget.
            RegistryError: A poll failed.
        """
        log = log or logger
        log.debug("Waiting {grace:.0f}s before polling for runner", grace=self._grace)
        await asyncio.sleep(self._grace)

        try:
            return await wait_for_ready(
                lambda: self.find_runner(label, log),
                lambda runner: runner.status == RunnerStatus.ONLINE,
                timeout=self._timeout,
                interval=self._interval,
                on_pending=lambda _: log.debug("Waiting for runner to be online"),
                description=f'runner with label "{label}" to be online',
            )
        except RegistryError:
            log.error("Error waiting for runner to be online")
            raise

    async def remove_runner(self, label: str, log: BoundLogger | None = None) -> None:
        """Delete the runner carrying ``label``; a missing runner is not an error."""
        log = log or logger
        log.debug("Removing runner")
        try:
            runner = await self.find_runner(label, log)
            if runner is None:
                log.warning('Runner for label "{label}" not found, skipping removal', label=label)
                return
            await self._api.delete_runner(runner.id)
        except HttpError as e:
            log.error("Error removing runner")
            raise RegistryError(f"Could not remove runner: {e}") from e
        except RegistryError:
            log.error("Error removing runner")
            raise
