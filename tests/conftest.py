"""Fake EC2 and GitHub collaborators shared by the test suite."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable, Iterator
from typing import Any

import pytest
from botocore.exceptions import ClientError, WaiterError

from ec2_runner.infra.http import HttpError
from ec2_runner.observability.logger import ROOT_LOGGER_NAME


def make_client_error(code: str, operation: str = "RunInstances") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": f"{code} happened"}}, operation)


def make_waiter_error(reason: str) -> WaiterError:
    return WaiterError(name="InstanceRunning", reason=reason, last_response={})


# =============================================================================
# EC2
# =============================================================================


class FakePaginator:
    def __init__(self, ec2: FakeEC2) -> None:
        self._ec2 = ec2

    def paginate(self, **params: Any) -> AsyncIterator[dict[str, Any]]:
        self._ec2.describe_images_params.append(params)
        return self._pages()

    async def _pages(self) -> AsyncIterator[dict[str, Any]]:
        for i, page in enumerate(self._ec2.image_pages):
            if self._ec2.describe_images_error is not None and i == self._ec2.fail_on_page:
                raise self._ec2.describe_images_error
            yield {"Images": page}


class FakeWaiter:
    def __init__(self, ec2: FakeEC2, instance_id_key: str = "InstanceIds") -> None:
        self._ec2 = ec2
        self._key = instance_id_key

    async def wait(self, **kwargs: Any) -> None:
        self._ec2.wait_calls.append(kwargs)
        for instance_id in kwargs[self._key]:
            error = self._ec2.wait_errors.get(instance_id)
            if error is None and self._ec2.wait_hook is not None:
                error = self._ec2.wait_hook(instance_id)
            if error is not None:
                raise error


class FakeEC2:
    """Scripted stand-in for an aiobotocore EC2 client."""

    def __init__(self) -> None:
        self.image_pages: list[list[dict[str, Any]]] = []
        self.describe_images_params: list[dict[str, Any]] = []
        self.describe_images_error: BaseException | None = None
        self.fail_on_page = 0

        self.run_outcomes: list[BaseException | str] = []
        self.run_calls: list[dict[str, Any]] = []
        self.terminate_outcomes: list[BaseException | None] = []
        self.terminate_calls: list[dict[str, Any]] = []

        self.wait_calls: list[dict[str, Any]] = []
        self.wait_errors: dict[str, BaseException] = {}
        self.wait_hook: Callable[[str], BaseException | None] | None = None
        self.user_data: dict[str, str] = {}
        self._next_instance = 0

    def get_paginator(self, name: str) -> FakePaginator:
        assert name == "describe_images"
        return FakePaginator(self)

    def get_waiter(self, name: str) -> FakeWaiter:
        assert name == "instance_running"
        return FakeWaiter(self)

    async def run_instances(self, **params: Any) -> dict[str, Any]:
        self.run_calls.append(params)
        outcome = self.run_outcomes.pop(0) if self.run_outcomes else None
        if isinstance(outcome, BaseException):
            raise outcome
        if outcome is None:
            self._next_instance += 1
            outcome = f"i-{self._next_instance:04d}"
        self.user_data[outcome] = params.get("UserData", "")
        return {"Instances": [{"InstanceId": outcome, "State": {"Name": "pending"}}]}

    async def terminate_instances(self, **params: Any) -> dict[str, Any]:
        self.terminate_calls.append(params)
        outcome = self.terminate_outcomes.pop(0) if self.terminate_outcomes else None
        if outcome is not None:
            raise outcome
        return {"TerminatingInstances": [{"InstanceId": i} for i in params["InstanceIds"]]}


# =============================================================================
# GitHub
# =============================================================================


class FakeRunnerAPI:
    """In-memory repository runner list with the GitHub REST shapes."""

    repository_url = "https://github.com/octo/fleet"

    def __init__(self) -> None:
        self.runners: list[dict[str, Any]] = []
        self.token = "AABBCCTOKEN"
        self.token_error: BaseException | None = None
        self.list_error: BaseException | None = None
        self.delete_error: BaseException | None = None
        self.list_calls: list[tuple[int, int]] = []
        self.deleted: list[int] = []
        self.token_calls = 0
        self.on_list: Callable[[FakeRunnerAPI], None] | None = None
        self.closed = False
        self._next_id = 100

    def add_runner(self, label: str, status: str = "offline", name: str | None = None) -> dict[str, Any]:
        self._next_id += 1
        runner = {
            "id": self._next_id,
            "name": name or f"runner-{self._next_id}",
            "status": status,
            "labels": [{"name": "self-hosted"}, {"name": label}],
        }
        self.runners.append(runner)
        return runner

    def set_status(self, label: str, status: str) -> None:
        for runner in self.runners:
            if any(lbl["name"] == label for lbl in runner["labels"]):
                runner["status"] = status

    async def create_registration_token(self) -> dict[str, Any]:
        self.token_calls += 1
        if self.token_error is not None:
            raise self.token_error
        return {"token": self.token, "expires_at": "2026-10-18T12:00:00Z"}

    async def list_runners(self, *, page: int, per_page: int) -> dict[str, Any]:
        self.list_calls.append((page, per_page))
        if self.on_list is not None:
            self.on_list(self)
        if self.list_error is not None:
            raise self.list_error
        start = (page - 1) * per_page
        return {
            "total_count": len(self.runners),
            "runners": [dict(r) for r in self.runners[start:start + per_page]],
        }

    async def delete_runner(self, runner_id: int) -> None:
        if self.delete_error is not None:
            raise self.delete_error
        self.deleted.append(runner_id)
        self.runners = [r for r in self.runners if r["id"] != runner_id]

    async def close(self) -> None:
        self.closed = True

    async def __aenter__(self) -> FakeRunnerAPI:
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def fake_ec2() -> FakeEC2:
    return FakeEC2()


@pytest.fixture
def fake_github() -> FakeRunnerAPI:
    return FakeRunnerAPI()


@pytest.fixture
def client_error() -> Callable[..., ClientError]:
    return make_client_error


@pytest.fixture
def waiter_error() -> Callable[[str], WaiterError]:
    return make_waiter_error


@pytest.fixture
def http_error() -> Callable[..., HttpError]:
    def factory(status: int = 500, body: str = "boom") -> HttpError:
        return HttpError(status=status, body=body)

    return factory


@pytest.fixture
def log_records() -> Iterator[list[logging.LogRecord]]:
    """Capture records from the package logger (which does not propagate)."""
    records: list[logging.LogRecord] = []

    class _Collect(logging.Handler):
        def emit(self, record: logging.LogRecord) -> None:
            records.append(record)

    handler = _Collect(level=logging.DEBUG)
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.addHandler(handler)
    try:
        yield records
    finally:
        root.removeHandler(handler)
