"""Dependency wiring.

Usage:
    >>> from injector import Injector
    >>> injector = Injector([RunnerModule(settings)])
    >>> result = await injector.get(Runtime).run(batch)
"""

from __future__ import annotations

from injector import Module, inject, provider, singleton

from .aws.clients import EC2ClientFactory, ec2_client_factory
from .aws.instances import InstanceClient
from .config import Settings
from .github.client import GitHubClient
from .github.runners import RunnerRegistry
from .observability.logger import logger
from .orchestrator import run_batch
from .pipeline import UnitPipeline
from .spec import Batch, BatchResult

log = logger.bind(component="app")


class RunnerModule(Module):
    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    @singleton
    @provider
    def provide_settings(self) -> Settings:
        return self._settings

    @singleton
    @provider
    def provide_ec2(self, settings: Settings) -> EC2ClientFactory:
        return ec2_client_factory(settings.region)

    @singleton
    @provider
    def provide_github(self, settings: Settings) -> GitHubClient:
        return GitHubClient(
            settings.github_token,
            settings.repository,
            api_url=settings.api_url,
            server_url=settings.server_url,
        )


class Runtime:
    """Opens the API clients for one invocation and runs a batch through them."""

    @inject
    def __init__(self, ec2: EC2ClientFactory, github: GitHubClient) -> None:
        self._ec2 = ec2
        self._github = github

    async def run(self, batch: Batch) -> BatchResult:
        async with self._ec2() as ec2, self._github as github:
            instances = InstanceClient(ec2, github.repository_url)
            registry = RunnerRegistry(github)
            pipeline = UnitPipeline.for_ec2(ec2, instances, registry)
            log.debug("Clients ready for {repo}", repo=github.repository_url)
            return await run_batch(batch, pipeline)
