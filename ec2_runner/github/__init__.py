"""GitHub side of the runner lifecycle."""

from ec2_runner.github.client import GitHubClient
from ec2_runner.github.runners import RunnerAPI, RunnerRegistry

__all__ = ["GitHubClient", "RunnerAPI", "RunnerRegistry"]
