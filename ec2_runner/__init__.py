"""ec2-runner - ephemeral EC2 instances as GitHub Actions self-hosted runners.

Example:

    from injector import Injector
    from ec2_runner import Runtime, RunnerModule, load_batch, load_settings

    settings = load_settings(os.environ)
    batch = load_batch(os.environ, settings.action)
    result = await Injector([RunnerModule(settings)]).get(Runtime).run(batch)
    print(result.matrix)
"""

from ec2_runner.app import RunnerModule, Runtime
from ec2_runner.config import Settings, load_batch, load_settings
from ec2_runner.constants import Action
from ec2_runner.errors import (
    ConfigError,
    NoMatchError,
    ProviderError,
    RegistryError,
    RunnerError,
    UnitError,
    WaitTimeoutError,
)
from ec2_runner.orchestrator import run_batch
from ec2_runner.pipeline import UnitPipeline
from ec2_runner.spec import (
    Batch,
    BatchResult,
    BootImage,
    ImageCriteria,
    Launched,
    LaunchSpec,
    Runner,
    TerminateSpec,
)

__all__ = [
    "Action",
    "Batch",
    "BatchResult",
    "BootImage",
    "ConfigError",
    "ImageCriteria",
    "LaunchSpec",
    "Launched",
    "NoMatchError",
    "ProviderError",
    "RegistryError",
    "Runner",
    "RunnerError",
    "RunnerModule",
    "Runtime",
    "Settings",
    "TerminateSpec",
    "UnitError",
    "UnitPipeline",
    "WaitTimeoutError",
    "load_batch",
    "load_settings",
    "run_batch",
]
