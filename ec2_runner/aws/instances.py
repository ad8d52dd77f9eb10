"""EC2 instance lifecycle for ephemeral runners: launch, wait, terminate."""

from __future__ import annotations

from typing import Any

from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from ec2_runner.constants import (
    INSTANCE_RUNNING_MAX_ATTEMPTS,
    INSTANCE_RUNNING_WAIT_DELAY,
    THROTTLE_MAX_ATTEMPTS,
    THROTTLE_RETRY_INTERVAL,
)
from ec2_runner.errors import ProviderError, WaitTimeoutError
from ec2_runner.observability.logger import BoundLogger, logger
from ec2_runner.spec import BootImage, LaunchSpec

from .bootstrap import RunnerBootstrap
from .retry import throttled

_MAX_ATTEMPTS_REASON = "Max attempts exceeded"


def tag_specifications(tags: tuple[tuple[str, str], ...]) -> list[dict[str, Any]]:
    """Same tag list for the instance and its volumes; empty when no tags."""
    if not tags:
        return []
    tag_list = [{"Key": key, "Value": value} for key, value in tags]
    return [
        {"ResourceType": "instance", "Tags": tag_list},
        {"ResourceType": "volume", "Tags": tag_list},
    ]


class InstanceClient:
    """Creates, waits for, and destroys single EC2 instances.

    ``launch`` and ``terminate`` retry throttling errors; ``await_running``
    relies on the waiter's own bounded polling instead.
    """

    def __init__(
        self,
        ec2: Any,
        repository_url: str,
        *,
        throttle_attempts: int = THROTTLE_MAX_ATTEMPTS,
        throttle_interval: float = THROTTLE_RETRY_INTERVAL,
        wait_delay: int = INSTANCE_RUNNING_WAIT_DELAY,
        wait_max_attempts: int = INSTANCE_RUNNING_MAX_ATTEMPTS,
    ) -> None:
        self._ec2 = ec2
        self._repository_url = repository_url
        self._throttle_attempts = throttle_attempts
        self._throttle_interval = throttle_interval
        self._wait_delay = wait_delay
        self._wait_max_attempts = wait_max_attempts

    def run_instances_params(
        self, spec: LaunchSpec, label: str, token: str, image: BootImage,
    ) -> dict[str, Any]:
        user_data = RunnerBootstrap(
            runner_user=spec.runner_user,
            runner_directory=spec.runner_directory,
            repository_url=self._repository_url,
            label=label,
            token=token,
        ).script()

        # botocore base64-encodes UserData for RunInstances itself
        params: dict[str, Any] = {
            "MinCount": 1,
            "MaxCount": 1,
            "UserData": user_data,
            "ImageId": image.image_id,
            "InstanceType": spec.instance_type,
            "SubnetId": spec.subnet_id,
        }
        if spec.security_group_ids:
            params["SecurityGroupIds"] = list(spec.security_group_ids)
        if tag_specs := tag_specifications(spec.tags):
            params["TagSpecifications"] = tag_specs
        return params

    async def launch(
        self,
        spec: LaunchSpec,
        label: str,
        token: str,
        image: BootImage,
        log: BoundLogger | None = None,
    ) -> str:
        """Launch exactly one instance and return its id."""
        log = log or logger
        log.debug("Launching EC2 instance")
        params = self.run_instances_params(spec, label, token, image)

        try:
            response = await throttled(
                lambda: self._ec2.run_instances(**params),
                operation="RunInstances",
                max_attempts=self._throttle_attempts,
                interval=self._throttle_interval,
                log=log,
            )
        except ProviderError:
            log.error("Error launching instance")
            raise

        instances = response.get("Instances") or []
        if not instances:
            raise ProviderError("RunInstances returned no instances")
        instance_id: str = instances[0]["InstanceId"]
        log.debug("Launched instance {instance_id}", instance_id=instance_id)
        return instance_id

    async def await_running(self, instance_id: str, log: BoundLogger | None = None) -> None:
        """Wait for ``instance_id`` to reach the running state.

        Raises:
            WaitTimeoutError: The waiter's attempt ceiling was reached.
            ProviderError: The instance hit a terminal failure state, or the
                API reported an error.
        """
        log = log or logger
        log.debug("Waiting for EC2 instance {instance_id} to be running", instance_id=instance_id)

        waiter = self._ec2.get_waiter("instance_running")
        try:
            await waiter.wait(
                InstanceIds=[instance_id],
                WaiterConfig={
                    "Delay": self._wait_delay,
                    "MaxAttempts": self._wait_max_attempts,
                },
            )
        except WaiterError as e:
            log.error("Error waiting for EC2 instance to be running")
            reason = str(e.kwargs.get("reason", ""))
            if reason.startswith(_MAX_ATTEMPTS_REASON):
                ceiling = self._wait_delay * self._wait_max_attempts
                raise WaitTimeoutError(
                    f"Instance {instance_id} not running after {ceiling}s"
                ) from e
            raise ProviderError(f"Instance {instance_id} failed to start: {reason}") from e
        except (ClientError, BotoCoreError) as e:
            log.error("Error waiting for EC2 instance to be running")
            raise ProviderError(f"Instance {instance_id} failed to start: {e}") from e

    async def terminate(self, instance_id: str, log: BoundLogger | None = None) -> None:
        """Submit one termination request; does not wait for the terminated state."""
        log = log or logger
        log.debug("Terminating EC2 instance {instance_id}", instance_id=instance_id)
        try:
            await throttled(
                lambda: self._ec2.terminate_instances(InstanceIds=[instance_id]),
                operation="TerminateInstances",
                max_attempts=self._throttle_attempts,
                interval=self._throttle_interval,
                log=log,
            )
        except ProviderError:
            log.error("Error terminating instance")
            raise
