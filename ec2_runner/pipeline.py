"""Per-unit launch and terminate pipelines.

Steps inside a unit run strictly in order and the first failure ends the
unit. Whatever failed is re-raised as :class:`UnitError` carrying the unit
identity.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from .aws.ami import select_image
from .aws.instances import InstanceClient
from .errors import UnitError
from .github.runners import RunnerRegistry
from .labels import generate_label
from .observability.logger import BoundLogger, logger
from .spec import BootImage, ImageCriteria, Launched, LaunchSpec, TerminateSpec, UnitSpec

type ImageSelector = Callable[[ImageCriteria, BoundLogger], Awaitable[BootImage]]


class UnitPipeline:
    def __init__(
        self,
        instances: InstanceClient,
        registry: RunnerRegistry,
        select: ImageSelector,
        *,
        label_factory: Callable[[str], str] = generate_label,
    ) -> None:
        self._instances = instances
        self._registry = registry
        self._select = select
        self._label_factory = label_factory

    @classmethod
    def for_ec2(cls, ec2: Any, instances: InstanceClient, registry: RunnerRegistry) -> UnitPipeline:
        async def select(criteria: ImageCriteria, log: BoundLogger) -> BootImage:
            return await select_image(ec2, criteria, log)

        return cls(instances, registry, select)

    async def run(self, spec: UnitSpec) -> Launched | None:
        log = logger.bind(unit=spec.unit)
        try:
            match spec:
                case LaunchSpec():
                    return await self.launch(spec, log)
                case TerminateSpec():
                    await self.terminate(spec, log)
                    return None
        except Exception as e:
            raise UnitError(spec.unit, e) from e

    async def launch(self, spec: LaunchSpec, log: BoundLogger) -> Launched:
        label = self._label_factory(spec.unit)
        log.debug('Generated label "{label}"', label=label)

        token = await self._registry.registration_token(log)
        image = await self._select(spec.image, log)
        instance_id = await self._instances.launch(spec, label, token, image, log)
        await self._instances.await_running(instance_id, log)
        runner = await self._registry.wait_online(label, log)

        log.info(
            'Runner {name} ({id}) with label "{label}" is online on EC2 instance '
            "{instance_id} using AMI {ami_name} ({ami_id})",
            name=runner.name,
            id=runner.id,
            label=label,
            instance_id=instance_id,
            ami_name=image.name,
            ami_id=image.image_id,
        )
        return Launched(unit=spec.unit, instance_id=instance_id, label=label)

    async def terminate(self, spec: TerminateSpec, log: BoundLogger) -> None:
        await self._instances.terminate(spec.instance_id, log)
        await self._registry.remove_runner(spec.label, log)
        log.info(
            'Runner with label "{label}" and EC2 instance {instance_id} are offline',
            label=spec.label,
            instance_id=spec.instance_id,
        )
