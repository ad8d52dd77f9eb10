"""AMI selection for runner instances.

Lists the AMIs the caller may launch, narrows them by owner, attribute
filters and name pattern, and picks the most recently created one.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from ec2_runner.errors import NoMatchError, ProviderError
from ec2_runner.observability.logger import BoundLogger, logger
from ec2_runner.spec import BootImage, ImageCriteria


def parse_creation_date(raw: str | None) -> datetime | None:
    """Parse an EC2 ``CreationDate``; None when missing or malformed."""
    if not raw:
        return None
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def describe_images_params(criteria: ImageCriteria) -> dict[str, Any]:
    params: dict[str, Any] = {
        "ExecutableUsers": ["self"],
        "IncludeDeprecated": False,
        "Filters": [{"Name": name, "Values": [value]} for name, value in criteria.filters],
    }
    if criteria.owners:
        params["Owners"] = list(criteria.owners)
    return params


def newest(images: list[BootImage]) -> BootImage:
    return max(images, key=lambda image: image.created)


async def select_image(
    ec2: Any,
    criteria: ImageCriteria,
    log: BoundLogger | None = None,
) -> BootImage:
    """Select the newest AMI matching ``criteria``.

    Listing failures are not retried.

    Raises:
        ProviderError: If ``DescribeImages`` fails.
        NoMatchError: If no image survives the filters.
    """
    log = log or logger
    log.debug("Selecting AMI")

    raw_images: list[dict[str, Any]] = []
    try:
        paginator = ec2.get_paginator("describe_images")
        async for page in paginator.paginate(**describe_images_params(criteria)):
            page_images = page.get("Images", [])
            log.debug("Got {n} AMIs", n=len(page_images))
            raw_images.extend(page_images)
    except (ClientError, BotoCoreError) as e:
        log.error("Error selecting AMI")
        raise ProviderError(f"DescribeImages failed: {e}") from e

    images = [
        BootImage(
            image_id=raw["ImageId"],
            name=raw.get("Name", ""),
            creation_date=parse_creation_date(raw.get("CreationDate")),
        )
        for raw in raw_images
    ]

    if criteria.name is not None:
        pattern = criteria.name
        images = [image for image in images if image.name and pattern.search(image.name)]

    if not images:
        raise NoMatchError("No AMIs found matching filters")

    image = newest(images)
    log.debug("Selected AMI {name} ({id})", name=image.name, id=image.image_id)
    return image
