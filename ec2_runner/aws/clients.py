"""EC2 client factory.

Clients are created per use as async context managers from one shared
aiobotocore session.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any

from aiobotocore.session import AioSession, get_session


class EC2ClientFactory:
    """Wrapper for an EC2 client factory (a distinct type for DI)."""

    def __init__(self, factory: Callable[[], AbstractAsyncContextManager[Any]]) -> None:
        self._factory = factory

    def __call__(self) -> AbstractAsyncContextManager[Any]:
        return self._factory()


def ec2_client_factory(
    region: str | None = None,
    session: AioSession | None = None,
) -> EC2ClientFactory:
    """Build a factory for EC2 clients in ``region``.

    With ``region=None`` the region comes from the standard botocore chain
    (``AWS_REGION``, ``AWS_DEFAULT_REGION``, shared config).
    """
    session = session or get_session()

    @asynccontextmanager
    async def factory() -> AsyncIterator[Any]:
        async with session.create_client("ec2", region_name=region) as client:
            yield client

    return EC2ClientFactory(factory)


__all__ = ["EC2ClientFactory", "ec2_client_factory"]
