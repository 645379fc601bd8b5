"""EC2 and SSM client factories for the injector graph.

Each factory opens a short-lived aioboto3 client as an async context
manager; the region, endpoint override and static credentials come from
the ``[aws]`` section.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any

import aioboto3
from injector import Module, provider, singleton

from orca.config import AWS

# =============================================================================
# Wrapper Classes for DI (each needs a unique type)
# =============================================================================


class EC2ClientFactory:
    """Wrapper for EC2 client factory."""

    def __init__(self, factory: Callable[[], AbstractAsyncContextManager[Any]]) -> None:
        self._factory = factory

    def __call__(self) -> AbstractAsyncContextManager[Any]:
        return self._factory()


class SSMClientFactory:
    """Wrapper for SSM client factory."""

    def __init__(self, factory: Callable[[], AbstractAsyncContextManager[Any]]) -> None:
        self._factory = factory

    def __call__(self) -> AbstractAsyncContextManager[Any]:
        return self._factory()


# =============================================================================
# AWS Module
# =============================================================================


class AWSModule(Module):
    """DI module that provides AWS client factories.

    Usage:
        >>> from injector import Injector
        >>> injector = Injector([AWSModule()])
        >>> injector.binder.bind(AWS, to=AWS(region="us-east-1"))
        >>>
        >>> class MyClient:
        ...     def __init__(self, ec2: EC2ClientFactory) -> None:
        ...         self.ec2 = ec2
        ...
        ...     async def do_something(self):
        ...         async with self.ec2() as client:
        ...             await client.describe_instances()
    """

    @singleton
    @provider
    def provide_session(self, config: AWS) -> aioboto3.Session:
        """Provide singleton aioboto3 session, with static credentials if configured."""
        if config.access_key_id and config.secret_access_key:
            return aioboto3.Session(
                aws_access_key_id=config.access_key_id,
                aws_secret_access_key=config.secret_access_key,
                region_name=config.region,
            )
        return aioboto3.Session(region_name=config.region)

    @singleton
    @provider
    def provide_ec2(self, session: aioboto3.Session, config: AWS) -> EC2ClientFactory:
        """Provide EC2 client factory."""
        return EC2ClientFactory(_client_factory(session, "ec2", config))

    @singleton
    @provider
    def provide_ssm(self, session: aioboto3.Session, config: AWS) -> SSMClientFactory:
        """Provide SSM client factory."""
        return SSMClientFactory(_client_factory(session, "ssm", config))


def _client_factory(
    session: aioboto3.Session,
    service: str,
    config: AWS,
) -> Callable[[], AbstractAsyncContextManager[Any]]:
    kwargs: dict[str, Any] = {"region_name": config.region}
    if config.endpoint_url:
        kwargs["endpoint_url"] = config.endpoint_url

    @asynccontextmanager
    async def factory() -> AsyncIterator[Any]:
        async with session.client(service, **kwargs) as client:  # type: ignore[reportGeneralTypeIssues]
            yield client

    return factory


__all__ = [
    "AWSModule",
    "EC2ClientFactory",
    "SSMClientFactory",
]
