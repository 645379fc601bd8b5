"""Central DI module for ORCA.

Binds the loaded configuration and builds the provider graph:
selector chain, instance client, registry, provider and health server.
"""

from __future__ import annotations

from injector import Binder, Module, provider, singleton

from orca import __version__
from orca.config import AWS, OrcaConfig, ServerConfig
from orca.instances import ChainSelector, build_selector
from orca.provider import OrcaProvider, PodRegistry
from orca.providers.aws import EC2ClientFactory, InstanceClient, SSMClientFactory
from orca.server import HealthServer


class OrcaModule(Module):
    """Core module providing the pod lifecycle components.

    Usage:
        injector = Injector([OrcaModule(config), AWSModule()])
        provider = injector.get(OrcaProvider)
    """

    def __init__(self, config: OrcaConfig) -> None:
        self._config = config

    def configure(self, binder: Binder) -> None:
        binder.bind(OrcaConfig, to=self._config)
        binder.bind(AWS, to=self._config.aws)
        binder.bind(ServerConfig, to=self._config.server)

    @singleton
    @provider
    def provide_selector(self, config: OrcaConfig) -> ChainSelector:
        return build_selector(config.instances)

    @singleton
    @provider
    def provide_client(
        self,
        ec2: EC2ClientFactory,
        ssm: SSMClientFactory,
        config: OrcaConfig,
    ) -> InstanceClient:
        return InstanceClient(ec2, ssm, config)

    @singleton
    @provider
    def provide_registry(self) -> PodRegistry:
        return PodRegistry()

    @singleton
    @provider
    def provide_provider(
        self,
        config: OrcaConfig,
        selector: ChainSelector,
        client: InstanceClient,
        registry: PodRegistry,
    ) -> OrcaProvider:
        return OrcaProvider(config, selector, client, registry, version=__version__)

    @singleton
    @provider
    def provide_health_server(self, config: ServerConfig) -> HealthServer:
        return HealthServer(config)


__all__ = ["OrcaModule"]
