"""ORCA: run Kubernetes pods on dedicated AWS EC2 instances.

ORCA acts as a virtual node. Each pod scheduled onto it gets its own EC2
instance, sized from pod annotations, a named workload template, or the
pod's resource requests.

Example:
    from injector import Injector
    from orca import AWSModule, OrcaModule, OrcaProvider, load_config

    config = load_config(Path("orca.toml"))
    provider = Injector([OrcaModule(config), AWSModule()]).get(OrcaProvider)
    await provider.reconcile()
    await provider.create_pod(pod)
"""

__version__ = "0.1.0"

from orca.config import OrcaConfig, load_config, parse_config
from orca.core.exceptions import (
    CloudAPIError,
    ConfigurationError,
    InstanceFailedError,
    InstanceNotFoundError,
    InvalidAnnotationError,
    InvalidPodError,
    LaunchTimeoutError,
    OrcaError,
    PodNotFoundError,
    ProvisioningError,
    SelectionError,
    UnsupportedOperationError,
)
from orca.module import OrcaModule
from orca.pod import Container, Pod, PodPhase, PodStatus, ResourceRequests
from orca.provider import OrcaProvider, PodRegistry, ReconcileReport
from orca.providers.aws import AWSModule, Instance, InstanceClient

__all__ = [
    "AWSModule",
    "CloudAPIError",
    "ConfigurationError",
    "Container",
    "Instance",
    "InstanceClient",
    "InstanceFailedError",
    "InstanceNotFoundError",
    "InvalidAnnotationError",
    "InvalidPodError",
    "LaunchTimeoutError",
    "OrcaConfig",
    "OrcaError",
    "OrcaModule",
    "OrcaProvider",
    "Pod",
    "PodNotFoundError",
    "PodPhase",
    "PodRegistry",
    "PodStatus",
    "ProvisioningError",
    "ReconcileReport",
    "ResourceRequests",
    "SelectionError",
    "UnsupportedOperationError",
    "__version__",
    "load_config",
    "parse_config",
]
