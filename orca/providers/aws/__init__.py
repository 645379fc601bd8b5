"""AWS EC2 backend for ORCA.

Example:
    from injector import Injector
    from orca.providers.aws import AWSModule, InstanceClient

    client = Injector([OrcaModule(config), AWSModule()]).get(InstanceClient)
    instance_id = await client.launch(pod, "g5.xlarge")
"""

from orca.providers.aws.client import InstanceClient
from orca.providers.aws.clients import AWSModule, EC2ClientFactory, SSMClientFactory
from orca.providers.aws.types import Instance

__all__ = [
    "AWSModule",
    "EC2ClientFactory",
    "Instance",
    "InstanceClient",
    "SSMClientFactory",
]
