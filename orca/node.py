"""The virtual node ORCA registers with the cluster.

Capacity, labels and taints come from static configuration. ORCA does
not observe its own pressure, so the node always reports itself ready
and free of pressure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from orca.config import NodeConfig, Taint
from orca.constants import OrcaLabel

CONTAINER_RUNTIME_VERSION = "orca://1.0.0"
OS_IMAGE = "AWS EC2"
ARCHITECTURE = "amd64"
PROVIDER_LABEL_VALUE = "aws"


@dataclass(slots=True)
class NodeCondition:
    type: str
    status: str
    reason: str
    message: str
    last_heartbeat_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    last_transition_time: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True, slots=True)
class NodeInfo:
    architecture: str
    container_runtime_version: str
    kubelet_version: str
    operating_system: str
    os_image: str


@dataclass(slots=True)
class Node:
    """Subset of a Kubernetes ``v1.Node`` that ORCA fills in."""

    name: str
    labels: dict[str, str] = field(default_factory=dict)
    taints: list[Taint] = field(default_factory=list)
    capacity: dict[str, str] = field(default_factory=dict)
    allocatable: dict[str, str] = field(default_factory=dict)
    conditions: list[NodeCondition] = field(default_factory=list)
    node_info: NodeInfo | None = None

    def condition(self, type_: str) -> NodeCondition | None:
        return next((c for c in self.conditions if c.type == type_), None)


def _conditions() -> list[NodeCondition]:
    return [
        NodeCondition("Ready", "True", "OrcaProviderReady", "ORCA provider is ready"),
        NodeCondition(
            "MemoryPressure", "False",
            "OrcaProviderHasSufficientMemory", "ORCA provider has sufficient memory",
        ),
        NodeCondition(
            "DiskPressure", "False",
            "OrcaProviderHasNoDiskPressure", "ORCA provider has no disk pressure",
        ),
        NodeCondition(
            "PIDPressure", "False",
            "OrcaProviderHasSufficientPID", "ORCA provider has sufficient PID",
        ),
        NodeCondition(
            "NetworkUnavailable", "False",
            "OrcaProviderNetworkReady", "ORCA provider network is ready",
        ),
    ]


def configure_node(node: Node, config: NodeConfig, version: str) -> Node:
    """Fill ``node`` in place from configuration and return it.

    Configured labels are merged over existing ones and configured taints
    are appended; capacity, conditions and node info are replaced.
    """
    node.capacity = config.capacity()
    node.allocatable = config.allocatable()

    node.labels.update(config.labels)
    node.labels[OrcaLabel.PROVIDER] = PROVIDER_LABEL_VALUE
    node.labels[OrcaLabel.VERSION] = version

    node.taints.extend(config.taints)
    node.conditions = _conditions()
    node.node_info = NodeInfo(
        architecture=ARCHITECTURE,
        container_runtime_version=CONTAINER_RUNTIME_VERSION,
        kubelet_version=version,
        operating_system=config.operating_system,
        os_image=OS_IMAGE,
    )
    return node
