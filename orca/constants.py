"""Centralized constants and enums for ORCA.

Annotation keys, EC2 tag keys, node labels and instance states are
defined here so every module agrees on the same strings.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Final

PREFIX: Final = "orca.research"

# =============================================================================
# Pod Annotations
# =============================================================================


class OrcaAnnotation(StrEnum):
    """Pod annotation keys read by ORCA."""

    INSTANCE_TYPE = f"{PREFIX}/instance-type"
    LAUNCH_TYPE = f"{PREFIX}/launch-type"
    MAX_SPOT_PRICE = f"{PREFIX}/max-spot-price"
    WORKLOAD_TEMPLATE = f"{PREFIX}/workload-template"
    AMI = f"{PREFIX}/ami"
    USER_DATA = f"{PREFIX}/user-data"
    BUDGET_NAMESPACE = f"{PREFIX}/budget-namespace"
    MAX_LIFETIME = f"{PREFIX}/max-lifetime"
    TERMINATION_PROTECTION = f"{PREFIX}/termination-protection"
    DEBUG = f"{PREFIX}/debug"


# =============================================================================
# EC2 Resource Tags
# =============================================================================


class OrcaTag(StrEnum):
    """EC2 tag keys written on every launched instance."""

    NAME = "Name"
    POD = f"{PREFIX}/pod"
    POD_UID = f"{PREFIX}/pod-uid"
    NAMESPACE = f"{PREFIX}/namespace"
    POD_NAME = f"{PREFIX}/pod-name"
    PROVIDER = f"{PREFIX}/provider"
    CREATED_AT = f"{PREFIX}/created-at"
    BUDGET_NAMESPACE = f"{PREFIX}/budget-namespace"
    MAX_LIFETIME = f"{PREFIX}/max-lifetime"


PROVIDER_IDENTITY: Final = "orca"


# =============================================================================
# Node Labels
# =============================================================================


class OrcaLabel(StrEnum):
    """Labels set on the virtual node."""

    PROVIDER = f"{PREFIX}/provider"
    VERSION = f"{PREFIX}/version"


TAINT_BURST_NODE: Final = f"{PREFIX}/burst-node"


# =============================================================================
# EC2 Instance States
# =============================================================================


class InstanceState(StrEnum):
    """EC2 instance state names."""

    PENDING = "pending"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    SHUTTING_DOWN = "shutting-down"
    TERMINATED = "terminated"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str | None) -> InstanceState:
        try:
            return cls(value or "")
        except ValueError:
            return cls.UNKNOWN


ACTIVE_STATES: Final[tuple[InstanceState, ...]] = (
    InstanceState.PENDING,
    InstanceState.RUNNING,
    InstanceState.STOPPING,
    InstanceState.STOPPED,
)


class LaunchType(StrEnum):
    ON_DEMAND = "on-demand"
    SPOT = "spot"


class SelectionMode(StrEnum):
    EXPLICIT = "explicit"
    TEMPLATE = "template"
    AUTO = "auto"


# =============================================================================
# Resources
# =============================================================================

GPU_RESOURCE: Final = "nvidia.com/gpu"
GIB: Final = 1024 ** 3

# =============================================================================
# Launch Wait (seconds)
# =============================================================================

LAUNCH_POLL_INTERVAL: Final = 10.0
LAUNCH_TIMEOUT: Final = 300.0
