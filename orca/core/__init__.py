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

__all__ = [
    "CloudAPIError",
    "ConfigurationError",
    "InstanceFailedError",
    "InstanceNotFoundError",
    "InvalidAnnotationError",
    "InvalidPodError",
    "LaunchTimeoutError",
    "OrcaError",
    "PodNotFoundError",
    "ProvisioningError",
    "SelectionError",
    "UnsupportedOperationError",
]
