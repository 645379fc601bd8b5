"""Custom exception hierarchy for ORCA.

All orca-specific exceptions inherit from OrcaError, so callers such as
the virtual-kubelet adapter can catch every ORCA failure with a single
except clause and still branch on the concrete category.
"""

from __future__ import annotations

from collections.abc import Sequence


class OrcaError(Exception):
    """Base exception for all ORCA errors."""


class ConfigurationError(OrcaError):
    """Raised for invalid configuration or missing required settings."""


class InvalidPodError(OrcaError):
    """Raised when a pod cannot be handled at all (missing pod or annotations)."""


class SelectionError(OrcaError):
    """Raised when no instance type could be determined for a pod."""

    def __init__(self, message: str, reasons: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.reasons = tuple(reasons)


class InvalidAnnotationError(SelectionError):
    """Raised when a pod annotation has a value ORCA cannot use."""

    def __init__(self, key: str, value: str, expected: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"annotation {key}={value!r} is invalid: expected {expected}")


class ProvisioningError(OrcaError):
    """Raised when an instance could not be launched."""


class CloudAPIError(ProvisioningError):
    """Raised when an EC2 API call fails."""

    def __init__(self, operation: str, target: str, cause: Exception) -> None:
        self.operation = operation
        self.target = target
        super().__init__(f"{operation} failed for {target}: {cause}")


class LaunchTimeoutError(ProvisioningError):
    """Raised when an instance does not reach running before the deadline."""

    def __init__(self, instance_id: str, timeout: float) -> None:
        self.instance_id = instance_id
        self.timeout = timeout
        super().__init__(f"instance {instance_id} not running after {timeout:.1f}s")


class InstanceFailedError(ProvisioningError):
    """Raised when a launching instance enters a state it cannot recover from."""

    def __init__(self, instance_id: str, state: str) -> None:
        self.instance_id = instance_id
        self.state = state
        super().__init__(f"instance {instance_id} entered state {state}")


class InstanceNotFoundError(OrcaError):
    """Raised when no live instance matches an ID or pod."""


class PodNotFoundError(OrcaError):
    """Raised when a pod is not in the registry."""

    def __init__(self, namespace: str, name: str) -> None:
        self.namespace = namespace
        self.name = name
        super().__init__(f"pod {namespace}/{name} not found")


class UnsupportedOperationError(OrcaError):
    """Raised by provider operations that ORCA does not implement."""
