from __future__ import annotations

from orca.constants import OrcaAnnotation
from orca.core.exceptions import SelectionError
from orca.pod import Pod


def required_annotation(pod: Pod, key: str) -> str:
    """Return a non-empty annotation value or raise SelectionError."""
    if pod.annotations is None:
        raise SelectionError("pod has no annotations")
    if key not in pod.annotations:
        raise SelectionError(f"pod missing annotation: {key}")
    value = pod.annotations[key]
    if not value:
        raise SelectionError(f"annotation {key} is empty")
    return value


class ExplicitSelector:
    """Reads the instance type straight from the pod annotation.

    The value is returned verbatim; it is not checked against any
    catalog of instance types.
    """

    name = "explicit"

    def select(self, pod: Pod) -> str:
        return required_annotation(pod, OrcaAnnotation.INSTANCE_TYPE)
