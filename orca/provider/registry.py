"""In-memory pod registry.

Maps pod UIDs to what ORCA knows about them. The registry is a
process-lifetime cache; EC2 tags are the durable record and
:meth:`OrcaProvider.reconcile` rebuilds the cache from them.

Values are deep-copied on the way in and on the way out, so callers can
never mutate stored state and stored state never aliases caller objects.
"""

from __future__ import annotations

import copy
import threading
from dataclasses import dataclass, field

from orca.pod import Pod, PodStatus
from orca.providers.aws.types import Instance


@dataclass(slots=True)
class PodBinding:
    """A registered pod and the instance it is bound to."""

    pod: Pod
    instance_type: str
    instance: Instance | None = None

    @property
    def uid(self) -> str:
        return self.pod.uid

    @property
    def instance_id(self) -> str | None:
        return self.instance.id if self.instance else None


@dataclass
class PodRegistry:
    """Thread-safe registry of pod bindings keyed by pod UID.

    Example:
        registry = PodRegistry()
        registry.put(PodBinding(pod=pod, instance_type="t3.large"))
        binding = registry.find("default", "web-0")
    """

    _bindings: dict[str, PodBinding] = field(default_factory=dict, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def put(self, binding: PodBinding) -> None:
        """Insert or replace the binding for ``binding.uid``."""
        stored = copy.deepcopy(binding)
        with self._lock:
            self._bindings[stored.uid] = stored

    def get(self, uid: str) -> PodBinding | None:
        with self._lock:
            binding = self._bindings.get(uid)
            return copy.deepcopy(binding) if binding else None

    def find(self, namespace: str, name: str) -> PodBinding | None:
        with self._lock:
            for binding in self._bindings.values():
                if binding.pod.namespace == namespace and binding.pod.name == name:
                    return copy.deepcopy(binding)
        return None

    def update_metadata(
        self,
        uid: str,
        labels: dict[str, str],
        annotations: dict[str, str] | None,
    ) -> bool:
        """Replace labels and annotations. Returns False if the pod is not registered."""
        labels = dict(labels)
        annotations = dict(annotations) if annotations is not None else None
        with self._lock:
            binding = self._bindings.get(uid)
            if binding is None:
                return False
            binding.pod.labels = labels
            binding.pod.annotations = annotations
            return True

    def update_status(self, uid: str, status: PodStatus, instance: Instance | None = None) -> bool:
        """Store a status snapshot. Returns False if the pod is not registered."""
        status = copy.deepcopy(status)
        with self._lock:
            binding = self._bindings.get(uid)
            if binding is None:
                return False
            binding.pod.status = status
            if instance is not None:
                binding.instance = instance
            return True

    def remove(self, uid: str) -> PodBinding | None:
        with self._lock:
            return self._bindings.pop(uid, None)

    def list(self) -> list[PodBinding]:
        with self._lock:
            return [copy.deepcopy(b) for b in self._bindings.values()]

    def __contains__(self, uid: object) -> bool:
        with self._lock:
            return uid in self._bindings

    def __len__(self) -> int:
        with self._lock:
            return len(self._bindings)

