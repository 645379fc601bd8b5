"""Resource-based instance selection.

Sums the requests of every container in the pod and maps them onto the
configured size tables. This is a pod-level heuristic: a pod asking for
3 vCPUs in one container and 3 in another is treated like one asking
for 6.
"""

from __future__ import annotations

from orca.config import AutoPolicy, CPUBucket
from orca.constants import GIB
from orca.pod import Pod


class AutoSelector:
    name = "auto"

    def __init__(self, policy: AutoPolicy | None = None) -> None:
        self._policy = policy or AutoPolicy()

    def select(self, pod: Pod) -> str:
        requests = pod.total_requests()

        if requests.gpus > 0:
            return self.select_gpu(requests.gpus)

        return self.select_cpu(requests.cpu_millis, requests.memory_bytes)

    def select_gpu(self, gpu_count: int) -> str:
        table = self._policy.gpu_instance_types
        return table.get(gpu_count, table[1])

    def select_cpu(self, cpu_millis: int, memory_bytes: int) -> str:
        vcpus = cpu_millis // 1000
        memory_gib = memory_bytes // GIB
        return self.bucket_for(vcpus, memory_gib).instance_type

    def bucket_for(self, vcpus: int, memory_gib: int) -> CPUBucket:
        """Smallest bucket whose ceiling covers both dimensions, else the largest."""
        buckets = self._policy.cpu_buckets
        return next(
            (b for b in buckets if vcpus <= b.vcpus and memory_gib <= b.memory_gib),
            buckets[-1],
        )
