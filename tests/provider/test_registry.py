from __future__ import annotations

import threading

from orca.constants import InstanceState
from orca.pod import PodPhase, PodStatus
from orca.provider import PodBinding, PodRegistry
from orca.providers.aws.types import Instance
from tests.fakes import make_pod


def _binding(name: str = "web-0", uid: str | None = None) -> PodBinding:
    return PodBinding(pod=make_pod(name, uid=uid), instance_type="t3.large")


class TestPodRegistry:
    def test_put_and_get(self):
        registry = PodRegistry()
        registry.put(_binding())

        binding = registry.get("uid-default-web-0")

        assert binding is not None
        assert binding.pod.name == "web-0"
        assert binding.instance_type == "t3.large"
        assert "uid-default-web-0" in registry
        assert len(registry) == 1

    def test_get_missing(self):
        assert PodRegistry().get("nope") is None

    def test_find_by_name(self):
        registry = PodRegistry()
        registry.put(_binding("a"))
        registry.put(_binding("b"))

        assert registry.find("default", "b").pod.name == "b"
        assert registry.find("other", "b") is None

    def test_stored_value_is_isolated_from_caller(self):
        registry = PodRegistry()
        binding = _binding()
        registry.put(binding)

        binding.pod.labels["mutated"] = "yes"
        returned = registry.get(binding.uid)
        returned.pod.annotations["also"] = "mutated"

        stored = registry.get(binding.uid)
        assert "mutated" not in stored.pod.labels
        assert "also" not in stored.pod.annotations

    def test_put_replaces_same_uid(self):
        registry = PodRegistry()
        registry.put(_binding())
        registry.put(PodBinding(pod=make_pod(), instance_type="g5.xlarge"))

        assert len(registry) == 1
        assert registry.get("uid-default-web-0").instance_type == "g5.xlarge"

    def test_update_metadata(self):
        registry = PodRegistry()
        registry.put(_binding())

        assert registry.update_metadata("uid-default-web-0", {"app": "web"}, {"k": "v"})

        pod = registry.get("uid-default-web-0").pod
        assert pod.labels == {"app": "web"}
        assert pod.annotations == {"k": "v"}
        assert not registry.update_metadata("missing", {}, {})

    def test_update_status(self):
        registry = PodRegistry()
        registry.put(_binding())
        instance = Instance(id="i-1", instance_type="t3.large", state=InstanceState.RUNNING)

        assert registry.update_status("uid-default-web-0", PodStatus(phase=PodPhase.RUNNING), instance)

        binding = registry.get("uid-default-web-0")
        assert binding.pod.status.phase == PodPhase.RUNNING
        assert binding.instance_id == "i-1"
        assert not registry.update_status("missing", PodStatus())

    def test_remove(self):
        registry = PodRegistry()
        registry.put(_binding())

        removed = registry.remove("uid-default-web-0")

        assert removed is not None and removed.pod.name == "web-0"
        assert registry.remove("uid-default-web-0") is None
        assert len(registry) == 0

    def test_concurrent_threads(self):
        registry = PodRegistry()

        def worker(n: int) -> None:
            for i in range(50):
                registry.put(_binding(f"pod-{n}-{i}"))
                registry.list()
                if i % 2:
                    registry.remove(f"uid-default-pod-{n}-{i}")

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(registry) == 8 * 25
