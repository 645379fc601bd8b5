from __future__ import annotations

from orca.config import Taint, parse_config
from orca.constants import TAINT_BURST_NODE, OrcaLabel
from orca.node import CONTAINER_RUNTIME_VERSION, Node, configure_node
from tests.conftest import raw_config


def _node_config(**node):
    return parse_config(raw_config(node=node)).node


class TestConfigureNode:
    def test_capacity_and_allocatable(self):
        node = configure_node(Node(name="orca-aws"), _node_config(gpu="8"), "1.2.3")

        assert node.capacity["nvidia.com/gpu"] == "8"
        assert node.allocatable == node.capacity

    def test_labels_merged_over_existing(self):
        config = _node_config(labels={"team": "research", "zone": "override"})
        node = Node(name="orca-aws", labels={"zone": "original", "keep": "me"})

        configure_node(node, config, "1.2.3")

        assert node.labels["keep"] == "me"
        assert node.labels["zone"] == "override"
        assert node.labels["team"] == "research"
        assert node.labels[OrcaLabel.PROVIDER] == "aws"
        assert node.labels[OrcaLabel.VERSION] == "1.2.3"

    def test_taints_appended(self):
        existing = Taint(key="existing", value="x", effect="NoExecute")
        config = _node_config(taints=[{"key": TAINT_BURST_NODE, "value": "true"}])
        node = Node(name="orca-aws", taints=[existing])

        configure_node(node, config, "1.2.3")

        assert [t.key for t in node.taints] == ["existing", TAINT_BURST_NODE]

    def test_conditions_report_healthy_node(self):
        node = configure_node(Node(name="orca-aws"), _node_config(), "1.2.3")

        assert node.condition("Ready").status == "True"
        for pressure in ("MemoryPressure", "DiskPressure", "PIDPressure", "NetworkUnavailable"):
            assert node.condition(pressure).status == "False"

    def test_node_info(self):
        node = configure_node(Node(name="orca-aws"), _node_config(operating_system="Linux"), "1.2.3")

        assert node.node_info.kubelet_version == "1.2.3"
        assert node.node_info.container_runtime_version == CONTAINER_RUNTIME_VERSION
        assert node.node_info.operating_system == "Linux"

    def test_reconfigure_replaces_conditions(self):
        config = _node_config()
        node = configure_node(Node(name="orca-aws"), config, "1")
        configure_node(node, config, "2")

        assert len(node.conditions) == 5
        assert node.labels[OrcaLabel.VERSION] == "2"
