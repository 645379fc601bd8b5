from __future__ import annotations

from datetime import UTC, datetime

from orca.constants import OrcaAnnotation, OrcaTag
from orca.providers.aws.tags import build_tags, managed_filters, pod_filters
from tests.fakes import make_pod

NOW = datetime(2026, 3, 4, 5, 6, 7, tzinfo=UTC)


def _as_dict(tags):
    return {t["Key"]: t["Value"] for t in tags}


class TestBuildTags:
    def test_identity_tags(self):
        tags = _as_dict(build_tags(make_pod("trainer", "ml", uid="u-1"), NOW))

        assert tags == {
            "Name": "orca-ml-trainer",
            OrcaTag.POD: "ml/trainer",
            OrcaTag.POD_UID: "u-1",
            OrcaTag.NAMESPACE: "ml",
            OrcaTag.POD_NAME: "trainer",
            OrcaTag.PROVIDER: "orca",
            OrcaTag.CREATED_AT: "2026-03-04T05:06:07Z",
        }

    def test_optional_tags_from_annotations(self):
        pod = make_pod(annotations={
            OrcaAnnotation.BUDGET_NAMESPACE: "research-a",
            OrcaAnnotation.MAX_LIFETIME: "8h",
        })

        tags = _as_dict(build_tags(pod, NOW))

        assert tags[OrcaTag.BUDGET_NAMESPACE] == "research-a"
        assert tags[OrcaTag.MAX_LIFETIME] == "8h"

    def test_empty_optional_annotations_are_skipped(self):
        pod = make_pod(annotations={OrcaAnnotation.BUDGET_NAMESPACE: ""})
        assert OrcaTag.BUDGET_NAMESPACE not in _as_dict(build_tags(pod, NOW))


class TestFilters:
    def test_managed_filters(self):
        provider, states = managed_filters()
        assert provider == {"Name": f"tag:{OrcaTag.PROVIDER}", "Values": ["orca"]}
        assert states["Values"] == ["pending", "running", "stopping", "stopped"]

    def test_pod_filters(self):
        filters = pod_filters("ml", "trainer")
        assert filters[0] == {"Name": f"tag:{OrcaTag.POD}", "Values": ["ml/trainer"]}
        assert filters[1:] == managed_filters()
