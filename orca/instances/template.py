from __future__ import annotations

from collections.abc import Mapping

from orca.config import WorkloadTemplate
from orca.constants import OrcaAnnotation
from orca.core.exceptions import SelectionError
from orca.instances.explicit import required_annotation
from orca.pod import Pod


class TemplateSelector:
    """Resolves the instance type from a named workload template.

    Only the instance type is returned; the template's launch type and
    spot price are read by the instance client at launch time.
    """

    name = "template"

    def __init__(self, templates: Mapping[str, WorkloadTemplate]) -> None:
        self._templates = templates

    def select(self, pod: Pod) -> str:
        template_name = required_annotation(pod, OrcaAnnotation.WORKLOAD_TEMPLATE)

        template = self._templates.get(template_name)
        if template is None:
            raise SelectionError(f"unknown workload template: {template_name}")
        if not template.instance_type:
            raise SelectionError(f"template {template_name} has no instance type defined")

        return template.instance_type
