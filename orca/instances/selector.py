"""Instance type selection.

A selector turns a pod into an EC2 instance type. Selection modes are
built once from configuration as an ordered chain of selectors; the
first selector that succeeds wins.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from loguru import logger

from orca.config import InstancesConfig
from orca.constants import SelectionMode
from orca.core.exceptions import ConfigurationError, SelectionError
from orca.pod import Pod

log = logger.bind(component="instance-selector")


@runtime_checkable
class Selector(Protocol):
    """Chooses the EC2 instance type for a pod.

    Implementations raise :class:`SelectionError` when they cannot decide.
    """

    name: str

    def select(self, pod: Pod) -> str: ...


class ChainSelector:
    """Tries each selector in order until one succeeds."""

    name = "chain"

    def __init__(self, selectors: Sequence[Selector]) -> None:
        if not selectors:
            raise ConfigurationError("selector chain needs at least one selector")
        self._selectors = tuple(selectors)

    @property
    def selectors(self) -> tuple[Selector, ...]:
        return self._selectors

    def select(self, pod: Pod) -> str:
        reasons: list[str] = []
        last: SelectionError | None = None

        for selector in self._selectors:
            try:
                instance_type = selector.select(pod)
            except SelectionError as e:
                log.debug("{selector} selector declined {pod}: {err}", selector=selector.name, pod=pod.key, err=e)
                reasons.append(f"{selector.name}: {e}")
                last = e
                continue
            log.debug(
                "Selected {itype} for {pod} via {selector}",
                itype=instance_type, pod=pod.key, selector=selector.name,
            )
            return instance_type

        raise SelectionError(
            f"no selector could determine instance type for pod {pod.key}: {last}",
            reasons,
        ) from last


def build_selector(config: InstancesConfig) -> ChainSelector:
    """Build the selector chain for the configured selection mode.

    - explicit: explicit only, no fallback
    - template: explicit, then template
    - auto: explicit, then template, then resource-based
    """
    from orca.instances.auto import AutoSelector
    from orca.instances.explicit import ExplicitSelector
    from orca.instances.template import TemplateSelector

    match config.selection_mode:
        case SelectionMode.EXPLICIT:
            selectors: list[Selector] = [ExplicitSelector()]
        case SelectionMode.TEMPLATE:
            selectors = [ExplicitSelector(), TemplateSelector(config.templates)]
        case SelectionMode.AUTO:
            selectors = [
                ExplicitSelector(),
                TemplateSelector(config.templates),
                AutoSelector(config.auto),
            ]
        case other:
            raise ConfigurationError(
                f"invalid selection mode: {other} (must be explicit, template, or auto)"
            )

    return ChainSelector(selectors)
