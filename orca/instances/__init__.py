"""Instance type selection for pods."""

from orca.instances.auto import AutoSelector
from orca.instances.explicit import ExplicitSelector
from orca.instances.selector import ChainSelector, Selector, build_selector
from orca.instances.template import TemplateSelector

__all__ = [
    "AutoSelector",
    "ChainSelector",
    "ExplicitSelector",
    "Selector",
    "TemplateSelector",
    "build_selector",
]
