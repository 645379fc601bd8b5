"""Cloud backends for ORCA."""

from orca.providers.wait import TerminalStateError, wait_for_ready

__all__ = ["TerminalStateError", "wait_for_ready"]
