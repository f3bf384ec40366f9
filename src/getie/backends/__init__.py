"""Hypervisor backends."""

from getie.backends.base import BaseBackend, BackendState, ImportOutcome
from getie.backends.registry import BackendRegistry

__all__ = [
    "BaseBackend",
    "BackendState",
    "ImportOutcome",
    "BackendRegistry",
]
