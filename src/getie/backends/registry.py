"""Backend registry for hypervisor adapters."""

import logging
from typing import Dict, List, Optional, Type

from getie.backends.base import BaseBackend
from getie.backends.hyperv import HyperVBackend
from getie.backends.parallels import ParallelsBackend
from getie.backends.virtualbox import VirtualBoxBackend
from getie.backends.vmware import VMwareBackend
from getie.errors import UnsupportedBackend
from getie.models.config import ToolsConfig


logger = logging.getLogger(__name__)


class BackendRegistry:
    """Maps hypervisor names to backend classes."""

    def __init__(self, tools: Optional[ToolsConfig] = None):
        """Initialize backend registry."""
        self.tools = tools or ToolsConfig()
        self._backend_classes: Dict[str, Type[BaseBackend]] = {
            cls.name: cls
            for cls in (VirtualBoxBackend, VMwareBackend, HyperVBackend, ParallelsBackend)
        }

    def backend_class(self, name: str) -> Type[BaseBackend]:
        """Get a backend class by hypervisor name."""
        try:
            return self._backend_classes[name]
        except KeyError:
            raise UnsupportedBackend(name) from None

    def entry_point_suffix(self, name: str) -> str:
        """File suffix the hypervisor imports from."""
        return self.backend_class(name).entry_point_suffix

    def create(self, name: str) -> BaseBackend:
        """Instantiate a fresh backend for one pipeline run."""
        backend = self.backend_class(name)(self.tools)
        logger.debug(f"Created backend: {name}")
        return backend

    def list_backends(self) -> List[str]:
        """List supported hypervisor names."""
        return list(self._backend_classes.keys())
