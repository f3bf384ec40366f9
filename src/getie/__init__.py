"""
getie - fetch browser testing virtual machines.

Downloads a published VM archive, verifies it against the publisher's
checksum, extracts it and imports it into VirtualBox, VMware, Hyper-V or
Parallels.
"""

__version__ = "1.0.0"

# Re-export key components for easier access
from getie.models.config import GetIEConfig
from getie.models.image import ImageDescriptor, InstallSpec, ImageSpec

__all__ = [
    "GetIEConfig",
    "ImageDescriptor",
    "InstallSpec",
    "ImageSpec",
]
