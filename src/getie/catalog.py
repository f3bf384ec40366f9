"""Publisher catalog parsing.

The catalog lists, per hypervisor package, the host platforms it runs on and
the browser/OS images it ships. It resolves an InstallSpec to the
ImageDescriptor of one archive.
"""

import json
import logging
import platform as host_platform
from pathlib import Path
from typing import Any, Dict, List, Mapping

from getie.errors import CatalogError
from getie.models.image import ImageDescriptor, InstallSpec


logger = logging.getLogger(__name__)

DEFAULT_HYPERVISOR = "VirtualBox"

# Not a hypervisor
SKIPPED_SOFTWARE = {"Vagrant"}

HOST_PLATFORMS = {
    "Linux": "Linux",
    "Windows": "Windows",
    "Darwin": "Mac",
}


class UnknownImage(KeyError):
    """No image is published for the requested combination."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class Catalog:
    """Choices and descriptors keyed by InstallSpec."""

    def __init__(self):
        self._platforms: List[str] = []
        self._hypervisors: Dict[str, List[str]] = {}
        self._browsers: Dict[str, List[str]] = {}
        self._images: Dict[InstallSpec, ImageDescriptor] = {}

    def add(self, spec: InstallSpec, descriptor: ImageDescriptor):
        """Register a descriptor under ``spec``."""
        if spec.platform not in self._platforms:
            self._platforms.append(spec.platform)
        hypervisors = self._hypervisors.setdefault(spec.platform, [])
        if spec.hypervisor not in hypervisors:
            hypervisors.append(spec.hypervisor)
        browsers = self._browsers.setdefault(spec.hypervisor, [])
        if spec.browser_os not in browsers:
            browsers.append(spec.browser_os)
        self._images[spec] = descriptor

    def platforms(self) -> List[str]:
        return sorted(self._platforms)

    def hypervisors(self, platform: str) -> List[str]:
        return sorted(self._hypervisors.get(platform, []))

    def browsers(self, hypervisor: str) -> List[str]:
        return sorted(self._browsers.get(hypervisor, []))

    def resolve(self, spec: InstallSpec) -> ImageDescriptor:
        """Descriptor for ``spec``."""
        try:
            return self._images[spec]
        except KeyError:
            raise UnknownImage(
                f"No image for {spec.browser_os} on {spec.hypervisor} ({spec.platform})"
            ) from None

    def items(self):
        return sorted(
            self._images.items(),
            key=lambda item: (item[0].platform, item[0].hypervisor, item[0].browser_os),
        )

    def __len__(self) -> int:
        return len(self._images)

    def __contains__(self, spec: InstallSpec) -> bool:
        return spec in self._images


def parse_catalog(data: Mapping[str, Any]) -> Catalog:
    """Build a Catalog from the publisher's JSON document."""
    catalog = Catalog()

    for software in data.get("softwareList", []):
        hypervisor = software.get("softwareName", "")
        if not hypervisor or hypervisor in SKIPPED_SOFTWARE:
            continue
        os_list = software.get("osList", [])

        for vm in software.get("vms", []):
            browser_os = " ".join([vm.get("browserName", ""), vm.get("osVersion", "")]).strip()
            for file in vm.get("files", []):
                # Only files with a published checksum can be verified
                checksum_url = file.get("md5")
                if not checksum_url or not file.get("url"):
                    continue
                descriptor = ImageDescriptor(file_url=file["url"], checksum_url=checksum_url)
                for platform in os_list:
                    spec = InstallSpec(platform=platform, hypervisor=hypervisor, browser_os=browser_os)
                    catalog.add(spec, descriptor)

    logger.debug(f"Parsed catalog with {len(catalog)} images")
    return catalog


def load_catalog(path: Path) -> Catalog:
    """Read a catalog JSON file."""
    with open(path) as fh:
        try:
            data = json.load(fh)
        except ValueError as e:
            raise CatalogError(f"Invalid catalog {path}: {e}") from e

    # Entries of the wrong type surface as attribute or type errors while walking
    try:
        return parse_catalog(data)
    except (AttributeError, TypeError, ValueError) as e:
        raise CatalogError(f"Unexpected catalog structure in {path}: {e}") from e


def default_platform(choices: List[str]) -> str:
    """The choice matching the host OS, else the first one."""
    wanted = HOST_PLATFORMS.get(host_platform.system())
    if wanted in choices:
        return wanted
    return choices[0]


def default_hypervisor(choices: List[str]) -> str:
    if DEFAULT_HYPERVISOR in choices:
        return DEFAULT_HYPERVISOR
    return choices[0]


def default_browser(choices: List[str]) -> str:
    """The last choice, treated as the newest."""
    return choices[-1]
