"""Configuration directory loading.

A config directory holds ``config.yaml`` and optional ``images/*.yaml``
files, each mapping an image name to its hypervisor, labels and URLs::

    msedge-win10-vmware:
      hypervisor: VMware
      file_url: https://.../MSEdge.Win10.VMware.zip
      checksum_url: https://.../MSEdge.Win10.VMware.zip.md5.txt
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from ruamel.yaml import YAML

from getie.models.config import GetIEConfig
from getie.models.image import ImageSpec


logger = logging.getLogger(__name__)

MAIN_CONFIG = "config.yaml"
IMAGES_DIR = "images"


class ConfigManager:
    """Settings and named images read from one config directory."""

    def __init__(self, config_dir: Path):
        self.config_dir = Path(config_dir)
        self.yaml = YAML(typ="safe")
        self.config: Optional[GetIEConfig] = None
        self.images: Dict[str, ImageSpec] = {}

    async def load(self):
        """Read settings, then image definitions. Settings errors raise."""
        logger.debug(f"Loading configuration from {self.config_dir}")
        self.config = await self._load_settings()
        self.images = await self._load_images()

    async def _load_settings(self) -> GetIEConfig:
        config_file = self.config_dir / MAIN_CONFIG
        if not await asyncio.to_thread(config_file.exists):
            logger.debug(f"No {config_file}, using default settings")
            return GetIEConfig()

        data = await self._read_yaml(config_file)
        try:
            settings = GetIEConfig(**(data or {}))
        except ValidationError as e:
            logger.error(f"Invalid settings in {config_file}: {e}")
            raise
        logger.debug(f"Loaded settings from {config_file}")
        return settings

    async def _load_images(self) -> Dict[str, ImageSpec]:
        images: Dict[str, ImageSpec] = {}
        for yaml_file in await self._image_files():
            # One broken file must not hide the images defined elsewhere
            try:
                data = await self._read_yaml(yaml_file)
                entries = self._parse_images(data or {}, yaml_file)
            except Exception as e:
                logger.error(f"Skipping {yaml_file}: {e}")
                continue

            for image in entries:
                if image.name in images:
                    logger.warning(f"Image {image.name} redefined in {yaml_file}")
                images[image.name] = image
            logger.debug(f"Loaded {len(entries)} images from {yaml_file}")
        return images

    async def _image_files(self) -> List[Path]:
        images_dir = self.config_dir / IMAGES_DIR
        if not await asyncio.to_thread(images_dir.is_dir):
            return []
        return sorted(await asyncio.to_thread(lambda: list(images_dir.glob("*.yaml"))))

    @staticmethod
    def _parse_images(data: Any, source: Path) -> List[ImageSpec]:
        if not isinstance(data, dict):
            raise ValueError(f"{source} must map image names to definitions")
        return [ImageSpec(name=str(name), **(fields or {})) for name, fields in data.items()]

    async def _read_yaml(self, file_path: Path) -> Any:
        content = await asyncio.to_thread(file_path.read_text)
        return self.yaml.load(content)

    def get_image_spec(self, name: str) -> Optional[ImageSpec]:
        """Get image definition by name."""
        return self.images.get(name)
