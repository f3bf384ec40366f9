"""Command implementations for CLI."""

import asyncio
import os
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)
from rich.table import Table

from getie.catalog import (
    Catalog,
    default_browser,
    default_hypervisor,
    default_platform,
    load_catalog,
)
from getie.errors import GetIEError
from getie.models.image import ImageDescriptor, InstallSpec
from getie.pipeline.config import ConfigManager
from getie.pipeline.engine import Pipeline, PipelineResult
from getie.utils.logging import setup_logging
from getie.utils.streams import ProgressEvent


console = Console()

DEFAULT_CONFIG_DIR = "./configs"


def load_settings(config_dir: Optional[str] = None, log_level: Optional[str] = None) -> ConfigManager:
    """Load configuration and set up logging."""
    config_path = Path(config_dir or os.environ.get("GETIE_CONFIG_DIR") or DEFAULT_CONFIG_DIR)
    manager = ConfigManager(config_path)
    asyncio.run(manager.load())
    setup_logging(log_level or manager.config.logging.level)
    return manager


def run_pipeline(
    manager: ConfigManager,
    spec: InstallSpec,
    descriptor: ImageDescriptor,
    download_dir: Optional[str] = None,
) -> PipelineResult:
    """Run the pipeline with a download progress bar."""
    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        DownloadColumn(),
        TransferSpeedColumn(),
        TimeRemainingColumn(),
        console=console,
    ) as progress:
        task = progress.add_task(f"Downloading {descriptor.archive_name}", total=None, visible=False)

        def on_progress(event: ProgressEvent):
            progress.update(task, completed=event.written, total=event.total, visible=True)

        pipeline = Pipeline(manager.config, progress_callback=on_progress)
        result = asyncio.run(
            pipeline.run(spec, descriptor, Path(download_dir) if download_dir else None)
        )

    return result


def report_result(result: PipelineResult) -> bool:
    """Print the outcome of a run."""
    if result.ok:
        console.print(
            f"[green]✓[/green] {result.descriptor.archive_name} imported into "
            f"{result.spec.hypervisor} from {result.outcome.vm_path}"
        )
        for warning in result.warnings:
            console.print(f"[yellow]Warning:[/yellow] {warning}")
        return True

    failure = result.failure
    console.print(f"[red]✗[/red] Stage {failure.stage.value} failed: {failure.cause}")
    console.print(f"  {failure.hint}")
    return False


def install_image(manager: ConfigManager, name: str, download_dir: Optional[str] = None) -> bool:
    """Install a configured image by name."""
    image = manager.get_image_spec(name)
    if not image:
        console.print(f"[red]Image {name} not found[/red]")
        return False

    result = run_pipeline(manager, image.install_spec, image.descriptor, download_dir)
    return report_result(result)


def pull_image(
    manager: ConfigManager,
    hypervisor: str,
    url: str,
    checksum_url: str,
    platform: str = "All",
    browser_os: str = "",
    download_dir: Optional[str] = None,
) -> bool:
    """Install an image from an explicit descriptor."""
    spec = InstallSpec(platform=platform, hypervisor=hypervisor, browser_os=browser_os)
    descriptor = ImageDescriptor(file_url=url, checksum_url=checksum_url)
    result = run_pipeline(manager, spec, descriptor, download_dir)
    return report_result(result)


def list_images(manager: ConfigManager) -> bool:
    """List configured images."""
    table = Table(title="Images")
    table.add_column("Name", style="cyan")
    table.add_column("Hypervisor", style="magenta")
    table.add_column("Platform")
    table.add_column("Browser and OS")
    table.add_column("Archive", style="dim", max_width=50)

    for name, image in sorted(manager.images.items()):
        table.add_row(
            name,
            image.hypervisor,
            image.platform,
            image.browser_os,
            image.descriptor.archive_name,
        )

    console.print(table)
    return True


def check_backend(manager: ConfigManager, hypervisor: str) -> bool:
    """Check that a hypervisor's tools are installed."""
    pipeline = Pipeline(manager.config)
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task(f"Checking {hypervisor} tools...", total=None)
        try:
            asyncio.run(pipeline.check(hypervisor))
        except GetIEError as e:
            progress.update(task, completed=True)
            console.print(f"[red]✗[/red] {e}")
            return False
        progress.update(task, completed=True)

    console.print(f"[green]✓[/green] {hypervisor} tools are installed")
    return True


def list_catalog(manager: ConfigManager, catalog_file: Path) -> bool:
    """List images published in a catalog file."""
    catalog = load_catalog(catalog_file)

    table = Table(title=f"Catalog ({len(catalog)} images)")
    table.add_column("Platform", style="cyan")
    table.add_column("Hypervisor", style="magenta")
    table.add_column("Browser and OS")
    table.add_column("Archive", style="dim", max_width=50)

    for spec, descriptor in catalog.items():
        table.add_row(spec.platform, spec.hypervisor, spec.browser_os, descriptor.archive_name)

    console.print(table)
    return True


def resolve_spec(
    catalog: Catalog,
    platform: Optional[str] = None,
    hypervisor: Optional[str] = None,
    browser_os: Optional[str] = None,
) -> InstallSpec:
    """Fill unspecified choices with the catalog defaults."""
    if not len(catalog):
        raise GetIEError("Catalog contains no images")
    platform = platform or default_platform(catalog.platforms())
    hypervisors = catalog.hypervisors(platform)
    if not hypervisors:
        raise GetIEError(f"No hypervisors published for platform {platform}")
    hypervisor = hypervisor or default_hypervisor(hypervisors)
    browsers = catalog.browsers(hypervisor)
    if not browsers:
        raise GetIEError(f"No images published for hypervisor {hypervisor}")
    browser_os = browser_os or default_browser(browsers)
    return InstallSpec(platform=platform, hypervisor=hypervisor, browser_os=browser_os)


def install_from_catalog(
    manager: ConfigManager,
    catalog_file: Path,
    platform: Optional[str] = None,
    hypervisor: Optional[str] = None,
    browser_os: Optional[str] = None,
    download_dir: Optional[str] = None,
) -> bool:
    """Resolve an image through a catalog file and install it."""
    catalog = load_catalog(catalog_file)
    spec = resolve_spec(catalog, platform, hypervisor, browser_os)
    descriptor = catalog.resolve(spec)

    console.print(f"Platform: {spec.platform}")
    console.print(f"Hypervisor: {spec.hypervisor}")
    console.print(f"Browser and OS: {spec.browser_os}")

    result = run_pipeline(manager, spec, descriptor, download_dir)
    return report_result(result)
