"""Main CLI implementation using Typer."""

from pathlib import Path
from typing import Any, Callable, Optional

import typer
from pydantic import ValidationError
from rich.console import Console

from getie.catalog import UnknownImage
from getie.cli.commands import (
    check_backend,
    install_from_catalog,
    install_image,
    list_catalog,
    list_images,
    load_settings,
    pull_image,
)
from getie.errors import GetIEError


# Create Typer app
app = typer.Typer(
    name="getie",
    help="Download, verify and import browser testing VMs into a local hypervisor",
    add_completion=False,
)

# Console for rich output
console = Console()

ConfigDirOption = typer.Option(
    None, "--config-dir", "-c", envvar="GETIE_CONFIG_DIR", help="Configuration directory"
)
LogLevelOption = typer.Option(None, "--log-level", help="Override the configured log level")
DownloadDirOption = typer.Option(None, "--download-dir", "-d", help="Where to store archives")


def _run_cli_command(
    handler: Callable[..., Any],
    config_dir: Optional[str],
    log_level: Optional[str],
    **kwargs: Any,
):
    """Helper to run a CLI command with loaded settings and error handling."""
    try:
        manager = load_settings(config_dir, log_level)
        ok = handler(manager, **kwargs)
    except (GetIEError, UnknownImage, ValidationError, OSError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e
    if ok is False:
        raise typer.Exit(1)


@app.command("install")
def install_command(
    name: str = typer.Argument(..., help="Configured image name"),
    download_dir: Optional[str] = DownloadDirOption,
    config_dir: Optional[str] = ConfigDirOption,
    log_level: Optional[str] = LogLevelOption,
):
    """Download, extract and import a configured image."""
    _run_cli_command(
        install_image, config_dir, log_level, name=name, download_dir=download_dir
    )


@app.command("pull")
def pull_command(
    hypervisor: str = typer.Option(..., "--hypervisor", "-H", help="VirtualBox, VMware, HyperV or Parallels"),
    url: str = typer.Option(..., "--url", help="Archive URL"),
    checksum_url: str = typer.Option(..., "--checksum-url", help="URL of the published checksum"),
    platform: str = typer.Option("All", "--platform", help="Host platform label"),
    browser_os: str = typer.Option("", "--browser-os", help="Browser and OS label"),
    download_dir: Optional[str] = DownloadDirOption,
    config_dir: Optional[str] = ConfigDirOption,
    log_level: Optional[str] = LogLevelOption,
):
    """Download, extract and import an image from explicit URLs."""
    _run_cli_command(
        pull_image,
        config_dir,
        log_level,
        hypervisor=hypervisor,
        url=url,
        checksum_url=checksum_url,
        platform=platform,
        browser_os=browser_os,
        download_dir=download_dir,
    )


@app.command("images")
def images_command(
    config_dir: Optional[str] = ConfigDirOption,
    log_level: Optional[str] = LogLevelOption,
):
    """List configured images."""
    _run_cli_command(list_images, config_dir, log_level)


@app.command("check")
def check_command(
    hypervisor: str = typer.Argument(..., help="Hypervisor name"),
    config_dir: Optional[str] = ConfigDirOption,
    log_level: Optional[str] = LogLevelOption,
):
    """Check that a hypervisor's command line tools are installed."""
    _run_cli_command(check_backend, config_dir, log_level, hypervisor=hypervisor)


# Catalog subcommands
catalog_app = typer.Typer(help="Publisher catalog commands")
app.add_typer(catalog_app, name="catalog")


@catalog_app.command("list")
def catalog_list_command(
    catalog_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Catalog JSON file"),
    config_dir: Optional[str] = ConfigDirOption,
    log_level: Optional[str] = LogLevelOption,
):
    """List images published in a catalog."""
    _run_cli_command(list_catalog, config_dir, log_level, catalog_file=catalog_file)


@catalog_app.command("install")
def catalog_install_command(
    catalog_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Catalog JSON file"),
    platform: Optional[str] = typer.Option(None, "--platform", help="Defaults to the host OS"),
    hypervisor: Optional[str] = typer.Option(None, "--hypervisor", "-H", help="Defaults to VirtualBox"),
    browser_os: Optional[str] = typer.Option(None, "--browser-os", help="Defaults to the newest"),
    download_dir: Optional[str] = DownloadDirOption,
    config_dir: Optional[str] = ConfigDirOption,
    log_level: Optional[str] = LogLevelOption,
):
    """Resolve an image through a catalog and install it."""
    _run_cli_command(
        install_from_catalog,
        config_dir,
        log_level,
        catalog_file=catalog_file,
        platform=platform,
        hypervisor=hypervisor,
        browser_os=browser_os,
        download_dir=download_dir,
    )


def main():
    """Main entry point for CLI."""
    app()
