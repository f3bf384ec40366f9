"""Error taxonomy for the acquisition pipeline."""

from pathlib import Path
from typing import Optional


class GetIEError(Exception):
    """Base class for all pipeline errors."""
    pass


class NetworkError(GetIEError):
    """Transport failure or non-success HTTP status."""
    pass


class IntegrityMismatch(GetIEError):
    """Computed checksum differs from the published one."""

    def __init__(self, path: Path, expected: str, actual: str):
        self.path = Path(path)
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Checksum mismatch for {self.path}: expected {expected}, got {actual}"
        )


class FilesystemError(GetIEError):
    """Permission, space or path error during create/write/mkdir."""
    pass


class ArchiveFormatError(GetIEError):
    """Archive cannot be opened or contains unusable entries."""
    pass


class EntryPointNotFound(GetIEError):
    """No extracted file matches the backend entry point suffix."""
    pass


class AmbiguousEntryPoint(EntryPointNotFound):
    """More than one extracted file matches the entry point suffix."""
    pass


class UnsupportedBackend(GetIEError):
    """Requested hypervisor has no adapter."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Hypervisor {name} isn't supported")


class ToolMissing(GetIEError):
    """A required hypervisor CLI is absent or did not respond as expected."""

    def __init__(self, tool: str, detail: Optional[str] = None):
        self.tool = tool
        self.detail = detail
        message = f"Required tool {tool} is not available"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ImportFailed(GetIEError):
    """The backend's own import mechanism reported an error."""
    pass


class ConversionFailed(ImportFailed):
    """OVF to VMX conversion failed."""
    pass


class BackendStateError(GetIEError):
    """Backend operation called out of order."""
    pass


class CatalogError(GetIEError):
    """Catalog document is not valid JSON or has an unexpected shape."""
    pass
