"""
Exception classes for modbundle.
"""

from typing import Optional


class ModbundleError(Exception):
    """Base exception for all modbundle errors."""

    pass


class PackageNotFoundError(ModbundleError):
    """Raised when the manifest of a package to list cannot be resolved."""

    def __init__(self, package_name: str):
        self.package_name = package_name
        super().__init__(f"NPM package {package_name} not found. Ignoring package...")


class ResolutionError(ModbundleError):
    """Base class for the failure side of a resolution result."""

    def __init__(self, specifier: str, message: str):
        self.specifier = specifier
        super().__init__(message)


class ModuleNotResolved(ResolutionError):
    """The specifier does not map to any file.

    ``reason`` is one of ``relative``, ``negative-cache`` or ``not-found``.
    """

    def __init__(self, specifier: str, reason: str = "not-found"):
        self.reason = reason
        super().__init__(specifier, f"Module '{specifier}' not resolved ({reason})")


class ResolutionIOError(ResolutionError):
    """Resolution was aborted by an I/O or parse error."""

    def __init__(self, specifier: str, cause: Optional[BaseException] = None):
        self.cause = cause
        message = f"Failed to resolve '{specifier}'"
        if cause is not None:
            message += f": {cause}"
        super().__init__(specifier, message)


class BundleError(ModbundleError):
    """Raised when the module graph cannot be built for an entry module."""

    def __init__(self, entry: str, message: str, module_id: Optional[str] = None):
        self.entry = entry
        self.module_id = module_id
        if module_id and module_id != entry:
            super().__init__(f"Bundling '{entry}' failed in {module_id}: {message}")
        else:
            super().__init__(f"Bundling '{entry}' failed: {message}")


class SourceParseError(ModbundleError):
    """Raised when a JavaScript source cannot be parsed."""

    def __init__(self, name: str, line: int = 0, column: int = 0, detail: str = ""):
        self.name = name
        self.line = line
        self.column = column
        message = f"Failed to parse {name} ({line}:{column})"
        if detail:
            message += f": {detail}"
        super().__init__(message)
