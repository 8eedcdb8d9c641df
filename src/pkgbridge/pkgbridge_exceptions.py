"""
This module contains the exceptions raised by the package requirement bridge.
"""

from typing import Optional


class PkgBridgeException(Exception):
    """
    Base exception for all pkgbridge configuration and resolution errors.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequirement(PkgBridgeException):
    """Raised when a requirement declaration is malformed (e.g. empty name)."""

    pass


class InvalidRequirementOption(PkgBridgeException):
    """Raised when the option mapping of a requirement cannot be accepted."""

    def __init__(self, name: str, detail: str):
        super().__init__(f"Invalid options for requirement '{name}': {detail}")
        self.name = name
        self.detail = detail


class DuplicateRequirement(PkgBridgeException):
    def __init__(self, name: str):
        super().__init__(f"Requirement '{name}' is already declared")
        self.name = name


class DuplicateTarget(PkgBridgeException):
    def __init__(self, name: str):
        super().__init__(f"Target '{name}' is already defined")
        self.name = name


class UnknownTarget(PkgBridgeException):
    def __init__(self, name: str):
        super().__init__(f"Target '{name}' is not defined")
        self.name = name


class InvalidTarget(PkgBridgeException):
    """Raised when a target definition has malformed fields (e.g. a non-string source)."""

    def __init__(self, target: str, detail: str):
        super().__init__(f"Invalid definition of target '{target}': {detail}")
        self.target = target
        self.detail = detail


class UnsupportedKind(PkgBridgeException):
    def __init__(self, target: str, kind: object):
        super().__init__(f"Target '{target}' has unsupported kind: {kind!r}")
        self.target = target
        self.kind = kind


class NoSources(PkgBridgeException):
    def __init__(self, target: str):
        super().__init__(f"Target '{target}' has no source files")
        self.target = target


class SourceNotFound(PkgBridgeException):
    def __init__(self, target: str, path: str):
        super().__init__(f"Source file of target '{target}' does not exist: {path}")
        self.target = target
        self.path = path


class UnknownRequirement(PkgBridgeException):
    def __init__(self, name: str, target: Optional[str] = None):
        message = f"Unknown requirement '{name}'"
        if target is not None:
            message += f" attached to target '{target}'"
        super().__init__(message)
        self.name = name
        self.target = target


class ResolutionFailed(PkgBridgeException):
    """
    Raised when the foreign resolver cannot turn a requirement into artifacts.

    The underlying error is kept in ``cause`` and is also chained as
    ``__cause__`` by the code that raises it.
    """

    def __init__(self, name: str, cause: object):
        super().__init__(f"Failed to resolve requirement '{name}': {cause}")
        self.name = name
        self.cause = cause


class ManifestUnreadable(ResolutionFailed):
    def __init__(self, name: str, manifest_path: str, cause: object):
        super().__init__(name, f"manifest {manifest_path} is unreadable: {cause}")
        self.manifest_path = manifest_path


class BuildFileError(PkgBridgeException):
    """Raised when a pkgbridge.toml build file is missing or malformed."""

    pass
