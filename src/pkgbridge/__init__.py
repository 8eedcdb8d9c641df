"""
pkgbridge lets a build configuration consume packages described by a foreign
manifest (such as a Cargo.toml): it declares requirements on them, resolves
them through the foreign ecosystem, and merges the resulting include paths,
link artifacts and link flags into the targets that use them.
"""

from pkgbridge.build_context import BuildContext, BuildFile
from pkgbridge.pkgbridge_config import BuildMode, PkgBridgeConfig
from pkgbridge.pkgbridge_exceptions import (
    BuildFileError,
    DuplicateRequirement,
    DuplicateTarget,
    InvalidRequirement,
    InvalidRequirementOption,
    InvalidTarget,
    ManifestUnreadable,
    NoSources,
    PkgBridgeException,
    ResolutionFailed,
    SourceNotFound,
    UnknownRequirement,
    UnknownTarget,
    UnsupportedKind,
)
from pkgbridge.pkgbridge_logger import PkgBridgeLogger
from pkgbridge.requirement_models import (
    BuildTarget,
    PackageRequirement,
    ResolvedPackage,
    TargetDescriptor,
    TargetKind,
)
from pkgbridge.requirement_resolver import CargoResolver, ForeignResolver

__all__ = [
    "BuildContext",
    "BuildFile",
    "BuildMode",
    "PkgBridgeConfig",
    "PkgBridgeLogger",
    "BuildTarget",
    "PackageRequirement",
    "ResolvedPackage",
    "TargetDescriptor",
    "TargetKind",
    "CargoResolver",
    "ForeignResolver",
    "PkgBridgeException",
    "BuildFileError",
    "DuplicateRequirement",
    "DuplicateTarget",
    "InvalidRequirement",
    "InvalidRequirementOption",
    "InvalidTarget",
    "ManifestUnreadable",
    "NoSources",
    "ResolutionFailed",
    "SourceNotFound",
    "UnknownRequirement",
    "UnknownTarget",
    "UnsupportedKind",
]
