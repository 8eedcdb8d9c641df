"""
Data models for package requirements and build targets.

This package provides Pydantic data models for declaring requirements on
foreign packages, for the artifacts their resolution produces, and for the
build targets that consume them.
"""

from .requirement import (
    CrateType,
    PackageRequirement,
    RequirementOptions,
    ResolvedPackage,
)
from .target import (
    BuildTarget,
    TargetDescriptor,
    TargetKind,
)

__all__ = [
    # Requirements
    "CrateType",
    "PackageRequirement",
    "RequirementOptions",
    "ResolvedPackage",
    # Targets
    "BuildTarget",
    "TargetDescriptor",
    "TargetKind",
]
