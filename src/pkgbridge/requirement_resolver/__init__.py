"""
Foreign package resolution.

This package handles:
1. The resolver interface and the per-ecosystem registry
2. Resolving Cargo manifests into link artifacts
3. Memoizing resolutions for the duration of a build invocation
"""

from .base import ForeignResolver, ResolverRegistry
from .cache import ResolutionCache
from .cargo import CargoResolver, CommandResult

__all__ = [
    "ForeignResolver",
    "ResolverRegistry",
    "ResolutionCache",
    "CargoResolver",
    "CommandResult",
]
