"""
Foreign resolver interface and the registry that selects a resolver per ecosystem.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from pkgbridge.pkgbridge_config import BuildMode
from pkgbridge.requirement_models import RequirementOptions, ResolvedPackage


class ForeignResolver(ABC):
    """
    Turns a foreign manifest and its options into compile and link artifacts.

    Implementations must be deterministic for a fixed manifest and option set,
    and must not share mutable state between calls: resolutions of distinct
    requirements may run concurrently.
    """

    ecosystem: str = ""

    @abstractmethod
    def resolve(
        self,
        name: str,
        manifest_path: str,
        options: RequirementOptions,
        mode: BuildMode,
    ) -> ResolvedPackage:
        """
        Resolve the package described by the manifest at manifest_path.

        Args:
            name: Requirement name, used in error reports
            manifest_path: Absolute path to the foreign manifest
            options: Options of the requirement
            mode: Build mode of the invocation (options.mode takes precedence)

        Raises:
            ManifestUnreadable: If the manifest is missing or malformed
            ResolutionFailed: For any other resolution failure
        """


class ResolverRegistry:
    """
    Maps ecosystem names (the ``cargo`` in ``cargo::rsa``) to resolvers.
    """

    def __init__(self, resolvers: Optional[List[ForeignResolver]] = None):
        self._resolvers: Dict[str, ForeignResolver] = {}
        for resolver in resolvers or []:
            self.register(resolver)

    def register(self, resolver: ForeignResolver, ecosystem: Optional[str] = None) -> None:
        key = ecosystem or resolver.ecosystem
        if not key:
            raise ValueError(f"Resolver {resolver!r} does not name an ecosystem")
        self._resolvers[key] = resolver

    def get(self, ecosystem: str) -> Optional[ForeignResolver]:
        return self._resolvers.get(ecosystem)

    def ecosystems(self) -> List[str]:
        return sorted(self._resolvers.keys())
