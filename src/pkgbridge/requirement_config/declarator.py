"""
Requirement declarator.

Records package requirements and owns their lazy, memoized resolution
through the foreign resolver of each requirement's ecosystem.
"""

import logging
import threading
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError

from pkgbridge.pkgbridge_config import PkgBridgeConfig
from pkgbridge.pkgbridge_exceptions import (
    DuplicateRequirement,
    InvalidRequirement,
    InvalidRequirementOption,
    PkgBridgeException,
    ResolutionFailed,
    UnknownRequirement,
)
from pkgbridge.pkgbridge_logger import PkgBridgeLogger
from pkgbridge.pkgbridge_utils import FileUtils
from pkgbridge.requirement_models import (
    PackageRequirement,
    RequirementOptions,
    ResolvedPackage,
)
from pkgbridge.requirement_resolver import ResolutionCache, ResolverRegistry


class ResolutionStatus:
    """Enumeration of resolution statuses."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class ResolutionState:
    """
    Current state of a requirement's resolution.
    """

    def __init__(
        self,
        requirement_name: str,
        status: str = ResolutionStatus.PENDING,
        manifest_digest: Optional[str] = None,
        error_message: Optional[str] = None,
    ):
        self.requirement_name = requirement_name
        self.status = status
        self.manifest_digest = manifest_digest
        self.error_message = error_message

    def is_resolved(self) -> bool:
        return self.status == ResolutionStatus.COMPLETED

    def __repr__(self) -> str:
        return (
            f"ResolutionState(name={self.requirement_name}, "
            f"status={self.status}, digest={self.manifest_digest})"
        )


class RequirementDeclarator:
    """
    Holds the requirements of one build context and resolves them on demand.

    Declaration is pure data entry: nothing touches the filesystem until a
    requirement is resolved. Each requirement is resolved at most once per
    invocation; the result is memoized in the ResolutionCache.
    """

    def __init__(
        self,
        config: PkgBridgeConfig,
        registry: ResolverRegistry,
        logger: PkgBridgeLogger,
        base_dir: str = ".",
        cache: Optional[ResolutionCache] = None,
    ):
        """
        Args:
            config: Configuration of the build invocation
            registry: Resolvers available to this declarator
            logger: Logger for progress and error messages
            base_dir: Directory relative manifest paths are resolved against
            cache: Memoization cache, a fresh one if omitted
        """
        self.config = config
        self.registry = registry
        self.logger = logger
        self.base_dir = base_dir
        self.cache = cache or ResolutionCache()
        self._requirements: Dict[str, PackageRequirement] = {}
        self._states: Dict[str, ResolutionState] = {}
        self._states_lock = threading.Lock()

    def declare(
        self,
        name: str,
        manifest_path: str,
        options: Optional[Mapping[str, Any]] = None,
    ) -> PackageRequirement:
        """
        Declare that requirement `name` is satisfied by the manifest at manifest_path.

        Raises:
            InvalidRequirement: If name is empty
            DuplicateRequirement: If name is already declared
            InvalidRequirementOption: If an option key is not a non-empty string
                or a recognised option has a malformed value
        """
        if not isinstance(name, str) or not name.strip():
            raise InvalidRequirement("Requirement name must be a non-empty string")
        if name in self._requirements:
            raise DuplicateRequirement(name)

        options = dict(options or {})
        for key in options:
            if not isinstance(key, str) or not key:
                raise InvalidRequirementOption(name, f"option key {key!r} is not a non-empty string")

        # cargo_toml is the manifest path under another name
        cargo_toml = options.get("cargo_toml")
        if not manifest_path and isinstance(cargo_toml, str):
            manifest_path = cargo_toml
        if not manifest_path:
            raise InvalidRequirement(f"Requirement '{name}' has no manifest path")

        try:
            parsed_options = RequirementOptions.model_validate(options)
        except ValidationError as e:
            raise InvalidRequirementOption(name, str(e)) from e

        requirement = PackageRequirement(
            name=name,
            manifest_path=FileUtils.resolve_path(self.base_dir, manifest_path),
            options=parsed_options,
        )
        self._requirements[name] = requirement
        self._set_state(name, ResolutionStatus.PENDING)

        self.logger.log(
            f"Declared requirement {name} -> {requirement.manifest_path}",
            logging.DEBUG,
        )
        return requirement

    def get_requirement(self, name: str) -> Optional[PackageRequirement]:
        return self._requirements.get(name)

    def requirements(self) -> List[PackageRequirement]:
        """All declared requirements in declaration order."""
        return list(self._requirements.values())

    def __contains__(self, name: str) -> bool:
        return name in self._requirements

    def resolve(self, name: str) -> ResolvedPackage:
        """
        Resolve requirement `name`, reusing the memoized resolution if there is one.

        Raises:
            UnknownRequirement: If name was never declared
            ManifestUnreadable: If the manifest is missing or malformed
            ResolutionFailed: If the resolver fails for any other reason
        """
        requirement = self._requirements.get(name)
        if requirement is None:
            raise UnknownRequirement(name)

        cached = self.cache.get(name)
        if cached is not None:
            self.logger.log(f"Reusing resolution of {name}", logging.DEBUG)
            return cached

        return self.cache.get_or_resolve(name, lambda: self._resolve_uncached(requirement))

    def _resolve_uncached(self, requirement: PackageRequirement) -> ResolvedPackage:
        name = requirement.name
        ecosystem = requirement.ecosystem or self.config.default_ecosystem
        resolver = self.registry.get(ecosystem)

        self._set_state(name, ResolutionStatus.IN_PROGRESS)
        self.logger.log(
            f"Resolving {name} from {requirement.manifest_path} with {ecosystem} resolver",
            logging.INFO,
        )

        try:
            if resolver is None:
                raise ResolutionFailed(
                    name,
                    f"no resolver registered for ecosystem '{ecosystem}' "
                    f"(available: {', '.join(self.registry.ecosystems()) or 'none'})",
                )
            resolved = resolver.resolve(
                name, requirement.manifest_path, requirement.options, self.config.mode
            )
        except ResolutionFailed as e:
            self._mark_failed(name, e)
            raise
        except PkgBridgeException as e:
            self._mark_failed(name, e)
            raise ResolutionFailed(name, e.message) from e
        except Exception as e:
            self._mark_failed(name, e)
            raise ResolutionFailed(name, e) from e

        self._set_state(name, ResolutionStatus.COMPLETED, manifest_digest=resolved.manifest_digest)
        self.logger.log(
            f"Resolved {name}: {len(resolved.include_paths)} include paths, "
            f"{len(resolved.link_artifacts)} link artifacts, {len(resolved.link_flags)} link flags",
            logging.INFO,
        )
        return resolved

    def _mark_failed(self, name: str, error: Exception) -> None:
        self._set_state(name, ResolutionStatus.FAILED, error_message=str(error))
        self.logger.log(f"Failed to resolve {name}: {error}", logging.ERROR)

    def invalidate(self, name: str) -> bool:
        """
        Drop the memoized resolution of `name` so the next resolve() re-runs the resolver.
        """
        dropped = self.cache.invalidate(name)
        if dropped:
            self._set_state(name, ResolutionStatus.PENDING)
            self.logger.log(f"Invalidated resolution of {name}", logging.INFO)
        return dropped

    def invalidate_changed(self) -> List[str]:
        """
        Drop every memoized resolution whose manifest changed (or vanished) since
        it was resolved. Resolutions without a manifest digest are kept.

        Returns:
            Names of the invalidated requirements
        """
        stale = []
        for name, resolved in self.cache.completed().items():
            # Resolvers that report no digest cannot be checked for changes
            if resolved.manifest_digest is None:
                continue
            requirement = self._requirements[name]
            try:
                digest = FileUtils.file_digest(requirement.manifest_path)
            except OSError:
                digest = None
            if digest != resolved.manifest_digest:
                stale.append(name)

        for name in stale:
            self.invalidate(name)
        return stale

    def _set_state(self, name: str, status: str, **kwargs) -> None:
        with self._states_lock:
            self._states[name] = ResolutionState(name, status, **kwargs)

    def get_resolution_state(self, name: str) -> Optional[ResolutionState]:
        with self._states_lock:
            return self._states.get(name)

    def get_resolution_states(self) -> Dict[str, ResolutionState]:
        with self._states_lock:
            return dict(self._states)

    def get_resolution_summary(self) -> dict:
        """
        Get a summary of resolution results.

        Returns:
            Dictionary with counts of completed, failed and pending resolutions
        """
        states = self.get_resolution_states().values()
        completed = sum(1 for s in states if s.status == ResolutionStatus.COMPLETED)
        failed = sum(1 for s in states if s.status == ResolutionStatus.FAILED)
        pending = sum(
            1 for s in states if s.status in (ResolutionStatus.PENDING, ResolutionStatus.IN_PROGRESS)
        )
        return {
            "completed": completed,
            "failed": failed,
            "pending": pending,
            "total": completed + failed + pending,
        }
