"""
Target binder.

Defines build targets, attaches requirement names to them, and finalizes
them into TargetDescriptor objects carrying the merged artifacts of every
attached requirement.
"""

import logging
import os
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import ValidationError

from pkgbridge.pkgbridge_config import PkgBridgeConfig
from pkgbridge.pkgbridge_exceptions import (
    DuplicateTarget,
    InvalidTarget,
    NoSources,
    SourceNotFound,
    UnknownRequirement,
    UnknownTarget,
    UnsupportedKind,
)
from pkgbridge.pkgbridge_logger import PkgBridgeLogger
from pkgbridge.pkgbridge_utils import FileUtils, SequenceUtils
from pkgbridge.requirement_config import RequirementDeclarator
from pkgbridge.requirement_models import (
    BuildTarget,
    ResolvedPackage,
    TargetDescriptor,
    TargetKind,
)


class TargetBinder:
    """
    Holds the targets of one build context.

    Attaching a requirement only records its name. Names are checked and
    resolved during finalize(), which either returns a descriptor for every
    target or raises without exposing any of them.
    """

    def __init__(
        self,
        config: PkgBridgeConfig,
        logger: PkgBridgeLogger,
        base_dir: str = ".",
    ):
        """
        Args:
            config: Configuration of the build invocation
            logger: Logger for progress and error messages
            base_dir: Directory relative source paths are resolved against
        """
        self.config = config
        self.logger = logger
        self.base_dir = base_dir
        self._targets: Dict[str, BuildTarget] = {}

    def define_target(self, name: str, kind: Any, sources: Sequence[str]) -> BuildTarget:
        """
        Define a new target.

        Raises:
            DuplicateTarget: If a target with that name exists
            UnsupportedKind: If kind is not binary, static or shared
            NoSources: If sources is empty
            InvalidTarget: If a source is not a string
        """
        if name in self._targets:
            raise DuplicateTarget(name)

        try:
            target_kind = TargetKind.parse(kind)
        except ValueError as e:
            raise UnsupportedKind(name, kind) from e

        if isinstance(sources, str):
            sources = [sources]
        sources = list(sources or [])
        if not sources:
            raise NoSources(name)

        try:
            target = BuildTarget(name=name, kind=target_kind, sources=sources)
        except ValidationError as e:
            raise InvalidTarget(name, str(e)) from e
        self._targets[name] = target
        self.logger.log(
            f"Defined {target_kind.value} target {name} with {len(sources)} sources",
            logging.DEBUG,
        )
        return target

    def _lookup(self, target: Union[str, BuildTarget]) -> BuildTarget:
        name = target.name if isinstance(target, BuildTarget) else target
        found = self._targets.get(name)
        if found is None:
            raise UnknownTarget(name)
        return found

    def attach(self, target: Union[str, BuildTarget], requirement_name: str) -> None:
        """
        Record requirement_name on target. The name is checked at finalization.
        """
        build_target = self._lookup(target)
        if build_target.add_requirement(requirement_name):
            self.logger.log(
                f"Attached {requirement_name} to target {build_target.name}",
                logging.DEBUG,
            )

    def detach(self, target: Union[str, BuildTarget], requirement_name: str) -> bool:
        build_target = self._lookup(target)
        removed = build_target.remove_requirement(requirement_name)
        if removed:
            self.logger.log(
                f"Detached {requirement_name} from target {build_target.name}",
                logging.DEBUG,
            )
        return removed

    def get_target(self, name: str) -> Optional[BuildTarget]:
        return self._targets.get(name)

    def targets(self) -> List[BuildTarget]:
        """All defined targets in definition order."""
        return list(self._targets.values())

    def finalize(
        self,
        declarator: RequirementDeclarator,
        target_names: Optional[Sequence[str]] = None,
    ) -> Dict[str, TargetDescriptor]:
        """
        Resolve every attached requirement and merge its artifacts into each target.

        Args:
            declarator: The declarator holding the attached requirements
            target_names: Restrict finalization to these targets (all if None)

        Returns:
            Dictionary mapping target names to descriptors, in definition order

        Raises:
            UnknownTarget: If target_names names an undefined target
            SourceNotFound: If check_sources is enabled and a source is missing
            UnknownRequirement: If a target references an undeclared requirement
            ResolutionFailed: If any requirement fails to resolve
        """
        if target_names is None:
            selected = self.targets()
        else:
            selected = [self._lookup(name) for name in target_names]

        self._check(declarator, selected)

        required = SequenceUtils.ordered_unique(
            name for target in selected for name in target.requirements
        )
        resolved = self._resolve_all(declarator, required)

        descriptors = {}
        for target in selected:
            descriptors[target.name] = self._merge(target, resolved)

        self.logger.log(
            f"Finalized {len(descriptors)} targets using {len(required)} requirements",
            logging.INFO,
        )
        return descriptors

    def _check(self, declarator: RequirementDeclarator, selected: List[BuildTarget]) -> None:
        # Every configuration error is reported before any resolver runs
        if self.config.check_sources:
            for target in selected:
                for source in target.sources:
                    if not os.path.exists(FileUtils.resolve_path(self.base_dir, source)):
                        raise SourceNotFound(target.name, source)

        for target in selected:
            for requirement_name in target.requirements:
                if requirement_name not in declarator:
                    self.logger.log(
                        f"Target {target.name} references unknown requirement {requirement_name}",
                        logging.ERROR,
                    )
                    raise UnknownRequirement(requirement_name, target.name)

    def _resolve_all(
        self, declarator: RequirementDeclarator, names: List[str]
    ) -> Dict[str, ResolvedPackage]:
        if self.config.max_workers <= 1 or len(names) <= 1:
            return {name: declarator.resolve(name) for name in names}

        with ThreadPoolExecutor(
            max_workers=min(self.config.max_workers, len(names)),
            thread_name_prefix="pkgbridge-resolve",
        ) as executor:
            futures = {name: executor.submit(declarator.resolve, name) for name in names}
            done, not_done = wait(futures.values(), return_when=FIRST_EXCEPTION)
            for future in not_done:
                future.cancel()
            # Raise the failure of the first failing requirement in attachment order
            for name in names:
                future = futures[name]
                if future in done and future.exception() is not None:
                    raise future.exception()
            return {name: futures[name].result() for name in names}

    @staticmethod
    def _merge(target: BuildTarget, resolved: Dict[str, ResolvedPackage]) -> TargetDescriptor:
        packages = [resolved[name] for name in target.requirements]
        return TargetDescriptor(
            name=target.name,
            kind=target.kind,
            sources=tuple(target.sources),
            requirements=tuple(target.requirements),
            include_paths=SequenceUtils.merge_unique(*(p.include_paths for p in packages)),
            link_artifacts=SequenceUtils.merge_unique(*(p.link_artifacts for p in packages)),
            link_flags=SequenceUtils.merge_unique(*(p.link_flags for p in packages)),
        )
