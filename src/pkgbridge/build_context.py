"""
Build context for one pkgbridge invocation.

A BuildContext owns the requirement declarator, the target binder and the
resolution cache of a single build invocation. Contexts share no state, so
several invocations can run side by side in one process.

The context can be populated programmatically or from a ``pkgbridge.toml``
build file:

```toml
[build]
mode = "release"
max_workers = 4

[requires."cargo::rsa"]
manifest = "Cargo.toml"
configs = { features = ["std"] }

[targets.rsa]
kind = "binary"
files = ["src/main.rs"]
packages = ["cargo::rsa"]
```
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

try:
    import tomllib
except ModuleNotFoundError:
    # Python < 3.11
    import tomli as tomllib

from pkgbridge.pkgbridge_config import PkgBridgeConfig
from pkgbridge.pkgbridge_exceptions import BuildFileError, PkgBridgeException
from pkgbridge.pkgbridge_logger import PkgBridgeLogger
from pkgbridge.requirement_config import RequirementDeclarator
from pkgbridge.requirement_models import BuildTarget, PackageRequirement, TargetDescriptor
from pkgbridge.requirement_resolver import (
    CargoResolver,
    ForeignResolver,
    ResolutionCache,
    ResolverRegistry,
)
from pkgbridge.target_binder import TargetBinder


BUILD_FILE_NAME = "pkgbridge.toml"


@dataclass
class RequirementEntry:
    """A [requires.<name>] table of the build file."""

    name: str
    manifest: str
    configs: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TargetEntry:
    """A [targets.<name>] table of the build file."""

    name: str
    kind: str
    files: List[str] = field(default_factory=list)
    packages: List[str] = field(default_factory=list)


@dataclass
class BuildFile:
    """Declarative configuration loaded from pkgbridge.toml."""

    base_dir: str
    build: Dict[str, Any] = field(default_factory=dict)
    requires: List[RequirementEntry] = field(default_factory=list)
    targets: List[TargetEntry] = field(default_factory=list)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any], base_dir: str) -> "BuildFile":
        """
        Create a BuildFile from a dictionary (loaded from TOML).

        Raises:
            BuildFileError: If a section has the wrong shape
        """
        build = config_dict.get("build", {})
        if not isinstance(build, dict):
            raise BuildFileError("[build] must be a table")

        requires = []
        requires_section = config_dict.get("requires", {})
        if not isinstance(requires_section, dict):
            raise BuildFileError("[requires] must be a table")
        for name, entry in requires_section.items():
            if not isinstance(entry, dict):
                raise BuildFileError(f"[requires.\"{name}\"] must be a table")
            configs = entry.get("configs", {})
            if not isinstance(configs, dict):
                raise BuildFileError(f"'configs' of requirement {name} must be a table")
            manifest = entry.get("manifest", "")
            if not isinstance(manifest, str):
                raise BuildFileError(f"'manifest' of requirement {name} must be a string")
            requires.append(RequirementEntry(name=name, manifest=manifest, configs=configs))

        targets = []
        targets_section = config_dict.get("targets", {})
        if not isinstance(targets_section, dict):
            raise BuildFileError("[targets] must be a table")
        for name, entry in targets_section.items():
            if not isinstance(entry, dict):
                raise BuildFileError(f"[targets.{name}] must be a table")
            files = entry.get("files", [])
            packages = entry.get("packages", [])
            if isinstance(files, str):
                files = [files]
            if isinstance(packages, str):
                packages = [packages]
            if not isinstance(files, list) or not isinstance(packages, list):
                raise BuildFileError(f"'files' and 'packages' of target {name} must be lists")
            if not all(isinstance(item, str) for item in files + packages):
                raise BuildFileError(f"'files' and 'packages' of target {name} must hold strings")
            targets.append(
                TargetEntry(
                    name=name,
                    kind=entry.get("kind", "binary"),
                    files=files,
                    packages=packages,
                )
            )

        return cls(base_dir=base_dir, build=build, requires=requires, targets=targets)

    @classmethod
    def load(cls, path: str) -> "BuildFile":
        """
        Load a build file. Relative paths inside it are relative to its directory.

        Raises:
            BuildFileError: If the file cannot be read or parsed
        """
        try:
            with open(path, "rb") as f:
                toml_dict = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
            raise BuildFileError(f"Failed to load build file {path}: {e}") from e
        return cls.from_dict(toml_dict, os.path.dirname(os.path.abspath(path)))


class BuildContext:
    """
    One build invocation: requirements, targets and their memoized resolutions.

    Example usage:
    ```python
    context = BuildContext(base_dir="/path/to/project")
    context.declare("cargo::rsa", "Cargo.toml")
    context.define_target("rsa", "binary", ["src/main.rs"])
    context.attach("rsa", "cargo::rsa")
    descriptors = context.finalize()
    ```
    """

    def __init__(
        self,
        config: Optional[PkgBridgeConfig] = None,
        logger: Optional[PkgBridgeLogger] = None,
        base_dir: Optional[str] = None,
        resolvers: Optional[List[ForeignResolver]] = None,
    ):
        """
        Args:
            config: Configuration of the invocation, defaults to PkgBridgeConfig()
            logger: Logger, a fresh PkgBridgeLogger if omitted
            base_dir: Project root for relative manifest and source paths
            resolvers: Resolvers to register, the cargo resolver if omitted
        """
        self.config = config or PkgBridgeConfig()
        self.logger = logger or PkgBridgeLogger()
        self.base_dir = os.path.abspath(base_dir or os.getcwd())

        if resolvers is None:
            resolvers = [
                CargoResolver(
                    self.logger,
                    target_dir=self.config.cargo_target_dir,
                    cargo_command=self.config.cargo_command,
                )
            ]
        self.registry = ResolverRegistry(resolvers)
        self.cache = ResolutionCache()
        self.declarator = RequirementDeclarator(
            self.config, self.registry, self.logger, self.base_dir, self.cache
        )
        self.binder = TargetBinder(self.config, self.logger, self.base_dir)

    @classmethod
    def from_build_file(
        cls,
        path: str,
        overrides: Optional[Mapping[str, Any]] = None,
        logger: Optional[PkgBridgeLogger] = None,
        resolvers: Optional[List[ForeignResolver]] = None,
    ) -> "BuildContext":
        """
        Create a context populated from a pkgbridge.toml build file.

        Args:
            path: Path of the build file
            overrides: Values overriding the [build] section (e.g. from the command line)
            logger: Logger, a fresh PkgBridgeLogger if omitted
            resolvers: Resolvers to register, the cargo resolver if omitted

        Raises:
            BuildFileError: If the build file is unreadable or malformed
            PkgBridgeException: If a declaration in it is invalid
        """
        build_file = BuildFile.load(path)
        build_settings = dict(build_file.build)
        build_settings.update({k: v for k, v in (overrides or {}).items() if v is not None})
        try:
            config = PkgBridgeConfig.from_dict(build_settings)
        except (TypeError, ValueError) as e:
            raise BuildFileError(f"Invalid [build] section in {path}: {e}") from e

        context = cls(config, logger, build_file.base_dir, resolvers)
        context.load(build_file)
        return context

    def load(self, build_file: BuildFile) -> None:
        """Declare every requirement and define every target of build_file."""
        for entry in build_file.requires:
            self.declare(entry.name, entry.manifest, entry.configs)
        for entry in build_file.targets:
            self.define_target(entry.name, entry.kind, entry.files)
            for package in entry.packages:
                self.attach(entry.name, package)
        self.logger.log(
            f"Loaded {len(build_file.requires)} requirements and "
            f"{len(build_file.targets)} targets from {build_file.base_dir}",
            logging.INFO,
        )

    def declare(
        self, name: str, manifest_path: str, options: Optional[Mapping[str, Any]] = None
    ) -> PackageRequirement:
        return self.declarator.declare(name, manifest_path, options)

    def define_target(self, name: str, kind: Any, sources: Sequence[str]) -> BuildTarget:
        return self.binder.define_target(name, kind, sources)

    def attach(self, target: Any, requirement_name: str) -> None:
        self.binder.attach(target, requirement_name)

    def detach(self, target: Any, requirement_name: str) -> bool:
        return self.binder.detach(target, requirement_name)

    def finalize(self, target_names: Optional[Sequence[str]] = None) -> Dict[str, TargetDescriptor]:
        """
        Finalize the build graph. See TargetBinder.finalize.

        Manifests that changed since a previous finalize() of this context are
        resolved again; unchanged ones reuse their memoized resolution.
        """
        self.declarator.invalidate_changed()
        try:
            return self.binder.finalize(self.declarator, target_names)
        except PkgBridgeException as e:
            summary = self.declarator.get_resolution_summary()
            self.logger.log(
                f"Build aborted: {e.message} (resolutions: {summary['completed']} completed, "
                f"{summary['failed']} failed, {summary['pending']} pending)",
                logging.ERROR,
            )
            raise
