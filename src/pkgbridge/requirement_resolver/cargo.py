"""
Cargo implementation of the foreign resolver.

Builds the library crate described by a Cargo.toml with ``cargo rustc`` and
reads the produced artifacts back from cargo's JSON message stream.
"""

import json
import logging
import os
import subprocess
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

try:
    import tomllib
except ModuleNotFoundError:
    # Python < 3.11
    import tomli as tomllib

from pkgbridge.pkgbridge_config import BuildMode
from pkgbridge.pkgbridge_exceptions import ManifestUnreadable, ResolutionFailed
from pkgbridge.pkgbridge_logger import PkgBridgeLogger
from pkgbridge.pkgbridge_settings import PkgBridgeSettings
from pkgbridge.pkgbridge_utils import FileUtils, SequenceUtils
from pkgbridge.requirement_models import CrateType, RequirementOptions, ResolvedPackage
from pkgbridge.requirement_resolver.base import ForeignResolver


NATIVE_STATIC_LIBS_PREFIX = "native-static-libs:"

ARTIFACT_SUFFIXES = {
    CrateType.STATICLIB: (".a", ".lib"),
    CrateType.RLIB: (".rlib",),
}


@dataclass
class CommandResult:
    """Outcome of running an external command."""

    returncode: int
    stdout: str
    stderr: str


CommandRunner = Callable[[List[str], Dict[str, str], str], CommandResult]


def run_command(cmd: List[str], env: Dict[str, str], cwd: str) -> CommandResult:
    """
    Runs cmd with the given environment and working directory, capturing its output.
    """
    proc = subprocess.run(cmd, env=env, cwd=cwd, capture_output=True, text=True)
    return CommandResult(proc.returncode, proc.stdout, proc.stderr)


@dataclass
class CargoManifest:
    """The parts of a Cargo.toml the resolver needs."""

    path: str
    package_name: str
    crate_name: str
    digest: str
    include: List[str]


class CargoResolver(ForeignResolver):
    """
    Resolves requirements whose manifest is a Cargo.toml.
    """

    ecosystem = "cargo"

    def __init__(
        self,
        logger: PkgBridgeLogger,
        target_dir: Optional[str] = None,
        cargo_command: str = "cargo",
        runner: Optional[CommandRunner] = None,
    ):
        """
        Args:
            logger: Logger for progress and error messages
            target_dir: Cargo target directory, defaults to the per-user cache
            cargo_command: The cargo executable
            runner: Runs a command; replaced in tests
        """
        self.logger = logger
        self.target_dir = target_dir
        self.cargo_command = cargo_command
        self.runner = runner or run_command

    def resolve(
        self,
        name: str,
        manifest_path: str,
        options: RequirementOptions,
        mode: BuildMode,
    ) -> ResolvedPackage:
        manifest = self.read_manifest(name, manifest_path)
        effective_mode = BuildMode(options.mode) if options.mode else mode

        cmd = self.build_command(manifest, options, effective_mode)
        env = dict(os.environ)
        env.update(options.env)

        self.logger.log(
            f"Running cargo for {name}: {' '.join(cmd)}",
            logging.DEBUG,
        )

        try:
            result = self.runner(cmd, env, os.path.dirname(manifest.path))
        except OSError as e:
            raise ResolutionFailed(name, f"could not run '{self.cargo_command}': {e}") from e

        messages = self._parse_messages(result.stdout)

        if result.returncode != 0:
            errors = [
                m["message"].get("rendered") or m["message"].get("message", "")
                for m in messages
                if m.get("reason") == "compiler-message"
                and m.get("message", {}).get("level") == "error"
            ]
            detail = "\n".join(errors) or result.stderr.strip()[-2000:]
            raise ResolutionFailed(
                name, f"cargo exited with status {result.returncode}: {detail}"
            )

        artifacts = self._collect_artifacts(manifest, options.crate_type, messages)
        if not artifacts:
            raise ResolutionFailed(
                name,
                f"cargo produced no {options.crate_type.value} artifact for crate '{manifest.crate_name}'",
            )

        if options.crate_type == CrateType.RLIB:
            link_flags = self._rlib_flags(manifest.crate_name, artifacts)
        else:
            link_flags = self._native_static_libs(messages)

        return ResolvedPackage(
            include_paths=self._include_paths(manifest, options),
            link_artifacts=tuple(artifacts),
            link_flags=link_flags,
            manifest_digest=manifest.digest,
        )

    def read_manifest(self, name: str, manifest_path: str) -> CargoManifest:
        """
        Reads and parses the Cargo.toml at manifest_path.

        Raises:
            ManifestUnreadable: If the file is missing, is not valid TOML or has no [package]
        """
        try:
            digest = FileUtils.file_digest(manifest_path)
            with open(manifest_path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
            raise ManifestUnreadable(name, manifest_path, e) from e

        package = data.get("package")
        if not isinstance(package, dict) or not isinstance(package.get("name"), str):
            raise ManifestUnreadable(name, manifest_path, "no [package] table with a name")

        lib = data.get("lib") if isinstance(data.get("lib"), dict) else {}
        crate_name = str(lib.get("name") or package["name"]).replace("-", "_")

        metadata = package.get("metadata", {})
        include = []
        if isinstance(metadata, dict) and isinstance(metadata.get("pkgbridge"), dict):
            include = [str(p) for p in metadata["pkgbridge"].get("include", [])]

        return CargoManifest(
            path=os.path.abspath(manifest_path),
            package_name=package["name"],
            crate_name=crate_name,
            digest=digest,
            include=include,
        )

    def build_command(
        self, manifest: CargoManifest, options: RequirementOptions, mode: BuildMode
    ) -> List[str]:
        target_dir = self.target_dir or PkgBridgeSettings.get_cargo_target_directory()
        cmd = [
            self.cargo_command,
            "rustc",
            "--lib",
            "--manifest-path",
            manifest.path,
            "--message-format=json",
            "--target-dir",
            target_dir,
        ]
        if mode == BuildMode.RELEASE:
            cmd.append("--release")
        if options.features:
            cmd.extend(["--features", ",".join(options.features)])
        if not options.default_features:
            cmd.append("--no-default-features")
        if options.target_triple:
            cmd.extend(["--target", options.target_triple])
        cmd.extend(["--crate-type", options.crate_type.value])
        if options.crate_type == CrateType.STATICLIB:
            cmd.extend(["--", "--print=native-static-libs"])
        return cmd

    @staticmethod
    def _parse_messages(stdout: str) -> List[Dict[str, Any]]:
        messages = []
        for line in stdout.splitlines():
            line = line.strip()
            if not line.startswith("{"):
                continue
            try:
                message = json.loads(line)
            except json.JSONDecodeError:
                continue
            if isinstance(message, dict):
                messages.append(message)
        return messages

    @staticmethod
    def _is_own_message(manifest: CargoManifest, message: Dict[str, Any]) -> bool:
        message_manifest = message.get("manifest_path")
        if message_manifest:
            return os.path.abspath(message_manifest) == manifest.path
        target = message.get("target") or {}
        return target.get("name", "").replace("-", "_") == manifest.crate_name

    def _collect_artifacts(
        self,
        manifest: CargoManifest,
        crate_type: CrateType,
        messages: List[Dict[str, Any]],
    ) -> List[str]:
        suffixes = ARTIFACT_SUFFIXES[crate_type]
        artifacts = []
        for message in messages:
            if message.get("reason") != "compiler-artifact":
                continue
            if not self._is_own_message(manifest, message):
                continue
            for filename in message.get("filenames", []):
                if filename.endswith(suffixes):
                    artifacts.append(filename)
        return SequenceUtils.ordered_unique(artifacts)

    @staticmethod
    def _native_static_libs(messages: List[Dict[str, Any]]) -> tuple:
        flags = []
        for message in messages:
            if message.get("reason") != "compiler-message":
                continue
            text = message.get("message", {}).get("message", "")
            if text.startswith(NATIVE_STATIC_LIBS_PREFIX):
                flags.extend(text[len(NATIVE_STATIC_LIBS_PREFIX):].split())
        return SequenceUtils.merge_unique(flags)

    @staticmethod
    def _rlib_flags(crate_name: str, artifacts: List[str]) -> tuple:
        rlib = artifacts[0]
        out_dir = os.path.dirname(rlib)
        deps_dir = out_dir if os.path.basename(out_dir) == "deps" else os.path.join(out_dir, "deps")
        # Single-token flags, so de-duplicating merged flags cannot split a pair
        return (f"-Ldependency={deps_dir}", f"--extern={crate_name}={rlib}")

    @staticmethod
    def _include_paths(manifest: CargoManifest, options: RequirementOptions) -> tuple:
        manifest_dir = os.path.dirname(manifest.path)
        paths = []
        default_include = os.path.join(manifest_dir, "include")
        if os.path.isdir(default_include):
            paths.append(default_include)
        for path in list(options.include_dirs) + manifest.include:
            paths.append(FileUtils.resolve_path(manifest_dir, path))
        return SequenceUtils.merge_unique(paths)
