"""
Tests for build contexts and pkgbridge.toml loading.
"""

import textwrap

import pytest

from pkgbridge.build_context import BuildContext, BuildFile
from pkgbridge.pkgbridge_config import BuildMode, PkgBridgeConfig
from pkgbridge.pkgbridge_exceptions import BuildFileError, DuplicateRequirement, NoSources
from pkgbridge.pkgbridge_utils import FileUtils
from pkgbridge.requirement_models import ResolvedPackage, TargetKind
from tests.test_utils import CountingResolver


BUILD_FILE = textwrap.dedent(
    """
    [build]
    mode = "debug"
    max_workers = 2
    default_ecosystem = "fake"

    [requires."fake::rsa"]
    manifest = "Cargo.toml"
    configs = { features = ["std"], lto = true }

    [targets.rsa]
    kind = "binary"
    files = ["src/main.rs"]
    packages = ["fake::rsa"]
    """
)


@pytest.fixture
def build_file(tmp_path):
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "main.rs").write_text("fn main() {}\n")
    path = tmp_path / "pkgbridge.toml"
    path.write_text(BUILD_FILE)
    return path


class TestBuildFile:
    """Tests for BuildFile parsing."""

    def test_load(self, build_file, tmp_path):
        loaded = BuildFile.load(str(build_file))

        assert loaded.base_dir == str(tmp_path)
        assert loaded.build["mode"] == "debug"
        assert [r.name for r in loaded.requires] == ["fake::rsa"]
        assert loaded.requires[0].configs == {"features": ["std"], "lto": True}
        assert loaded.targets[0].files == ["src/main.rs"]
        assert loaded.targets[0].packages == ["fake::rsa"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(BuildFileError):
            BuildFile.load(str(tmp_path / "pkgbridge.toml"))

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "pkgbridge.toml"
        path.write_text("[targets\n")
        with pytest.raises(BuildFileError):
            BuildFile.load(str(path))

    @pytest.mark.parametrize(
        "config_dict",
        [
            {"build": "release"},
            {"requires": {"rsa": "Cargo.toml"}},
            {"requires": {"rsa": {"manifest": "Cargo.toml", "configs": ["std"]}}},
            {"targets": {"rsa": {"kind": "binary", "files": {"a": 1}}}},
            {"targets": {"rsa": {"kind": "binary", "files": [1]}}},
            {"targets": {"rsa": {"kind": "binary", "files": ["a.rs"], "packages": [2]}}},
        ],
    )
    def test_malformed_sections(self, config_dict, tmp_path):
        with pytest.raises(BuildFileError):
            BuildFile.from_dict(config_dict, str(tmp_path))

    def test_single_strings_become_lists(self, tmp_path):
        loaded = BuildFile.from_dict(
            {"targets": {"rsa": {"files": "src/main.rs", "packages": "cargo::rsa"}}}, str(tmp_path)
        )
        assert loaded.targets[0].kind == "binary"
        assert loaded.targets[0].files == ["src/main.rs"]
        assert loaded.targets[0].packages == ["cargo::rsa"]


class TestBuildContext:
    """Tests for BuildContext."""

    def test_from_build_file(self, build_file, tmp_path, logger):
        resolver = CountingResolver(
            {"Cargo.toml": ResolvedPackage(link_artifacts=("librsa.a",), link_flags=("-lm",))}
        )
        context = BuildContext.from_build_file(str(build_file), logger=logger, resolvers=[resolver])

        assert context.config.mode == BuildMode.DEBUG
        assert context.config.max_workers == 2
        requirement = context.declarator.get_requirement("fake::rsa")
        assert requirement.manifest_path == str(tmp_path / "Cargo.toml")
        assert requirement.options.extra == {"lto": True}

        descriptors = context.finalize()

        rsa = descriptors["rsa"]
        assert rsa.kind == TargetKind.BINARY
        assert rsa.link_artifacts == ("librsa.a",)
        assert rsa.link_flags == ("-lm",)

    def test_overrides(self, build_file, logger):
        context = BuildContext.from_build_file(
            str(build_file),
            overrides={"mode": "release", "max_workers": None},
            logger=logger,
            resolvers=[CountingResolver()],
        )
        assert context.config.mode == BuildMode.RELEASE
        assert context.config.max_workers == 2

    def test_invalid_build_section(self, tmp_path, logger):
        path = tmp_path / "pkgbridge.toml"
        path.write_text('[build]\nmode = "fastest"\n')
        with pytest.raises(BuildFileError):
            BuildContext.from_build_file(str(path), logger=logger, resolvers=[])

    @pytest.mark.parametrize(
        "build_section",
        [
            'check_sources = "no"',
            'max_workers = "4"',
            "max_workers = true",
            "max_workers = 0",
        ],
    )
    def test_mistyped_build_settings(self, tmp_path, logger, build_section):
        path = tmp_path / "pkgbridge.toml"
        path.write_text(f"[build]\n{build_section}\n")
        with pytest.raises(BuildFileError):
            BuildContext.from_build_file(str(path), logger=logger, resolvers=[])

    def test_declaration_errors_surface_while_loading(self, tmp_path, logger):
        path = tmp_path / "pkgbridge.toml"
        path.write_text('[targets.rsa]\nkind = "binary"\nfiles = []\n')
        with pytest.raises(NoSources):
            BuildContext.from_build_file(str(path), logger=logger, resolvers=[])

    def test_contexts_are_isolated(self, make_context, resolver):
        first = make_context(resolver)
        second = make_context(resolver)

        first.declare("crypto", "crypto/Cargo.toml")
        second.declare("crypto", "crypto/Cargo.toml")
        with pytest.raises(DuplicateRequirement):
            first.declare("crypto", "crypto/Cargo.toml")

        first.define_target("app", "binary", ["main.x"])
        first.attach("app", "crypto")
        second.define_target("app", "binary", ["main.x"])
        second.attach("app", "crypto")

        first.finalize()
        second.finalize()

        # each context memoizes on its own
        assert resolver.call_count("crypto") == 2

    def test_manifest_change_triggers_re_resolution(self, make_context, tmp_path):
        manifest = tmp_path / "Cargo.toml"
        manifest.write_text('[package]\nname = "crypto"\n')

        class DigestResolver(CountingResolver):
            def resolve(self, name, manifest_path, options, mode):
                super().resolve(name, manifest_path, options, mode)
                with open(manifest_path) as f:
                    version = "2" if "version" in f.read() else "1"
                return ResolvedPackage(
                    link_artifacts=(f"libcrypto-{version}.a",),
                    manifest_digest=FileUtils.file_digest(manifest_path),
                )

        resolver = DigestResolver()
        context = make_context(resolver)
        context.declare("crypto", "Cargo.toml")
        context.define_target("app", "binary", ["main.x"])
        context.attach("app", "crypto")

        assert context.finalize()["app"].link_artifacts == ("libcrypto-1.a",)
        assert context.finalize()["app"].link_artifacts == ("libcrypto-1.a",)
        assert resolver.call_count("crypto") == 1

        manifest.write_text('[package]\nname = "crypto"\nversion = "2.0.0"\n')
        assert context.finalize()["app"].link_artifacts == ("libcrypto-2.a",)
        assert resolver.call_count("crypto") == 2

    def test_default_resolver_is_cargo(self, tmp_path):
        context = BuildContext(PkgBridgeConfig(cargo_target_dir=str(tmp_path)), base_dir=str(tmp_path))
        assert context.registry.ecosystems() == ["cargo"]
        assert context.registry.get("cargo").target_dir == str(tmp_path)


class TestPkgBridgeConfig:
    """Tests for PkgBridgeConfig validation."""

    def test_from_dict_ignores_unknown_keys(self):
        config = PkgBridgeConfig.from_dict({"mode": "DEBUG", "max_workers": 3, "colour": "blue"})
        assert config.mode == BuildMode.DEBUG
        assert config.max_workers == 3

    @pytest.mark.parametrize(
        "settings",
        [{"check_sources": "no"}, {"check_sources": 1}, {"max_workers": "4"}, {"max_workers": 2.5}],
    )
    def test_mistyped_values_are_rejected(self, settings):
        with pytest.raises(TypeError):
            PkgBridgeConfig(**settings)
