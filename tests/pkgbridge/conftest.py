"""
Shared fixtures for pkgbridge tests.
"""

import pytest

from pkgbridge.build_context import BuildContext
from pkgbridge.pkgbridge_config import PkgBridgeConfig
from pkgbridge.pkgbridge_logger import PkgBridgeLogger
from pkgbridge.requirement_resolver import ForeignResolver
from tests.test_utils import CountingResolver


@pytest.fixture
def logger():
    return PkgBridgeLogger()


@pytest.fixture
def resolver():
    return CountingResolver()


@pytest.fixture
def make_context(tmp_path, logger):
    """Factory for isolated build contexts rooted at tmp_path that use the fake ecosystem."""

    def _make(resolver: ForeignResolver, **config) -> BuildContext:
        settings = {"default_ecosystem": "fake", "check_sources": False}
        settings.update(config)
        return BuildContext(
            config=PkgBridgeConfig(**settings),
            logger=logger,
            base_dir=str(tmp_path),
            resolvers=[resolver],
        )

    return _make


@pytest.fixture
def cargo_project(tmp_path):
    """A minimal crate named rsa with a library and a binary."""
    project = tmp_path / "rsa"
    (project / "src").mkdir(parents=True)
    (project / "src" / "lib.rs").write_text("pub fn keygen() {}\n")
    (project / "src" / "main.rs").write_text("fn main() {}\n")
    manifest = project / "Cargo.toml"
    manifest.write_text(
        '[package]\nname = "rsa"\nversion = "0.1.0"\nedition = "2021"\n\n'
        '[dependencies]\nnum-bigint = "0.4"\n'
    )
    return project
