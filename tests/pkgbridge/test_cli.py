"""
Tests for the pkgbridge command line.
"""

import json
import textwrap

import pytest
from typer.testing import CliRunner

from pkgbridge import cli
from pkgbridge.requirement_resolver import cargo
from tests.test_utils import FakeCargo, artifact_message, native_libs_message


runner = CliRunner()


@pytest.fixture
def project(tmp_path, cargo_project, monkeypatch):
    """The rsa project with a pkgbridge.toml mirroring its original build description."""
    manifest = str(cargo_project / "Cargo.toml")
    target_dir = tmp_path / "target"
    (cargo_project / "pkgbridge.toml").write_text(
        textwrap.dedent(
            f"""
            [build]
            mode = "release"
            cargo_target_dir = "{target_dir}"

            [requires."cargo::rsa"]
            manifest = "Cargo.toml"

            [targets.rsa]
            kind = "binary"
            files = ["src/main.rs"]
            packages = ["cargo::rsa"]
            """
        )
    )
    fake = FakeCargo(
        [
            native_libs_message(manifest, "-lpthread -ldl"),
            artifact_message(manifest, "rsa", [f"{target_dir}/release/librsa.a"], "staticlib"),
        ]
    )
    monkeypatch.setattr(cargo, "run_command", fake)
    return cargo_project, fake


class TestCli:
    """Tests for the typer application."""

    def test_finalize_prints_descriptors(self, project, tmp_path):
        cargo_project, fake = project

        result = runner.invoke(cli.app, ["finalize", str(cargo_project / "pkgbridge.toml")])

        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert payload["rsa"]["kind"] == "binary"
        assert payload["rsa"]["link_artifacts"] == [f"{tmp_path / 'target'}/release/librsa.a"]
        assert payload["rsa"]["link_flags"] == ["-lpthread", "-ldl"]
        assert "--release" in fake.commands[0]

    def test_mode_override(self, project):
        cargo_project, fake = project

        result = runner.invoke(
            cli.app, ["finalize", str(cargo_project / "pkgbridge.toml"), "--mode", "debug"]
        )

        assert result.exit_code == 0, result.output
        assert "--release" not in fake.commands[0]

    def test_failure_exits_with_error(self, tmp_path):
        build_file = tmp_path / "pkgbridge.toml"
        build_file.write_text(
            '[targets.app]\nkind = "binary"\nfiles = ["main.x"]\npackages = ["missing"]\n'
            '[build]\ncheck_sources = false\n'
        )

        result = runner.invoke(cli.app, ["finalize", str(build_file)])

        assert result.exit_code == 1
        assert "missing" in result.output

    def test_show_lists_configuration(self, project, monkeypatch):
        cargo_project, fake = project
        monkeypatch.setenv("COLUMNS", "300")

        result = runner.invoke(cli.app, ["show", str(cargo_project / "pkgbridge.toml")])

        assert result.exit_code == 0, result.output
        assert "cargo::rsa" in result.output
        assert "binary" in result.output
        assert fake.commands == []

    def test_unknown_target_exits_with_error(self, project):
        cargo_project, fake = project

        result = runner.invoke(
            cli.app, ["finalize", str(cargo_project / "pkgbridge.toml"), "--target", "nope"]
        )

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "nope" in result.output
        assert fake.commands == []

    def test_malformed_target_exits_with_error(self, tmp_path):
        build_file = tmp_path / "pkgbridge.toml"
        build_file.write_text('[targets.app]\nkind = "binary"\nfiles = [1]\n')

        result = runner.invoke(cli.app, ["finalize", str(build_file)])

        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "app" in result.output
