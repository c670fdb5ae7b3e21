"""Tests for the encapenum command line interface."""

import json
import tomllib
from pathlib import Path

import pytest
from typer.testing import CliRunner

from encapenum._cli.main import app

runner = CliRunner()

FLAGS = """
encap_enum! {
    /// Access flags.
    pub enum Flags: pub u8 {
        Read = 1,
        Write = 2,
        Both = Read | Write,
    }
}
"""


@pytest.fixture
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """A project directory without configuration, used as working directory."""
    (tmp_path / "pyproject.toml").write_text("[project]\nname = 'demo'\n")
    (tmp_path / "flags.encap").write_text(FLAGS)
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestGenerate:
    """Tests for the generate command."""

    def test_writes_module(self, project: Path) -> None:
        output = project / "out" / "flags.py"

        result = runner.invoke(app, ["generate", "flags.encap", "-o", str(output)])

        assert result.exit_code == 0, result.output
        source = output.read_text()
        assert "class Flags:" in source
        namespace: dict[str, object] = {"__name__": "flags"}
        exec(compile(source, str(output), "exec"), namespace)  # noqa: S102
        assert list(namespace["Flags"].iter()) == [1, 2, 3]  # type: ignore[attr-defined]

    def test_externals_file(self, project: Path) -> None:
        (project / "taken.encap").write_text(
            "pub enum TakenFlags: pub u32 { Omega = ::VALUE, Sigma = ::OTHER, Delta = (u32) VALUE + (u32) OTHER }",
        )
        (project / "externals.toml").write_text("[constants]\nVALUE = 56\nOTHER = 72\n")
        output = project / "taken.py"

        result = runner.invoke(
            app,
            ["generate", "taken.encap", "--externals", "externals.toml", "--strict", "-o", str(output)],
        )

        assert result.exit_code == 0, result.output
        assert "VariantConstant(128)" in output.read_text()

    def test_strict_without_value_fails(self, project: Path) -> None:
        (project / "taken.encap").write_text("enum T: u32 { A = (u32) VALUE }")

        result = runner.invoke(app, ["generate", "taken.encap", "--strict", "-o", "taken.py"])

        assert result.exit_code == 1
        assert "not defined" in result.output
        assert not (project / "taken.py").exists()

    def test_compile_error(self, project: Path) -> None:
        (project / "bad.encap").write_text("enum Color { Red, Green }")

        result = runner.invoke(app, ["generate", "bad.encap", "-o", "bad.py"])

        assert result.exit_code == 1
        assert "module wrapper" in result.output

    def test_missing_source(self, project: Path) -> None:
        result = runner.invoke(app, ["generate", "missing.encap", "-o", "x.py"])

        assert result.exit_code == 1
        assert "Cannot read" in result.output

    def test_config_externals(self, project: Path) -> None:
        (project / "pyproject.toml").write_text("[tool.encapenum]\nexternals = { VALUE = 5 }\n")
        (project / "t.encap").write_text("enum T: u8 { A = ::VALUE }")

        result = runner.invoke(app, ["generate", "t.encap", "-o", "t.py"])

        assert result.exit_code == 0, result.output
        assert "VariantConstant(5)" in (project / "t.py").read_text()


class TestCheck:
    """Tests for the check command."""

    def test_valid(self, project: Path) -> None:
        result = runner.invoke(app, ["check", "flags.encap"])

        assert result.exit_code == 0, result.output
        assert "Flags" in result.output
        assert "Declarations are valid" in result.output

    def test_invalid(self, project: Path) -> None:
        (project / "bad.encap").write_text("enum T { A = B, B = 1 }")

        result = runner.invoke(app, ["check", "bad.encap"])

        assert result.exit_code == 1
        assert "declared later" in result.output


class TestDescribe:
    """Tests for the describe command."""

    def test_json(self, project: Path) -> None:
        result = runner.invoke(app, ["describe", "flags.encap", "-o", "flags.json"])

        assert result.exit_code == 0, result.output
        data = json.loads((project / "flags.json").read_text())
        assert data["source"] == "flags.encap"
        assert [v["value"] for v in data["types"][0]["variants"]] == [1, 2, 3]

    def test_toml(self, project: Path) -> None:
        result = runner.invoke(app, ["describe", "flags.encap", "-o", "flags.toml"])

        assert result.exit_code == 0, result.output
        with (project / "flags.toml").open("rb") as f:
            data = tomllib.load(f)
        assert data["types"][0]["qualified_name"] == "Flags"
        assert data["types"][0]["has_new"] is True


class TestBuild:
    """Tests for the build command."""

    def test_builds_configured_sources(self, project: Path) -> None:
        (project / "pyproject.toml").write_text(
            """
[tool.encapenum]
sources = ["flags.encap", "decl/colors.encap"]
output_dir = "generated"
""",
        )
        (project / "decl").mkdir()
        (project / "decl" / "colors.encap").write_text("pub mod colors { pub enum Color: u8 { Red, Green } }")

        result = runner.invoke(app, ["build"])

        assert result.exit_code == 0, result.output
        assert (project / "generated" / "flags.py").is_file()
        assert "class _encap_enum_colors:" in (project / "generated" / "colors.py").read_text()

    def test_failure_writes_nothing(self, project: Path) -> None:
        (project / "pyproject.toml").write_text(
            "[tool.encapenum]\nsources = ['flags.encap', 'bad.encap']\noutput_dir = 'generated'\n",
        )
        (project / "bad.encap").write_text("enum A { X = 1, X = 2 }")

        result = runner.invoke(app, ["build"])

        assert result.exit_code == 1
        assert "duplicate variant" in result.output
        assert not (project / "generated").exists()

    def test_no_sources(self, project: Path) -> None:
        result = runner.invoke(app, ["build"])

        assert result.exit_code == 1
        assert "No sources configured" in result.output

    def test_invalid_config(self, project: Path) -> None:
        (project / "pyproject.toml").write_text("[tool.encapenum]\nsources = 'flags.encap'\n")

        result = runner.invoke(app, ["build"])

        assert result.exit_code == 1
        assert "expected a list of strings" in result.output
