"""Tests for the configuration module."""

from pathlib import Path

import pytest

from encapenum._cli.config import (
    ConfigError,
    EncapEnumConfig,
    find_pyproject_toml,
    get_config,
    load_config,
)


class TestFindPyprojectToml:
    """Tests for find_pyproject_toml function."""

    def test_finds_in_current_directory(self, tmp_path: Path) -> None:
        """Should find pyproject.toml in current directory."""
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text("[project]\nname = 'test'\n")

        result = find_pyproject_toml(tmp_path)

        assert result == pyproject

    def test_finds_in_parent_directory(self, tmp_path: Path) -> None:
        """Should find pyproject.toml in parent directory."""
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text("[project]\nname = 'test'\n")

        subdir = tmp_path / "src" / "pkg"
        subdir.mkdir(parents=True)

        result = find_pyproject_toml(subdir)

        assert result == pyproject

    def test_returns_none_when_not_found(self, tmp_path: Path) -> None:
        """Should return None when no pyproject.toml is found."""
        result = find_pyproject_toml(tmp_path)

        assert result is None


class TestLoadConfig:
    """Tests for loading [tool.encapenum]."""

    def test_full_config(self, tmp_path: Path) -> None:
        """Should parse every key and resolve paths from the project root."""
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text(
            """
[tool.encapenum]
sources = ["decl/flags.encap", "/abs/other.encap"]
output_dir = "generated"
externals = { VALUE = 56, OTHER = 72 }
externals_file = "externals.toml"
strict_externals = true
preamble = ["from consts import LIMIT"]
""",
        )

        config = load_config(pyproject)

        assert config.sources == (tmp_path / "decl" / "flags.encap", Path("/abs/other.encap"))
        assert config.output_dir == tmp_path / "generated"
        assert config.externals == {"VALUE": 56, "OTHER": 72}
        assert config.externals_file == tmp_path / "externals.toml"
        assert config.strict_externals is True
        assert config.preamble == ("from consts import LIMIT",)
        assert config.project_root == tmp_path

    def test_missing_section(self, tmp_path: Path) -> None:
        """Should return an empty config without [tool.encapenum]."""
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text("[project]\nname = 'test'\n")

        config = load_config(pyproject)

        assert config == EncapEnumConfig(project_root=tmp_path)

    def test_invalid_toml(self, tmp_path: Path) -> None:
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text("[tool.encapenum\n")

        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_config(pyproject)

    def test_unknown_key(self, tmp_path: Path) -> None:
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text("[tool.encapenum]\noutput = 'x'\n")

        with pytest.raises(ConfigError, match="Unknown keys"):
            load_config(pyproject)

    @pytest.mark.parametrize(
        ("body", "message"),
        [
            ("sources = 'one.encap'", "sources: expected a list of strings"),
            ("sources = [1]", "sources: expected a list of strings"),
            ("output_dir = 3", "output_dir: expected string path"),
            ("externals = { VALUE = 'x' }", "externals.VALUE: expected integer"),
            ("externals = { FLAG = true }", "externals.FLAG: expected integer"),
            ("externals = 5", "externals: expected a table"),
            ("strict_externals = 'yes'", "strict_externals: expected boolean"),
            ("preamble = 'import x'", "preamble: expected a list of strings"),
        ],
    )
    def test_invalid_values(self, tmp_path: Path, body: str, message: str) -> None:
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text(f"[tool.encapenum]\n{body}\n")

        with pytest.raises(ConfigError, match=message):
            load_config(pyproject)


class TestGetConfig:
    """Tests for get_config."""

    def test_without_pyproject(self, tmp_path: Path) -> None:
        assert get_config(tmp_path) == EncapEnumConfig()

    def test_from_subdirectory(self, tmp_path: Path) -> None:
        (tmp_path / "pyproject.toml").write_text("[tool.encapenum]\noutput_dir = 'out'\n")
        subdir = tmp_path / "decl"
        subdir.mkdir()

        assert get_config(subdir).output_dir == tmp_path / "out"
