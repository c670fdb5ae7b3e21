"""Configuration loading from pyproject.toml."""

import tomllib
from dataclasses import dataclass, field
from pathlib import Path


class ConfigError(Exception):
    """Error in encapenum configuration."""


@dataclass(slots=True, frozen=True)
class EncapEnumConfig:
    """Configuration loaded from the ``[tool.encapenum]`` table.

    All relative paths are resolved from the project root (directory containing pyproject.toml).
    """

    sources: tuple[Path, ...] = ()
    output_dir: Path | None = None
    externals: dict[str, int] = field(default_factory=dict)
    externals_file: Path | None = None
    strict_externals: bool = False
    preamble: tuple[str, ...] = ()
    project_root: Path | None = None


def find_pyproject_toml(start_dir: Path | None = None) -> Path | None:
    """Find pyproject.toml by walking up from start_dir.

    Args:
        start_dir: Starting directory. Defaults to current working directory.

    Returns:
        Path to pyproject.toml if found, None otherwise.

    """
    if start_dir is None:
        start_dir = Path.cwd()

    current = start_dir.resolve()

    while True:
        candidate = current / "pyproject.toml"
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def _resolve_path(value: object, key: str, project_root: Path) -> Path:
    if not isinstance(value, str):
        msg = f"Invalid [tool.encapenum].{key}: expected string path"
        raise ConfigError(msg)
    path = Path(value)
    if not path.is_absolute():
        path = project_root / path
    return path


def _parse_string_list(value: object, key: str) -> tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        msg = f"Invalid [tool.encapenum].{key}: expected a list of strings"
        raise ConfigError(msg)
    return tuple(value)


def _parse_externals(value: object) -> dict[str, int]:
    if not isinstance(value, dict):
        msg = "Invalid [tool.encapenum].externals: expected a table of integer constants"
        raise ConfigError(msg)
    externals: dict[str, int] = {}
    for name, constant in value.items():
        # bool is an int subclass but never a valid constant
        if not isinstance(constant, int) or isinstance(constant, bool):
            msg = f"Invalid [tool.encapenum].externals.{name}: expected integer"
            raise ConfigError(msg)
        externals[name] = constant
    return externals


def load_config(pyproject_path: Path) -> EncapEnumConfig:
    """Load and validate [tool.encapenum] config from pyproject.toml.

    Args:
        pyproject_path: Path to pyproject.toml

    Returns:
        Parsed EncapEnumConfig

    Raises:
        ConfigError: If the configuration is invalid

    """
    project_root = pyproject_path.parent

    with pyproject_path.open("rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            msg = f"Invalid TOML in {pyproject_path}: {e}"
            raise ConfigError(msg) from e

    section = data.get("tool", {}).get("encapenum", {})
    if not section:
        return EncapEnumConfig(project_root=project_root)

    known = {"sources", "output_dir", "externals", "externals_file", "strict_externals", "preamble"}
    unknown = sorted(set(section) - known)
    if unknown:
        msg = f"Unknown keys in [tool.encapenum]: {', '.join(unknown)}"
        raise ConfigError(msg)

    sources = tuple(
        _resolve_path(source, "sources", project_root)
        for source in _parse_string_list(section.get("sources", []), "sources")
    )

    output_dir = None
    if "output_dir" in section:
        output_dir = _resolve_path(section["output_dir"], "output_dir", project_root)

    externals_file = None
    if "externals_file" in section:
        externals_file = _resolve_path(section["externals_file"], "externals_file", project_root)

    strict = section.get("strict_externals", False)
    if not isinstance(strict, bool):
        msg = "Invalid [tool.encapenum].strict_externals: expected boolean"
        raise ConfigError(msg)

    return EncapEnumConfig(
        sources=sources,
        output_dir=output_dir,
        externals=_parse_externals(section.get("externals", {})),
        externals_file=externals_file,
        strict_externals=strict,
        preamble=_parse_string_list(section.get("preamble", []), "preamble"),
        project_root=project_root,
    )


def get_config(start_dir: Path | None = None) -> EncapEnumConfig:
    """Get config from pyproject.toml in the start directory or its parents.

    Returns:
        EncapEnumConfig (may be empty if no pyproject.toml or no [tool.encapenum] section)

    """
    pyproject_path = find_pyproject_toml(start_dir)
    if pyproject_path is None:
        return EncapEnumConfig()
    return load_config(pyproject_path)
