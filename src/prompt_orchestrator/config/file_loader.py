"""File-based configuration loading with profile support.

Configuration may live in the ``[tool.prompt_orchestrator]`` table of the
nearest ``pyproject.toml``; named profiles live under
``[tool.prompt_orchestrator.profiles.<name>]``.
"""

from pathlib import Path
import tomllib
from typing import Any

TOOL_SECTION = "prompt_orchestrator"


class ConfigFileError(Exception):
    """Raised when configuration file loading fails."""

    def __init__(
        self, file_path: Path, message: str, cause: Exception | None = None
    ) -> None:
        """Initialize with file path, message, and optional cause."""
        self.file_path = file_path
        self.message = message
        self.cause = cause
        super().__init__(f"Config file error in {file_path}: {message}")


class FileConfigLoader:
    """Loads configuration from pyproject.toml with profile support."""

    def load_project_config(
        self, project_root: Path | None = None, profile: str | None = None
    ) -> dict[str, Any]:
        """Load configuration from pyproject.toml in or above the project root.

        Args:
            project_root: Directory to start the upward search from. If None,
                the current directory is used.
            profile: Optional profile name under ``profiles``. If None, the
                base table is returned.

        Returns:
            Dictionary of configuration values. Empty when no file or section
            exists.

        Raises:
            ConfigFileError: If the file cannot be parsed or the profile is
                missing.
        """
        pyproject_path = self._find_pyproject_toml(project_root)
        if not pyproject_path:
            return {}

        section = self._read_section(pyproject_path)
        if not section:
            return {}

        if profile:
            profiles = section.get("profiles", {})
            if profile not in profiles:
                available = list(profiles.keys()) if profiles else []
                raise ConfigFileError(
                    pyproject_path,
                    f"Profile '{profile}' not found. Available profiles: {available}",
                )
            return dict(profiles[profile])
        config = dict(section)
        config.pop("profiles", None)
        return config

    def list_available_profiles(self, project_root: Path | None = None) -> list[str]:
        """List the profile names defined in the project file."""
        pyproject_path = self._find_pyproject_toml(project_root)
        if not pyproject_path:
            return []
        try:
            section = self._read_section(pyproject_path)
        except ConfigFileError:
            return []
        return list(section.get("profiles", {}).keys())

    def _read_section(self, pyproject_path: Path) -> dict[str, Any]:
        try:
            with pyproject_path.open(mode="rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigFileError(
                pyproject_path, f"Failed to parse TOML: {e}", cause=e
            ) from e
        section = data.get("tool", {}).get(TOOL_SECTION, {})
        if not isinstance(section, dict):
            raise ConfigFileError(
                pyproject_path, f"[tool.{TOOL_SECTION}] must be a table"
            )
        return section

    def _find_pyproject_toml(self, start_dir: Path | None = None) -> Path | None:
        """Find pyproject.toml by searching up the directory tree."""
        current = Path(start_dir if start_dir is not None else Path.cwd()).resolve()
        while current != current.parent:
            candidate = current / "pyproject.toml"
            if candidate.exists():
                return candidate
            current = current.parent
        return None
