"""Configuration management for the prompt orchestration pipeline.

Resolve-once, freeze-then-flow:

- OrchestratorSettings: validated schema (pydantic-settings)
- ResolvedConfig: merged configuration with audit metadata
- OrchestratorConfig: immutable configuration captured by each run
- SourceMap: origin of every resolved value
"""

from pathlib import Path
from typing import Any, Literal, overload

from .audit import SourceTracker, generate_telemetry_summary
from .file_loader import ConfigFileError, FileConfigLoader
from .resolver import PROFILE_ENV_VAR, ConfigResolver
from .schema import (
    ENV_PREFIX,
    OrchestratorOptions,
    OrchestratorSettings,
    default_agent_selection,
)
from .types import ConfigOrigin, OrchestratorConfig, ResolvedConfig, SourceMap

_resolver = ConfigResolver()


@overload
def resolve_config(
    overrides: dict[str, Any] | None = None,
    *,
    profile: str | None = None,
    project_root: Path | None = None,
    explain: Literal[False] = False,
) -> OrchestratorConfig: ...


@overload
def resolve_config(
    overrides: dict[str, Any] | None = None,
    *,
    profile: str | None = None,
    project_root: Path | None = None,
    explain: Literal[True],
) -> ResolvedConfig: ...


def resolve_config(
    overrides: dict[str, Any] | None = None,
    *,
    profile: str | None = None,
    project_root: Path | None = None,
    explain: bool = False,
) -> OrchestratorConfig | ResolvedConfig:
    """Resolve configuration from all sources with proper precedence.

    Precedence: Programmatic > Environment > Project file > Defaults.

    Args:
        overrides: Programmatic overrides (highest precedence).
        profile: Profile name under ``[tool.prompt_orchestrator.profiles]``.
            Falls back to PROMPT_ORCHESTRATOR_PROFILE when None.
        project_root: Directory to search for pyproject.toml. If None, the
            current directory and its parents are searched.
        explain: Return the `ResolvedConfig` with source tracking instead of
            the frozen configuration.

    Returns:
        The frozen `OrchestratorConfig`, or the `ResolvedConfig` when
        ``explain`` is true.

    Raises:
        ValueError: If validation fails or an override names an unknown field.
        ConfigFileError: If the project file is malformed.

    Example:
        config = resolve_config({"improvement_trigger": 60})
        print(resolve_config(explain=True).audit())
    """
    resolved = _resolver.resolve(
        programmatic=overrides, profile=profile, project_root=project_root
    )
    if explain:
        return resolved
    return resolved.to_frozen()


def list_available_profiles(project_root: Path | None = None) -> list[str]:
    """List the configuration profiles defined in the project file."""
    return _resolver.list_available_profiles(project_root)


__all__ = [
    "ENV_PREFIX",
    "PROFILE_ENV_VAR",
    "ConfigFileError",
    "ConfigOrigin",
    "ConfigResolver",
    "FileConfigLoader",
    "OrchestratorConfig",
    "OrchestratorOptions",
    "OrchestratorSettings",
    "ResolvedConfig",
    "SourceMap",
    "SourceTracker",
    "default_agent_selection",
    "generate_telemetry_summary",
    "list_available_profiles",
    "resolve_config",
]
