"""Configuration resolution with precedence handling.

Sources are merged in the documented precedence order:
Programmatic > Environment > Project file > Defaults
"""

import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .audit import SourceTracker
from .env_loader import EnvironmentConfigLoader
from .file_loader import ConfigFileError, FileConfigLoader
from .schema import ENV_PREFIX, OrchestratorOptions, field_defaults
from .types import ResolvedConfig

PROFILE_ENV_VAR = f"{ENV_PREFIX}PROFILE"


class ConfigResolver:
    """Resolves configuration from multiple sources with proper precedence."""

    def __init__(self) -> None:
        """Initialize the configuration resolver."""
        self.file_loader = FileConfigLoader()
        self.env_loader = EnvironmentConfigLoader()

    def resolve(
        self,
        programmatic: dict[str, Any] | None = None,
        *,
        profile: str | None = None,
        project_root: Path | None = None,
    ) -> ResolvedConfig:
        """Resolve configuration from all sources with proper precedence.

        Args:
            programmatic: Programmatic overrides (highest precedence).
            profile: Profile name to load from the project file. Falls back
                to PROMPT_ORCHESTRATOR_PROFILE when None.
            project_root: Directory to search for pyproject.toml.

        Returns:
            ResolvedConfig with merged values and source tracking.

        Raises:
            ValueError: If validation fails or an override names an unknown
                field.
            ConfigFileError: If the project file is malformed.
        """
        source_tracker = SourceTracker()
        merged_config: dict[str, Any] = {}

        if profile is None:
            profile = os.getenv(PROFILE_ENV_VAR)

        # Step 1: schema defaults
        for field, value in field_defaults().items():
            merged_config[field] = value
            source_tracker.set_origin(field, "default")

        # Step 2: project file
        project_config = self.file_loader.load_project_config(
            project_root=project_root, profile=profile
        )
        for field, value in project_config.items():
            if field in merged_config:  # Only override known fields
                merged_config[field] = value
                source_tracker.set_origin(field, "file")

        # Step 3: environment
        try:
            env_config = self.env_loader.load_env_config()
        except ValueError as e:
            raise ValueError(f"Environment configuration error: {e}") from e
        for field, value in env_config.items():
            merged_config[field] = value
            source_tracker.set_origin(field, "env")

        # Step 4: programmatic overrides
        if programmatic:
            unknown = sorted(set(programmatic) - set(merged_config))
            if unknown:
                raise ValueError(f"Unknown configuration fields: {unknown}")
            for field, value in programmatic.items():
                merged_config[field] = value
                source_tracker.set_origin(field, "programmatic")

        # Step 5: validate the merged values without re-reading the environment
        try:
            validated = OrchestratorOptions.model_validate(merged_config)
        except ValidationError as e:
            raise ValueError(f"Configuration validation failed: {e}") from e

        return ResolvedConfig(
            **validated.to_dict(),
            origin=source_tracker.get_source_map(),
        )

    def list_available_profiles(self, project_root: Path | None = None) -> list[str]:
        """List profiles defined in the project file."""
        return self.file_loader.list_available_profiles(project_root)


__all__ = ["ConfigFileError", "ConfigResolver", "PROFILE_ENV_VAR"]
