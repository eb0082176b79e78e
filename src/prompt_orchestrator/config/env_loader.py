"""Environment variable configuration loading.

Reads PROMPT_ORCHESTRATOR_* variables through the settings schema so that
coercion (including the JSON-encoded selection table) happens in one place.
"""

import os
from typing import Any

from pydantic import ValidationError
from pydantic_settings import SettingsError

from .schema import ENV_PREFIX, OrchestratorSettings


class EnvironmentConfigLoader:
    """Loads configuration from PROMPT_ORCHESTRATOR_* environment variables."""

    def load_env_config(self) -> dict[str, Any]:
        """Load configuration values that are explicitly set in the environment.

        Returns:
            Dictionary of validated values for the fields present in the
            environment. Defaults are not included.

        Raises:
            ValueError: If environment variables contain invalid values.
        """
        present = self._present_variables()
        if not present:
            return {}

        try:
            settings = OrchestratorSettings()
        except (ValidationError, SettingsError) as e:
            listing = ", ".join(f"{k}={v}" for k, v in present.items())
            raise ValueError(
                f"Invalid environment variable values: {listing}. Error: {e}"
            ) from e

        # Fields populated from the environment are the explicitly set ones
        return {name: getattr(settings, name) for name in settings.model_fields_set}

    def get_env_summary(self) -> dict[str, str]:
        """Return the PROMPT_ORCHESTRATOR_* variables currently set."""
        return self._present_variables()

    def _present_variables(self) -> dict[str, str]:
        known = {f"{ENV_PREFIX}{name.upper()}" for name in OrchestratorSettings.model_fields}
        return {
            key: value
            for key, value in os.environ.items()
            if key.upper() in known
        }
