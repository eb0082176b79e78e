"""Configuration schema and validation using Pydantic.

This module defines the settings schema that validates and coerces
configuration values from the environment, files and programmatic overrides
into the correct types with proper defaults.
"""

from collections.abc import Mapping
import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from prompt_orchestrator.core.methods import ContextFlag, ImprovementMethod

ENV_PREFIX = "PROMPT_ORCHESTRATOR_"


def default_agent_selection() -> dict[ContextFlag, tuple[ImprovementMethod, ...]]:
    """Return the built-in context flag → method table."""
    return {
        ContextFlag.COMPLEX: (
            ImprovementMethod.GENERAL_OPTIMIZER,
            ImprovementMethod.LLM_COORDINATOR,
        ),
        ContextFlag.REACT: (ImprovementMethod.FRONTEND_SPECIALIST,),
        ContextFlag.FRONTEND: (ImprovementMethod.FRONTEND_SPECIALIST,),
        ContextFlag.API: (ImprovementMethod.API_EXPERT,),
        ContextFlag.BACKEND: (ImprovementMethod.API_EXPERT,),
        ContextFlag.DEFAULT: (ImprovementMethod.GENERAL_OPTIMIZER,),
    }


class OrchestratorOptions(BaseModel):
    """Validation schema for orchestrator configuration.

    Handles validation, type coercion and defaults for every operator-facing
    option. Never reads the environment; see `OrchestratorSettings`.
    """

    model_config = ConfigDict(extra="ignore")

    # --- Thresholds ---

    improvement_trigger: float = Field(
        default=70.0,
        ge=0,
        le=100,
        description="Scores below this value trigger candidate generation",
    )

    high_quality: float = Field(
        default=85.0,
        ge=0,
        le=100,
        description="Scores at or above this value count toward pattern learning",
    )

    pattern_extraction_min: int = Field(
        default=10,
        ge=1,
        description="High-quality history entries required before learning runs",
    )

    # --- Concurrency limits ---

    max_concurrent_agents: int = Field(
        default=5,
        ge=1,
        description="Upper bound on candidate generation calls per run",
    )

    timeout_ms: int = Field(
        default=5000,
        ge=1,
        description="Per-call time budget for the first generation attempt",
    )

    retry_on_failure: bool = Field(
        default=True,
        description="Retry a failed or timed-out generation once without a timeout",
    )

    # --- Selection and bookkeeping ---

    agent_selection: dict[ContextFlag, tuple[ImprovementMethod, ...]] = Field(
        default_factory=default_agent_selection,
        description="Context flag to ordered improvement method list",
    )

    history_capacity: int = Field(
        default=100,
        ge=1,
        description="Maximum number of history entries kept in memory",
    )

    record_initial: bool = Field(
        default=True,
        description="Record the incoming text during analysis",
    )

    fallback_recording: bool = Field(
        default=True,
        description="Record a fallback entry when analysis fails",
    )

    @field_validator("agent_selection", mode="before")
    @classmethod
    def parse_agent_selection(
        cls, v: Any
    ) -> dict[ContextFlag, tuple[ImprovementMethod, ...]]:
        """Parse the selection table from JSON text or a mapping of names."""
        if isinstance(v, str):
            try:
                v = json.loads(v)
            except json.JSONDecodeError as e:
                raise ValueError(f"agent_selection must be a JSON object: {e}") from e
        if not isinstance(v, Mapping):
            raise ValueError("agent_selection must be a mapping of flag -> methods")

        table: dict[ContextFlag, tuple[ImprovementMethod, ...]] = {}
        for raw_flag, raw_methods in v.items():
            flag = ContextFlag.parse(raw_flag)
            if isinstance(raw_methods, str):
                raw_methods = [m for m in raw_methods.split(",") if m.strip()]
            if not isinstance(raw_methods, list | tuple):
                raise ValueError(
                    f"agent_selection[{flag.value}] must be a list of methods"
                )
            table[flag] = tuple(ImprovementMethod.parse(m) for m in raw_methods)
        return table

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary suitable for SourceMap annotation."""
        return {name: getattr(self, name) for name in type(self).model_fields}


class OrchestratorSettings(OrchestratorOptions, BaseSettings):
    """Orchestrator options read from PROMPT_ORCHESTRATOR_* variables.

    ``agent_selection`` is given as a JSON object, for example
    ``{"default": ["general-optimizer"]}``.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=None,
        case_sensitive=False,
        extra="ignore",
    )


def field_defaults() -> dict[str, Any]:
    """Return schema defaults without consulting the environment."""
    return {
        name: info.get_default(call_default_factory=True)
        for name, info in OrchestratorOptions.model_fields.items()
    }
