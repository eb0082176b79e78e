"""Core configuration data types for the orchestration pipeline.

Configuration follows a resolve-once, freeze-then-flow pattern: sources are
merged into a `ResolvedConfig` carrying audit metadata, which is then frozen
into the `OrchestratorConfig` that phase handlers read.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Literal, NamedTuple

from pydantic import ValidationError

from prompt_orchestrator.core.methods import ContextFlag, ImprovementMethod

from .schema import ENV_PREFIX, OrchestratorOptions, default_agent_selection

# --- Source Tracking Types ---

ConfigOrigin = Literal["programmatic", "env", "file", "default"]
SourceMap = Mapping[str, ConfigOrigin]

type SelectionTable = Mapping[ContextFlag, tuple[ImprovementMethod, ...]]

FIELD_ORDER: tuple[str, ...] = (
    "improvement_trigger",
    "high_quality",
    "pattern_extraction_min",
    "max_concurrent_agents",
    "timeout_ms",
    "retry_on_failure",
    "agent_selection",
    "history_capacity",
    "record_initial",
    "fallback_recording",
)


def _format_value(value: Any) -> str:
    if isinstance(value, Mapping):
        parts = [
            f"{getattr(k, 'value', k)}=[{','.join(getattr(m, 'value', str(m)) for m in v)}]"
            for k, v in value.items()
        ]
        return "{" + "; ".join(parts) + "}"
    return str(value)


# --- Core Configuration Data ---


class ResolvedConfig(NamedTuple):
    """Configuration after resolution from all sources, before freezing.

    Includes the origin of every field for audit purposes. Logically
    immutable; `with_overrides` returns a new instance.
    """

    improvement_trigger: float
    high_quality: float
    pattern_extraction_min: int
    max_concurrent_agents: int
    timeout_ms: int
    retry_on_failure: bool
    agent_selection: SelectionTable
    history_capacity: int
    record_initial: bool
    fallback_recording: bool

    # Audit metadata - tracks where each field value came from
    origin: SourceMap

    def to_frozen(self) -> "OrchestratorConfig":
        """Convert to the immutable configuration used in the pipeline."""
        values = self._asdict()
        values.pop("origin")
        return OrchestratorConfig(**values)

    def with_overrides(self, **overrides: object) -> "ResolvedConfig":
        """Create a new ResolvedConfig with programmatic overrides applied.

        Unknown fields are ignored. Values are not re-validated here; use
        `resolve_config(overrides=...)` when validation is required.
        """
        new_values = self._asdict()
        new_origin = dict(self.origin)
        for name, value in overrides.items():
            if name in FIELD_ORDER:
                new_values[name] = value
                new_origin[name] = "programmatic"
        new_values["origin"] = new_origin
        return ResolvedConfig(**new_values)

    def audit(self) -> str:
        """Generate a report showing the origin of each field."""
        lines = []
        for name in FIELD_ORDER:
            if name not in self.origin:
                continue
            origin = self.origin[name]
            value = _format_value(getattr(self, name))
            if origin == "env":
                lines.append(f"{name}: env:{ENV_PREFIX}{name.upper()}={value}")
            else:
                lines.append(f"{name}: {origin}:{value}")
        return "\n".join(lines)


@dataclass(frozen=True)
class OrchestratorConfig:
    """Immutable configuration captured by each orchestration run.

    Any attempt to modify this object raises. Updating configuration at
    runtime means building a new instance; runs already in flight keep the
    instance they started with.
    """

    improvement_trigger: float = 70.0
    high_quality: float = 85.0
    pattern_extraction_min: int = 10
    max_concurrent_agents: int = 5
    timeout_ms: int = 5000
    retry_on_failure: bool = True
    agent_selection: SelectionTable = field(default_factory=default_agent_selection)
    history_capacity: int = 100
    record_initial: bool = True
    fallback_recording: bool = True

    def __post_init__(self) -> None:
        """Validate every field and freeze the selection table."""
        values = {name: getattr(self, name) for name in FIELD_ORDER}
        try:
            options = OrchestratorOptions.model_validate(values)
        except ValidationError as e:
            raise ValueError(f"Invalid orchestrator configuration: {e}") from e
        for name, value in options.to_dict().items():
            if name == "agent_selection":
                value = MappingProxyType(dict(value))
            object.__setattr__(self, name, value)

    @property
    def timeout_seconds(self) -> float:
        """Per-call time budget expressed in seconds."""
        return self.timeout_ms / 1000.0

    def evolve(self, **overrides: Any) -> "OrchestratorConfig":
        """Return a validated copy with ``overrides`` applied.

        Raises:
            ValueError: If a field is unknown or a value fails validation.
        """
        unknown = sorted(set(overrides) - set(FIELD_ORDER))
        if unknown:
            raise ValueError(f"Unknown configuration fields: {unknown}")
        return replace(self, **overrides)
