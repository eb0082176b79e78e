"""In-memory registry mapping improvement methods to candidate generators.

The registry is owned by the orchestrator. It holds no state beyond the
mapping and performs no I/O; it also satisfies the `CandidateGenerator`
protocol by dispatching on the requested method.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

from prompt_orchestrator.core.exceptions import UnknownMethodError
from prompt_orchestrator.core.methods import ImprovementMethod

if TYPE_CHECKING:
    from prompt_orchestrator.collaborators.base import CandidateGenerator
    from prompt_orchestrator.core.types import Context, ImprovementCandidate


class GeneratorRegistry:
    """Maps each `ImprovementMethod` to the generator that implements it.

    A fallback generator, when given, serves every method without an explicit
    registration.
    """

    def __init__(
        self,
        generators: Mapping[ImprovementMethod | str, CandidateGenerator] | None = None,
        *,
        fallback: CandidateGenerator | None = None,
    ) -> None:
        """Initialize with optional explicit registrations and a fallback."""
        self._generators: dict[ImprovementMethod, CandidateGenerator] = {}
        self._fallback = fallback
        for method, generator in (generators or {}).items():
            self.register(method, generator)

    def register(
        self, method: ImprovementMethod | str, generator: CandidateGenerator
    ) -> None:
        """Associate a method with a generator, replacing any previous one."""
        self._generators[ImprovementMethod.parse(method)] = generator

    def get(self, method: ImprovementMethod) -> CandidateGenerator:
        """Return the generator for ``method``.

        Raises:
            UnknownMethodError: If neither a registration nor a fallback exists.
        """
        generator = self._generators.get(method, self._fallback)
        if generator is None:
            raise UnknownMethodError(
                f"No candidate generator registered for method '{method.value}'"
            )
        return generator

    def supports(self, method: ImprovementMethod) -> bool:
        """Return True when ``method`` can be served."""
        return self._fallback is not None or method in self._generators

    def missing(self, methods: Iterable[ImprovementMethod]) -> tuple[ImprovementMethod, ...]:
        """Return the methods in ``methods`` that cannot be served."""
        return tuple(m for m in methods if not self.supports(m))

    async def generate(
        self, text: str, context: Context, method: ImprovementMethod
    ) -> ImprovementCandidate:
        """Dispatch to the generator registered for ``method``."""
        return await self.get(method).generate(text, context, method)
