"""Generator registry routing."""

import pytest

from prompt_orchestrator.core.exceptions import UnknownMethodError
from prompt_orchestrator.core.methods import ImprovementMethod
from prompt_orchestrator.core.types import Context
from prompt_orchestrator.pipeline.registries import GeneratorRegistry
from tests.helpers import FakeGenerator

pytestmark = pytest.mark.unit

GO = ImprovementMethod.GENERAL_OPTIMIZER
AE = ImprovementMethod.API_EXPERT


def test_register_accepts_method_values():
    generator = FakeGenerator()
    registry = GeneratorRegistry({"api-expert": generator})

    assert registry.get(AE) is generator
    assert registry.supports(AE)
    assert not registry.supports(GO)


def test_unknown_method_name_is_rejected():
    with pytest.raises(ValueError, match="Unknown improvement method"):
        GeneratorRegistry({"summarizer": FakeGenerator()})


def test_get_without_registration_or_fallback_raises():
    with pytest.raises(UnknownMethodError, match="general-optimizer"):
        GeneratorRegistry().get(GO)


def test_fallback_serves_unregistered_methods():
    fallback = FakeGenerator()
    registry = GeneratorRegistry({AE: FakeGenerator()}, fallback=fallback)

    assert registry.get(GO) is fallback
    assert registry.missing(list(ImprovementMethod)) == ()


def test_missing_lists_unserved_methods_in_order():
    registry = GeneratorRegistry({AE: FakeGenerator()})

    assert registry.missing([GO, AE, ImprovementMethod.LLM_COORDINATOR]) == (
        GO,
        ImprovementMethod.LLM_COORDINATOR,
    )


@pytest.mark.asyncio
async def test_generate_dispatches_on_method():
    api = FakeGenerator({AE: 4.0})
    general = FakeGenerator({GO: 9.0})
    registry = GeneratorRegistry({AE: api, GO: general})

    candidate = await registry.generate("text", Context(), GO)

    assert candidate.score_improvement == 9.0
    assert general.calls == [GO]
    assert api.calls == []


@pytest.mark.asyncio
async def test_generate_unknown_method_raises():
    registry = GeneratorRegistry()

    with pytest.raises(UnknownMethodError):
        await registry.generate("text", Context(), GO)
