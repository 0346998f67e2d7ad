"""Tests for ProviderExecutionService facade."""

import logging

import pytest

from ctxgen.application.config_models import CtxgenConfig, ProviderEntry
from ctxgen.application.providers import ProviderExecutionService, ProviderRegistry, ProviderStatus
from ctxgen.application.providers.provider_execution_service import (
    COMPONENT_SYSTEM_PROMPT,
    REFINEMENT_SYSTEM_PROMPT,
)
from ctxgen.domain.errors import NoProvidersConfigured
from ctxgen.domain.events import WorkflowEventEmitter, WorkflowEventType
from ctxgen.domain.models.execution import ExecutionOptions
from tests.fakes import RecordingObserver, fake

LOGGER = "ctxgen.application.providers.provider_execution_service"

COMPONENT_RESPONSE = (
    "Here is your button.\n"
    "```tsx\n"
    "export const Button = () => <button className=\"px-4\">Click</button>;\n"
    "```"
)


@pytest.fixture
def make_service(make_registry):
    def _make(*entries, **kwargs) -> ProviderExecutionService:
        return ProviderExecutionService(registry=make_registry(*entries), default_timeout_ms=1000, **kwargs)

    return _make


class TestFromConfig:
    def test_builds_registry_and_emitter(self):
        emitter = WorkflowEventEmitter()
        config = CtxgenConfig(
            providers=[ProviderEntry(name="fake-b", priority=1), ProviderEntry(name="fake-a", priority=0)],
            default_timeout_ms=1234,
        )

        service = ProviderExecutionService.from_config(config, event_emitter=emitter)

        assert service.registry.names() == ["fake-a", "fake-b"]
        assert service.default_timeout_ms == 1234
        assert service.event_emitter is emitter


class TestGenerate:
    def test_generate_text_passes_options(self, make_service):
        provider = fake(response="plain text")
        service = make_service(("a", 0, provider))

        result = service.generate_text("hello", ExecutionOptions(temperature=0.2))

        assert result.text == "plain text"
        assert result.payload is None
        assert provider.calls == ["hello"]
        assert provider.options_seen[0].temperature == 0.2

    def test_generate_component_prompt_and_payload(self, make_service):
        provider = fake(response=COMPONENT_RESPONSE)
        service = make_service(("a", 0, provider))

        result = service.generate_component("a primary button")

        assert provider.calls == ["Generate a React component for: a primary button"]
        assert provider.options_seen[0].system_prompt == COMPONENT_SYSTEM_PROMPT
        assert result.payload.code.startswith("export const Button")
        assert result.payload.explanation == "Here is your button."

    def test_caller_system_prompt_kept(self, make_service):
        provider = fake(response=COMPONENT_RESPONSE)
        service = make_service(("a", 0, provider))

        service.generate_component("x", ExecutionOptions(system_prompt="custom"))

        assert provider.options_seen[0].system_prompt == "custom"

    def test_refinement_prompt(self, make_service):
        provider = fake(response=COMPONENT_RESPONSE)
        service = make_service(("a", 0, provider))

        result = service.generate_component_refinement("export const Old = () => null;", "make it blue")

        assert provider.calls == [
            "Component to refine:\n```tsx\nexport const Old = () => null;\n```\n\n"
            "Refinement request: make it blue"
        ]
        assert provider.options_seen[0].system_prompt == REFINEMENT_SYSTEM_PROMPT
        assert result.payload is not None

    def test_preferred_provider(self, make_service):
        service = make_service(("a", 0, fake(response="a")), ("b", 1, fake(response="b")))

        assert service.generate_text("p", provider="b").provider_name == "b"

    def test_events_published(self, make_service):
        emitter = WorkflowEventEmitter()
        observer = RecordingObserver()
        emitter.subscribe(observer)
        service = make_service(("a", 0, fake(error="down")), ("b", 1, fake(response="b")), event_emitter=emitter)

        service.generate_text("p")

        assert observer.types == [
            WorkflowEventType.PROVIDER_SELECTED,
            WorkflowEventType.PROVIDER_FAILED,
            WorkflowEventType.PROVIDER_SELECTED,
            WorkflowEventType.PROVIDER_SUCCEEDED,
        ]

    def test_empty_registry(self, caplog):
        service = ProviderExecutionService(registry=ProviderRegistry())

        with caplog.at_level(logging.WARNING, logger=LOGGER):
            with pytest.raises(NoProvidersConfigured):
                service.generate_text("p")

        assert "No AI providers configured" in caplog.text


class TestStatus:
    def test_provider_status(self, make_service):
        service = make_service(("a", 0, fake(available=False)), ("b", 4, fake()))

        assert service.provider_status() == [
            ProviderStatus(name="a", priority=0, available=False),
            ProviderStatus(name="b", priority=4, available=True),
        ]

    def test_active_provider_name(self, make_service, monkeypatch):
        service = make_service(("a", 0, fake(available=False)), ("b", 1, fake()), ("c", 2, fake()))

        assert service.active_provider_name() == "b"
        assert service.active_provider_name("c") == "c"
        monkeypatch.setenv("CTXGEN_PROVIDER", "c")
        assert service.active_provider_name() == "c"

    def test_active_provider_none(self, make_service):
        assert make_service(("a", 0, fake(available=False))).active_provider_name() is None

    def test_startup_logged_once(self, make_service, caplog):
        service = make_service(("a", 0, fake()), ("b", 1, fake()))

        with caplog.at_level(logging.INFO, logger=LOGGER):
            service.generate_text("one")
            service.generate_text("two")

        banners = [r for r in caplog.records if "Initialized 2 AI providers" in r.getMessage()]
        assert len(banners) == 1
        assert "a, b" in banners[0].getMessage()
