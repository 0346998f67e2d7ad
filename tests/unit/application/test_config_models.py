import pytest
from pydantic import ValidationError

from ctxgen.application.config_models import (
    CtxgenConfig,
    IntentThresholds,
    ProviderEntry,
    WorkflowDefaults,
)


def test_duplicate_provider_names_rejected():
    with pytest.raises(ValidationError, match="Duplicate provider names"):
        CtxgenConfig(providers=[{"name": "xai"}, {"name": "xai", "priority": 2}])


def test_enabled_providers_filters_disabled():
    cfg = CtxgenConfig(
        providers=[
            ProviderEntry(name="a"),
            ProviderEntry(name="b", enabled=False),
            ProviderEntry(name="c", priority=4),
        ]
    )

    assert [p.name for p in cfg.enabled_providers()] == ["a", "c"]


def test_provider_entry_forbids_unknown_keys():
    with pytest.raises(ValidationError):
        ProviderEntry(name="xai", model="grok")


def test_thresholds_must_be_ordered():
    with pytest.raises(ValidationError, match="refine_below"):
        IntentThresholds(refine_below=0.9, complete_above=0.5)


def test_thresholds_bounded():
    with pytest.raises(ValidationError):
        IntentThresholds(complete_above=1.5)


def test_workflow_defaults_to_config():
    defaults = WorkflowDefaults(agents=["A", "B"], retry_limit=1)

    config = defaults.to_workflow_config(retry_limit=None, enable_auto_transition=False)

    assert config.agents == ("A", "B")
    assert config.retry_limit == 1
    assert config.enable_auto_transition is False
    assert config.max_attempts == 4


def test_workflow_defaults_override_agents():
    config = WorkflowDefaults().to_workflow_config(agents=("Solo",))

    assert config.agents == ("Solo",)
