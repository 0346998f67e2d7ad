"""Tests for ProviderFactory registration and creation."""

import pytest

from ctxgen.domain.providers import (
    ClaudeCodeProvider,
    GeminiCliProvider,
    HostedProvider,
    ProviderFactory,
    XaiProvider,
)
from tests.fakes import FakeProvider


def test_builtin_providers_registered():
    keys = ProviderFactory.list_providers()

    for key in ("claude-code", "gemini-cli", "xai", "hosted"):
        assert key in keys


@pytest.mark.parametrize(
    "key,cls",
    [
        ("claude-code", ClaudeCodeProvider),
        ("gemini-cli", GeminiCliProvider),
        ("xai", XaiProvider),
        ("hosted", HostedProvider),
    ],
)
def test_create_builtin(key, cls):
    assert isinstance(ProviderFactory.create(key), cls)


def test_create_passes_config():
    provider = ProviderFactory.create("fake-a", {"response": "configured"})

    assert isinstance(provider, FakeProvider)
    assert provider.config == {"response": "configured"}


def test_create_unknown_lists_available():
    with pytest.raises(KeyError, match="Available providers"):
        ProviderFactory.create("nope")


def test_get_metadata():
    assert ProviderFactory.get_metadata("xai")["name"] == "xai"
    assert ProviderFactory.get_metadata("nope") is None
