from pathlib import Path

import pytest

from ctxgen.application.providers.registry import ProviderRegistry
from ctxgen.domain.providers.provider_factory import ProviderFactory
from tests.fakes import FakeProvider


@pytest.fixture(scope="session")
def repo_root() -> Path:
    """Resolve the repository root directory.

    Assumes tests live under <repo>/tests/.
    """
    return Path(__file__).resolve().parents[1]


@pytest.fixture
def logs_dir(tmp_path: Path) -> Path:
    """Isolated message log directory.

    Tests should not write into the real project's .ctxgen/agent-logs.
    """
    return tmp_path / "agent-logs"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Prevent unit tests from accidentally using developer machine env vars.

    If a test needs an env var, it should set it explicitly via monkeypatch.
    """
    for name in (
        "CTXGEN_PROVIDER",
        "CTXGEN_API_URL",
        "CTXGEN_API_KEY",
        "XAI_API_KEY",
        "GROK_API_KEY",
        "ANTHROPIC_API_KEY",
        "CLAUDE_CODE_OAUTH_TOKEN",
        "CLAUDE_CODE_USE_BEDROCK",
        "CLAUDE_CODE_USE_VERTEX",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _register_test_providers():
    """Register fake provider keys with proper cleanup.

    CLI tests configure providers named 'fake-a', 'fake-b', 'fake-c' in
    .ctxgen/config.yml; the registry is restored afterward to prevent test
    pollution.
    """
    original_registry = dict(ProviderFactory._registry)

    for key in ["fake-a", "fake-b", "fake-c"]:
        ProviderFactory.register(key, FakeProvider)

    yield

    ProviderFactory._registry.clear()
    ProviderFactory._registry.update(original_registry)


@pytest.fixture
def make_registry():
    """Build a ProviderRegistry from (name, priority, provider) tuples."""

    def _make(*entries: tuple[str, int, FakeProvider]) -> ProviderRegistry:
        registry = ProviderRegistry()
        for name, priority, provider in entries:
            registry.register(name, priority, provider)
        return registry

    return _make
