"""Unit tests for ClaudeCodeProvider.

Tests install a fake claude_agent_sdk module to avoid requiring Claude Code CLI.
"""

import sys
import types
from unittest.mock import MagicMock, patch

import pytest

from ctxgen.domain.errors import FailureKind, ProviderError
from ctxgen.domain.models.execution import ExecutionOptions
from ctxgen.domain.providers.claude_code_provider import ClaudeCodeProvider


class _TextBlock:
    def __init__(self, text: str) -> None:
        self.text = text


class _AssistantMessage:
    def __init__(self, content: list) -> None:
        self.content = content


class CLINotFoundError(Exception):
    pass


def _fake_sdk(messages=None, error: Exception | None = None):
    sdk = types.ModuleType("claude_agent_sdk")
    sdk_types = types.ModuleType("claude_agent_sdk.types")
    sdk_types.AssistantMessage = _AssistantMessage

    async def query(prompt, options):
        if error is not None:
            raise error
        for message in messages or []:
            yield message

    sdk.query = query
    sdk.ClaudeAgentOptions = MagicMock(name="ClaudeAgentOptions")
    sdk.types = sdk_types
    return {"claude_agent_sdk": sdk, "claude_agent_sdk.types": sdk_types}


class TestClaudeCodeProviderConfig:
    def test_metadata(self):
        metadata = ClaudeCodeProvider.get_metadata()

        assert metadata["name"] == "claude-code"
        assert metadata["supports_system_prompt"] is True
        assert "model" in metadata["config_keys"]

    def test_invalid_max_turns(self):
        with pytest.raises(ValueError, match="max_turns"):
            ClaudeCodeProvider({"max_turns": 0})

    def test_unknown_keys_warn(self):
        with pytest.warns(UserWarning, match="Unknown ClaudeCodeProvider config keys"):
            ClaudeCodeProvider({"allowed_tools": ["Read"]})


class TestClaudeCodeProviderAvailability:
    @patch("ctxgen.domain.providers.claude_code_provider.shutil.which")
    def test_available_when_sdk_and_cli_present(self, mock_which):
        mock_which.return_value = "/usr/local/bin/claude"

        with patch.dict(sys.modules, _fake_sdk()):
            assert ClaudeCodeProvider().is_available() is True

        mock_which.assert_called_once_with("claude")

    @patch("ctxgen.domain.providers.claude_code_provider.shutil.which")
    def test_unavailable_without_cli(self, mock_which):
        mock_which.return_value = None

        with patch.dict(sys.modules, _fake_sdk()):
            assert ClaudeCodeProvider().is_available() is False

    @patch("ctxgen.domain.providers.claude_code_provider.shutil.which")
    def test_require_api_key(self, mock_which, monkeypatch):
        mock_which.return_value = "/usr/local/bin/claude"
        provider = ClaudeCodeProvider({"require_api_key": True})

        with patch.dict(sys.modules, _fake_sdk()):
            assert provider.is_available() is False
            monkeypatch.setenv("ANTHROPIC_API_KEY", "k")
            assert provider.is_available() is True


class TestClaudeCodeProviderGenerate:
    def test_collects_assistant_text(self):
        messages = [
            _AssistantMessage([_TextBlock("Hello "), object()]),
            "not an assistant message",
            _AssistantMessage([_TextBlock("world")]),
        ]

        with patch.dict(sys.modules, _fake_sdk(messages)):
            text = ClaudeCodeProvider({"model": "sonnet"}).generate_text("hi", ExecutionOptions())

        assert text == "Hello world"

    def test_options_passed_to_sdk(self):
        modules = _fake_sdk([_AssistantMessage([_TextBlock("ok")])])

        with patch.dict(sys.modules, modules):
            ClaudeCodeProvider({"model": "sonnet"}).generate_text(
                "hi",
                ExecutionOptions(model="opus", system_prompt="sys", max_tokens=99),
            )

        kwargs = modules["claude_agent_sdk"].ClaudeAgentOptions.call_args.kwargs
        assert kwargs["model"] == "opus"
        assert kwargs["system_prompt"] == "sys"
        assert kwargs["allowed_tools"] == []
        assert kwargs["env"] == {"CLAUDE_CODE_MAX_OUTPUT_TOKENS": "99"}

    def test_cli_not_found_is_unavailable(self):
        with patch.dict(sys.modules, _fake_sdk(error=CLINotFoundError("missing"))):
            with pytest.raises(ProviderError) as exc_info:
                ClaudeCodeProvider().generate_text("hi", ExecutionOptions())

        assert exc_info.value.kind == FailureKind.UNAVAILABLE

    def test_unknown_sdk_error_left_to_classifier(self):
        with patch.dict(sys.modules, _fake_sdk(error=RuntimeError("429 rate limit"))):
            with pytest.raises(ProviderError) as exc_info:
                ClaudeCodeProvider().generate_text("hi", ExecutionOptions())

        assert exc_info.value.kind is None
        assert "RuntimeError" in str(exc_info.value)
