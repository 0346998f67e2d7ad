"""Claude response provider using the Claude Agent SDK.

Uses the official claude-agent-sdk package, which routes to the Anthropic
API, Bedrock or Vertex AI based on environment variables. The provider only
collects assistant text; no tools are enabled.
"""

import asyncio
import logging
import os
import shutil
import warnings
from typing import Any

from ctxgen.domain.errors import FailureKind, ProviderError
from ctxgen.domain.models.execution import ExecutionOptions
from ctxgen.domain.providers.response_provider import ResponseProvider

logger = logging.getLogger(__name__)

# Any of these enables SDK routing without an interactive `claude login`
_CREDENTIAL_ENV_VARS = (
    "ANTHROPIC_API_KEY",
    "CLAUDE_CODE_USE_BEDROCK",
    "CLAUDE_CODE_USE_VERTEX",
)


class ClaudeCodeProvider(ResponseProvider):
    """Response provider using Claude Agent SDK.

    Requirements:
        - claude-agent-sdk package must be installed
        - Claude Code CLI must be installed
        - Credentials via ANTHROPIC_API_KEY, Bedrock/Vertex env, or `claude login`

    Configuration:
        - model: Model to use (e.g., "sonnet", "opus")
        - max_turns: Maximum agent iterations (default: 1)
        - working_dir: Working directory for Claude
        - require_api_key: Only report available when a credential env var
          is set (default: False)
    """

    def __init__(self, config: dict[str, Any] | None = None) -> None:
        super().__init__(config)
        self._validate_config()

        self._model = self.config.get("model")
        self._max_turns = self.config.get("max_turns", 1)
        self._working_dir = self.config.get("working_dir")
        self._require_api_key = bool(self.config.get("require_api_key", False))

    def _validate_config(self) -> None:
        """Validate configuration and warn on unknown keys.

        Raises:
            ValueError: If config values are invalid (e.g., negative max_turns)
        """
        if not self.config:
            return

        known_keys = set(self.get_metadata()["config_keys"])
        unknown_keys = set(self.config.keys()) - known_keys
        if unknown_keys:
            warnings.warn(
                f"Unknown ClaudeCodeProvider config keys ignored: {sorted(unknown_keys)}",
                UserWarning,
                stacklevel=3,
            )

        max_turns = self.config.get("max_turns")
        if max_turns is not None and max_turns < 1:
            raise ValueError("max_turns must be >= 1")

    @classmethod
    def get_metadata(cls) -> dict[str, Any]:
        """Return provider metadata."""
        return {
            "name": "claude-code",
            "description": "Claude via Agent SDK (Anthropic, Bedrock, Vertex AI)",
            "requires_config": False,
            "config_keys": ["model", "max_turns", "working_dir", "require_api_key"],
            "default_timeout_ms": 120_000,
            "supports_system_prompt": True,
        }

    def is_available(self) -> bool:
        """SDK importable, CLI on PATH, and (optionally) credentials present."""
        try:
            import claude_agent_sdk  # noqa: F401
        except ImportError:
            logger.debug("claude-agent-sdk not installed")
            return False

        if shutil.which("claude") is None:
            logger.debug("Claude Code CLI not found on PATH")
            return False

        if self._require_api_key:
            return any(os.environ.get(name) for name in _CREDENTIAL_ENV_VARS)
        return True

    def generate_text(self, prompt: str, options: ExecutionOptions) -> str:
        """Generate response using Claude Agent SDK.

        Uses asyncio.run() to wrap the async SDK in a sync interface.

        Raises:
            ProviderError: If SDK fails
        """
        return asyncio.run(self._async_generate(prompt, options))

    async def _async_generate(self, prompt: str, options: ExecutionOptions) -> str:
        try:
            from claude_agent_sdk import query
            from claude_agent_sdk.types import AssistantMessage
        except ImportError:
            raise ProviderError(
                "claude-agent-sdk not installed. "
                "Install with: pip install claude-agent-sdk",
                kind=FailureKind.UNAVAILABLE,
            )

        sdk_options = self._build_options(options)
        response_text = ""

        try:
            async for message in query(prompt=prompt, options=sdk_options):
                if isinstance(message, AssistantMessage):
                    for block in message.content:
                        if hasattr(block, "text"):
                            response_text += block.text
        except Exception as e:
            raise self._wrap_sdk_error(e)

        return response_text

    def _build_options(self, options: ExecutionOptions) -> "ClaudeAgentOptions":
        """Build ClaudeAgentOptions from config and per-call options."""
        from claude_agent_sdk import ClaudeAgentOptions

        env: dict[str, str] = {}
        if options.max_tokens is not None:
            env["CLAUDE_CODE_MAX_OUTPUT_TOKENS"] = str(options.max_tokens)

        return ClaudeAgentOptions(
            model=options.model or self._model,
            allowed_tools=[],
            max_turns=self._max_turns,
            cwd=self._working_dir,
            system_prompt=options.system_prompt,
            env=env,  # SDK requires dict (can be empty, but not None)
        )

    def _wrap_sdk_error(self, error: Exception) -> ProviderError:
        """Wrap SDK exceptions with actionable, classified errors."""
        error_type = type(error).__name__

        if error_type == "CLINotFoundError":
            return ProviderError(
                "Claude Code CLI not found. "
                "Install from: https://docs.anthropic.com/claude-code",
                kind=FailureKind.UNAVAILABLE,
            )
        elif error_type == "CLIJSONDecodeError":
            return ProviderError(
                f"Invalid response from Claude Code CLI (malformed JSON): {error}",
                kind=FailureKind.MALFORMED,
            )
        elif error_type == "TimeoutError" or "timeout" in str(error).lower():
            return ProviderError(f"Claude Code timed out: {error}", kind=FailureKind.TIMEOUT)
        elif error_type == "ProcessError":
            # Exit text carries rate-limit / credit markers; let the classifier decide
            return ProviderError(f"Claude Code process failed: {error}")
        return ProviderError(f"Claude Agent SDK error ({error_type}): {error}")
