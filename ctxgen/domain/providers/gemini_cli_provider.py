"""Gemini CLI response provider using subprocess.

Uses Gemini CLI with stream-json output format and collects the assistant
message events into a single text response.
"""

import asyncio
import json
import logging
import shutil
import warnings
from typing import Any

from ctxgen.domain.errors import FailureKind, ProviderError
from ctxgen.domain.models.execution import ExecutionOptions
from ctxgen.domain.providers.response_provider import ResponseProvider

logger = logging.getLogger(__name__)

# Default process timeout (seconds)
DEFAULT_TIMEOUT = 300


class GeminiCliProvider(ResponseProvider):
    """Gemini CLI response provider using subprocess.

    Requirements:
        - Gemini CLI must be installed
        - User must be authenticated via `gemini auth login`

    Configuration:
        - model: Model to use
        - sandbox: Enable sandbox mode
        - working_dir: Working directory for CLI
        - timeout: Process timeout in seconds (default: 300)
    """

    def __init__(self, config: dict[str, Any] | None = None) -> None:
        super().__init__(config)
        self._validate_config()

        self._model = self.config.get("model")
        self._sandbox = self.config.get("sandbox", False)
        self._working_dir = self.config.get("working_dir")
        self._timeout = self.config.get("timeout", DEFAULT_TIMEOUT)

    def _validate_config(self) -> None:
        """Validate configuration and warn on unknown keys.

        Raises:
            ValueError: If config values are invalid
        """
        if not self.config:
            return

        known_keys = set(self.get_metadata()["config_keys"])
        unknown_keys = set(self.config.keys()) - known_keys
        if unknown_keys:
            warnings.warn(
                f"Unknown GeminiCliProvider config keys ignored: {sorted(unknown_keys)}",
                UserWarning,
                stacklevel=3,
            )

        timeout = self.config.get("timeout")
        if timeout is not None and timeout <= 0:
            raise ValueError("timeout must be > 0")

    @classmethod
    def get_metadata(cls) -> dict[str, Any]:
        """Return provider metadata."""
        return {
            "name": "gemini-cli",
            "description": "Gemini CLI via subprocess",
            "requires_config": False,
            "config_keys": ["model", "sandbox", "working_dir", "timeout"],
            "default_timeout_ms": DEFAULT_TIMEOUT * 1000,
            "supports_system_prompt": False,
        }

    def is_available(self) -> bool:
        """Gemini CLI is on PATH."""
        return shutil.which("gemini") is not None

    def generate_text(self, prompt: str, options: ExecutionOptions) -> str:
        """Generate response using Gemini CLI subprocess.

        System prompts are prepended to the prompt text since the CLI has no
        separate channel for them.
        """
        full_prompt = prompt
        if options.system_prompt:
            full_prompt = f"{options.system_prompt}\n\n{prompt}"
        return asyncio.run(self._async_generate(full_prompt, options))

    async def _async_generate(self, prompt: str, options: ExecutionOptions) -> str:
        """Async implementation using subprocess."""
        args = self._build_args(options)
        args.extend(["-p", prompt])

        try:
            process = await asyncio.create_subprocess_exec(
                "gemini",
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self._working_dir,
            )
        except FileNotFoundError:
            raise ProviderError(
                "Gemini CLI not found. "
                "Install from: https://github.com/google-gemini/gemini-cli",
                kind=FailureKind.UNAVAILABLE,
            )

        try:
            stdout_data, stderr_data = await asyncio.wait_for(
                process.communicate(),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            process.kill()
            raise ProviderError(
                f"Gemini CLI timed out after {self._timeout}s. "
                "Consider increasing timeout config.",
                kind=FailureKind.TIMEOUT,
            )

        if stderr_data:
            logger.debug(f"Gemini CLI stderr: {stderr_data.decode()}")

        if process.returncode != 0:
            raise self._wrap_process_error(
                process.returncode,
                stderr_data.decode() if stderr_data else "",
            )

        return self._parse_ndjson_stream(stdout_data)

    def _build_args(self, options: ExecutionOptions) -> list[str]:
        args = ["-o", "stream-json"]

        model = options.model or self._model
        if model:
            args.extend(["-m", model])

        if self._sandbox:
            args.append("-s")

        return args

    def _parse_ndjson_stream(self, stdout: bytes) -> str:
        """Parse NDJSON stream and concatenate assistant message content."""
        response_text = ""
        parse_errors: list[str] = []

        for line in stdout.decode().splitlines():
            line = line.strip()
            if not line:
                continue

            try:
                event = json.loads(line)
            except json.JSONDecodeError as e:
                sample = line[:50] + "..." if len(line) > 50 else line
                parse_errors.append(f"{str(e)[:30]} | {sample!r}")
                continue

            if event.get("type") == "message" and event.get("role") == "assistant":
                content = event.get("content", "")
                if content:
                    response_text += content

        if parse_errors:
            logger.warning(
                f"Malformed JSON lines ({len(parse_errors)}): {parse_errors[:3]}"
            )

        return response_text

    def _wrap_process_error(self, returncode: int, stderr: str) -> ProviderError:
        """Wrap subprocess errors with actionable messages."""
        stderr_lower = stderr.lower()

        if "auth" in stderr_lower or "login" in stderr_lower:
            return ProviderError(
                f"Gemini CLI authentication error. Run: gemini auth login\n{stderr}",
                kind=FailureKind.UNAVAILABLE,
            )
        elif "quota" in stderr_lower or "resource_exhausted" in stderr_lower:
            return ProviderError(
                f"Gemini CLI rate limited: {stderr}",
                kind=FailureKind.RATE_LIMITED,
            )
        elif returncode == 127:
            return ProviderError(
                "Gemini CLI not found. "
                "Install from: https://github.com/google-gemini/gemini-cli",
                kind=FailureKind.UNAVAILABLE,
            )
        return ProviderError(f"Gemini CLI failed (exit {returncode}): {stderr}")
