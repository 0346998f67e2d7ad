from .response_provider import ResponseProvider
from .provider_factory import ProviderFactory
from .claude_code_provider import ClaudeCodeProvider
from .gemini_cli_provider import GeminiCliProvider
from .xai_provider import XaiProvider
from .hosted_provider import HostedProvider

# Register built-in providers
ProviderFactory.register("claude-code", ClaudeCodeProvider)
ProviderFactory.register("gemini-cli", GeminiCliProvider)
ProviderFactory.register("xai", XaiProvider)
ProviderFactory.register("hosted", HostedProvider)

__all__ = [
    "ResponseProvider",
    "ProviderFactory",
    "ClaudeCodeProvider",
    "GeminiCliProvider",
    "XaiProvider",
    "HostedProvider",
]
