from pathlib import Path

# Provider execution
DEFAULT_TIMEOUT_MS = 60_000
PROVIDER_OVERRIDE_ENV = "CTXGEN_PROVIDER"

# Message log persistence
DEFAULT_LOGS_DIR = Path(".ctxgen/agent-logs")
MESSAGE_LOG_PREFIX = "communication-"
MESSAGE_LOG_TEMP_SUFFIX = ".json.tmp"

# Workflow
DEFAULT_AGENT_SEQUENCE = ("CodeGenSubAgent", "QASubAgent", "DocsSubAgent")
DEFAULT_RETRY_LIMIT = 2
COORDINATOR_NAME = "coordinator"
