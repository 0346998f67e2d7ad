from datetime import date, datetime, timezone
from pathlib import Path
import json
import logging
from typing import Any

from pydantic import ValidationError

from ctxgen.domain.models.message import Message
from ctxgen.domain.constants import (
    DEFAULT_LOGS_DIR,
    MESSAGE_LOG_PREFIX,
    MESSAGE_LOG_TEMP_SUFFIX,
)

logger = logging.getLogger(__name__)


class MessageLogStore:
    """Append-only message log, one JSON file per calendar day.

    Persistence is best-effort: a missing or corrupt day file starts a fresh
    log, and ``append`` never raises.
    """

    def __init__(self, logs_dir: Path | None = None):
        """
        Initialize the store. The directory is created lazily on first write.

        Args:
            logs_dir: Directory for day files (default: .ctxgen/agent-logs)
        """
        self.logs_dir = logs_dir or DEFAULT_LOGS_DIR

    def path_for(self, day: date) -> Path:
        return self.logs_dir / f"{MESSAGE_LOG_PREFIX}{day.isoformat()}.json"

    def append(self, message: Message) -> bool:
        """
        Append a message to the day file matching its timestamp.

        Returns:
            True if the message was written, False if persistence failed
        """
        stamp = message.timestamp or datetime.now(timezone.utc)
        log_file = self.path_for(stamp.date())

        try:
            self.logs_dir.mkdir(parents=True, exist_ok=True)
            entries = self._read_entries(log_file)
            entries.append(self._serialize(message))

            # Write atomically - write to temp, then rename
            temp_file = log_file.with_suffix(MESSAGE_LOG_TEMP_SUFFIX)
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(entries, f, indent=2, ensure_ascii=False)
            temp_file.replace(log_file)
        except (OSError, TypeError, ValueError) as e:
            logger.debug(f"Message log write failed for {log_file}: {e}")
            return False

        return True

    def load(self, day: date) -> list[Message]:
        """
        Load all messages logged on a given day.

        Entries that fail validation are skipped; a missing or corrupt file
        yields an empty list.
        """
        messages: list[Message] = []
        for entry in self._read_entries(self.path_for(day)):
            try:
                messages.append(Message.model_validate(entry))
            except ValidationError as e:
                logger.debug(f"Skipping invalid message log entry: {e}")
        return messages

    def list_days(self) -> list[date]:
        """List days with a log file, oldest first."""
        if not self.logs_dir.exists():
            return []

        days = []
        for log_file in self.logs_dir.glob(f"{MESSAGE_LOG_PREFIX}*.json"):
            stem = log_file.stem[len(MESSAGE_LOG_PREFIX):]
            try:
                days.append(date.fromisoformat(stem))
            except ValueError:
                continue
        return sorted(days)

    def _read_entries(self, log_file: Path) -> list[dict[str, Any]]:
        try:
            raw = log_file.read_text(encoding='utf-8')
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.debug(f"Could not read message log {log_file}: {e}")
            return []

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.debug(f"Corrupt message log {log_file}, starting fresh")
            return []

        if not isinstance(data, list):
            logger.debug(f"Message log {log_file} root is not a list, starting fresh")
            return []
        return [entry for entry in data if isinstance(entry, dict)]

    def _serialize(self, message: Message) -> dict[str, Any]:
        """Convert Message to JSON-serializable dict (``from``/``to`` keys)."""
        return message.model_dump(mode='json', by_alias=True)
