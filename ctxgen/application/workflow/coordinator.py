"""Message log shared by workflow stages."""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Iterable

from ctxgen.domain.models.message import Message, MessageType
from ctxgen.domain.persistence.message_log_store import MessageLogStore

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class WorkflowCoordinator:
    """Owns the append-only message log between stages.

    ``send`` stamps each message and appends it once; re-sending a message id
    that is already logged is a no-op. Timestamps never go backwards within
    the log, even if the wall clock does. When a store is given, every
    appended message is mirrored to it on a best-effort basis.
    """

    def __init__(
        self,
        agent_names: Iterable[str] = (),
        *,
        store: MessageLogStore | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._agent_names: list[str] = []
        self._messages: list[Message] = []
        self._by_id: dict[str, Message] = {}
        self._store = store
        self._clock = clock
        for name in agent_names:
            self.register_agent(name)

    @property
    def agent_names(self) -> list[str]:
        return list(self._agent_names)

    def register_agent(self, name: str) -> None:
        if name not in self._agent_names:
            self._agent_names.append(name)

    def send(self, message: Message) -> Message:
        """Stamp and append a message.

        Returns:
            The logged message (the original entry if the id was already sent)
        """
        existing = self._by_id.get(message.id)
        if existing is not None:
            logger.debug(f"Message {message.id} already logged, ignoring resend")
            return existing

        stamp = self._clock()
        if self._messages and self._messages[-1].timestamp and stamp < self._messages[-1].timestamp:
            stamp = self._messages[-1].timestamp
        stamped = message.model_copy(update={"timestamp": stamp})

        self._messages.append(stamped)
        self._by_id[stamped.id] = stamped
        logger.debug(f"{stamped.sender} -> {stamped.recipient}: {stamped.type.value}")

        if self._store is not None and not self._store.append(stamped):
            logger.debug(f"Message {stamped.id} kept in memory only")
        return stamped

    def receive(self, agent: str) -> Message | None:
        """Latest message addressed to ``agent``, if any."""
        for message in reversed(self._messages):
            if message.recipient == agent:
                return message
        return None

    def broadcast(
        self,
        sender: str,
        message_type: MessageType,
        payload: dict[str, Any] | None = None,
    ) -> list[Message]:
        """Send one message per registered agent."""
        return [
            self.send(
                Message(
                    sender=sender,
                    recipient=name,
                    type=message_type,
                    payload=dict(payload or {}),
                )
            )
            for name in self._agent_names
        ]

    def history(self, agent: str | None = None) -> list[Message]:
        """All messages, or those sent from or to ``agent``."""
        if agent is None:
            return list(self._messages)
        return [m for m in self._messages if agent in (m.sender, m.recipient)]

    def clear(self) -> None:
        """Drop the in-memory log. Persisted day files are left untouched."""
        self._messages.clear()
        self._by_id.clear()
