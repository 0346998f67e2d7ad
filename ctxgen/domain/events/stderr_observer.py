"""Stderr event observer for CLI integration."""

import click

from ctxgen.domain.events.event import WorkflowEvent


class StderrEventObserver:
    """Emits events as structured lines to stderr."""

    def on_event(self, event: WorkflowEvent) -> None:
        """Emit event as structured line to stderr."""
        parts = [f"[EVENT] {event.event_type.value}"]
        if event.provider:
            parts.append(f"provider={event.provider}")
        if event.agent:
            parts.append(f"agent={event.agent}")
        if event.attempt is not None:
            parts.append(f"attempt={event.attempt}")
        for key in ("kind", "next_agent", "stop_reason"):
            if key in event.metadata:
                parts.append(f"{key}={event.metadata[key]}")
        click.echo(" ".join(parts), err=True)
