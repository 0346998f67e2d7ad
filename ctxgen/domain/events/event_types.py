"""Orchestration event types for observer pattern notifications."""

from enum import Enum


class WorkflowEventType(str, Enum):
    """Typed events emitted by the failover loop and the workflow engine."""

    # Provider failover
    PROVIDER_SELECTED = "provider_selected"
    PROVIDER_SUCCEEDED = "provider_succeeded"
    PROVIDER_FAILED = "provider_failed"
    ALL_PROVIDERS_FAILED = "all_providers_failed"

    # Stage lifecycle
    STAGE_STARTED = "stage_started"
    STAGE_COMPLETED = "stage_completed"
    STAGE_FAILED = "stage_failed"

    # Engine transitions
    STAGE_TRANSITIONED = "stage_transitioned"
    STAGE_RETRYING = "stage_retrying"

    # Workflow lifecycle
    WORKFLOW_COMPLETED = "workflow_completed"
    WORKFLOW_FAILED = "workflow_failed"
