from __future__ import annotations

from typing import Dict


ERROR_MESSAGES: Dict[str, str] = {
    "unexpected_error": "The operation could not be completed. Please try again.",
    "action_invalid": "This action is not valid right now.",
    "validation_error": "Some of the submitted data is invalid.",
    "permission_denied": "You do not have permission to perform this action.",
    "unknown_link_type": "The relationship type is not recognised.",
    "missing_identifier": "Both the source and the target must be identified.",
    "validation_failed": "Required information is missing for this relationship.",
    "not_found": "The requested record does not exist.",
    "transition_blocked": "Resolve the blocking issues before moving to the next stage.",
    "invalid_transition_target": "The procurement can only move to the next stage in order.",
    "invalid_export_format": "Export format must be json or csv.",
    "invalid_link_status": "Status must be active, inactive or archived.",
    "invalid_issues": "Blocking issues must be sent as a list of strings.",
    "invalid_timestamp": "The timestamp must be an ISO 8601 date and time.",
}


SUCCESS_MESSAGES: Dict[str, str] = {
    "stage_transitioned": "Procurement moved to the next stage.",
    "step_validated": "Stage checks refreshed.",
    "link_created": "Relationship recorded.",
    "link_status_updated": "Relationship status updated.",
}


def error_message(key: str, fallback: str | None = None) -> str:
    message = ERROR_MESSAGES.get(key)
    if message:
        return message
    if fallback is not None:
        return fallback
    return key


def success_message(key: str, fallback: str | None = None) -> str:
    message = SUCCESS_MESSAGES.get(key)
    if message:
        return message
    if fallback is not None:
        return fallback
    return key
