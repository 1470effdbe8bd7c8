from __future__ import annotations

from typing import Any, Dict, Iterable, List

from proclink.ui_strings import error_message


class AppError(Exception):
    default_code = "system_error"
    default_message_key = "unexpected_error"
    default_http_status = 500
    default_critical = True

    def __init__(
        self,
        code: str | None = None,
        message_key: str | None = None,
        http_status: int | None = None,
        critical: bool | None = None,
        details: str | None = None,
        payload: Dict[str, Any] | None = None,
    ) -> None:
        self.code = (code or self.default_code).strip()
        self.message_key = (message_key or self.default_message_key).strip()
        self.http_status = int(http_status or self.default_http_status)
        self.critical = bool(self.default_critical if critical is None else critical)
        self.details = (details or "").strip() or None
        self.payload = dict(payload or {})
        super().__init__(self.details or self.code)

    def user_message(self) -> str:
        fallback = error_message("unexpected_error", "The operation could not be completed.")
        return error_message(self.message_key, fallback)

    def to_response_payload(self, request_id: str) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "error": self.code,
            "message": self.user_message(),
            "request_id": request_id,
        }
        if self.details:
            payload["details"] = self.details
        if self.payload:
            payload.update(self.payload)
        return payload


class UserActionError(AppError):
    default_code = "action_invalid"
    default_message_key = "action_invalid"
    default_http_status = 400
    default_critical = False


class ValidationError(UserActionError):
    default_code = "validation_error"
    default_message_key = "validation_error"
    default_http_status = 400
    default_critical = False


class PermissionError(UserActionError):
    default_code = "permission_denied"
    default_message_key = "permission_denied"
    default_http_status = 403
    default_critical = False


class SystemError(AppError):
    default_code = "system_error"
    default_message_key = "unexpected_error"
    default_http_status = 500
    default_critical = True


# Link store / validator failures.


class UnknownLinkType(ValidationError):
    default_code = "unknown_link_type"
    default_message_key = "unknown_link_type"
    default_http_status = 400

    def __init__(self, link_type: str | None) -> None:
        self.link_type = str(link_type or "")
        super().__init__(
            details=f"Unknown link type: {self.link_type}",
            payload={"link_type": self.link_type},
        )


class MissingIdentifier(ValidationError):
    default_code = "missing_identifier"
    default_message_key = "missing_identifier"
    default_http_status = 400

    def __init__(self, missing: Iterable[str]) -> None:
        self.missing = list(missing)
        super().__init__(
            details="Both source and target IDs are required",
            payload={"missing": list(self.missing)},
        )


class ValidationFailed(ValidationError):
    default_code = "validation_failed"
    default_message_key = "validation_failed"
    default_http_status = 422

    def __init__(self, missing_fields: Iterable[str], reason: str | None = None) -> None:
        self.missing_fields = list(missing_fields)
        super().__init__(
            details=reason or f"Missing required fields: {', '.join(self.missing_fields)}",
            payload={"missing_fields": list(self.missing_fields)},
        )


class NotFound(UserActionError):
    default_code = "not_found"
    default_message_key = "not_found"
    default_http_status = 404

    def __init__(self, resource_id: str | None, resource: str = "link") -> None:
        self.resource_id = str(resource_id or "")
        self.resource = resource
        super().__init__(
            details=f"{resource.capitalize()} {self.resource_id} not found",
            payload={"resource": resource, "id": self.resource_id},
        )


# Workflow transition failures.


class Blocked(UserActionError):
    default_code = "transition_blocked"
    default_message_key = "transition_blocked"
    default_http_status = 409

    def __init__(self, issues: Iterable[str]) -> None:
        self.issues: List[str] = list(issues)
        super().__init__(
            details=f"Blocking issues exist: {'; '.join(self.issues)}",
            payload={"blocking_issues": list(self.issues)},
        )


class InvalidTarget(UserActionError):
    default_code = "invalid_transition_target"
    default_message_key = "invalid_transition_target"
    default_http_status = 409

    def __init__(self, requested: str | None, allowed: Iterable[str]) -> None:
        self.requested = str(requested or "")
        self.allowed: List[str] = list(allowed)
        allowed_text = ", ".join(self.allowed) or "none"
        super().__init__(
            details=f"Cannot transition to {self.requested}. Allowed: {allowed_text}",
            payload={"requested": self.requested, "allowed": list(self.allowed)},
        )


class PermissionDenied(PermissionError):
    def __init__(self, required_permissions: Iterable[str], stage_id: str | None = None) -> None:
        self.required_permissions: List[str] = list(required_permissions)
        self.stage_id = stage_id
        super().__init__(
            details=f"Requires any of: {', '.join(self.required_permissions)}",
            payload={"required_permissions": list(self.required_permissions), "stage": stage_id},
        )
