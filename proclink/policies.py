from __future__ import annotations

from typing import Dict, List, Set

from flask import has_request_context, request

from proclink.domain.gateways import PermissionProvider
from proclink.workflow.permissions import holds_any


ALL_PERMISSIONS: List[str] = [
    "view_dashboard",
    "create_procurement",
    "view_procurement",
    "edit_procurement",
    "create_planning",
    "edit_planning",
    "approve_planning",
    "view_templates",
    "create_templates",
    "edit_templates",
    "view_rfq",
    "create_rfq",
    "edit_rfq",
    "publish_rfq",
    "view_submissions",
    "receive_submissions",
    "view_evaluations",
    "create_evaluations",
    "evaluate_submission",
    "manage_clarifications",
    "view_approvals",
    "approve_submissions",
    "view_awards",
    "create_awards",
    "publish_awards",
    "view_contracts",
    "create_contracts",
    "sign_contracts",
    "manage_links",
    "view_audit",
    "export_audit",
    "view_reports",
]


ROLE_PERMISSIONS: Dict[str, List[str]] = {
    "admin": list(ALL_PERMISSIONS),
    "procurement_officer": [
        "view_dashboard",
        "create_procurement",
        "view_procurement",
        "edit_procurement",
        "create_planning",
        "edit_planning",
        "view_templates",
        "create_templates",
        "edit_templates",
        "create_rfq",
        "edit_rfq",
        "publish_rfq",
        "view_submissions",
        "receive_submissions",
        "manage_clarifications",
        "view_evaluations",
        "view_approvals",
        "create_awards",
        "create_contracts",
        "manage_links",
        "view_audit",
    ],
    "evaluator": [
        "view_dashboard",
        "view_submissions",
        "view_evaluations",
        "create_evaluations",
        "evaluate_submission",
        "view_audit",
    ],
    "approver": [
        "view_dashboard",
        "view_procurement",
        "view_submissions",
        "view_evaluations",
        "view_approvals",
        "approve_submissions",
        "publish_awards",
        "sign_contracts",
        "view_audit",
    ],
    "vendor": ["view_rfq", "receive_submissions"],
    "viewer": [
        "view_dashboard",
        "view_procurement",
        "view_templates",
        "view_rfq",
        "view_submissions",
        "view_evaluations",
        "view_approvals",
        "view_awards",
        "view_contracts",
    ],
}

VALID_ROLES: Set[str] = set(ROLE_PERMISSIONS)


def normalize_role(role: str | None, default: str = "viewer") -> str:
    normalized = str(role or "").strip().lower()
    if normalized in VALID_ROLES:
        return normalized
    return default if default in VALID_ROLES else ""


def permissions_for_role(role: str | None) -> List[str]:
    return list(ROLE_PERMISSIONS.get(normalize_role(role, default=""), []))


def current_role() -> str:
    if not has_request_context():
        return normalize_role(None)
    return normalize_role(request.headers.get("X-User-Role"))


def current_actor(default: str = "system") -> str:
    if not has_request_context():
        return default
    return str(request.headers.get("X-User-Id") or "").strip() or default


class RolePermissionProvider(PermissionProvider):
    """Resolves an actor's permissions from their role; actors are given as role names."""

    def __init__(self, actor_roles: Dict[str, str] | None = None) -> None:
        self._actor_roles = {str(key): normalize_role(value) for key, value in (actor_roles or {}).items()}

    def assign(self, actor: str, role: str) -> None:
        self._actor_roles[str(actor)] = normalize_role(role)

    def permissions_for(self, actor: str | None) -> List[str]:
        role = self._actor_roles.get(str(actor or ""))
        if role is None:
            role = normalize_role(actor, default="")
        return permissions_for_role(role)

    def has_any(self, actor: str | None, stage_id: str) -> bool:
        return holds_any(self.permissions_for(actor), stage_id)
