"""Workflow HTTP adapter.

Caller identity is trusted as sent: ``X-User-Id`` names the actor and
``X-User-Role`` selects the role whose permissions gate a transition.
Nothing here authenticates either header.
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from proclink.domain.contracts import TransitionInput
from proclink.errors import ValidationError
from proclink.policies import current_actor, current_role, permissions_for_role
from proclink.routes._helpers import clean, json_body, parse_int, services
from proclink.ui_strings import success_message
from proclink.workflow.controller import stage_details
from proclink.workflow.requirements import can_advance, requirements_for, timeline_estimates
from proclink.workflow.stages import all_stages, stage_by_id


workflow_bp = Blueprint("workflow", __name__)


@workflow_bp.route("/api/stages", methods=["GET"])
def list_stages():
    return jsonify(
        {
            "items": [stage.to_dict() for stage in all_stages()],
            "timeline": timeline_estimates(),
        }
    )


@workflow_bp.route("/api/stages/<stage_id>/requirements", methods=["GET"])
def stage_requirements(stage_id: str):
    stage = stage_by_id(stage_id)
    days = parse_int(request.args.get("days_in_stage"), default=0, min_value=0, max_value=10_000)
    return jsonify(
        {
            "stage": stage_details(stage.id),
            "requirements": requirements_for(stage.id).to_dict(),
            "advance": can_advance(stage.id, days),
        }
    )


@workflow_bp.route("/api/procurements/<procurement_id>/workflow", methods=["GET"])
def workflow_state(procurement_id: str):
    max_history = int(current_app.config.get("HISTORY_PAGE_LIMIT", 200))
    history_limit = parse_int(
        request.args.get("history_limit"),
        default=max_history,
        min_value=0,
        max_value=max_history,
    )
    return jsonify(services().workflow.describe(procurement_id, history_limit=history_limit))


@workflow_bp.route("/api/procurements/<procurement_id>/workflow/transition", methods=["POST"])
def workflow_transition(procurement_id: str):
    payload = json_body()
    actor = current_actor(current_app.config.get("DEFAULT_ACTOR", "system"))
    permissions = permissions_for_role(current_role()) if request.headers.get("X-User-Role") else []

    result = services().workflow.transition(
        TransitionInput(
            procurement_id=procurement_id,
            to_stage_id=clean(payload.get("to_stage") or payload.get("stage")),
            actor=actor,
            actor_permissions=permissions,
        )
    )
    state = result.unwrap()
    return jsonify(
        {
            "message": success_message("stage_transitioned"),
            "workflow": services().workflow.describe(state.procurement_id),
        }
    )


@workflow_bp.route("/api/procurements/<procurement_id>/workflow/validate", methods=["POST"])
@workflow_bp.route("/api/procurements/<procurement_id>/workflow/validate/<stage_id>", methods=["POST"])
def workflow_validate(procurement_id: str, stage_id: str | None = None):
    payload = json_body()
    issues = payload.get("issues")
    if issues is not None:
        if not isinstance(issues, list):
            raise ValidationError(
                code="invalid_issues",
                message_key="invalid_issues",
                details=f"issues must be a list, got {type(issues).__name__}",
            )
        issues = [clean(issue) for issue in issues if clean(issue)]
    state = services().workflow.validate_step(procurement_id, stage_id, issues)
    return jsonify(
        {
            "message": success_message("step_validated"),
            "blocking_issues": list(state.blocking_issues),
            "can_advance": not state.blocking_issues,
        }
    )


@workflow_bp.route("/api/procurements/<procurement_id>/workflow/progress", methods=["GET"])
def workflow_progress(procurement_id: str):
    workflow = services().workflow
    stage_id = clean(request.args.get("stage"))
    payload = dict(workflow.progress(procurement_id))
    if stage_id:
        stage = stage_by_id(stage_id)
        payload["stage"] = stage.id.value
        payload["stage_completed"] = workflow.is_stage_completed(procurement_id, stage.id.value)
    return jsonify(payload)
