from __future__ import annotations

from typing import Dict, FrozenSet, Iterable, List

from proclink.workflow.stages import StageId, stage_by_id


# Permission needed to move a procurement *into* each stage. Clarification
# carries no gate of its own: any actor may open it once evaluation is done.
STAGE_PERMISSIONS: Dict[StageId, FrozenSet[str]] = {
    StageId.PLANNING: frozenset({"create_procurement", "edit_procurement"}),
    StageId.TEMPLATES: frozenset({"create_templates", "edit_templates"}),
    StageId.RFQ: frozenset({"create_rfq", "edit_rfq", "publish_rfq"}),
    StageId.SUBMISSION: frozenset({"view_submissions"}),
    StageId.EVALUATION: frozenset({"evaluate_submission"}),
    StageId.CLARIFICATION: frozenset(),
    StageId.AWARD: frozenset({"create_awards", "publish_awards"}),
    StageId.CONTRACT: frozenset({"sign_contracts"}),
    StageId.COMPLETED: frozenset({"view_reports"}),
}


def required_permissions(stage_id: StageId | str) -> List[str]:
    stage = stage_by_id(stage_id)
    return sorted(STAGE_PERMISSIONS.get(stage.id, frozenset()))


def holds_any(actor_permissions: Iterable[str] | None, stage_id: StageId | str) -> bool:
    required = STAGE_PERMISSIONS.get(stage_by_id(stage_id).id, frozenset())
    if not required:
        return True
    held = {str(permission or "").strip().lower() for permission in (actor_permissions or [])}
    return bool(held & required)
