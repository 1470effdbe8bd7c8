"""Per-stage document/approval prerequisites and duration estimates.

These checks are one possible step-completion validator. The workflow
controller never calls them directly: it only consumes the issue list
that a validator produces (see ``RequirementsStepValidator``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Tuple

from proclink.domain.gateways import StepCompletionValidator
from proclink.workflow.stages import PROCESS_STAGES, StageId, next_stage, stage_by_id


@dataclass(frozen=True)
class StageRequirements:
    description: str
    required_documents: Tuple[str, ...] = ()
    required_approvals: Tuple[str, ...] = ()
    min_days: int = 0

    def to_dict(self) -> Dict[str, object]:
        return {
            "description": self.description,
            "required_documents": list(self.required_documents),
            "required_approvals": list(self.required_approvals),
            "min_days": self.min_days,
        }


STAGE_REQUIREMENTS: Dict[StageId, StageRequirements] = {
    StageId.PLANNING: StageRequirements(
        "Planning Phase",
        required_documents=("procurementPlan",),
        required_approvals=("planApproval",),
    ),
    StageId.TEMPLATES: StageRequirements(
        "Template Phase",
        required_documents=("rfqTemplate", "evaluationTemplate"),
        required_approvals=("templateApproval",),
        min_days=2,
    ),
    StageId.RFQ: StageRequirements(
        "RFQ Phase",
        required_documents=("rfqDocument",),
        required_approvals=("rfqApproval",),
        min_days=3,
    ),
    StageId.SUBMISSION: StageRequirements(
        "Submission Phase",
        required_documents=("submissionLog",),
        min_days=1,
    ),
    StageId.EVALUATION: StageRequirements(
        "Evaluation Phase",
        required_documents=("evaluationScores",),
        required_approvals=("evaluationApproval",),
        min_days=5,
    ),
    StageId.CLARIFICATION: StageRequirements(
        "Clarification Phase",
        required_documents=("rfqDocument",),
        min_days=2,
    ),
    StageId.AWARD: StageRequirements(
        "Award Phase",
        required_documents=("awardDecision",),
        required_approvals=("awardApproval",),
    ),
    StageId.CONTRACT: StageRequirements(
        "Contract Phase",
        required_documents=("contractDocument",),
        required_approvals=("legalApproval",),
    ),
    StageId.COMPLETED: StageRequirements("Procurement Closed"),
}


def requirements_for(stage_id: StageId | str) -> StageRequirements:
    return STAGE_REQUIREMENTS[stage_by_id(stage_id).id]


def validate_stage_requirements(stage_id: StageId | str, procurement_data: Mapping[str, Any] | None) -> List[str]:
    """Return human-readable missing items for ``stage_id``; empty means ready to advance."""
    requirements = requirements_for(stage_id)
    data = procurement_data or {}

    documents = data.get("documents") or []
    document_types = {str(doc.get("type") or "") for doc in documents if isinstance(doc, Mapping)}
    approvals = data.get("approvals") or []
    approved_types = {
        str(approval.get("type") or "")
        for approval in approvals
        if isinstance(approval, Mapping) and str(approval.get("status") or "").lower() == "approved"
    }

    missing: List[str] = []
    for doc_type in requirements.required_documents:
        if doc_type not in document_types:
            missing.append(f"Missing document: {doc_type}")
    for approval_type in requirements.required_approvals:
        if approval_type not in approved_types:
            missing.append(f"Missing approval: {approval_type}")
    return missing


def can_advance(stage_id: StageId | str, days_in_stage: int = 0) -> Dict[str, object]:
    stage = stage_by_id(stage_id)
    upcoming = next_stage(stage.id)
    if upcoming is None:
        return {"can_advance": False, "reason": "Already at final stage"}

    min_days = STAGE_REQUIREMENTS[stage.id].min_days
    if int(days_in_stage) < min_days:
        return {
            "can_advance": False,
            "reason": f"Must remain in {stage.id.value} for {min_days} days. Currently: {int(days_in_stage)} days",
        }
    return {"can_advance": True, "reason": "All requirements met", "next_stage": upcoming.id.value}


def timeline_estimates() -> List[Dict[str, object]]:
    estimates: List[Dict[str, object]] = []
    total_days = 0
    for stage in PROCESS_STAGES:
        requirements = STAGE_REQUIREMENTS[stage.id]
        total_days += requirements.min_days
        estimates.append(
            {
                "stage": stage.id.value,
                "description": requirements.description,
                "estimated_days": requirements.min_days,
                "cumulative_days": total_days,
            }
        )
    return estimates


class RequirementsStepValidator(StepCompletionValidator):
    def __init__(self, data_provider: Callable[[str], Mapping[str, Any] | None]) -> None:
        self._data_provider = data_provider

    def issues_for(self, stage_id: str, procurement_id: str) -> List[str]:
        return validate_stage_requirements(stage_id, self._data_provider(procurement_id))
