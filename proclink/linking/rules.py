from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Mapping, Tuple


class LinkType(str, Enum):
    PLAN_TO_RFQ = "plan_to_rfq"
    RFQ_TO_SUBMISSION = "rfq_to_submission"
    SUBMISSION_TO_EVALUATION = "submission_to_evaluation"
    EVALUATION_TO_APPROVAL = "evaluation_to_approval"
    APPROVAL_TO_AWARD = "approval_to_award"
    AWARD_TO_CONTRACT = "award_to_contract"
    DOCUMENT_TO_PROCUREMENT = "document_to_procurement"
    TEMPLATE_TO_RFQ = "template_to_rfq"


class EntityKind(str, Enum):
    PLAN = "Plan"
    RFQ = "RFQ"
    SUBMISSION = "Submission"
    EVALUATION = "Evaluation"
    APPROVAL = "Approval"
    AWARD = "Award"
    CONTRACT = "Contract"


@dataclass(frozen=True)
class LinkTypeRule:
    link_type: LinkType
    source_entity_kind: EntityKind
    target_entity_kind: EntityKind
    source_required_fields: Tuple[str, ...]
    target_required_fields: Tuple[str, ...]


LINK_TYPE_RULES: Mapping[LinkType, LinkTypeRule] = {
    LinkType.PLAN_TO_RFQ: LinkTypeRule(
        LinkType.PLAN_TO_RFQ,
        EntityKind.PLAN,
        EntityKind.RFQ,
        source_required_fields=("title", "procurementType"),
        target_required_fields=("rfqDocument",),
    ),
    LinkType.RFQ_TO_SUBMISSION: LinkTypeRule(
        LinkType.RFQ_TO_SUBMISSION,
        EntityKind.RFQ,
        EntityKind.SUBMISSION,
        source_required_fields=("rfqDocument", "closingDate"),
        target_required_fields=("submissionLog",),
    ),
    LinkType.SUBMISSION_TO_EVALUATION: LinkTypeRule(
        LinkType.SUBMISSION_TO_EVALUATION,
        EntityKind.SUBMISSION,
        EntityKind.EVALUATION,
        source_required_fields=("submissionLog",),
        target_required_fields=("evaluationScores",),
    ),
    LinkType.EVALUATION_TO_APPROVAL: LinkTypeRule(
        LinkType.EVALUATION_TO_APPROVAL,
        EntityKind.EVALUATION,
        EntityKind.APPROVAL,
        source_required_fields=("evaluationScores",),
        target_required_fields=("approvalStatus",),
    ),
    LinkType.APPROVAL_TO_AWARD: LinkTypeRule(
        LinkType.APPROVAL_TO_AWARD,
        EntityKind.APPROVAL,
        EntityKind.AWARD,
        source_required_fields=("approvalStatus",),
        target_required_fields=("awardDecision",),
    ),
    LinkType.AWARD_TO_CONTRACT: LinkTypeRule(
        LinkType.AWARD_TO_CONTRACT,
        EntityKind.AWARD,
        EntityKind.CONTRACT,
        source_required_fields=("awardDecision",),
        target_required_fields=("contractDocument",),
    ),
}

# Plan -> ... -> Contract, in the order a complete procurement accumulates links.
CANONICAL_CHAIN: Tuple[LinkType, ...] = (
    LinkType.PLAN_TO_RFQ,
    LinkType.RFQ_TO_SUBMISSION,
    LinkType.SUBMISSION_TO_EVALUATION,
    LinkType.EVALUATION_TO_APPROVAL,
    LinkType.APPROVAL_TO_AWARD,
    LinkType.AWARD_TO_CONTRACT,
)

KNOWN_LINK_TYPES: FrozenSet[str] = frozenset(link_type.value for link_type in LinkType)


def normalize_link_type(link_type: LinkType | str | None) -> LinkType | None:
    """Accept the enum, its value (``plan_to_rfq``) or its name (``PLAN_TO_RFQ``)."""
    if isinstance(link_type, LinkType):
        return link_type
    raw = str(link_type or "").strip()
    if not raw:
        return None
    if raw.lower() not in KNOWN_LINK_TYPES:
        return None
    return LinkType(raw.lower())


def rule_for(link_type: LinkType | str | None) -> LinkTypeRule | None:
    normalized = normalize_link_type(link_type)
    if normalized is None:
        return None
    return LINK_TYPE_RULES.get(normalized)
