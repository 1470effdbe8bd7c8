from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Tuple

from proclink.errors import NotFound


class StageId(str, Enum):
    PLANNING = "planning"
    TEMPLATES = "templates"
    RFQ = "rfq"
    SUBMISSION = "submission"
    EVALUATION = "evaluation"
    CLARIFICATION = "clarification"
    AWARD = "award"
    CONTRACT = "contract"
    COMPLETED = "completed"


@dataclass(frozen=True)
class Stage:
    id: StageId
    label: str
    description: str
    order: int
    required: bool = True

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id.value,
            "label": self.label,
            "description": self.description,
            "order": self.order,
            "required": self.required,
        }


PROCESS_STAGES: Tuple[Stage, ...] = (
    Stage(StageId.PLANNING, "Planning", "Define procurement scope", 1),
    Stage(StageId.TEMPLATES, "Templates", "Prepare RFQ/TOR templates", 2),
    Stage(StageId.RFQ, "RFQ", "Create and publish RFQ", 3),
    Stage(StageId.SUBMISSION, "Submission", "Receive supplier bids", 4),
    Stage(StageId.EVALUATION, "Evaluation", "Evaluate submissions", 5),
    Stage(StageId.CLARIFICATION, "Clarification", "Q&A with suppliers", 6),
    Stage(StageId.AWARD, "Award", "Make award decision", 7),
    Stage(StageId.CONTRACT, "Contract", "Execute contract", 8),
    Stage(StageId.COMPLETED, "Completed", "Procurement complete", 9),
)

INITIAL_STAGE = StageId.PLANNING
TERMINAL_STAGE = StageId.COMPLETED

_STAGES_BY_ID: Dict[StageId, Stage] = {stage.id: stage for stage in PROCESS_STAGES}
_STAGES_BY_ORDER: Dict[int, Stage] = {stage.order: stage for stage in PROCESS_STAGES}


def normalize_stage_id(stage_id: StageId | str | None) -> StageId | None:
    if isinstance(stage_id, StageId):
        return stage_id
    raw = str(stage_id or "").strip().lower()
    try:
        return StageId(raw)
    except ValueError:
        return None


def all_stages() -> List[Stage]:
    return list(PROCESS_STAGES)


def total_stages() -> int:
    return len(PROCESS_STAGES)


def find_stage(stage_id: StageId | str | None) -> Stage | None:
    normalized = normalize_stage_id(stage_id)
    if normalized is None:
        return None
    return _STAGES_BY_ID.get(normalized)


def stage_by_id(stage_id: StageId | str | None) -> Stage:
    stage = find_stage(stage_id)
    if stage is None:
        raise NotFound(str(stage_id or ""), resource="stage")
    return stage


def stage_by_order(order: int) -> Stage:
    try:
        stage = _STAGES_BY_ORDER.get(int(order))
    except (TypeError, ValueError):
        stage = None
    if stage is None:
        raise NotFound(str(order), resource="stage")
    return stage


def next_stage(stage_id: StageId | str) -> Stage | None:
    current = stage_by_id(stage_id)
    return _STAGES_BY_ORDER.get(current.order + 1)


def previous_stage(stage_id: StageId | str) -> Stage | None:
    current = stage_by_id(stage_id)
    return _STAGES_BY_ORDER.get(current.order - 1)


def is_before(stage_a: StageId | str, stage_b: StageId | str) -> bool:
    return stage_by_id(stage_a).order < stage_by_id(stage_b).order


def is_after(stage_a: StageId | str, stage_b: StageId | str) -> bool:
    return stage_by_id(stage_a).order > stage_by_id(stage_b).order


def build_process_steps(current_stage: StageId | str) -> List[Dict[str, object]]:
    current_order = stage_by_id(current_stage).order
    steps: List[Dict[str, object]] = []
    for stage in PROCESS_STAGES:
        state = "future"
        if stage.order < current_order:
            state = "completed"
        elif stage.order == current_order:
            state = "current"
        steps.append(
            {
                "key": stage.id.value,
                "label": stage.label,
                "order": stage.order,
                "state": state,
            }
        )
    return steps
