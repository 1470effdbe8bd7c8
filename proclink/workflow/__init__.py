from proclink.workflow.controller import (
    TransitionRecord,
    WorkflowState,
    allowed_next_stages,
    can_transition,
    is_stage_completed,
    progress,
    stage_details,
    transition,
    validate_step_completion,
)
from proclink.workflow.stages import (
    PROCESS_STAGES,
    Stage,
    StageId,
    all_stages,
    next_stage,
    previous_stage,
    stage_by_id,
    stage_by_order,
)

__all__ = [
    "PROCESS_STAGES",
    "Stage",
    "StageId",
    "TransitionRecord",
    "WorkflowState",
    "all_stages",
    "allowed_next_stages",
    "can_transition",
    "is_stage_completed",
    "next_stage",
    "previous_stage",
    "progress",
    "stage_by_id",
    "stage_by_order",
    "stage_details",
    "transition",
    "validate_step_completion",
]
