"""Procurement stage state machine.

Stages advance strictly forward, one at a time, from ``planning`` to
``completed``. Every operation takes a ``WorkflowState`` snapshot and
returns a new one; inputs are never mutated. Failures come back as
typed errors inside an ``OperationResult``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Tuple

from proclink.domain.contracts import OperationResult
from proclink.errors import Blocked, InvalidTarget, PermissionDenied
from proclink.workflow.permissions import holds_any, required_permissions
from proclink.workflow.requirements import requirements_for
from proclink.workflow.stages import (
    INITIAL_STAGE,
    Stage,
    StageId,
    normalize_stage_id,
    next_stage,
    stage_by_id,
    total_stages,
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TransitionRecord:
    from_stage_id: StageId
    to_stage_id: StageId
    timestamp: datetime
    actor: str | None = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "from_stage_id": self.from_stage_id.value,
            "to_stage_id": self.to_stage_id.value,
            "timestamp": self.timestamp.isoformat().replace("+00:00", "Z"),
            "actor": self.actor,
        }


@dataclass(frozen=True)
class WorkflowState:
    procurement_id: str
    current_stage_id: StageId = INITIAL_STAGE
    blocking_issues: Tuple[str, ...] = ()
    transition_history: Tuple[TransitionRecord, ...] = field(default_factory=tuple)

    @classmethod
    def start(cls, procurement_id: str) -> "WorkflowState":
        return cls(procurement_id=str(procurement_id))

    def to_dict(self) -> Dict[str, object]:
        return {
            "procurement_id": self.procurement_id,
            "current_stage_id": self.current_stage_id.value,
            "blocking_issues": list(self.blocking_issues),
            "transition_history": [record.to_dict() for record in self.transition_history],
        }


def allowed_next_stages(state: WorkflowState) -> List[Stage]:
    upcoming = next_stage(state.current_stage_id)
    return [upcoming] if upcoming is not None else []


def can_transition(state: WorkflowState, to_stage_id: StageId | str | None) -> bool:
    if state.blocking_issues:
        return False
    target = normalize_stage_id(to_stage_id)
    if target is None:
        return False
    return any(stage.id == target for stage in allowed_next_stages(state))


def transition(
    state: WorkflowState,
    to_stage_id: StageId | str | None,
    actor_permissions: Iterable[str] | None,
    *,
    actor: str | None = None,
    now: datetime | None = None,
    permission_check: Callable[[str], bool] | None = None,
) -> OperationResult[WorkflowState]:
    """Advance ``state`` to ``to_stage_id``.

    ``permission_check`` answers for the target stage id in place of
    ``actor_permissions`` when the caller resolves permissions elsewhere.
    """
    if state.blocking_issues:
        return OperationResult.failure(Blocked(state.blocking_issues))

    if not can_transition(state, to_stage_id):
        allowed = [stage.id.value for stage in allowed_next_stages(state)]
        return OperationResult.failure(InvalidTarget(str(to_stage_id or ""), allowed))

    target = stage_by_id(to_stage_id)
    if permission_check is not None:
        permitted = permission_check(target.id.value)
    else:
        permitted = holds_any(actor_permissions, target.id)
    if not permitted:
        return OperationResult.failure(PermissionDenied(required_permissions(target.id), stage_id=target.id.value))

    record = TransitionRecord(
        from_stage_id=state.current_stage_id,
        to_stage_id=target.id,
        timestamp=now or _utc_now(),
        actor=actor,
    )
    return OperationResult.success(
        replace(
            state,
            current_stage_id=target.id,
            transition_history=state.transition_history + (record,),
        )
    )


def validate_step_completion(state: WorkflowState, issues: Iterable[str] | None) -> WorkflowState:
    return replace(state, blocking_issues=tuple(str(issue) for issue in (issues or [])))


def progress(state: WorkflowState) -> Dict[str, int]:
    current_index = stage_by_id(state.current_stage_id).order
    total = total_stages()
    return {
        "current_index": current_index,
        "total": total,
        "percentage": round(100 * current_index / total),
    }


def is_stage_completed(state: WorkflowState, stage_id: StageId | str) -> bool:
    return stage_by_id(stage_id).order < stage_by_id(state.current_stage_id).order


def stage_details(stage_id: StageId | str) -> Dict[str, object]:
    stage = stage_by_id(stage_id)
    requirements = requirements_for(stage.id)
    upcoming = next_stage(stage.id)
    return {
        **stage.to_dict(),
        "phase": requirements.description,
        "required_documents": list(requirements.required_documents),
        "required_approvals": list(requirements.required_approvals),
        "min_days": requirements.min_days,
        "required_permissions": required_permissions(stage.id),
        "allowed_next_stages": [upcoming.id.value] if upcoming is not None else [],
    }
