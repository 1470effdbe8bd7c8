from __future__ import annotations

import logging
from typing import Callable, Dict, List

from proclink.core.event_bus import EventBus, StageTransitioned, StepValidated, TransitionRejected, get_event_bus
from proclink.domain.contracts import OperationResult, TransitionInput
from proclink.domain.gateways import PermissionProvider, StepCompletionValidator, WorkflowRepository
from proclink.observability import observe_workflow_transition
from proclink.workflow import controller
from proclink.workflow.controller import WorkflowState
from proclink.workflow.stages import build_process_steps, stage_by_id


class WorkflowService:
    def __init__(
        self,
        repository: WorkflowRepository,
        permission_provider: PermissionProvider,
        step_validator: StepCompletionValidator | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self.repository = repository
        self.permission_provider = permission_provider
        self.step_validator = step_validator
        self.event_bus = event_bus or get_event_bus()
        self._logger = logging.getLogger("proclink")

    def get_state(self, procurement_id: str) -> WorkflowState:
        with self.repository.lock_for(procurement_id):
            state = self.repository.get(procurement_id)
            if state is None:
                state = WorkflowState.start(procurement_id)
                self.repository.save(state)
                self._logger.info("workflow_started", extra={"procurement_id": procurement_id})
            return state

    def describe(self, procurement_id: str, *, history_limit: int | None = None) -> Dict[str, object]:
        state = self.get_state(procurement_id)
        payload = state.to_dict()
        if history_limit is not None and history_limit >= 0:
            history = payload["transition_history"]
            payload["transition_history"] = history[-history_limit:] if history_limit else []
        payload["current_stage"] = stage_by_id(state.current_stage_id).to_dict()
        payload["allowed_next_stages"] = [stage.to_dict() for stage in controller.allowed_next_stages(state)]
        payload["progress"] = controller.progress(state)
        payload["steps"] = build_process_steps(state.current_stage_id)
        return payload

    def can_transition(self, procurement_id: str, to_stage_id: str) -> bool:
        return controller.can_transition(self.get_state(procurement_id), to_stage_id)

    def transition(self, transition_input: TransitionInput) -> OperationResult[WorkflowState]:
        procurement_id = transition_input.procurement_id
        with self.repository.lock_for(procurement_id):
            state = self.get_state(procurement_id)
            # Explicit permissions win; otherwise the provider answers for the target stage.
            explicit = list(transition_input.actor_permissions or [])
            result = controller.transition(
                state,
                transition_input.to_stage_id,
                explicit,
                actor=transition_input.actor,
                permission_check=None if explicit else self._provider_check(transition_input.actor),
            )
            if not result.ok:
                error_code = result.error.code if result.error is not None else "unknown"
                observe_workflow_transition(transition_input.to_stage_id, error_code)
                self._logger.warning(
                    "workflow_transition_rejected",
                    extra={
                        "procurement_id": procurement_id,
                        "from_stage": state.current_stage_id.value,
                        "to_stage": transition_input.to_stage_id,
                        "actor": transition_input.actor,
                        "error_code": error_code,
                    },
                )
                self.event_bus.publish(
                    TransitionRejected(
                        procurement_id=procurement_id,
                        to_stage=str(transition_input.to_stage_id or ""),
                        error_code=error_code,
                        actor=transition_input.actor,
                    )
                )
                return result

            updated = result.unwrap()
            self.repository.save(updated)

        observe_workflow_transition(updated.current_stage_id.value, "ok")
        self._logger.info(
            "workflow_transitioned",
            extra={
                "procurement_id": procurement_id,
                "from_stage": state.current_stage_id.value,
                "to_stage": updated.current_stage_id.value,
                "actor": transition_input.actor,
            },
        )
        self.event_bus.publish(
            StageTransitioned(
                procurement_id=procurement_id,
                from_stage=state.current_stage_id.value,
                to_stage=updated.current_stage_id.value,
                actor=transition_input.actor,
            )
        )
        return result

    def _provider_check(self, actor: str | None) -> Callable[[str], bool]:
        def check(stage_id: str) -> bool:
            return self.permission_provider.has_any(actor, stage_id)

        return check

    def validate_step(
        self,
        procurement_id: str,
        stage_id: str | None = None,
        issues: List[str] | None = None,
    ) -> WorkflowState:
        with self.repository.lock_for(procurement_id):
            state = self.get_state(procurement_id)
            stage = stage_by_id(stage_id or state.current_stage_id)
            if issues is None:
                issues = self.step_validator.issues_for(stage.id.value, procurement_id) if self.step_validator else []
            updated = controller.validate_step_completion(state, issues)
            self.repository.save(updated)

        self._logger.info(
            "workflow_step_validated",
            extra={
                "procurement_id": procurement_id,
                "stage": stage.id.value,
                "issue_count": len(updated.blocking_issues),
            },
        )
        self.event_bus.publish(
            StepValidated(
                procurement_id=procurement_id,
                stage=stage.id.value,
                issue_count=len(updated.blocking_issues),
            )
        )
        return updated

    def progress(self, procurement_id: str) -> Dict[str, int]:
        return controller.progress(self.get_state(procurement_id))

    def is_stage_completed(self, procurement_id: str, stage_id: str) -> bool:
        return controller.is_stage_completed(self.get_state(procurement_id), stage_id)
