from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from proclink.application.linking_service import LinkingService
from proclink.application.workflow_service import WorkflowService
from proclink.core.event_bus import EventBus, get_event_bus
from proclink.infrastructure.repositories.memory import (
    InMemoryEntitySnapshots,
    InMemoryLinkRepository,
    InMemoryProcurementData,
    InMemoryWorkflowRepository,
)
from proclink.policies import RolePermissionProvider
from proclink.workflow.requirements import RequirementsStepValidator


@dataclass
class Services:
    workflow: WorkflowService
    linking: LinkingService
    workflow_repository: InMemoryWorkflowRepository
    link_repository: InMemoryLinkRepository
    snapshots: InMemoryEntitySnapshots
    procurement_data: InMemoryProcurementData
    event_bus: EventBus


def build_services(config: Mapping[str, Any] | None = None, *, event_bus: EventBus | None = None) -> Services:
    settings = config or {}
    bus = event_bus or get_event_bus()

    workflow_repository = InMemoryWorkflowRepository()
    link_repository = InMemoryLinkRepository()
    snapshots = InMemoryEntitySnapshots()
    procurement_data = InMemoryProcurementData()

    step_validator = None
    if settings.get("STRICT_STAGE_REQUIREMENTS", False):
        step_validator = RequirementsStepValidator(procurement_data)

    workflow = WorkflowService(
        repository=workflow_repository,
        permission_provider=RolePermissionProvider(),
        step_validator=step_validator,
        event_bus=bus,
    )
    linking = LinkingService(
        repository=link_repository,
        snapshot_provider=snapshots,
        event_bus=bus,
        id_prefix=str(settings.get("LINK_ID_PREFIX") or "LINK"),
        default_actor=str(settings.get("DEFAULT_ACTOR") or "system"),
    )
    return Services(
        workflow=workflow,
        linking=linking,
        workflow_repository=workflow_repository,
        link_repository=link_repository,
        snapshots=snapshots,
        procurement_data=procurement_data,
        event_bus=bus,
    )
