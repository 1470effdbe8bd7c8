from proclink.application.linking_service import LinkingService
from proclink.application.services import Services, build_services
from proclink.application.workflow_service import WorkflowService

__all__ = ["LinkingService", "Services", "WorkflowService", "build_services"]
