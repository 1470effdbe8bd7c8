from proclink.infrastructure.repositories.memory import (
    InMemoryEntitySnapshots,
    InMemoryLinkRepository,
    InMemoryProcurementData,
    InMemoryWorkflowRepository,
)

__all__ = [
    "InMemoryEntitySnapshots",
    "InMemoryLinkRepository",
    "InMemoryProcurementData",
    "InMemoryWorkflowRepository",
]
