from proclink.core.event_bus import (
    DomainEvent,
    EventBus,
    LinkCreated,
    LinkStatusChanged,
    StageTransitioned,
    StepValidated,
    TransitionRejected,
    get_event_bus,
    reset_event_bus_for_tests,
)

__all__ = [
    "DomainEvent",
    "EventBus",
    "StageTransitioned",
    "TransitionRejected",
    "StepValidated",
    "LinkCreated",
    "LinkStatusChanged",
    "get_event_bus",
    "reset_event_bus_for_tests",
]
