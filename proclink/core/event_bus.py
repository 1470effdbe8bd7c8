from __future__ import annotations

import logging
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from threading import RLock
from typing import Callable, Dict, List, Type

from proclink.observability import observe_domain_event_emitted


EventHandler = Callable[["DomainEvent"], None]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    event_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    occurred_at: datetime = field(default_factory=_utc_now)
    procurement_id: str = ""

    def __post_init__(self) -> None:
        normalized_event_id = str(self.event_id or "").strip() or uuid.uuid4().hex
        normalized_occurred_at = self.occurred_at if isinstance(self.occurred_at, datetime) else _utc_now()
        if normalized_occurred_at.tzinfo is None:
            normalized_occurred_at = normalized_occurred_at.replace(tzinfo=timezone.utc)
        normalized_occurred_at = normalized_occurred_at.astimezone(timezone.utc)

        object.__setattr__(self, "event_id", normalized_event_id)
        object.__setattr__(self, "occurred_at", normalized_occurred_at)
        object.__setattr__(self, "procurement_id", str(self.procurement_id or "").strip())

    def to_payload(self) -> Dict[str, object]:
        payload: Dict[str, object] = {"event_type": type(self).__name__}
        for key, value in asdict(self).items():
            if isinstance(value, datetime):
                payload[key] = value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
            else:
                payload[key] = value
        return payload


@dataclass(frozen=True, kw_only=True)
class StageTransitioned(DomainEvent):
    from_stage: str
    to_stage: str
    actor: str | None = None


@dataclass(frozen=True, kw_only=True)
class TransitionRejected(DomainEvent):
    to_stage: str
    error_code: str
    actor: str | None = None


@dataclass(frozen=True, kw_only=True)
class StepValidated(DomainEvent):
    stage: str
    issue_count: int = 0


@dataclass(frozen=True, kw_only=True)
class LinkCreated(DomainEvent):
    link_id: str
    link_type: str
    source_id: str
    target_id: str
    created_by: str = "system"


@dataclass(frozen=True, kw_only=True)
class LinkStatusChanged(DomainEvent):
    link_id: str
    from_status: str
    to_status: str


class EventBus:
    def __init__(self) -> None:
        self._lock = RLock()
        self._handlers: Dict[Type[DomainEvent], List[EventHandler]] = {}
        self._logger = logging.getLogger("proclink")

    def subscribe(self, event_type: Type[DomainEvent], handler: EventHandler) -> None:
        with self._lock:
            handlers = self._handlers.setdefault(event_type, [])
            handlers.append(handler)

    def publish(self, event: DomainEvent) -> None:
        observe_domain_event_emitted(type(event).__name__)
        with self._lock:
            handlers = list(self._handlers.get(type(event), []))
        for handler in handlers:
            try:
                handler(event)
            except Exception:  # noqa: BLE001
                self._logger.exception(
                    "event_handler_failed",
                    extra={"event_type": type(event).__name__, "event_id": event.event_id},
                )

    def clear(self) -> None:
        with self._lock:
            self._handlers.clear()


_DEFAULT_EVENT_BUS = EventBus()


def get_event_bus() -> EventBus:
    return _DEFAULT_EVENT_BUS


def reset_event_bus_for_tests() -> None:
    _DEFAULT_EVENT_BUS.clear()
