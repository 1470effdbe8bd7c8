from __future__ import annotations

import threading
from typing import Any, Dict, List, Mapping

from proclink.domain.gateways import EntitySnapshotProvider, LinkRepository, WorkflowRepository
from proclink.errors import NotFound
from proclink.linking.graph import procurement_links
from proclink.linking.links import Link
from proclink.workflow.controller import WorkflowState


class InMemoryWorkflowRepository(WorkflowRepository):
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._states: Dict[str, WorkflowState] = {}
        self._procurement_locks: Dict[str, threading.RLock] = {}

    def get(self, procurement_id: str) -> WorkflowState | None:
        with self._lock:
            return self._states.get(str(procurement_id))

    def save(self, state: WorkflowState) -> None:
        with self._lock:
            self._states[state.procurement_id] = state

    def lock_for(self, procurement_id: str) -> threading.RLock:
        key = str(procurement_id)
        with self._lock:
            lock = self._procurement_locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._procurement_locks[key] = lock
            return lock

    def procurement_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._states.keys())


class InMemoryLinkRepository(LinkRepository):
    """Append-only link log; status changes replace the stored record in place."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._links: List[Link] = []

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def append(self, link: Link) -> None:
        with self._lock:
            self._links.append(link)

    def replace(self, link: Link) -> None:
        with self._lock:
            for index, existing in enumerate(self._links):
                if existing.id == link.id:
                    self._links[index] = link
                    return
        raise NotFound(link.id)

    def get(self, link_id: str) -> Link | None:
        with self._lock:
            return next((link for link in self._links if link.id == link_id), None)

    def all(self) -> List[Link]:
        with self._lock:
            return list(self._links)

    def for_procurement(self, procurement_id: str) -> List[Link]:
        return procurement_links(procurement_id, self.all())


class InMemoryEntitySnapshots(EntitySnapshotProvider):
    def __init__(self, entities: Mapping[str, Mapping[str, Any]] | None = None) -> None:
        self._lock = threading.Lock()
        self._entities: Dict[str, Dict[str, Any]] = {key: dict(value) for key, value in (entities or {}).items()}

    def put(self, entity_id: str, fields: Mapping[str, Any]) -> None:
        with self._lock:
            self._entities[str(entity_id)] = dict(fields)

    def snapshot(self, entity_id: str, kind: str) -> Mapping[str, Any]:
        with self._lock:
            known = self._entities.get(str(entity_id))
        if known is None:
            return {"id": entity_id, "kind": kind}
        return {"id": entity_id, "kind": kind, **known}


class InMemoryProcurementData:
    """Documents and approvals per procurement, as read by stage requirement checks."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._data: Dict[str, Dict[str, Any]] = {}

    def put(self, procurement_id: str, data: Mapping[str, Any]) -> None:
        with self._lock:
            self._data[str(procurement_id)] = dict(data)

    def __call__(self, procurement_id: str) -> Mapping[str, Any] | None:
        with self._lock:
            return self._data.get(str(procurement_id))
