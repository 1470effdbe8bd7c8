from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List, Mapping


class EntitySnapshotProvider(ABC):
    """Returns a best-effort field map for an entity; unknown fields are simply absent."""

    @abstractmethod
    def snapshot(self, entity_id: str, kind: str) -> Mapping[str, Any]:
        raise NotImplementedError


class PermissionProvider(ABC):
    @abstractmethod
    def permissions_for(self, actor: str | None) -> List[str]:
        raise NotImplementedError

    @abstractmethod
    def has_any(self, actor: str | None, stage_id: str) -> bool:
        """True when the actor holds any permission the stage requires for entry."""
        raise NotImplementedError


class StepCompletionValidator(ABC):
    @abstractmethod
    def issues_for(self, stage_id: str, procurement_id: str) -> List[str]:
        raise NotImplementedError


class WorkflowRepository(ABC):
    @abstractmethod
    def get(self, procurement_id: str):
        raise NotImplementedError

    @abstractmethod
    def save(self, state) -> None:
        raise NotImplementedError

    @abstractmethod
    def lock_for(self, procurement_id: str):
        raise NotImplementedError


class LinkRepository(ABC):
    @abstractmethod
    def append(self, link) -> None:
        raise NotImplementedError

    @abstractmethod
    def replace(self, link) -> None:
        raise NotImplementedError

    @abstractmethod
    def all(self) -> list:
        raise NotImplementedError

    @abstractmethod
    def for_procurement(self, procurement_id: str) -> list:
        raise NotImplementedError

    @abstractmethod
    def get(self, link_id: str):
        raise NotImplementedError

    @property
    @abstractmethod
    def lock(self):
        """Held while a status update reads and replaces a link."""
        raise NotImplementedError
