from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, TypeVar

from proclink.errors import AppError


T = TypeVar("T")


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """Outcome of a core operation: either a value or a typed, recoverable error."""

    value: T | None = None
    error: AppError | None = None

    @classmethod
    def success(cls, value: T) -> "OperationResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: AppError) -> "OperationResult[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


@dataclass(frozen=True)
class TransitionInput:
    procurement_id: str
    to_stage_id: str
    actor: str
    actor_permissions: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class LinkCreateInput:
    link_type: str
    source_id: str
    target_id: str
    created_by: str | None = None
    reason: str = ""
    procurement_id: str | None = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    skip_validation: bool = False
    # Inline field maps; when absent the snapshot provider is asked.
    source_snapshot: Dict[str, Any] | None = None
    target_snapshot: Dict[str, Any] | None = None
