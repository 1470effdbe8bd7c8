from __future__ import annotations

import secrets
import string
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, Mapping

from proclink.domain.contracts import OperationResult
from proclink.errors import MissingIdentifier, NotFound, UnknownLinkType, ValidationError
from proclink.linking.rules import LinkType, normalize_link_type


_ID_ALPHABET = string.digits + string.ascii_uppercase
_ID_SUFFIX_LENGTH = 9


class LinkStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    raw = str(value).strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    parsed = datetime.fromisoformat(raw)
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class Link:
    id: str
    type: LinkType
    source_id: str
    target_id: str
    status: LinkStatus = LinkStatus.ACTIVE
    created_by: str = "system"
    created_at: datetime = field(default_factory=_utc_now)
    reason: str = ""
    metadata: Mapping[str, Any] = field(default_factory=dict)
    status_updated_at: datetime | None = None

    @property
    def procurement_id(self) -> str | None:
        value = (self.metadata or {}).get("procurementId")
        return str(value) if value not in (None, "") else None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "source_id": self.source_id,
            "target_id": self.target_id,
            "status": self.status.value,
            "created_by": self.created_by,
            "created_at": _isoformat(self.created_at),
            "reason": self.reason,
            "metadata": dict(self.metadata or {}),
        }
        if self.status_updated_at is not None:
            payload["status_updated_at"] = _isoformat(self.status_updated_at)
        return payload


def generate_link_id(prefix: str = "LINK", now_ms: int | None = None) -> str:
    timestamp_ms = int(now_ms if now_ms is not None else time.time() * 1000)
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_SUFFIX_LENGTH))
    return f"{prefix}_{timestamp_ms}_{suffix}"


def create_link(
    link_type: LinkType | str | None,
    source_id: str | None,
    target_id: str | None,
    metadata: Mapping[str, Any] | None = None,
    *,
    id_prefix: str = "LINK",
) -> OperationResult[Link]:
    """Build a new active link.

    ``metadata`` follows the caller-facing shape ``{created_by, reason,
    timestamp, metadata}``; the nested ``metadata`` map is stored opaquely
    on the link (``procurementId`` in it scopes the link to a procurement).
    """
    normalized_type = normalize_link_type(link_type)
    if normalized_type is None:
        return OperationResult.failure(UnknownLinkType(str(link_type or "")))

    source = str(source_id or "").strip()
    target = str(target_id or "").strip()
    if not source or not target:
        missing = [name for name, value in (("source_id", source), ("target_id", target)) if not value]
        return OperationResult.failure(MissingIdentifier(missing))

    options = dict(metadata or {})
    timestamp = options.get("timestamp")
    try:
        created_at = _parse_datetime(timestamp) or _utc_now()
    except (TypeError, ValueError):
        return OperationResult.failure(
            ValidationError(
                code="invalid_timestamp",
                message_key="invalid_timestamp",
                details=f"Invalid timestamp: {timestamp}",
                payload={"timestamp": str(timestamp)},
            )
        )

    nested = options.get("metadata")
    link = Link(
        id=generate_link_id(id_prefix),
        type=normalized_type,
        source_id=source,
        target_id=target,
        status=LinkStatus.ACTIVE,
        created_by=str(options.get("created_by") or "system"),
        created_at=created_at,
        reason=str(options.get("reason") or ""),
        metadata=dict(nested) if isinstance(nested, Mapping) else {},
    )
    return OperationResult.success(link)


def normalize_link_status(status: LinkStatus | str | None) -> LinkStatus | None:
    if isinstance(status, LinkStatus):
        return status
    try:
        return LinkStatus(str(status or "").strip().lower())
    except ValueError:
        return None


def update_link_status(
    link_id: str | None,
    new_status: LinkStatus | str | None,
    links: Iterable[Link],
    *,
    now: datetime | None = None,
) -> OperationResult[Link]:
    status = normalize_link_status(new_status)
    if status is None:
        return OperationResult.failure(
            ValidationError(
                code="invalid_link_status",
                message_key="invalid_link_status",
                details=f"Unknown link status: {new_status}",
                payload={"status": str(new_status or "")},
            )
        )

    wanted = str(link_id or "")
    found = next((link for link in links if link.id == wanted), None)
    if found is None:
        return OperationResult.failure(NotFound(wanted))

    return OperationResult.success(replace(found, status=status, status_updated_at=now or _utc_now()))
