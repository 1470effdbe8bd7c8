from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from proclink.errors import UnknownLinkType, ValidationFailed
from proclink.linking.rules import LinkType, rule_for


@dataclass(frozen=True)
class LinkValidation:
    valid: bool
    reason: str
    missing_fields: Tuple[str, ...] = ()
    side: str | None = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"valid": self.valid, "reason": self.reason}
        if self.missing_fields:
            payload["missing_fields"] = list(self.missing_fields)
            payload["side"] = self.side
        return payload

    def to_error(self, link_type: LinkType | str | None = None):
        if self.valid:
            return None
        if self.side is None:
            return UnknownLinkType(str(link_type or ""))
        return ValidationFailed(self.missing_fields, reason=self.reason)


def missing_fields(snapshot: Mapping[str, Any] | None, required: Sequence[str]) -> List[str]:
    # Falsy values (None, "", 0, empty containers) count as missing.
    data = snapshot or {}
    return [name for name in required if not data.get(name)]


def validate_link(
    link_type: LinkType | str | None,
    source_snapshot: Mapping[str, Any] | None,
    target_snapshot: Mapping[str, Any] | None,
) -> LinkValidation:
    rule = rule_for(link_type)
    if rule is None:
        return LinkValidation(valid=False, reason=f"Unknown link type: {link_type}")

    missing_source = missing_fields(source_snapshot, rule.source_required_fields)
    if missing_source:
        return LinkValidation(
            valid=False,
            reason=f"{rule.source_entity_kind.value} missing required fields: {', '.join(missing_source)}",
            missing_fields=tuple(missing_source),
            side="source",
        )

    missing_target = missing_fields(target_snapshot, rule.target_required_fields)
    if missing_target:
        return LinkValidation(
            valid=False,
            reason=f"{rule.target_entity_kind.value} missing required fields: {', '.join(missing_target)}",
            missing_fields=tuple(missing_target),
            side="target",
        )

    return LinkValidation(valid=True, reason="Link validation passed")
