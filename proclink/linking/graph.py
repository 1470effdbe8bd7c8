"""Read-only queries over a caller-supplied snapshot of links.

Nothing here owns storage: every function takes the full link sequence
(typically the links of one procurement, tens of records) and builds
whatever index it needs on demand. Input order is preserved wherever
results are lists of links.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple

from proclink.linking.links import Link, LinkStatus
from proclink.linking.rules import CANONICAL_CHAIN, LinkType, normalize_link_type


_CSV_HEADERS = ("Link ID", "Type", "Source ID", "Target ID", "Status", "Created By", "Created At")

# Plan ... Contract; the final stage carries no link of its own.
_PROGRESS_STAGES: Tuple[Tuple[str, LinkType | None], ...] = (
    ("Plan", LinkType.PLAN_TO_RFQ),
    ("RFQ", LinkType.RFQ_TO_SUBMISSION),
    ("Submission", LinkType.SUBMISSION_TO_EVALUATION),
    ("Evaluation", LinkType.EVALUATION_TO_APPROVAL),
    ("Approval", LinkType.APPROVAL_TO_AWARD),
    ("Award", LinkType.AWARD_TO_CONTRACT),
    ("Contract", None),
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _isoformat(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _type_filter(link_type: LinkType | str | None) -> LinkType | None:
    if link_type is None or link_type == "":
        return None
    return normalize_link_type(link_type)


def _matches_type(link: Link, link_type: LinkType | str | None) -> bool:
    if link_type is None or link_type == "":
        return True
    # An unrecognised filter matches nothing rather than everything.
    wanted = _type_filter(link_type)
    return wanted is not None and link.type == wanted


@dataclass(frozen=True)
class PathResult:
    path_exists: bool
    path: Tuple[str, ...] = ()

    @property
    def distance(self) -> int | None:
        return len(self.path) - 1 if self.path_exists else None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"path_exists": self.path_exists, "path": list(self.path)}
        if self.path_exists:
            payload["distance"] = self.distance
        return payload


@dataclass(frozen=True)
class CircularReference:
    entities: Tuple[str, str]
    link_types: Tuple[str, str]

    def to_dict(self) -> Dict[str, Any]:
        return {"entities": list(self.entities), "link_types": list(self.link_types)}


@dataclass(frozen=True)
class ChainValidation:
    procurement_id: str
    issues: Tuple[Dict[str, Any], ...] = ()
    link_count: int = 0

    @property
    def chain_valid(self) -> bool:
        return not self.issues

    def to_dict(self) -> Dict[str, Any]:
        return {
            "procurement_id": self.procurement_id,
            "chain_valid": self.chain_valid,
            "issues": [dict(issue) for issue in self.issues],
            "link_count": self.link_count,
        }


@dataclass(frozen=True)
class ProcurementChain:
    procurement_id: str
    plan: Mapping[str, Any] | None = None
    rfq: Mapping[str, Any] | None = None
    submissions: Tuple[Mapping[str, Any], ...] = ()
    evaluations: Tuple[Mapping[str, Any], ...] = ()
    approvals: Tuple[Mapping[str, Any], ...] = ()
    award: Mapping[str, Any] | None = None
    contract: Mapping[str, Any] | None = None
    missing_links: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "procurement_id": self.procurement_id,
            "plan": dict(self.plan) if self.plan is not None else None,
            "rfq": dict(self.rfq) if self.rfq is not None else None,
            "submissions": [dict(item) for item in self.submissions],
            "evaluations": [dict(item) for item in self.evaluations],
            "approvals": [dict(item) for item in self.approvals],
            "award": dict(self.award) if self.award is not None else None,
            "contract": dict(self.contract) if self.contract is not None else None,
            "missing_links": list(self.missing_links),
        }


def build_adjacency(links: Iterable[Link], *, active_only: bool = False) -> Dict[str, List[Link]]:
    adjacency: Dict[str, List[Link]] = {}
    for link in links:
        if active_only and link.status != LinkStatus.ACTIVE:
            continue
        adjacency.setdefault(link.source_id, []).append(link)
    return adjacency


def linked_entities(
    source_id: str,
    links: Iterable[Link],
    link_type: LinkType | str | None = None,
) -> List[Dict[str, Any]]:
    return [
        {
            "target_id": link.target_id,
            "link_type": link.type.value,
            "created_at": _isoformat(link.created_at),
            "created_by": link.created_by,
        }
        for link in links
        if link.source_id == source_id and link.status == LinkStatus.ACTIVE and _matches_type(link, link_type)
    ]


def reverse_links(
    target_id: str,
    links: Iterable[Link],
    link_type: LinkType | str | None = None,
) -> List[Dict[str, Any]]:
    return [
        {
            "source_id": link.source_id,
            "link_type": link.type.value,
            "created_at": _isoformat(link.created_at),
            "created_by": link.created_by,
        }
        for link in links
        if link.target_id == target_id and link.status == LinkStatus.ACTIVE and _matches_type(link, link_type)
    ]


def find_path(start_id: str, end_id: str, links: Iterable[Link]) -> PathResult:
    """Breadth-first search over every supplied link, whatever its status."""
    adjacency = build_adjacency(links)
    visited = {start_id}
    queue: deque[Tuple[str, Tuple[str, ...]]] = deque([(start_id, (start_id,))])

    while queue:
        node, path = queue.popleft()
        if node == end_id:
            return PathResult(path_exists=True, path=path)
        for link in adjacency.get(node, []):
            if link.target_id in visited:
                continue
            visited.add(link.target_id)
            queue.append((link.target_id, path + (link.target_id,)))

    return PathResult(path_exists=False)


def detect_circular_references(links: Sequence[Link]) -> List[CircularReference]:
    """Report every pair of links ``a -> b`` / ``b -> a``.

    Only direct two-node loops are seen; use ``detect_cycles`` for loops
    of any length.
    """
    circular: List[CircularReference] = []
    items = list(links)
    for i, first in enumerate(items):
        for second in items[i + 1 :]:
            if first.source_id == second.target_id and first.target_id == second.source_id:
                circular.append(
                    CircularReference(
                        entities=(first.source_id, first.target_id),
                        link_types=(first.type.value, second.type.value),
                    )
                )
    return circular


def detect_cycles(links: Iterable[Link]) -> List[List[str]]:
    """Depth-first search for directed cycles of any length.

    One cycle is reported per back edge found, so every looping component
    shows up at least once; overlapping loops may be folded together.
    Cycles are rotated to start at their smallest node id and closed with
    that node again, e.g. ``["a", "b", "c", "a"]``.
    """
    adjacency = build_adjacency(links)
    done: set[str] = set()
    seen_cycles: set[Tuple[str, ...]] = set()
    cycles: List[List[str]] = []

    for root in list(adjacency.keys()):
        if root in done:
            continue
        stack: List[Tuple[str, int]] = [(root, 0)]
        on_path: List[str] = [root]
        on_path_set = {root}
        while stack:
            node, edge_index = stack[-1]
            edges = adjacency.get(node, [])
            if edge_index >= len(edges):
                stack.pop()
                on_path.pop()
                on_path_set.discard(node)
                done.add(node)
                continue
            stack[-1] = (node, edge_index + 1)
            nxt = edges[edge_index].target_id
            if nxt in on_path_set:
                loop = on_path[on_path.index(nxt) :]
                pivot = loop.index(min(loop))
                canonical = tuple(loop[pivot:] + loop[:pivot])
                if canonical not in seen_cycles:
                    seen_cycles.add(canonical)
                    cycles.append(list(canonical) + [canonical[0]])
            elif nxt not in done:
                stack.append((nxt, 0))
                on_path.append(nxt)
                on_path_set.add(nxt)
    return cycles


def procurement_links(procurement_id: str, links: Iterable[Link]) -> List[Link]:
    return [link for link in links if link.source_id == procurement_id or link.procurement_id == procurement_id]


def validate_procurement_chain(procurement_id: str, links: Iterable[Link]) -> ChainValidation:
    scoped = procurement_links(procurement_id, links)
    present = {link.type for link in scoped}

    issues: List[Dict[str, Any]] = []
    for link_type in CANONICAL_CHAIN:
        if link_type not in present:
            issues.append({"type": "missing_link", "link_type": link_type.value, "severity": "warning"})

    circular = detect_circular_references(scoped)
    if circular:
        issues.append(
            {
                "type": "circular_reference",
                "references": [reference.to_dict() for reference in circular],
                "severity": "critical",
            }
        )

    return ChainValidation(procurement_id=procurement_id, issues=tuple(issues), link_count=len(scoped))


def workflow_progress(procurement_id: str, links: Iterable[Link]) -> Dict[str, Any]:
    # Scoped by the metadata tag only; links keyed by source id alone do not count here.
    scoped = [link for link in links if link.procurement_id == procurement_id]

    stages: List[Dict[str, Any]] = []
    for order, (stage_name, link_type) in enumerate(_PROGRESS_STAGES, start=1):
        found = next((link for link in scoped if link.type == link_type), None) if link_type else None
        # The closing stage has no link of its own and always counts as complete.
        completed = found is not None or link_type is None
        stages.append(
            {
                "stage": stage_name,
                "completed": completed,
                "order": order,
                "completed_at": _isoformat(found.created_at) if found is not None else None,
            }
        )

    completed_stages = sum(1 for stage in stages if stage["completed"])
    total = len(_PROGRESS_STAGES)
    return {
        "procurement_id": procurement_id,
        "stages": stages,
        "completed_stages": completed_stages,
        "total_stages": total,
        "progress_percentage": round(100 * completed_stages / total),
    }


def procurement_chain(
    procurement_id: str,
    links: Iterable[Link],
    entities: Mapping[str, Mapping[str, Any]] | None = None,
) -> ProcurementChain:
    """Reconstruct Plan -> Contract by following active canonical links forward."""
    known = entities or {}
    scoped = [link for link in procurement_links(procurement_id, links) if link.status == LinkStatus.ACTIVE]

    def resolve(entity_id: str) -> Mapping[str, Any]:
        return known.get(entity_id) or {"id": entity_id}

    plan_ids: List[str] = []
    for link in scoped:
        if link.type == LinkType.PLAN_TO_RFQ and link.source_id not in plan_ids:
            plan_ids.append(link.source_id)

    layers: List[List[str]] = [plan_ids]
    missing: List[str] = []
    frontier = plan_ids
    for link_type in CANONICAL_CHAIN:
        reached: List[str] = []
        for link in scoped:
            if link.type == link_type and link.source_id in frontier and link.target_id not in reached:
                reached.append(link.target_id)
        if not reached:
            missing.append(link_type.value)
        layers.append(reached)
        frontier = reached

    plans, rfqs, submissions, evaluations, approvals, awards, contracts = layers
    return ProcurementChain(
        procurement_id=procurement_id,
        plan=resolve(plans[0]) if plans else None,
        rfq=resolve(rfqs[0]) if rfqs else None,
        submissions=tuple(resolve(item) for item in submissions),
        evaluations=tuple(resolve(item) for item in evaluations),
        approvals=tuple(resolve(item) for item in approvals),
        award=resolve(awards[0]) if awards else None,
        contract=resolve(contracts[0]) if contracts else None,
        missing_links=tuple(missing),
    )


def link_statistics(links: Iterable[Link]) -> Dict[str, Any]:
    items = list(links)
    breakdown: Dict[str, int] = {}
    for link in items:
        breakdown[link.type.value] = breakdown.get(link.type.value, 0) + 1
    return {
        "total_links": len(items),
        "active_links": sum(1 for link in items if link.status == LinkStatus.ACTIVE),
        "inactive_links": sum(1 for link in items if link.status == LinkStatus.INACTIVE),
        "archived_links": sum(1 for link in items if link.status == LinkStatus.ARCHIVED),
        "link_type_breakdown": breakdown,
    }


def links_to_csv(links: Sequence[Link]) -> str:
    # Values are joined as-is; embedded commas are not escaped.
    if not links:
        return "No data"
    rows = [",".join(_CSV_HEADERS)]
    for link in links:
        rows.append(
            ",".join(
                [
                    link.id,
                    link.type.value,
                    link.source_id,
                    link.target_id,
                    link.status.value,
                    link.created_by,
                    _isoformat(link.created_at) or "",
                ]
            )
        )
    return "\n".join(rows)


def export_report(links: Iterable[Link], export_format: str = "json") -> Dict[str, Any]:
    items = list(links)
    timestamp = _isoformat(_utc_now())
    if str(export_format or "").strip().lower() == "csv":
        return {"format": "csv", "data": links_to_csv(items), "timestamp": timestamp}
    return {
        "format": "json",
        "data": [link.to_dict() for link in items],
        "timestamp": timestamp,
        "record_count": len(items),
    }
