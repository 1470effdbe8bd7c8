from proclink.linking.graph import (
    ChainValidation,
    CircularReference,
    PathResult,
    ProcurementChain,
    build_adjacency,
    detect_circular_references,
    detect_cycles,
    export_report,
    find_path,
    link_statistics,
    linked_entities,
    procurement_chain,
    procurement_links,
    reverse_links,
    validate_procurement_chain,
    workflow_progress,
)
from proclink.linking.links import Link, LinkStatus, create_link, generate_link_id, update_link_status
from proclink.linking.rules import CANONICAL_CHAIN, LINK_TYPE_RULES, EntityKind, LinkType, LinkTypeRule
from proclink.linking.validator import LinkValidation, validate_link

__all__ = [
    "CANONICAL_CHAIN",
    "LINK_TYPE_RULES",
    "ChainValidation",
    "CircularReference",
    "EntityKind",
    "Link",
    "LinkStatus",
    "LinkType",
    "LinkTypeRule",
    "LinkValidation",
    "PathResult",
    "ProcurementChain",
    "build_adjacency",
    "create_link",
    "detect_circular_references",
    "detect_cycles",
    "export_report",
    "find_path",
    "generate_link_id",
    "link_statistics",
    "linked_entities",
    "procurement_chain",
    "procurement_links",
    "reverse_links",
    "update_link_status",
    "validate_link",
    "validate_procurement_chain",
    "workflow_progress",
]
