from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping

from proclink.core.event_bus import EventBus, LinkCreated, LinkStatusChanged, get_event_bus
from proclink.domain.contracts import LinkCreateInput, OperationResult
from proclink.domain.gateways import EntitySnapshotProvider, LinkRepository
from proclink.linking import graph
from proclink.linking.links import Link, create_link, update_link_status
from proclink.linking.rules import rule_for
from proclink.linking.validator import LinkValidation, validate_link
from proclink.observability import observe_link_operation


class LinkingService:
    def __init__(
        self,
        repository: LinkRepository,
        snapshot_provider: EntitySnapshotProvider | None = None,
        event_bus: EventBus | None = None,
        *,
        id_prefix: str = "LINK",
        default_actor: str = "system",
    ) -> None:
        self.repository = repository
        self.snapshot_provider = snapshot_provider
        self.event_bus = event_bus or get_event_bus()
        self.id_prefix = id_prefix
        self.default_actor = default_actor
        self._logger = logging.getLogger("proclink")

    def validate(
        self,
        link_type: str,
        source_id: str,
        target_id: str,
        *,
        source_snapshot: Mapping[str, Any] | None = None,
        target_snapshot: Mapping[str, Any] | None = None,
    ) -> LinkValidation:
        rule = rule_for(link_type)
        if rule is not None and self.snapshot_provider is not None:
            if source_snapshot is None:
                source_snapshot = self.snapshot_provider.snapshot(source_id, rule.source_entity_kind.value)
            if target_snapshot is None:
                target_snapshot = self.snapshot_provider.snapshot(target_id, rule.target_entity_kind.value)
        return validate_link(link_type, source_snapshot, target_snapshot)

    def create(self, create_input: LinkCreateInput) -> OperationResult[Link]:
        metadata: Dict[str, Any] = dict(create_input.metadata or {})
        if create_input.procurement_id:
            metadata["procurementId"] = create_input.procurement_id

        result = create_link(
            create_input.link_type,
            create_input.source_id,
            create_input.target_id,
            {
                "created_by": create_input.created_by or self.default_actor,
                "reason": create_input.reason,
                "metadata": metadata,
            },
            id_prefix=self.id_prefix,
        )
        if not result.ok:
            return self._rejected("create", create_input, result)

        # Types without a field rule (document/template links) are stored unchecked.
        if not create_input.skip_validation and rule_for(create_input.link_type) is not None:
            validation = self.validate(
                create_input.link_type,
                create_input.source_id,
                create_input.target_id,
                source_snapshot=create_input.source_snapshot,
                target_snapshot=create_input.target_snapshot,
            )
            if not validation.valid:
                error = validation.to_error(create_input.link_type)
                return self._rejected("create", create_input, OperationResult.failure(error))

        link = result.unwrap()
        self.repository.append(link)
        observe_link_operation("create", "ok")
        self._logger.info(
            "link_created",
            extra={
                "link_id": link.id,
                "link_type": link.type.value,
                "source_id": link.source_id,
                "target_id": link.target_id,
                "procurement_id": link.procurement_id,
            },
        )
        self.event_bus.publish(
            LinkCreated(
                procurement_id=link.procurement_id or "",
                link_id=link.id,
                link_type=link.type.value,
                source_id=link.source_id,
                target_id=link.target_id,
                created_by=link.created_by,
            )
        )
        return result

    def _rejected(self, operation: str, create_input: LinkCreateInput, result: OperationResult) -> OperationResult:
        error_code = result.error.code if result.error is not None else "unknown"
        observe_link_operation(operation, error_code)
        self._logger.warning(
            "link_rejected",
            extra={
                "link_type": create_input.link_type,
                "source_id": create_input.source_id,
                "target_id": create_input.target_id,
                "error_code": error_code,
                "details": result.error.details if result.error is not None else None,
            },
        )
        return result

    def update_status(self, link_id: str, new_status: str) -> OperationResult[Link]:
        with self.repository.lock:
            previous = self.repository.get(link_id)
            result = update_link_status(link_id, new_status, self.repository.all())
            if not result.ok:
                error_code = result.error.code if result.error is not None else "unknown"
                observe_link_operation("update_status", error_code)
                self._logger.warning("link_status_rejected", extra={"link_id": link_id, "error_code": error_code})
                return result
            updated = result.unwrap()
            self.repository.replace(updated)

        observe_link_operation("update_status", "ok")
        from_status = previous.status.value if previous is not None else ""
        self._logger.info(
            "link_status_updated",
            extra={"link_id": link_id, "from_status": from_status, "to_status": updated.status.value},
        )
        self.event_bus.publish(
            LinkStatusChanged(
                procurement_id=updated.procurement_id or "",
                link_id=updated.id,
                from_status=from_status,
                to_status=updated.status.value,
            )
        )
        return result

    def links(self, procurement_id: str | None = None) -> List[Link]:
        if procurement_id:
            return self.repository.for_procurement(procurement_id)
        return self.repository.all()

    def linked_entities(self, source_id: str, link_type: str | None = None) -> List[Dict[str, Any]]:
        return graph.linked_entities(source_id, self.repository.all(), link_type)

    def reverse_links(self, target_id: str, link_type: str | None = None) -> List[Dict[str, Any]]:
        return graph.reverse_links(target_id, self.repository.all(), link_type)

    def find_path(self, start_id: str, end_id: str) -> graph.PathResult:
        return graph.find_path(start_id, end_id, self.repository.all())

    def circular_references(self, procurement_id: str | None = None) -> List[graph.CircularReference]:
        return graph.detect_circular_references(self.links(procurement_id))

    def cycles(self, procurement_id: str | None = None) -> List[List[str]]:
        return graph.detect_cycles(self.links(procurement_id))

    def validate_chain(self, procurement_id: str) -> graph.ChainValidation:
        return graph.validate_procurement_chain(procurement_id, self.repository.all())

    def workflow_progress(self, procurement_id: str) -> Dict[str, Any]:
        return graph.workflow_progress(procurement_id, self.repository.all())

    def chain(self, procurement_id: str) -> graph.ProcurementChain:
        scoped = self.repository.for_procurement(procurement_id)
        entities: Dict[str, Mapping[str, Any]] = {}
        if self.snapshot_provider is not None:
            for link in scoped:
                rule = rule_for(link.type)
                if rule is None:
                    continue
                if link.source_id not in entities:
                    entities[link.source_id] = self.snapshot_provider.snapshot(
                        link.source_id, rule.source_entity_kind.value
                    )
                if link.target_id not in entities:
                    entities[link.target_id] = self.snapshot_provider.snapshot(
                        link.target_id, rule.target_entity_kind.value
                    )
        return graph.procurement_chain(procurement_id, scoped, entities)

    def statistics(self, procurement_id: str | None = None) -> Dict[str, Any]:
        return graph.link_statistics(self.links(procurement_id))

    def export(self, export_format: str = "json", procurement_id: str | None = None) -> Dict[str, Any]:
        return graph.export_report(self.links(procurement_id), export_format)
