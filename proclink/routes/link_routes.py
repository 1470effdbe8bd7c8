from __future__ import annotations

from flask import Blueprint, Response, current_app, jsonify, request

from proclink.domain.contracts import LinkCreateInput
from proclink.errors import MissingIdentifier, ValidationError
from proclink.policies import current_actor
from proclink.routes._helpers import clean, json_body, services
from proclink.ui_strings import success_message


link_bp = Blueprint("links", __name__)

EXPORT_FORMATS = {"json", "csv"}


def _scope() -> str | None:
    return clean(request.args.get("procurement_id")) or None


@link_bp.route("/api/links", methods=["GET"])
def list_links():
    items = services().linking.links(_scope())
    return jsonify({"items": [link.to_dict() for link in items], "count": len(items)})


@link_bp.route("/api/links", methods=["POST"])
def create_link():
    payload = json_body()
    metadata = payload.get("metadata")
    source = payload.get("source")
    target = payload.get("target")
    create_input = LinkCreateInput(
        link_type=clean(payload.get("type") or payload.get("link_type")),
        source_id=clean(payload.get("source_id")),
        target_id=clean(payload.get("target_id")),
        created_by=current_actor(current_app.config.get("DEFAULT_ACTOR", "system")),
        reason=clean(payload.get("reason")),
        procurement_id=clean(payload.get("procurement_id")) or None,
        metadata=dict(metadata) if isinstance(metadata, dict) else {},
        source_snapshot=source if isinstance(source, dict) else None,
        target_snapshot=target if isinstance(target, dict) else None,
    )
    link = services().linking.create(create_input).unwrap()
    return jsonify({"message": success_message("link_created"), "link": link.to_dict()}), 201


@link_bp.route("/api/links/validate", methods=["POST"])
def validate_link():
    payload = json_body()
    source = payload.get("source")
    target = payload.get("target")
    validation = services().linking.validate(
        clean(payload.get("type") or payload.get("link_type")),
        clean(payload.get("source_id")),
        clean(payload.get("target_id")),
        source_snapshot=source if isinstance(source, dict) else None,
        target_snapshot=target if isinstance(target, dict) else None,
    )
    return jsonify(validation.to_dict())


@link_bp.route("/api/links/<link_id>/status", methods=["PATCH"])
def update_link_status(link_id: str):
    payload = json_body()
    link = services().linking.update_status(link_id, clean(payload.get("status"))).unwrap()
    return jsonify({"message": success_message("link_status_updated"), "link": link.to_dict()})


@link_bp.route("/api/links/<entity_id>/targets", methods=["GET"])
def linked_targets(entity_id: str):
    items = services().linking.linked_entities(entity_id, clean(request.args.get("type")) or None)
    return jsonify({"items": items, "count": len(items)})


@link_bp.route("/api/links/<entity_id>/sources", methods=["GET"])
def linked_sources(entity_id: str):
    items = services().linking.reverse_links(entity_id, clean(request.args.get("type")) or None)
    return jsonify({"items": items, "count": len(items)})


@link_bp.route("/api/links/path", methods=["GET"])
def link_path():
    start_id = clean(request.args.get("from"))
    end_id = clean(request.args.get("to"))
    missing = [name for name, value in (("from", start_id), ("to", end_id)) if not value]
    if missing:
        raise MissingIdentifier(missing)
    return jsonify(services().linking.find_path(start_id, end_id).to_dict())


@link_bp.route("/api/links/cycles", methods=["GET"])
def link_cycles():
    linking = services().linking
    scope = _scope()
    return jsonify(
        {
            "circular_references": [item.to_dict() for item in linking.circular_references(scope)],
            "cycles": linking.cycles(scope),
        }
    )


@link_bp.route("/api/links/statistics", methods=["GET"])
def link_statistics():
    return jsonify(services().linking.statistics(_scope()))


@link_bp.route("/api/links/export", methods=["GET"])
def export_links():
    default_format = current_app.config.get("EXPORT_DEFAULT_FORMAT", "json")
    export_format = clean(request.args.get("format") or default_format).lower()
    if export_format not in EXPORT_FORMATS:
        raise ValidationError(
            code="invalid_export_format",
            message_key="invalid_export_format",
            details=f"Unsupported export format: {export_format}",
        )
    report = services().linking.export(export_format, _scope())
    if export_format == "csv" and request.args.get("download"):
        return Response(
            report["data"],
            mimetype="text/csv",
            headers={"Content-Disposition": "attachment; filename=links.csv"},
        )
    return jsonify(report)


@link_bp.route("/api/procurements/<procurement_id>/chain", methods=["GET"])
def procurement_chain(procurement_id: str):
    linking = services().linking
    return jsonify(
        {
            "chain": linking.chain(procurement_id).to_dict(),
            "validation": linking.validate_chain(procurement_id).to_dict(),
        }
    )


@link_bp.route("/api/procurements/<procurement_id>/link-progress", methods=["GET"])
def procurement_link_progress(procurement_id: str):
    return jsonify(services().linking.workflow_progress(procurement_id))
