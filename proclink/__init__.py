from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from proclink.config import Config
from proclink.observability import (
    configure_json_logging,
    ensure_request_id,
    mark_request_start,
    metrics_snapshot,
    observe_response,
    prometheus_metrics_text,
)


def create_app(config_class=Config, *, services=None):
    app = Flask(__name__)
    app.config.from_object(config_class)
    configure_json_logging(app)

    _register_services(app, services)
    _register_error_handlers(app)
    _register_blueprints(app)
    _register_health(app)
    return app


def _register_services(app: Flask, services) -> None:
    if services is None:
        from proclink.application.services import build_services

        services = build_services(app.config)
    app.extensions["proclink"] = services


def _register_blueprints(app: Flask) -> None:
    from proclink.routes.link_routes import link_bp
    from proclink.routes.workflow_routes import workflow_bp

    app.register_blueprint(workflow_bp)
    app.register_blueprint(link_bp)


def _register_error_handlers(app: Flask) -> None:
    from proclink.errors import AppError, SystemError

    @app.before_request
    def _ensure_request_id() -> None:
        ensure_request_id()
        mark_request_start()

    @app.after_request
    def _append_request_id(response):
        response.headers["X-Request-Id"] = ensure_request_id()
        return observe_response(response)

    def _log_error(error: AppError, request_id: str) -> None:
        log_method = app.logger.error if error.critical else app.logger.warning
        log_method(
            "application_error",
            extra={
                "request_id": request_id,
                "error_code": error.code,
                "http_status": error.http_status,
                "message_key": error.message_key,
                "details": error.details,
                "request_path": request.path,
                "http_method": request.method,
            },
            exc_info=error.critical,
        )

    @app.errorhandler(AppError)
    def _handle_app_error(exc: AppError):
        request_id = ensure_request_id()
        _log_error(exc, request_id)
        return jsonify(exc.to_response_payload(request_id)), exc.http_status

    @app.errorhandler(Exception)
    def _handle_unexpected(exc: Exception):
        if isinstance(exc, HTTPException):
            return exc

        request_id = ensure_request_id()
        mapped = SystemError(
            code="unexpected_error",
            message_key="unexpected_error",
            http_status=500,
            critical=True,
            details=str(exc),
        )
        app.logger.exception(
            "unexpected_exception",
            extra={
                "request_id": request_id,
                "error_code": mapped.code,
                "request_path": request.path,
                "http_method": request.method,
            },
        )
        return jsonify(mapped.to_response_payload(request_id)), mapped.http_status


def _register_health(app: Flask) -> None:
    @app.route("/health")
    def health():
        services = app.extensions["proclink"]
        payload = {
            "status": "ok",
            "env": app.config.get("ENV", "unknown"),
            "links": len(services.link_repository.all()),
            "procurements": len(services.workflow_repository.procurement_ids()),
            "metrics": metrics_snapshot(),
        }
        return payload, 200

    @app.route("/metrics")
    def metrics():
        return prometheus_metrics_text(), 200, {"Content-Type": "text/plain; version=0.0.4"}
