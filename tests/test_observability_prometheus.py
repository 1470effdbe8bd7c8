import json
import logging
import unittest

from proclink.core import StageTransitioned, get_event_bus
from proclink.observability import JsonLogFormatter, reset_metrics_for_tests, set_log_request_id
from tests.helpers.sandbox import build_temp_app, reset_shared_state


class ObservabilityPrometheusTest(unittest.TestCase):
    def setUp(self) -> None:
        reset_shared_state()
        self.app = build_temp_app()
        self.client = self.app.test_client()

    def tearDown(self) -> None:
        reset_shared_state()

    def test_metrics_endpoint_exposes_prometheus_metrics(self) -> None:
        self.client.get("/api/unknown")
        self.client.post(
            "/api/procurements/PROC-1/workflow/transition",
            json={"to_stage": "templates"},
            headers={"X-User-Role": "admin"},
        )
        self.client.post("/api/links", json={"type": "nope", "source_id": "A", "target_id": "B"})
        get_event_bus().publish(StageTransitioned(procurement_id="PROC-9", from_stage="rfq", to_stage="submission"))

        response = self.client.get("/metrics")
        self.assertEqual(response.status_code, 200)
        self.assertIn("text/plain", response.headers.get("Content-Type") or "")

        payload = response.get_data(as_text=True)
        self.assertIn("# TYPE http_request_duration_ms histogram", payload)
        self.assertIn('route="/api/procurements/<procurement_id>/workflow/transition"', payload)
        self.assertIn('domain_event_emitted_total{event_type="StageTransitioned"} 2', payload)
        self.assertIn('workflow_transition_total{outcome="ok",stage="templates"} 1', payload)
        self.assertIn('link_operation_total{operation="create",outcome="unknown_link_type"} 1', payload)

    def test_health_reports_counts_and_metrics(self) -> None:
        self.client.get("/api/procurements/PROC-1/workflow")
        response = self.client.get("/health")

        self.assertEqual(response.status_code, 200)
        payload = response.get_json()
        self.assertEqual(payload["status"], "ok")
        self.assertEqual(payload["procurements"], 1)
        self.assertEqual(payload["links"], 0)
        self.assertEqual(payload["metrics"]["requests_total"], 1)

    def test_responses_carry_timing_and_request_id(self) -> None:
        response = self.client.get("/api/stages", headers={"X-Request-Id": "trace-1"})
        self.assertEqual(response.headers.get("X-Request-Id"), "trace-1")
        self.assertTrue(response.headers.get("X-Response-Time-Ms"))


class JsonLogFormatterTest(unittest.TestCase):
    def tearDown(self) -> None:
        reset_metrics_for_tests()

    def _record(self, **extra) -> logging.LogRecord:
        record = logging.LogRecord("proclink", logging.INFO, __file__, 1, "link_created", None, None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_background_records_use_context_request_id(self) -> None:
        set_log_request_id("job-7")
        try:
            payload = json.loads(JsonLogFormatter().format(self._record(link_id="LINK_1")))
        finally:
            set_log_request_id(None)

        self.assertEqual(payload["message"], "link_created")
        self.assertEqual(payload["level"], "info")
        self.assertEqual(payload["request_id"], "job-7")
        self.assertEqual(payload["link_id"], "LINK_1")

    def test_explicit_request_id_wins_outside_requests(self) -> None:
        set_log_request_id(None)
        payload = json.loads(JsonLogFormatter().format(self._record(request_id="req-9")))
        self.assertEqual(payload["request_id"], "req-9")


if __name__ == "__main__":
    unittest.main()
