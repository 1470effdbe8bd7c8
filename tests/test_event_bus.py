import unittest
from datetime import datetime, timedelta, timezone

from proclink.core import EventBus, LinkCreated, StageTransitioned, get_event_bus, reset_event_bus_for_tests
from proclink.observability import metrics_snapshot, reset_metrics_for_tests


class EventBusTest(unittest.TestCase):
    def setUp(self) -> None:
        reset_metrics_for_tests()

    def tearDown(self) -> None:
        reset_event_bus_for_tests()
        reset_metrics_for_tests()

    def test_handler_execution_order_is_predictable(self) -> None:
        bus = EventBus()
        execution_trace = []
        bus.subscribe(StageTransitioned, lambda _event: execution_trace.append("first"))
        bus.subscribe(StageTransitioned, lambda _event: execution_trace.append("second"))

        bus.publish(StageTransitioned(procurement_id="PROC-1", from_stage="planning", to_stage="templates"))

        self.assertEqual(execution_trace, ["first", "second"])

    def test_handlers_only_receive_their_event_type(self) -> None:
        bus = EventBus()
        received = []
        bus.subscribe(LinkCreated, received.append)

        bus.publish(StageTransitioned(procurement_id="PROC-1", from_stage="planning", to_stage="templates"))
        self.assertEqual(received, [])

    def test_failing_handler_does_not_stop_others(self) -> None:
        bus = EventBus()
        received = []

        def broken_handler(_event):
            raise RuntimeError("boom")

        bus.subscribe(LinkCreated, broken_handler)
        bus.subscribe(LinkCreated, received.append)
        with self.assertLogs("proclink", level="ERROR") as captured:
            bus.publish(
                LinkCreated(
                    procurement_id="PROC-1",
                    link_id="LINK_1",
                    link_type="plan_to_rfq",
                    source_id="PLAN-1",
                    target_id="RFQ-1",
                )
            )

        self.assertEqual(len(received), 1)
        self.assertIn("event_handler_failed", captured.output[0])

    def test_publish_counts_emitted_events(self) -> None:
        get_event_bus().publish(StageTransitioned(procurement_id="PROC-1", from_stage="rfq", to_stage="submission"))
        self.assertEqual(metrics_snapshot()["domain_events"], {"StageTransitioned": 1})

    def test_event_payload_is_normalised(self) -> None:
        local_time = datetime(2026, 3, 1, 9, 0, tzinfo=timezone(timedelta(hours=-3)))
        event = StageTransitioned(
            event_id=" ",
            occurred_at=local_time,
            procurement_id=" PROC-1 ",
            from_stage="planning",
            to_stage="templates",
            actor="alice",
        )
        payload = event.to_payload()

        self.assertEqual(payload["event_type"], "StageTransitioned")
        self.assertEqual(payload["occurred_at"], "2026-03-01T12:00:00Z")
        self.assertEqual(payload["procurement_id"], "PROC-1")
        self.assertEqual(len(payload["event_id"]), 32)


if __name__ == "__main__":
    unittest.main()
