import unittest

from proclink.errors import NotFound
from proclink.workflow.permissions import STAGE_PERMISSIONS, holds_any, required_permissions
from proclink.workflow.stages import (
    INITIAL_STAGE,
    PROCESS_STAGES,
    TERMINAL_STAGE,
    StageId,
    all_stages,
    build_process_steps,
    find_stage,
    is_after,
    is_before,
    next_stage,
    previous_stage,
    stage_by_id,
    stage_by_order,
    total_stages,
)


class StageRegistryTest(unittest.TestCase):
    def test_orders_are_contiguous_from_one(self) -> None:
        orders = [stage.order for stage in all_stages()]
        self.assertEqual(orders, list(range(1, total_stages() + 1)))
        for order in orders:
            self.assertEqual(stage_by_order(order).order, order)

    def test_registry_holds_nine_required_stages(self) -> None:
        self.assertEqual(total_stages(), 9)
        self.assertTrue(all(stage.required for stage in PROCESS_STAGES))
        self.assertEqual(INITIAL_STAGE, StageId.PLANNING)
        self.assertEqual(TERMINAL_STAGE, StageId.COMPLETED)

    def test_lookup_accepts_enum_and_raw_id(self) -> None:
        self.assertEqual(stage_by_id("rfq").label, "RFQ")
        self.assertEqual(stage_by_id(" Award ").id, StageId.AWARD)
        self.assertIs(stage_by_id(StageId.CONTRACT), find_stage("contract"))

    def test_unknown_lookups_raise_not_found(self) -> None:
        with self.assertRaises(NotFound) as ctx:
            stage_by_id("shipping")
        self.assertEqual(ctx.exception.payload["resource"], "stage")
        self.assertIsNone(find_stage("shipping"))
        with self.assertRaises(NotFound):
            stage_by_order(10)

    def test_malformed_order_is_not_found(self) -> None:
        for order in ("x", None, "", [3]):
            with self.assertRaises(NotFound) as ctx:
                stage_by_order(order)
            self.assertEqual(ctx.exception.payload["resource"], "stage")
        self.assertEqual(stage_by_order("3").id, StageId.RFQ)

    def test_neighbours_and_ordering(self) -> None:
        self.assertEqual(next_stage("planning").id, StageId.TEMPLATES)
        self.assertIsNone(next_stage("completed"))
        self.assertIsNone(previous_stage("planning"))
        self.assertEqual(previous_stage("award").id, StageId.CLARIFICATION)
        self.assertTrue(is_before("rfq", "award"))
        self.assertTrue(is_after("contract", "evaluation"))
        self.assertFalse(is_before("rfq", "rfq"))

    def test_process_steps_mark_current_stage(self) -> None:
        steps = build_process_steps("submission")
        states = {step["key"]: step["state"] for step in steps}
        self.assertEqual(states["rfq"], "completed")
        self.assertEqual(states["submission"], "current")
        self.assertEqual(states["evaluation"], "future")


class StagePermissionTest(unittest.TestCase):
    def test_every_stage_has_a_permission_set(self) -> None:
        self.assertEqual(set(STAGE_PERMISSIONS), {stage.id for stage in PROCESS_STAGES})

    def test_required_permissions_are_sorted(self) -> None:
        self.assertEqual(required_permissions("rfq"), ["create_rfq", "edit_rfq", "publish_rfq"])

    def test_holding_any_listed_permission_is_enough(self) -> None:
        self.assertTrue(holds_any(["publish_rfq"], "rfq"))
        self.assertTrue(holds_any(["view_reports"], "completed"))
        self.assertFalse(holds_any(["sign_contracts", "approve_submissions"], "completed"))
        self.assertFalse(holds_any(["view_rfq"], "rfq"))
        self.assertFalse(holds_any(None, "planning"))

    def test_clarification_is_open_to_any_actor(self) -> None:
        self.assertEqual(required_permissions("clarification"), [])
        self.assertTrue(holds_any(None, "clarification"))
        self.assertTrue(holds_any(["view_dashboard"], "clarification"))


if __name__ == "__main__":
    unittest.main()
