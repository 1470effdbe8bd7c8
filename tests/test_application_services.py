import unittest

from proclink.application.linking_service import LinkingService
from proclink.application.services import build_services
from proclink.application.workflow_service import WorkflowService
from proclink.core import (
    EventBus,
    LinkCreated,
    LinkStatusChanged,
    StageTransitioned,
    StepValidated,
    TransitionRejected,
)
from proclink.domain.contracts import LinkCreateInput, TransitionInput
from proclink.errors import Blocked, PermissionDenied, UnknownLinkType, ValidationFailed
from proclink.infrastructure.repositories.memory import (
    InMemoryEntitySnapshots,
    InMemoryLinkRepository,
    InMemoryProcurementData,
    InMemoryWorkflowRepository,
)
from proclink.linking.links import LinkStatus
from proclink.observability import metrics_snapshot, reset_metrics_for_tests
from proclink.policies import RolePermissionProvider
from proclink.workflow.requirements import RequirementsStepValidator
from proclink.workflow.stages import StageId
from tests.helpers.sandbox import CHAIN_FIELDS


class WorkflowServiceTest(unittest.TestCase):
    def setUp(self) -> None:
        reset_metrics_for_tests()
        self.bus = EventBus()
        self.events = []
        for event_type in (StageTransitioned, TransitionRejected, StepValidated):
            self.bus.subscribe(event_type, self.events.append)
        self.repository = InMemoryWorkflowRepository()
        self.service = WorkflowService(
            repository=self.repository,
            permission_provider=RolePermissionProvider({"alice": "procurement_officer", "eve": "evaluator"}),
            event_bus=self.bus,
        )

    def tearDown(self) -> None:
        reset_metrics_for_tests()

    def test_first_read_starts_at_planning(self) -> None:
        state = self.service.get_state("PROC-1")
        self.assertEqual(state.current_stage_id, StageId.PLANNING)
        self.assertEqual(self.repository.procurement_ids(), ["PROC-1"])

    def test_transition_persists_and_emits_event(self) -> None:
        result = self.service.transition(TransitionInput("PROC-1", "templates", actor="alice"))

        self.assertTrue(result.ok)
        self.assertEqual(self.repository.get("PROC-1").current_stage_id, StageId.TEMPLATES)
        self.assertEqual(len(self.events), 1)
        event = self.events[0]
        self.assertIsInstance(event, StageTransitioned)
        self.assertEqual((event.from_stage, event.to_stage, event.actor), ("planning", "templates", "alice"))
        self.assertEqual(metrics_snapshot()["workflow_transitions"], {"templates:ok": 1})

    def test_explicit_permissions_override_the_provider(self) -> None:
        result = self.service.transition(
            TransitionInput("PROC-1", "templates", actor="nobody", actor_permissions=["edit_templates"])
        )
        self.assertTrue(result.ok)

    def test_rejected_transition_leaves_state_untouched(self) -> None:
        result = self.service.transition(TransitionInput("PROC-1", "templates", actor="eve"))

        self.assertIsInstance(result.error, PermissionDenied)
        self.assertEqual(self.service.get_state("PROC-1").current_stage_id, StageId.PLANNING)
        self.assertIsInstance(self.events[-1], TransitionRejected)
        self.assertEqual(self.events[-1].error_code, "permission_denied")
        self.assertEqual(metrics_snapshot()["workflow_transitions"], {"templates:permission_denied": 1})

    def test_actor_named_as_role_is_resolved(self) -> None:
        result = self.service.transition(TransitionInput("PROC-1", "templates", actor="admin"))
        self.assertTrue(result.ok)

    def test_provider_is_asked_about_the_target_stage(self) -> None:
        asked = []

        class StageGate(RolePermissionProvider):
            def has_any(self, actor, stage_id):
                asked.append((actor, stage_id))
                return stage_id == "templates"

        service = WorkflowService(repository=self.repository, permission_provider=StageGate(), event_bus=self.bus)

        self.assertTrue(service.transition(TransitionInput("PROC-1", "templates", actor="zoe")).ok)
        denied = service.transition(TransitionInput("PROC-1", "rfq", actor="zoe"))

        self.assertIsInstance(denied.error, PermissionDenied)
        self.assertEqual(asked, [("zoe", "templates"), ("zoe", "rfq")])

    def test_validated_issues_block_transition(self) -> None:
        state = self.service.validate_step("PROC-1", issues=["Missing document: procurementPlan"])
        self.assertEqual(state.blocking_issues, ("Missing document: procurementPlan",))
        self.assertIsInstance(self.events[-1], StepValidated)
        self.assertEqual(self.events[-1].issue_count, 1)

        result = self.service.transition(TransitionInput("PROC-1", "templates", actor="alice"))
        self.assertIsInstance(result.error, Blocked)

        self.service.validate_step("PROC-1", issues=[])
        self.assertTrue(self.service.can_transition("PROC-1", "templates"))

    def test_step_validator_supplies_issues(self) -> None:
        data = InMemoryProcurementData()
        data.put("PROC-1", {"documents": [{"type": "procurementPlan"}]})
        service = WorkflowService(
            repository=self.repository,
            permission_provider=RolePermissionProvider(),
            step_validator=RequirementsStepValidator(data),
            event_bus=self.bus,
        )

        state = service.validate_step("PROC-1")
        self.assertEqual(state.blocking_issues, ("Missing approval: planApproval",))

    def test_describe_trims_history(self) -> None:
        for stage_id in ("templates", "rfq", "submission"):
            self.service.transition(TransitionInput("PROC-1", stage_id, actor="alice")).unwrap()

        payload = self.service.describe("PROC-1", history_limit=2)
        self.assertEqual(payload["current_stage_id"], "submission")
        self.assertEqual([item["to_stage_id"] for item in payload["transition_history"]], ["rfq", "submission"])
        self.assertEqual([stage["id"] for stage in payload["allowed_next_stages"]], ["evaluation"])
        self.assertEqual(payload["progress"]["current_index"], 4)
        self.assertTrue(self.service.is_stage_completed("PROC-1", "rfq"))
        self.assertEqual(self.service.describe("PROC-1", history_limit=0)["transition_history"], [])


class LinkingServiceTest(unittest.TestCase):
    def setUp(self) -> None:
        reset_metrics_for_tests()
        self.bus = EventBus()
        self.events = []
        self.bus.subscribe(LinkCreated, self.events.append)
        self.bus.subscribe(LinkStatusChanged, self.events.append)
        self.snapshots = InMemoryEntitySnapshots(CHAIN_FIELDS)
        self.repository = InMemoryLinkRepository()
        self.service = LinkingService(
            repository=self.repository,
            snapshot_provider=self.snapshots,
            event_bus=self.bus,
            id_prefix="PRL",
        )

    def tearDown(self) -> None:
        reset_metrics_for_tests()

    def _create(self, link_type: str, source_id: str, target_id: str, **kwargs):
        return self.service.create(
            LinkCreateInput(link_type, source_id, target_id, procurement_id="PROC-1", **kwargs)
        )

    def test_valid_link_is_stored_and_announced(self) -> None:
        link = self._create("plan_to_rfq", "PLAN-1", "RFQ-1", created_by="alice").unwrap()

        self.assertTrue(link.id.startswith("PRL_"))
        self.assertEqual(self.repository.all(), [link])
        self.assertEqual(link.metadata["procurementId"], "PROC-1")
        self.assertIsInstance(self.events[0], LinkCreated)
        self.assertEqual(self.events[0].created_by, "alice")
        self.assertEqual(metrics_snapshot()["link_operations"], {"create:ok": 1})

    def test_incomplete_entity_is_rejected(self) -> None:
        result = self._create("plan_to_rfq", "PLAN-DRAFT", "RFQ-1")

        self.assertIsInstance(result.error, ValidationFailed)
        self.assertEqual(result.error.details, "Plan missing required fields: title, procurementType")
        self.assertEqual(self.repository.all(), [])
        self.assertEqual(self.events, [])
        self.assertEqual(metrics_snapshot()["link_operations"], {"create:validation_failed": 1})

    def test_unknown_type_is_rejected_before_validation(self) -> None:
        result = self._create("plan_to_invoice", "PLAN-1", "INV-1")
        self.assertIsInstance(result.error, UnknownLinkType)

    def test_validation_can_be_skipped(self) -> None:
        result = self._create("plan_to_rfq", "PLAN-DRAFT", "RFQ-1", skip_validation=True)
        self.assertTrue(result.ok)

    def test_types_without_rules_are_stored_unchecked(self) -> None:
        link = self._create("document_to_procurement", "DOC-1", "PROC-1").unwrap()
        self.assertEqual(link.created_by, "system")

    def test_status_update_replaces_stored_link(self) -> None:
        link = self._create("plan_to_rfq", "PLAN-1", "RFQ-1").unwrap()

        updated = self.service.update_status(link.id, "archived").unwrap()
        again = self.service.update_status(link.id, "archived").unwrap()

        self.assertEqual(updated.status, LinkStatus.ARCHIVED)
        self.assertEqual(again.status, LinkStatus.ARCHIVED)
        self.assertEqual(self.repository.get(link.id).status, LinkStatus.ARCHIVED)
        changes = [event for event in self.events if isinstance(event, LinkStatusChanged)]
        transitions = [(event.from_status, event.to_status) for event in changes]
        self.assertEqual(transitions, [("active", "archived"), ("archived", "archived")])

    def test_status_update_errors_are_returned(self) -> None:
        self.assertEqual(self.service.update_status("PRL_0_MISSING", "inactive").error.code, "not_found")
        self.assertEqual(self.service.update_status("PRL_0_MISSING", "gone").error.code, "invalid_link_status")

    def test_full_chain_through_the_service(self) -> None:
        chain = [
            ("plan_to_rfq", "PLAN-1", "RFQ-1"),
            ("rfq_to_submission", "RFQ-1", "SUB-1"),
            ("submission_to_evaluation", "SUB-1", "EVAL-1"),
            ("evaluation_to_approval", "EVAL-1", "APPR-1"),
            ("approval_to_award", "APPR-1", "AWARD-1"),
            ("award_to_contract", "AWARD-1", "CONTRACT-1"),
        ]
        for link_type, source_id, target_id in chain:
            self._create(link_type, source_id, target_id).unwrap()

        self.assertTrue(self.service.validate_chain("PROC-1").chain_valid)
        self.assertEqual(self.service.workflow_progress("PROC-1")["progress_percentage"], 100)
        self.assertEqual(self.service.find_path("PLAN-1", "CONTRACT-1").distance, 6)

        reconstructed = self.service.chain("PROC-1")
        self.assertEqual(reconstructed.plan["kind"], "Plan")
        self.assertEqual(reconstructed.award["awardDecision"], "bid-a")
        self.assertEqual(self.service.statistics("PROC-1")["total_links"], 6)
        self.assertEqual(self.service.export("json", "PROC-1")["record_count"], 6)

    def test_cycle_queries_are_scoped(self) -> None:
        self._create("document_to_procurement", "A", "B").unwrap()
        self._create("document_to_procurement", "B", "A").unwrap()
        self.service.create(LinkCreateInput("document_to_procurement", "X", "Y")).unwrap()

        self.assertEqual(len(self.service.circular_references("PROC-1")), 1)
        self.assertEqual(self.service.cycles(), [["A", "B", "A"]])
        self.assertEqual(len(self.service.links()), 3)
        self.assertEqual(len(self.service.links("PROC-1")), 2)

    def test_validate_uses_entity_snapshots(self) -> None:
        self.assertTrue(self.service.validate("rfq_to_submission", "RFQ-1", "SUB-1").valid)
        validation = self.service.validate("rfq_to_submission", "RFQ-1", "SUB-1", target_snapshot={})
        self.assertEqual(validation.side, "target")


class BuildServicesTest(unittest.TestCase):
    def test_strict_requirements_install_step_validator(self) -> None:
        services = build_services({"STRICT_STAGE_REQUIREMENTS": True, "LINK_ID_PREFIX": "LNK"}, event_bus=EventBus())
        self.assertIsInstance(services.workflow.step_validator, RequirementsStepValidator)
        self.assertEqual(services.linking.id_prefix, "LNK")

        relaxed = build_services({}, event_bus=EventBus())
        self.assertIsNone(relaxed.workflow.step_validator)
        self.assertEqual(relaxed.linking.default_actor, "system")


if __name__ == "__main__":
    unittest.main()
