import unittest

from proclink.infrastructure.repositories.memory import InMemoryProcurementData
from proclink.workflow.requirements import (
    RequirementsStepValidator,
    can_advance,
    requirements_for,
    timeline_estimates,
    validate_stage_requirements,
)


class StageRequirementsTest(unittest.TestCase):
    def test_missing_documents_and_approvals_are_listed(self) -> None:
        issues = validate_stage_requirements("templates", {"documents": [{"type": "rfqTemplate"}]})
        self.assertEqual(
            issues,
            ["Missing document: evaluationTemplate", "Missing approval: templateApproval"],
        )

    def test_only_approved_approvals_count(self) -> None:
        data = {
            "documents": [{"type": "procurementPlan"}],
            "approvals": [{"type": "planApproval", "status": "pending"}],
        }
        self.assertEqual(validate_stage_requirements("planning", data), ["Missing approval: planApproval"])

        data["approvals"] = [{"type": "planApproval", "status": "Approved"}]
        self.assertEqual(validate_stage_requirements("planning", data), [])

    def test_contract_needs_legal_approval(self) -> None:
        requirements = requirements_for("contract")
        self.assertEqual(requirements.required_approvals, ("legalApproval",))
        self.assertEqual(validate_stage_requirements("completed", None), [])

    def test_minimum_days_gate_advancement(self) -> None:
        blocked = can_advance("evaluation", 3)
        self.assertFalse(blocked["can_advance"])
        self.assertIn("5 days", blocked["reason"])

        ready = can_advance("evaluation", 5)
        self.assertTrue(ready["can_advance"])
        self.assertEqual(ready["next_stage"], "clarification")

        self.assertEqual(can_advance("completed")["reason"], "Already at final stage")

    def test_timeline_accumulates_minimum_days(self) -> None:
        timeline = timeline_estimates()
        self.assertEqual(len(timeline), 9)
        self.assertEqual(timeline[-1]["cumulative_days"], sum(item["estimated_days"] for item in timeline))
        self.assertEqual(timeline[1]["stage"], "templates")

    def test_step_validator_reads_procurement_data(self) -> None:
        data = InMemoryProcurementData()
        data.put("PROC-1", {"documents": [{"type": "rfqDocument"}]})
        validator = RequirementsStepValidator(data)

        self.assertEqual(validator.issues_for("rfq", "PROC-1"), ["Missing approval: rfqApproval"])
        self.assertEqual(validator.issues_for("submission", "PROC-2"), ["Missing document: submissionLog"])


if __name__ == "__main__":
    unittest.main()
