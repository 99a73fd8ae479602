"""
Tests for the platform entity models.
"""

from shared.models import ApprovalFlow, BusinessUnit, Customer, Order
from tests.fakes import approval_flow_payload, seeded_platform


class TestApprovalFlow:
    """Tests for ApprovalFlow parsing and helpers."""

    def test_parses_camel_case_payload(self):
        flow = ApprovalFlow.model_validate(approval_flow_payload("af9", ["approver"]))

        assert flow.id == "af9"
        assert flow.business_unit.key == "bu1"
        assert flow.order.id == "ord1"
        assert flow.current_tier_pending_approvers[0].associate_role.key == "approver"

    def test_pending_role_keys_are_distinct_and_ordered(self):
        flow = ApprovalFlow.model_validate(
            approval_flow_payload("af9", ["b", "a", "b", "c", "a"])
        )

        assert flow.pending_role_keys() == ["b", "a", "c"]

    def test_missing_pending_approvers_defaults_to_empty(self):
        payload = approval_flow_payload("af9", [])
        del payload["currentTierPendingApprovers"]

        flow = ApprovalFlow.model_validate(payload)

        assert flow.current_tier_pending_approvers == []
        assert flow.pending_role_keys() == []

    def test_order_is_optional(self):
        flow = ApprovalFlow.model_validate(approval_flow_payload("af9", [], order_id=None))
        assert flow.order is None

    def test_business_unit_is_optional(self):
        payload = approval_flow_payload("af9", [])
        del payload["businessUnit"]

        flow = ApprovalFlow.model_validate(payload)

        assert flow.business_unit is None

    def test_unknown_fields_are_ignored(self):
        payload = approval_flow_payload("af9", [])
        payload["rules"] = [{"id": "rule-1"}]
        payload["createdAt"] = "2024-01-01T00:00:00.000Z"

        assert ApprovalFlow.model_validate(payload).id == "af9"


class TestCustomer:
    """Tests for Customer display names."""

    def test_display_name_prefers_first_name(self):
        customer = Customer.model_validate(
            {"id": "c", "email": "a@example.com", "firstName": "Ann", "lastName": "Lee"}
        )
        assert customer.display_name == "Ann"

    def test_display_name_falls_back_to_last_name(self):
        customer = Customer.model_validate({"id": "c", "email": "a@example.com", "lastName": "Lee"})
        assert customer.display_name == "Lee"

    def test_display_name_falls_back_to_email(self):
        customer = Customer.model_validate({"id": "c", "email": "a@example.com"})
        assert customer.display_name == "a@example.com"


class TestBusinessUnit:
    """Tests for filtering associates by role."""

    def test_customer_ids_with_role(self):
        unit = BusinessUnit.model_validate(seeded_platform().business_units["bu1"])

        assert unit.customer_ids_with_role("approver") == ["cust-ann", "cust-bob", "cust-dan"]
        assert unit.customer_ids_with_role("admin") == ["cust-carol"]
        assert unit.customer_ids_with_role("auditor") == []


class TestOrder:
    """Tests for Order parsing."""

    def test_parses_order(self):
        order = Order.model_validate(seeded_platform().orders["ord1"])

        assert order.version == 3
        assert order.order_number == "1001"
        assert order.business_unit.key == "bu1"

    def test_business_unit_is_optional(self):
        order = Order.model_validate(seeded_platform().orders["ord-no-bu"])
        assert order.business_unit is None
