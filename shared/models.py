"""
Views of the commerce platform entities the connector reads.

None of these are owned or stored here. Each is fetched for a single request,
used, and discarded. The platform speaks camelCase JSON; the models expose
snake_case attributes and accept either spelling on input.

Design decisions:
- Using Pydantic for validation and serialization
- Only the fields the handlers need are declared; everything else the
  platform returns is ignored
- References are kept minimal ({id} or {key}) rather than expanded
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PlatformModel(BaseModel):
    """Base for camelCase platform payloads."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# =============================================================================
# References
# =============================================================================

class Reference(PlatformModel):
    """Reference to another resource by id."""
    id: str
    type_id: Optional[str] = None


class KeyReference(PlatformModel):
    """Reference to another resource by key."""
    key: str
    type_id: Optional[str] = None


# =============================================================================
# Approval flows
# =============================================================================

class RuleApprover(PlatformModel):
    """An associate role that still has to act in the current tier."""
    associate_role: KeyReference


class ApprovalFlow(PlatformModel):
    """
    Multi-tier sign-off workflow attached to an order.

    ``current_tier_pending_approvers`` lists the roles whose members have not
    yet approved in the current tier.
    """
    id: str
    version: Optional[int] = None
    status: Optional[str] = None
    business_unit: Optional[KeyReference] = None
    order: Optional[Reference] = None
    current_tier_pending_approvers: list[RuleApprover] = Field(default_factory=list)

    def pending_role_keys(self) -> list[str]:
        """Distinct pending approver role keys, in first-seen order."""
        return list(dict.fromkeys(
            approver.associate_role.key
            for approver in self.current_tier_pending_approvers
        ))


# =============================================================================
# Customers and business units
# =============================================================================

class Customer(PlatformModel):
    """A customer account; associates of a business unit are customers."""
    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        """Name used to greet the customer in emails."""
        return self.first_name or self.last_name or self.email or ""


class AssociateRoleAssignment(PlatformModel):
    associate_role: KeyReference
    inheritance: Optional[str] = None


class Associate(PlatformModel):
    """A customer linked to a business unit through role assignments."""
    customer: Reference
    associate_role_assignments: list[AssociateRoleAssignment] = Field(default_factory=list)

    def has_role(self, role_key: str) -> bool:
        return any(
            assignment.associate_role.key == role_key
            for assignment in self.associate_role_assignments
        )


class AssociateRole(PlatformModel):
    id: str
    key: str
    name: Optional[str] = None
    buyer_assignable: Optional[bool] = None


class BusinessUnit(PlatformModel):
    """Organizational grouping owning associates, orders and approval flows."""
    id: str
    key: str
    associates: list[Associate] = Field(default_factory=list)

    def customer_ids_with_role(self, role_key: str) -> list[str]:
        """Customer ids of the associates holding ``role_key``."""
        return [
            associate.customer.id
            for associate in self.associates
            if associate.has_role(role_key)
        ]


# =============================================================================
# Orders and workflow states
# =============================================================================

class Order(PlatformModel):
    """
    An order.

    ``version`` is the optimistic-concurrency token: every update must carry
    the version most recently read, or the platform rejects it.
    """
    id: str
    version: int
    order_number: Optional[str] = None
    order_state: Optional[str] = None
    business_unit: Optional[KeyReference] = None
    state: Optional[Reference] = None


class State(PlatformModel):
    """A node of a platform-side workflow state machine."""
    id: str
    key: str
    version: Optional[int] = None
    type: Optional[str] = None
    name: Optional[dict[str, str]] = None


# =============================================================================
# Subscriptions
# =============================================================================

class Subscription(PlatformModel):
    """A push subscription registered on the platform."""
    id: str
    key: Optional[str] = None
    version: int
