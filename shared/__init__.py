"""
Shared infrastructure for the approval flow connector.

This package contains:
- Configuration loaded from the environment
- Error types
- Models of the commerce platform entities the connector reads
- The commerce platform HTTP client
- The SendGrid email channel and bulk sender
- Email templates
"""

from shared.models import (
    ApprovalFlow,
    Associate,
    AssociateRole,
    BusinessUnit,
    Customer,
    Order,
    State,
    Subscription,
)
from shared.errors import (
    CommerceApiError,
    ConcurrentModificationError,
    ConfigurationError,
    NotificationError,
)
from shared.commerce import CommerceClient
from shared.channels import EmailChannel, Recipient, send_bulk_emails

__all__ = [
    "ApprovalFlow",
    "Associate",
    "AssociateRole",
    "BusinessUnit",
    "Customer",
    "Order",
    "State",
    "Subscription",
    "CommerceApiError",
    "ConcurrentModificationError",
    "ConfigurationError",
    "NotificationError",
    "CommerceClient",
    "EmailChannel",
    "Recipient",
    "send_bulk_emails",
]
