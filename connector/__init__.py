"""
Deploy-time tooling: registers and removes the approval flow push subscription.
"""

from connector.subscriptions import (
    APPROVAL_FLOW_NOTIFICATION_SUBSCRIPTION_KEY,
    create_approval_flow_notification_subscription,
    create_gcp_pubsub_approval_flow_notification_subscription,
    delete_approval_flow_notification_subscription,
)

__all__ = [
    "APPROVAL_FLOW_NOTIFICATION_SUBSCRIPTION_KEY",
    "create_approval_flow_notification_subscription",
    "create_gcp_pubsub_approval_flow_notification_subscription",
    "delete_approval_flow_notification_subscription",
]
