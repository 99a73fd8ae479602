"""
Push subscription management.

Registers (and removes) the platform subscription that delivers approval
flow notifications to a message queue. Run at deploy and undeploy time,
never on the request path.

Both operations are safe to repeat: creation deletes any existing
subscription with the same key first, and deletion does nothing when none
exists.
"""

import logging
from typing import Any

from approval_events.messages import SUBSCRIBED_TYPES
from shared.commerce import CommerceClient
from shared.models import Subscription

logger = logging.getLogger("subscriptions")

APPROVAL_FLOW_NOTIFICATION_SUBSCRIPTION_KEY = "approval-flow-notification"
APPROVAL_FLOW_RESOURCE_TYPE_ID = "approval-flow"


def gcp_pubsub_destination(topic_name: str, project_id: str) -> dict[str, Any]:
    return {"type": "GoogleCloudPubSub", "topic": topic_name, "projectId": project_id}


async def create_approval_flow_notification_subscription(
    client: CommerceClient,
    destination: dict[str, Any],
) -> Subscription:
    """Replace the approval flow subscription with one pointing at ``destination``."""
    await delete_approval_flow_notification_subscription(client)

    subscription = await client.create_subscription({
        "key": APPROVAL_FLOW_NOTIFICATION_SUBSCRIPTION_KEY,
        "destination": destination,
        "messages": [
            {
                "resourceTypeId": APPROVAL_FLOW_RESOURCE_TYPE_ID,
                "types": list(SUBSCRIBED_TYPES),
            },
        ],
    })
    logger.info(f"Created subscription {subscription.key} (id={subscription.id})")
    return subscription


async def create_gcp_pubsub_approval_flow_notification_subscription(
    client: CommerceClient,
    topic_name: str,
    project_id: str,
) -> Subscription:
    return await create_approval_flow_notification_subscription(
        client, gcp_pubsub_destination(topic_name, project_id)
    )


async def delete_approval_flow_notification_subscription(client: CommerceClient) -> bool:
    """
    Delete the approval flow subscription if it exists.

    Returns:
        True if a subscription was deleted, False if there was none
    """
    subscriptions = await client.query_subscriptions_by_key(
        APPROVAL_FLOW_NOTIFICATION_SUBSCRIPTION_KEY
    )
    if not subscriptions:
        logger.info("No existing approval flow subscription to delete")
        return False

    subscription = subscriptions[0]
    await client.delete_subscription_by_key(
        APPROVAL_FLOW_NOTIFICATION_SUBSCRIPTION_KEY, subscription.version
    )
    logger.info(f"Deleted subscription {APPROVAL_FLOW_NOTIFICATION_SUBSCRIPTION_KEY}")
    return True
