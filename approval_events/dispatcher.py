"""
Routes decoded notifications to their handlers.

A one-shot classification per call with no state of its own:

- ResourceCreated: the platform's subscription confirmation. Nothing to do,
  signalled as a 202 ``NotificationError`` so processing stops without
  touching the platform
- ApprovalFlowCreated / Approved / Rejected / Completed: validated, then
  handed to ``ApprovalFlowHandlers``
- Anything else: 400 naming the unsupported type
"""

import logging
from typing import Any, Optional

from approval_events.handlers import ApprovalFlowHandlers
from approval_events.messages import (
    ApprovalFlowApprovedNotification,
    ApprovalFlowCompletedNotification,
    ApprovalFlowCreatedNotification,
    ApprovalFlowRejectedNotification,
    Notification,
    ResourceCreatedNotification,
    decode_push_message,
    parse_notification,
)
from shared.errors import NotificationError

logger = logging.getLogger("notification_dispatcher")


class NotificationDispatcher:
    """
    Dispatches approval flow notifications.

    Example:
        dispatcher = NotificationDispatcher()
        await dispatcher.process_push_message(request_body)
    """

    def __init__(self, handlers: Optional[ApprovalFlowHandlers] = None):
        self.handlers = handlers or ApprovalFlowHandlers()

    async def process_push_message(self, body: Any) -> None:
        """Decode a push envelope, validate the notification and dispatch it."""
        payload = decode_push_message(body)
        notification = parse_notification(payload)
        await self.dispatch(notification)

    async def dispatch(self, notification: Notification) -> None:
        logger.info(f"Processing notification type: {notification.type}")

        if isinstance(notification, ResourceCreatedNotification):
            logger.info("Skipping ResourceCreated notification - no processing needed")
            raise NotificationError(
                202,
                "Incoming message is about subscription resource creation. "
                "Skip handling the message.",
            )

        if isinstance(notification, ApprovalFlowCreatedNotification):
            await self.handlers.handle_approval_flow_created(notification.approval_flow)

        elif isinstance(notification, ApprovalFlowApprovedNotification):
            await self.handlers.handle_approval_flow_approved(
                notification.resource.id,
                notification.associate.id,
                notification.order.id,
            )

        elif isinstance(notification, (ApprovalFlowRejectedNotification, ApprovalFlowCompletedNotification)):
            await self.handlers.handle_approval_flow_rejected_or_completed(
                notification.resource.id,
                is_rejected=isinstance(notification, ApprovalFlowRejectedNotification),
                order_id=notification.order.id if notification.order else None,
            )

        else:
            raise NotificationError(400, f"Unsupported notification type: {notification.type}")

        logger.info(f"Successfully processed {notification.type} notification")
