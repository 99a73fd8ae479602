"""
Push message decoding and the approval flow notification types.

Notifications arrive as Pub/Sub push envelopes::

    {"message": {"data": "<base64 encoded JSON>"}}

``decode_push_message`` unwraps the envelope into the notification JSON and
``parse_notification`` turns that JSON into one of the typed notification
models below, validated once so the handlers never see a half-formed message.

Design decisions:
- One pydantic model per notification type, tagged by the ``type`` field
- Required fields are checked uniformly for every type before dispatch
- Unknown types are rejected up front with the type name in the message
"""

import base64
import binascii
import json
import logging
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import Field, ValidationError

from shared.errors import NotificationError
from shared.models import ApprovalFlow, PlatformModel

logger = logging.getLogger("approval_messages")


class NotificationTypes:
    """Notification type names sent by the platform."""
    RESOURCE_CREATED = "ResourceCreated"
    APPROVAL_FLOW_CREATED = "ApprovalFlowCreated"
    APPROVAL_FLOW_APPROVED = "ApprovalFlowApproved"
    APPROVAL_FLOW_REJECTED = "ApprovalFlowRejected"
    APPROVAL_FLOW_COMPLETED = "ApprovalFlowCompleted"


# The types the push subscription asks for
SUBSCRIBED_TYPES = [
    NotificationTypes.APPROVAL_FLOW_CREATED,
    NotificationTypes.APPROVAL_FLOW_APPROVED,
    NotificationTypes.APPROVAL_FLOW_REJECTED,
    NotificationTypes.APPROVAL_FLOW_COMPLETED,
]


# =============================================================================
# Envelope decoding
# =============================================================================

def decode_push_message(body: Any) -> dict[str, Any]:
    """
    Extract the notification JSON from a push envelope.

    Args:
        body: Parsed request body

    Returns:
        The decoded notification as a dict, otherwise unvalidated

    Raises:
        NotificationError: 400 if the envelope is missing, malformed, empty
            or does not carry a JSON object
    """
    if body is None or not isinstance(body, dict):
        logger.error("Missing request body.")
        raise NotificationError(400, "Bad request: No Pub/Sub message was received")

    message = body.get("message")
    if not message or not isinstance(message, dict):
        logger.error("Missing body message")
        raise NotificationError(400, "Bad request: Wrong No Pub/Sub message format")

    data = message.get("data")
    decoded = ""
    if data:
        try:
            decoded = base64.b64decode(data).decode("utf-8").strip()
        except (binascii.Error, ValueError, TypeError):
            logger.error("Message data is not valid base64")
            raise NotificationError(400, "Bad request: Invalid JSON in message data")

    logger.debug(f"Decoded data length: {len(decoded)}")

    if not decoded:
        logger.error("No message data found in Pub/Sub message")
        raise NotificationError(400, "Bad request: No message data found")

    try:
        payload = json.loads(decoded)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse message data: {e}")
        logger.debug(f"Raw decoded data: {decoded}")
        raise NotificationError(400, "Bad request: Invalid JSON in message data") from e

    if not isinstance(payload, dict):
        logger.error(f"Message data is not a JSON object: {type(payload).__name__}")
        raise NotificationError(400, "Bad request: Invalid JSON in message data")

    resource = payload.get("resource")
    logger.info(
        f"Successfully parsed message data: type={payload.get('type')}, "
        f"resource={resource.get('typeId') if isinstance(resource, dict) else None}/"
        f"{resource.get('id') if isinstance(resource, dict) else None}"
    )
    return payload


def encode_push_message(payload: dict[str, Any]) -> dict[str, Any]:
    """Wrap a notification into a push envelope (inverse of decode)."""
    data = base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")
    return {"message": {"data": data}}


# =============================================================================
# Notification models
# =============================================================================

class ResourceIdentifier(PlatformModel):
    """The resource a notification is about."""
    id: str
    type_id: Optional[str] = None


class IdReference(PlatformModel):
    id: str


class ResourceCreatedNotification(PlatformModel):
    """Sent once when the subscription itself is created."""
    type: Literal["ResourceCreated"]
    resource: Optional[ResourceIdentifier] = None


class ApprovalFlowCreatedNotification(PlatformModel):
    type: Literal["ApprovalFlowCreated"]
    resource: Optional[ResourceIdentifier] = None
    approval_flow: ApprovalFlow


class ApprovalFlowApprovedNotification(PlatformModel):
    """One associate approved; more tiers may still be pending."""
    type: Literal["ApprovalFlowApproved"]
    resource: ResourceIdentifier
    associate: IdReference
    order: IdReference


class ApprovalFlowRejectedNotification(PlatformModel):
    type: Literal["ApprovalFlowRejected"]
    resource: ResourceIdentifier
    order: Optional[IdReference] = None


class ApprovalFlowCompletedNotification(PlatformModel):
    type: Literal["ApprovalFlowCompleted"]
    resource: ResourceIdentifier
    order: Optional[IdReference] = None


Notification = Annotated[
    Union[
        ResourceCreatedNotification,
        ApprovalFlowCreatedNotification,
        ApprovalFlowApprovedNotification,
        ApprovalFlowRejectedNotification,
        ApprovalFlowCompletedNotification,
    ],
    Field(discriminator="type"),
]

NOTIFICATION_MODELS: dict[str, type[PlatformModel]] = {
    NotificationTypes.RESOURCE_CREATED: ResourceCreatedNotification,
    NotificationTypes.APPROVAL_FLOW_CREATED: ApprovalFlowCreatedNotification,
    NotificationTypes.APPROVAL_FLOW_APPROVED: ApprovalFlowApprovedNotification,
    NotificationTypes.APPROVAL_FLOW_REJECTED: ApprovalFlowRejectedNotification,
    NotificationTypes.APPROVAL_FLOW_COMPLETED: ApprovalFlowCompletedNotification,
}


def parse_notification(payload: dict[str, Any]) -> Notification:
    """
    Validate decoded notification JSON into its typed model.

    Raises:
        NotificationError: 400 for an unsupported type or missing fields
    """
    notification_type = payload.get("type")
    model = NOTIFICATION_MODELS.get(notification_type) if isinstance(notification_type, str) else None
    if model is None:
        logger.warning(f"Unhandled notification type: {notification_type}")
        raise NotificationError(400, f"Unsupported notification type: {notification_type}")

    try:
        return model.model_validate(payload)
    except ValidationError as e:
        fields = sorted({
            ".".join(str(part) for part in err["loc"])
            for err in e.errors()
        })
        logger.error(f"Invalid {notification_type} message: {e}")
        raise NotificationError(
            400,
            f"{notification_type} message is missing or has invalid field(s): "
            f"{', '.join(fields)}",
        ) from e
