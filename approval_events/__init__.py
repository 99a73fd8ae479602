"""
Approval flow notification processing.

- messages: push envelope decoding and typed notification models
- dispatcher: routes each notification type to its handler
- handlers: the remote calls and emails each notification triggers
"""

from approval_events.dispatcher import NotificationDispatcher
from approval_events.handlers import ApprovalFlowHandlers
from approval_events.messages import (
    NotificationTypes,
    decode_push_message,
    encode_push_message,
    parse_notification,
)

__all__ = [
    "NotificationDispatcher",
    "ApprovalFlowHandlers",
    "NotificationTypes",
    "decode_push_message",
    "encode_push_message",
    "parse_notification",
]
