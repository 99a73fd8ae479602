"""
Email templates for approval flow notifications.

Templates are plain strings with ``{variable}`` placeholders rendered with
``str.format``.
"""

APPROVAL_NOTIFICATION_SUBJECT = "New Approval Flow {approval_flow_id} Requires Your Attention"

APPROVAL_NOTIFICATION_BODY = """Hi {approver_name},

An approval flow with ID {approval_flow_id} is created.

Check it out in the admin portal.

Best regards,
Your Commerce Team"""


def render_approval_subject(approval_flow_id: str) -> str:
    return APPROVAL_NOTIFICATION_SUBJECT.format(approval_flow_id=approval_flow_id)


def render_approval_body(approver_name: str, approval_flow_id: str) -> str:
    """Render the text body greeting one approver."""
    return APPROVAL_NOTIFICATION_BODY.format(
        approver_name=approver_name,
        approval_flow_id=approval_flow_id,
    )
