"""
Handlers for approval flow notifications.

Each handler is a short, linear sequence of calls against the commerce
platform, plus an email fan-out for the two notification types that tell
approvers they have something to review.

Design decisions:
- Remote calls are awaited one after the other; only the emails go out
  concurrently
- Every entity is fetched fresh for the request and dropped afterwards
- Failures are logged where they happen and re-raised; nothing already done
  (emails sent, states moved) is rolled back
- Remote failures are wrapped in ``NotificationError(400, ...)`` with the
  cause chained, except order version conflicts which surface as
  ``ConcurrentModificationError`` so callers can tell them apart
- No retries, including on version conflicts

Flow per notification type:
- ApprovalFlowCreated: notify pending approvers, move order to "needs approval"
- ApprovalFlowApproved: notify the next tier's approvers, if any
- ApprovalFlowRejected / ApprovalFlowCompleted: move order to rejected/approved
"""

import logging
from typing import Optional

from shared.channels import EmailChannel, Recipient, get_email_channel, send_bulk_emails
from shared.commerce import CommerceClient, get_commerce_client
from shared.config import Settings, get_settings
from shared.errors import CommerceApiError, ConcurrentModificationError, NotificationError
from shared.models import ApprovalFlow, Customer, Order
from shared.templates import render_approval_body, render_approval_subject

logger = logging.getLogger("approval_handlers")


class ApprovalFlowHandlers:
    """
    Approval flow notification handlers.

    Example:
        handlers = ApprovalFlowHandlers()
        await handlers.handle_approval_flow_rejected_or_completed(
            "af-1", is_rejected=True, order_id="ord-1"
        )
    """

    def __init__(
        self,
        client: Optional[CommerceClient] = None,
        channel: Optional[EmailChannel] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize the handlers.

        Args:
            client: Commerce platform client (defaults to the process-wide one)
            channel: Email channel (defaults to the process-wide one)
            settings: State keys (defaults to the cached settings)
        """
        self.client = client or get_commerce_client()
        self.channel = channel or get_email_channel()
        self.settings = settings or get_settings()

    # =========================================================================
    # Fetching
    # =========================================================================

    async def fetch_approval_flow(
        self,
        approval_flow_id: str,
        associate_id: str,
        business_unit_key: str,
    ) -> ApprovalFlow:
        logger.info(f"Fetching approval flow: {approval_flow_id}")
        try:
            approval_flow = await self.client.get_approval_flow(
                approval_flow_id, associate_id, business_unit_key
            )
        except CommerceApiError as e:
            logger.error(
                f"Failed to fetch approval flow {approval_flow_id} "
                f"(associate={associate_id}, business_unit={business_unit_key}): {e}"
            )
            raise NotificationError(400, f"Failed to fetch approval flow: {e}") from e

        logger.debug(
            f"Approval flow {approval_flow.id}: status={approval_flow.status}, "
            f"pending approvers={len(approval_flow.current_tier_pending_approvers)}"
        )
        return approval_flow

    async def fetch_order(self, order_id: str) -> Order:
        logger.info(f"Fetching order: {order_id}")
        try:
            order = await self.client.get_order(order_id)
        except CommerceApiError as e:
            logger.error(f"Failed to fetch order {order_id}: {e}")
            raise NotificationError(400, f"Failed to fetch order: {e}") from e

        logger.debug(
            f"Order {order.id}: number={order.order_number}, state={order.order_state}, "
            f"version={order.version}"
        )
        return order

    async def fetch_customers_by_role_keys(
        self,
        role_keys: list[str],
        business_unit_key: str,
    ) -> list[Customer]:
        """
        Find the customers holding any of ``role_keys`` in a business unit.

        For each role, the associate role and the business unit are read and
        the unit's associates filtered by role assignment. The collected
        customer ids are then fetched in a single query.
        """
        logger.info(
            f"Fetching customers for roles {role_keys} in business unit: {business_unit_key}"
        )
        try:
            customer_ids: list[str] = []
            for role_key in dict.fromkeys(role_keys):
                role = await self.client.get_associate_role_by_key(role_key)
                logger.debug(f"Associate role {role.key}: name={role.name}")

                business_unit = await self.client.get_business_unit_by_key(business_unit_key)
                role_customer_ids = business_unit.customer_ids_with_role(role_key)
                logger.debug(f"Found {len(role_customer_ids)} associates with role {role_key}")
                customer_ids.extend(role_customer_ids)

            customer_ids = list(dict.fromkeys(customer_ids))
            if not customer_ids:
                logger.warning("No customers found for any of the associate roles")
                return []

            customers = await self.client.query_customers_by_ids(customer_ids)
        except CommerceApiError as e:
            logger.error(
                f"Failed to fetch customers for roles {role_keys} "
                f"in business unit {business_unit_key}: {e}"
            )
            raise NotificationError(400, f"Failed to fetch customers: {e}") from e

        logger.info(f"Fetched {len(customers)} customers for associate roles")
        return customers

    # =========================================================================
    # Order state
    # =========================================================================

    async def transition_order_state(self, order_id: str, state_key: str) -> Order:
        """
        Move an order to the workflow state with key ``state_key``.

        The order is always re-read first so the update carries its current
        version. Between that read and the update another writer may change
        the order; the platform then rejects the update and
        ``ConcurrentModificationError`` is raised.

        Raises:
            ConcurrentModificationError: The order version changed meanwhile
            NotificationError: 400 for any other failure, including an
                unknown state key
        """
        logger.info(f"Transitioning order {order_id} to state: {state_key}")
        try:
            order = await self.client.get_order(order_id)
            logger.debug(f"Current order version: {order.version}, state: {order.order_state}")

            states = await self.client.query_states_by_key(state_key)
            if not states:
                logger.error(f'State with key "{state_key}" not found')
                raise NotificationError(400, f'State with key "{state_key}" not found')
            target_state = states[0]

            updated = await self.client.update_order(
                order_id,
                order.version,
                [{
                    "action": "transitionState",
                    "state": {"typeId": "state", "id": target_state.id},
                }],
            )
        except CommerceApiError as e:
            logger.error(f"Failed to transition order {order_id} to state {state_key}: {e}")
            if e.is_concurrent_modification:
                raise ConcurrentModificationError(
                    f"Order {order_id} was modified concurrently while "
                    f"transitioning to state {state_key}: {e}"
                ) from e
            raise NotificationError(400, f"Failed to transition order state: {e}") from e
        except NotificationError as e:
            logger.error(f"Failed to transition order {order_id} to state {state_key}: {e}")
            raise NotificationError(400, f"Failed to transition order state: {e}") from e

        logger.info(f"Successfully transitioned order {order_id} to state {state_key}")
        return updated

    # =========================================================================
    # Emails
    # =========================================================================

    async def send_approval_notifications(
        self,
        customers: list[Customer],
        approval_flow_id: str,
    ) -> None:
        """Email every customer that has an address about ``approval_flow_id``."""
        recipients = [
            Recipient(email=customer.email, name=customer.display_name)
            for customer in customers
            if customer.email
        ]
        skipped = [customer.id for customer in customers if not customer.email]
        if skipped:
            logger.warning(f"Skipping customers without email address: {skipped}")

        if not recipients:
            logger.warning("No customers with valid email addresses found")
            return

        try:
            await send_bulk_emails(
                self.channel,
                recipients,
                render_approval_subject(approval_flow_id),
                lambda name: render_approval_body(name, approval_flow_id),
            )
        except NotificationError as e:
            logger.error(f"Failed to send approval notifications for flow {approval_flow_id}: {e}")
            raise NotificationError(500, f"Failed to send approval notifications: {e}") from e

        logger.info(
            f"Sent approval notifications for flow {approval_flow_id} "
            f"to {len(recipients)} recipients"
        )

    async def notify_pending_approvers(self, approval_flow: ApprovalFlow) -> None:
        """Email the members of every role still pending in the current tier."""
        if not approval_flow.business_unit:
            logger.error(f"Approval flow {approval_flow.id} has no business unit")
            raise NotificationError(
                400, f"Approval flow {approval_flow.id} has no business unit"
            )

        customers = await self.fetch_customers_by_role_keys(
            approval_flow.pending_role_keys(),
            approval_flow.business_unit.key,
        )
        await self.send_approval_notifications(customers, approval_flow.id)

    # =========================================================================
    # Notification handlers
    # =========================================================================

    async def handle_approval_flow_created(self, approval_flow: ApprovalFlow) -> None:
        """
        Handle ApprovalFlowCreated.

        1. Stop if nobody is pending in the current tier
        2. Email the pending approvers
        3. Move the order, if any, to the "needs approval" state
        """
        logger.info(f"=== Handling ApprovalFlowCreated for flow: {approval_flow.id} ===")

        if not approval_flow.current_tier_pending_approvers:
            logger.warning("No pending approvers found in approval flow - skipping notification")
            return

        try:
            await self.notify_pending_approvers(approval_flow)

            if approval_flow.order:
                await self.transition_order_state(
                    approval_flow.order.id,
                    self.settings.order_need_approval_state_key,
                )
            else:
                logger.warning("No order ID found in approval flow - skipping order state transition")
        except NotificationError:
            logger.error(f"=== Failed to handle ApprovalFlowCreated for flow: {approval_flow.id} ===")
            raise

        logger.info(f"=== Completed ApprovalFlowCreated for flow: {approval_flow.id} ===")

    async def handle_approval_flow_approved(
        self,
        approval_flow_id: str,
        associate_id: str,
        order_id: str,
    ) -> None:
        """
        Handle ApprovalFlowApproved.

        Approving one tier does not change the order state; a separate
        ApprovalFlowCompleted notification does. This only tells the next
        tier's approvers, if any remain, that it is their turn.
        """
        logger.info(f"=== Handling ApprovalFlowApproved for flow: {approval_flow_id} ===")
        try:
            order = await self.fetch_order(order_id)
            if not order.business_unit:
                logger.warning(f"No business unit key found in order {order.id} - cannot proceed")
                return

            approval_flow = await self.fetch_approval_flow(
                approval_flow_id, associate_id, order.business_unit.key
            )

            if approval_flow.current_tier_pending_approvers:
                await self.notify_pending_approvers(approval_flow)
            else:
                logger.info("No pending approvers - skipping notifications")
        except NotificationError:
            logger.error(
                f"=== Failed to handle ApprovalFlowApproved for flow: {approval_flow_id} "
                f"(associate={associate_id}, order={order_id}) ==="
            )
            raise

        logger.info(f"=== Completed ApprovalFlowApproved for flow: {approval_flow_id} ===")

    async def handle_approval_flow_rejected_or_completed(
        self,
        approval_flow_id: str,
        is_rejected: bool,
        order_id: Optional[str],
    ) -> None:
        """Move the order to the rejected or approved state."""
        action = "Rejected" if is_rejected else "Completed"
        logger.info(f"=== Handling ApprovalFlow{action} for flow: {approval_flow_id} ===")

        if not order_id:
            logger.warning("No order ID provided - skipping order state transition")
            return

        state_key = (
            self.settings.order_rejected_state_key
            if is_rejected
            else self.settings.order_approved_state_key
        )
        try:
            await self.transition_order_state(order_id, state_key)
        except NotificationError:
            logger.error(f"=== Failed to handle ApprovalFlow{action} for flow: {approval_flow_id} ===")
            raise

        logger.info(f"=== Completed ApprovalFlow{action} for flow: {approval_flow_id} ===")
