"""
Pre-undeploy step: remove the approval flow subscription.

Usage:
    python cli.py pre-undeploy
"""

import asyncio
import sys

from connector.subscriptions import delete_approval_flow_notification_subscription
from shared.commerce import CommerceClient
from shared.config import get_settings


async def pre_undeploy() -> None:
    async with CommerceClient(get_settings()) as client:
        await delete_approval_flow_notification_subscription(client)


def run() -> int:
    """Run the step, reporting failure on stderr. Returns the exit code."""
    try:
        asyncio.run(pre_undeploy())
    except Exception as e:
        sys.stderr.write(f"Pre-undeploy failed: {e}\n")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(run())
