"""
Post-deploy step: point the approval flow subscription at the GCP topic.

Usage:
    python cli.py post-deploy
"""

import asyncio
import sys

from connector.subscriptions import create_gcp_pubsub_approval_flow_notification_subscription
from shared.commerce import CommerceClient
from shared.config import get_settings
from shared.errors import ConfigurationError


async def post_deploy() -> None:
    settings = get_settings()
    if not settings.connect_gcp_topic_name or not settings.connect_gcp_project_id:
        raise ConfigurationError(
            "CONNECT_GCP_TOPIC_NAME and CONNECT_GCP_PROJECT_ID must be set"
        )

    async with CommerceClient(settings) as client:
        await create_gcp_pubsub_approval_flow_notification_subscription(
            client,
            settings.connect_gcp_topic_name,
            settings.connect_gcp_project_id,
        )


def run() -> int:
    """Run the step, reporting failure on stderr. Returns the exit code."""
    try:
        asyncio.run(post_deploy())
    except Exception as e:
        sys.stderr.write(f"Post-deploy failed: {e}\n")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(run())
