"""
FastAPI application receiving approval flow push notifications.

The platform's subscription delivers each notification to a Pub/Sub topic,
whose push subscription POSTs it here.

Responses:
- 204 with an empty body when the notification was handled
- 200 for every failure, including the deliberate skip of the subscription
  confirmation message. The body is ``{"message": "Internal server error"}``
  in production and the raw error message in development

Answering 200 on failure stops Pub/Sub from redelivering, so a failed
notification is dropped after being logged: no email goes out and no order
state changes for it. That trade-off is intentional.

Run with:
    uvicorn api.main:app --reload
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Union

from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse

from approval_events.dispatcher import NotificationDispatcher
from shared.channels import close_email_channel
from shared.commerce import close_commerce_client
from shared.config import get_settings
from shared.errors import ConfigurationError, NotificationError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)-24s | %(levelname)-5s | %(message)s",
    datefmt="%H:%M:%S",
)

logger = logging.getLogger("approval_api")

GENERIC_ERROR_MESSAGE = "Internal server error"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Apply the configured log level on startup; close HTTP clients on shutdown."""
    try:
        logging.getLogger().setLevel(get_settings().log_level)
    except ConfigurationError as e:
        logger.error(f"Configuration is incomplete: {e}")
    logger.info("Starting approval flow notification connector")
    yield
    logger.info("Shutting down")
    await close_commerce_client()
    await close_email_channel()


app = FastAPI(
    title="Approval Flow Notification Connector",
    description="Receives approval flow notifications, emails approvers and moves order states.",
    version="1.0.0",
    lifespan=lifespan,
)


def get_dispatcher() -> NotificationDispatcher:
    """Dispatcher wired to the process-wide clients."""
    return NotificationDispatcher()


def _is_development() -> bool:
    try:
        return get_settings().is_development
    except ConfigurationError:
        return False


@app.exception_handler(NotificationError)
@app.exception_handler(ConfigurationError)
async def error_handler(
    request: Request,
    error: Union[NotificationError, ConfigurationError],
) -> JSONResponse:
    """Always answer 200 so the push delivery system does not retry."""
    message = str(error) if _is_development() else GENERIC_ERROR_MESSAGE
    return JSONResponse(status_code=200, content={"message": message})


@app.get("/health", tags=["Health"])
def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "approval-flow-notification-connector"}


@app.post("/", status_code=204, tags=["Events"])
@app.post("/event", status_code=204, tags=["Events"], include_in_schema=False)
async def post_event(
    request: Request,
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> Response:
    """
    Receive one push message.

    1. Validate the Pub/Sub envelope
    2. Decode and parse the notification
    3. Route it to the approval flow handler
    """
    start = time.monotonic()
    logger.info("=== Starting approval flow message processing ===")

    try:
        body = await request.json()
    except ValueError:
        body = None

    try:
        await dispatcher.process_push_message(body)
    except NotificationError as e:
        elapsed_ms = (time.monotonic() - start) * 1000
        logger.error(
            f"=== Message processing failed after {elapsed_ms:.0f}ms: "
            f"status={e.status_code}, message={e.message} ==="
        )
        raise
    except Exception as e:
        elapsed_ms = (time.monotonic() - start) * 1000
        logger.exception(f"=== Message processing failed after {elapsed_ms:.0f}ms ===")
        raise NotificationError(500, str(e)) from e

    elapsed_ms = (time.monotonic() - start) * 1000
    logger.info(f"=== Message processing completed successfully in {elapsed_ms:.0f}ms ===")
    return Response(status_code=204)
