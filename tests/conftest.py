"""
Shared pytest fixtures for the approval flow connector tests.

The commerce platform and SendGrid are replaced by in-memory fakes behind
``httpx.MockTransport``, so the real clients run end to end without network.
"""

import httpx
import pytest

from approval_events.dispatcher import NotificationDispatcher
from approval_events.handlers import ApprovalFlowHandlers
from shared.channels import EmailChannel
from shared.commerce import CommerceClient
from shared.config import Settings, get_settings, reset_settings
from tests.fakes import PROJECT_KEY, FakeCommercePlatform, FakeSendGrid, seeded_platform

TEST_ENV = {
    "CTP_PROJECT_KEY": PROJECT_KEY,
    "CTP_CLIENT_ID": "client-id",
    "CTP_CLIENT_SECRET": "client-secret",
    "CTP_SCOPE": f"manage_project:{PROJECT_KEY}",
    "CTP_REGION": "test",
    "ORDER_NEED_APPROVAL_STATE_KEY": "need-approval",
    "ORDER_APPROVED_STATE_KEY": "approved",
    "ORDER_REJECTED_STATE_KEY": "rejected",
    "SENDGRID_API_KEY": "SG.test-key",
    "SENDGRID_FROM_EMAIL": "noreply@example.com",
    "ENVIRONMENT": "production",
}


@pytest.fixture
def env(monkeypatch) -> dict[str, str]:
    """Environment with every required variable set; settings cache reset around the test."""
    for name, value in TEST_ENV.items():
        monkeypatch.setenv(name, value)
    reset_settings()
    yield TEST_ENV
    reset_settings()


@pytest.fixture
def settings(env) -> Settings:
    return get_settings()


@pytest.fixture
def platform() -> FakeCommercePlatform:
    """Fresh fake platform for each test, seeded with business unit bu1."""
    return seeded_platform()


@pytest.fixture
def sendgrid() -> FakeSendGrid:
    return FakeSendGrid()


@pytest.fixture
def commerce_client(settings, platform) -> CommerceClient:
    return CommerceClient(settings, httpx.AsyncClient(transport=httpx.MockTransport(platform)))


@pytest.fixture
def email_channel(settings, sendgrid) -> EmailChannel:
    return EmailChannel(settings, httpx.AsyncClient(transport=httpx.MockTransport(sendgrid)))


@pytest.fixture
def handlers(commerce_client, email_channel, settings) -> ApprovalFlowHandlers:
    return ApprovalFlowHandlers(client=commerce_client, channel=email_channel, settings=settings)


@pytest.fixture
def dispatcher(handlers) -> NotificationDispatcher:
    return NotificationDispatcher(handlers)
