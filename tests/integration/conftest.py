"""
Integration test configuration
"""
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from beatmarket.app.main import app
from beatmarket.db.base import get_db
from beatmarket.services.messaging.notification_service import get_notification_service
from beatmarket.services.payments import StripeService, get_payment_gateway
from beatmarket.services.storage.s3 import get_storage


@pytest.fixture
def stripe_api(mocker):
    """Stripe SDK calls are stubbed; webhook signatures are verified for real."""
    create = mocker.patch("beatmarket.services.payments.stripe.checkout.Session.create")
    create.return_value = MagicMock(id="cs_test_api", url="https://checkout.stripe.test/cs_test_api")
    return create


@pytest.fixture
def client(db_session, storage, notifier, stripe_api):
    """FastAPI test client with dependency overrides."""
    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_notification_service] = lambda: notifier
    app.dependency_overrides[get_payment_gateway] = StripeService
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
