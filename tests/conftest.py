"""Shared test fixtures."""
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from checkout_form.payments.base import (
    PaymentResult,
    PaymentService,
    PriceLookupService,
    ServiceDetails,
)
from checkout_form.schema import FormInputs
from checkout_form.session import CheckoutSession
from checkout_form.widget import InMemorySecureFieldWidget, SecureFieldKind


@pytest.fixture
def valid_inputs():
    return FormInputs(card_holder_name="Jane Doe", zip_code="90210", state_code="CA")


@pytest.fixture
def payment_service():
    service = AsyncMock(spec=PaymentService)
    service.submit_payment.return_value = PaymentResult(success=True)
    return service


@pytest.fixture
def price_lookup():
    lookup = AsyncMock(spec=PriceLookupService)
    lookup.fetch_service_details.return_value = ServiceDetails(price=Decimal("19.99"))
    return lookup


@pytest.fixture
def widget():
    return InMemorySecureFieldWidget()


@pytest.fixture
def session(payment_service, price_lookup, widget):
    return CheckoutSession(
        service_id="svc_123",
        payment_service=payment_service,
        price_lookup=price_lookup,
        widget=widget,
    )


@pytest.fixture
def fill_form():
    """Enter valid plain-text inputs and complete every secure field."""
    def _fill(session: CheckoutSession) -> None:
        session.update_field("card_holder_name", "Jane Doe")
        session.update_field("zip_code", "90210")
        session.update_field("state_code", "CA")
        for kind in SecureFieldKind:
            session.widget.change(kind, complete=True)
    return _fill
