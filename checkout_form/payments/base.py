"""Abstract interfaces and wire models for the price lookup and payment services."""
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field


class ServiceDetails(BaseModel):
    """Price lookup response. Price is in decimal currency units (dollars)."""
    price: Decimal = Field(ge=0)


class PaymentRequest(BaseModel):
    """Outbound charge request. Card data is referenced only through the secure-field handles."""
    service_id: str
    user_id: Optional[str] = None
    amount_minor_units: int = Field(ge=0)
    card_holder_name: str
    zip_code: str
    state_code: str
    secure_field_handles: dict[str, Any] = Field(default_factory=dict)


class PaymentResult(BaseModel):
    """Single result of a charge attempt. ``error`` is the processor's payload, never shown raw."""
    success: bool
    error: Any = None


class PaymentServiceError(Exception):
    """Raised by a payment service when a charge fails outside a normal result."""

    def __init__(self, message: str, error: Any = None):
        super().__init__(message)
        self.error = error


class PriceLookupService(ABC):
    """Resolves the price of a purchasable service."""

    @abstractmethod
    async def fetch_service_details(self, service_id: str) -> ServiceDetails:
        ...


class PaymentService(ABC):
    """Submits a charge to the payment processor."""

    @abstractmethod
    async def submit_payment(self, request: PaymentRequest) -> PaymentResult:
        ...
