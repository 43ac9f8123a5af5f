"""External price lookup and payment service interfaces."""
from .base import (
    PaymentRequest,
    PaymentResult,
    PaymentService,
    PaymentServiceError,
    PriceLookupService,
    ServiceDetails,
)
from .http import HttpPaymentHandler, get_payment_handler

__all__ = [
    "PaymentRequest",
    "PaymentResult",
    "PaymentService",
    "PaymentServiceError",
    "PriceLookupService",
    "ServiceDetails",
    "HttpPaymentHandler",
    "get_payment_handler",
]
