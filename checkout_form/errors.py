"""
Payment error translation.

Maps whatever the processor or transport hands back to one fixed,
non-technical sentence. Raw codes, identifiers, and exception text are
never part of the returned message.
"""
from enum import Enum
from typing import Any, Mapping, Optional

import httpx


class PaymentErrorCategory(str, Enum):
    CARD_DECLINED = "card_declined"
    EXPIRED_CARD = "expired_card"
    INCORRECT_CVC = "incorrect_cvc"
    INCORRECT_NUMBER = "incorrect_number"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    PROCESSING_ERROR = "processing_error"
    NETWORK_ERROR = "network_error"


ERROR_MESSAGES = {
    PaymentErrorCategory.CARD_DECLINED: "Your card was declined. Please use a different card.",
    PaymentErrorCategory.EXPIRED_CARD: "Your card has expired. Please use a different card.",
    PaymentErrorCategory.INCORRECT_CVC: "Your card's security code is incorrect.",
    PaymentErrorCategory.INCORRECT_NUMBER: "Your card number is incorrect.",
    PaymentErrorCategory.INSUFFICIENT_FUNDS: "Your card has insufficient funds.",
    PaymentErrorCategory.PROCESSING_ERROR: "An error occurred while processing your card. Please try again.",
    PaymentErrorCategory.NETWORK_ERROR: "We couldn't reach the payment service. Check your connection and try again.",
}

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."

# Processor codes that fold into a known category
CATEGORY_ALIASES = {
    "generic_decline": PaymentErrorCategory.CARD_DECLINED,
    "do_not_honor": PaymentErrorCategory.CARD_DECLINED,
    "lost_card": PaymentErrorCategory.CARD_DECLINED,
    "stolen_card": PaymentErrorCategory.CARD_DECLINED,
    "fraudulent": PaymentErrorCategory.CARD_DECLINED,
    "invalid_cvc": PaymentErrorCategory.INCORRECT_CVC,
    "invalid_number": PaymentErrorCategory.INCORRECT_NUMBER,
    "api_connection_error": PaymentErrorCategory.NETWORK_ERROR,
}

# Most specific first: a decline_code refines a generic "card_declined" code
_CATEGORY_KEYS = ("decline_code", "category", "code", "type")


def _lookup(value: Any) -> Optional[PaymentErrorCategory]:
    if not isinstance(value, str):
        return None
    key = value.strip().lower()
    if key in CATEGORY_ALIASES:
        return CATEGORY_ALIASES[key]
    try:
        return PaymentErrorCategory(key)
    except ValueError:
        return None


def classify_error(raw_error: Any) -> Optional[PaymentErrorCategory]:
    """Best-effort category for a raw error payload, exception, or code string."""
    if raw_error is None:
        return None

    if isinstance(raw_error, httpx.TransportError):
        return PaymentErrorCategory.NETWORK_ERROR
    if isinstance(raw_error, httpx.HTTPStatusError):
        if raw_error.response.status_code >= 500:
            return PaymentErrorCategory.PROCESSING_ERROR
        return None
    if isinstance(raw_error, BaseException):
        # Service errors carry the processor payload on .error
        return classify_error(getattr(raw_error, "error", None))

    if isinstance(raw_error, str):
        return _lookup(raw_error)

    for key in _CATEGORY_KEYS:
        if isinstance(raw_error, Mapping):
            value = raw_error.get(key)
        else:
            value = getattr(raw_error, key, None)
        category = _lookup(value)
        if category is not None:
            return category
    return None


def translate_payment_error(raw_error: Any) -> str:
    """User-facing message for a failed payment."""
    category = classify_error(raw_error)
    if category is None:
        return GENERIC_ERROR_MESSAGE
    return ERROR_MESSAGES[category]
