"""Checkout form core: validation, consent gating, and payment submission."""
from .consent import ConsentGate, ConsentState
from .errors import translate_payment_error
from .orchestrator import SubmissionOrchestrator, SubmissionState, SubmissionStatus
from .schema import FormInputs
from .secure_fields import SecureFieldState, SecureFieldTracker
from .session import CheckoutSession, FieldLockedError
from .validation import validate

__all__ = [
    "CheckoutSession",
    "ConsentGate",
    "ConsentState",
    "FieldLockedError",
    "FormInputs",
    "SecureFieldState",
    "SecureFieldTracker",
    "SubmissionOrchestrator",
    "SubmissionState",
    "SubmissionStatus",
    "translate_payment_error",
    "validate",
]
