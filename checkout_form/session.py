"""
Checkout session: one payment form from mount to submission.

Owns the plain-text inputs, the secure-field tracker, the consent gate and
the submission orchestrator, and keeps them consistent: every input change
or widget event is validated and folded into a fresh consent evaluation
before the call returns.
"""
import logging
from typing import Optional

from .consent import ConsentDecision, ConsentGate, ConsentState
from .orchestrator import SubmissionOrchestrator, SubmissionState, SubmissionStatus
from .payments.base import PaymentService, PriceLookupService
from .pricing import format_amount, resolve_amount
from .schema import INPUT_FIELDS, FormInputs
from .secure_fields import SecureFieldState, SecureFieldTracker
from .validation import ValidationResult, validate
from .widget.base import SecureFieldEvent, SecureFieldWidget
from .widget.memory import InMemorySecureFieldWidget

logger = logging.getLogger(__name__)

# Form control names accepted in addition to the canonical field names
FIELD_ALIASES = {
    "CardHolderName": "card_holder_name",
    "name": "card_holder_name",
    "postalCode": "zip_code",
    "postal_code": "zip_code",
    "zip": "zip_code",
    "state": "state_code",
    "userState": "state_code",
}


class FieldLockedError(RuntimeError):
    """Raised when an input is edited while consent holds the form locked."""


def resolve_field_name(name: str) -> str:
    field = FIELD_ALIASES.get(name, name)
    if field not in INPUT_FIELDS:
        raise KeyError(f"Unknown form field: {name}")
    return field


class CheckoutSession:
    """State of a single checkout form."""

    def __init__(
        self,
        service_id: str,
        payment_service: PaymentService,
        price_lookup: Optional[PriceLookupService] = None,
        widget: Optional[SecureFieldWidget] = None,
    ):
        self.service_id = service_id
        self.inputs = FormInputs()
        self.widget = widget or InMemorySecureFieldWidget()
        self.tracker = SecureFieldTracker()
        self.gate = ConsentGate(self.widget)
        self.orchestrator = SubmissionOrchestrator(payment_service)
        self._price_lookup = price_lookup
        self._validation: ValidationResult = {}
        self._interacted = False
        self.amount_minor_units: Optional[int] = None
        self.price_unavailable = False

        self.widget.on_change(self.on_secure_field_event)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def mount(self) -> Optional[int]:
        """Resolve the charge amount once. Failure leaves the amount unset and is logged."""
        if self._price_lookup is None:
            logger.warning("No price lookup configured for service %s", self.service_id)
            self.price_unavailable = True
            return None
        self.amount_minor_units = await resolve_amount(self._price_lookup, self.service_id)
        self.price_unavailable = self.amount_minor_units is None
        return self.amount_minor_units

    def close(self) -> None:
        self.orchestrator.close()

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def update_field(self, name: str, value: str) -> ValidationResult:
        """Apply a keystroke/selection to one plain-text input and re-evaluate consent."""
        field = resolve_field_name(name)
        if self.gate.inputs_disabled:
            raise FieldLockedError(f"{field} is locked while consent is given")

        setattr(self.inputs, field, value)
        self._interacted = True
        self._reevaluate(self.consent.granted)
        return self.validation

    def on_secure_field_event(self, event: SecureFieldEvent) -> SecureFieldState:
        """Fold a widget change event into state. Processed even while locked so late errors revoke consent."""
        state = self.tracker.on_field_event(event)
        self._reevaluate(self.consent.granted)
        return state

    def set_consent(self, agreed: bool) -> ConsentState:
        """Checkbox toggle. Only honored when every precondition holds at this moment."""
        self._interacted = True
        decision = self._reevaluate(agreed)
        return decision.state

    async def submit(self, user_id: Optional[str]) -> SubmissionState:
        """Submit the payment for this form. ``user_id`` comes from the caller's session storage."""
        self._interacted = True
        self._validation = validate(self.inputs)
        return await self.orchestrator.submit(
            self.service_id,
            user_id,
            self.inputs,
            self.widget.handles(),
            consent=self.consent,
            amount_minor_units=self.amount_minor_units,
        )

    def _reevaluate(self, intent: bool) -> ConsentDecision:
        self._validation = validate(self.inputs)
        return self.gate.apply(intent, self._validation, self.tracker.snapshot())

    # ------------------------------------------------------------------
    # Derived view state
    # ------------------------------------------------------------------

    @property
    def consent(self) -> ConsentState:
        return self.gate.state

    @property
    def validation(self) -> ValidationResult:
        return dict(self._validation)

    @property
    def submission(self) -> SubmissionState:
        return self.orchestrator.state

    @property
    def inputs_disabled(self) -> bool:
        return self.gate.inputs_disabled

    @property
    def can_submit(self) -> bool:
        return self.orchestrator.can_submit(self.consent)

    @property
    def pay_label(self) -> str:
        if self.orchestrator.in_flight:
            return "Processing..."
        return f"Pay {format_amount(self.amount_minor_units or 0)}"

    def snapshot(self) -> dict:
        """Display state. Contains no card data and no secure-field handles."""
        submission = self.submission
        return {
            "service_id": self.service_id,
            "amount": format_amount(self.amount_minor_units) if self.amount_minor_units is not None else None,
            "price_unavailable": self.price_unavailable,
            "inputs": self.inputs.model_dump(),
            "input_errors": self.validation if self._interacted else {},
            "card_field_errors": self.tracker.errors(),
            "card_fields_touched": {kind.value: s.touched for kind, s in self.tracker.snapshot().items()},
            "consent_granted": self.consent.granted,
            "inputs_disabled": self.inputs_disabled,
            "can_submit": self.can_submit,
            "pay_label": self.pay_label,
            "submission": {"status": submission.status.value, "message": submission.message},
            "completed": submission.status == SubmissionStatus.SUCCEEDED,
        }
