"""
Submission orchestrator: the async payment workflow.

State machine:
    idle --submit--> submitting --success--> succeeded   (terminal)
                     submitting --failure--> failed
    failed --submit--> submitting                        (manual retry)

Unexpected exceptions end in `failed` with the fallback message. The
in-flight flag that disables the submit trigger is cleared on every exit
path. Cancellation propagates and clears only the flag; the status is
left at `submitting`.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from .consent import ConsentState
from .errors import translate_payment_error
from .output_sanitizer import sanitize_error_detail
from .payments.base import PaymentRequest, PaymentResult, PaymentService
from .schema import FormInputs
from .validation import validate

logger = logging.getLogger(__name__)

INVALID_FIELDS_MESSAGE = "Please correct the highlighted fields and try again."
PRICE_UNAVAILABLE_MESSAGE = "We couldn't load the price for this service. Please reload the page and try again."


class SubmissionStatus(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class SubmissionState:
    status: SubmissionStatus = SubmissionStatus.IDLE
    message: str = ""

    @classmethod
    def idle(cls) -> "SubmissionState":
        return cls(SubmissionStatus.IDLE)

    @classmethod
    def submitting(cls) -> "SubmissionState":
        return cls(SubmissionStatus.SUBMITTING)

    @classmethod
    def succeeded(cls) -> "SubmissionState":
        return cls(SubmissionStatus.SUCCEEDED)

    @classmethod
    def failed(cls, message: str) -> "SubmissionState":
        return cls(SubmissionStatus.FAILED, message)


class SubmissionOrchestrator:
    """Runs one payment attempt at a time against a ``PaymentService``."""

    def __init__(self, payment_service: PaymentService):
        self._payment_service = payment_service
        self._state = SubmissionState.idle()
        self._in_flight = False
        self._closed = False

    @property
    def state(self) -> SubmissionState:
        return self._state

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def can_submit(self, consent: ConsentState) -> bool:
        """Whether the submit trigger should be enabled."""
        return (
            consent.granted
            and not self._in_flight
            and not self._closed
            and self._state.status != SubmissionStatus.SUCCEEDED
        )

    def close(self) -> None:
        """End the session. A result that arrives afterwards is discarded."""
        self._closed = True

    async def submit(
        self,
        service_id: str,
        user_id: Optional[str],
        inputs: FormInputs,
        secure_field_handles: Mapping[Any, Any],
        *,
        consent: ConsentState,
        amount_minor_units: Optional[int],
    ) -> SubmissionState:
        """Attempt a payment. A no-op returning the current state when the trigger would be disabled."""
        if not self.can_submit(consent):
            logger.info("Conditions not met for payment submission (state=%s)", self._state.status.value)
            return self._state

        logger.info("Payment submission started for service %s", service_id)
        self._in_flight = True
        self._state = SubmissionState.submitting()
        try:
            outcome = await self._attempt(service_id, user_id, inputs, secure_field_handles, amount_minor_units)
        except Exception as e:
            logger.error("Unexpected submission error: %s", sanitize_error_detail(e))
            outcome = SubmissionState.failed(translate_payment_error(e))
        finally:
            self._in_flight = False

        if self._closed:
            logger.info("Session closed during submission; discarding %s result", outcome.status.value)
            return self._state

        self._state = outcome
        return outcome

    async def _attempt(
        self,
        service_id: str,
        user_id: Optional[str],
        inputs: FormInputs,
        secure_field_handles: Mapping[Any, Any],
        amount_minor_units: Optional[int],
    ) -> SubmissionState:
        errors = validate(inputs)
        if errors:
            logger.info("Submission blocked by invalid fields: %s", ", ".join(sorted(errors)))
            return SubmissionState.failed(INVALID_FIELDS_MESSAGE)

        if amount_minor_units is None:
            logger.warning("Submission blocked: price for service %s is unavailable", service_id)
            return SubmissionState.failed(PRICE_UNAVAILABLE_MESSAGE)

        try:
            request = PaymentRequest(
                service_id=service_id,
                user_id=user_id,
                amount_minor_units=amount_minor_units,
                card_holder_name=inputs.card_holder_name,
                zip_code=inputs.zip_code,
                state_code=inputs.state_code,
                secure_field_handles={getattr(k, "value", k): v for k, v in secure_field_handles.items()},
            )
            result = await self._payment_service.submit_payment(request)
            if not isinstance(result, PaymentResult):
                result = PaymentResult.model_validate(result)
        except Exception as e:
            logger.error("Payment submission error: %s", sanitize_error_detail(e))
            return SubmissionState.failed(translate_payment_error(e))

        if result.success:
            logger.info("Payment succeeded for service %s", service_id)
            return SubmissionState.succeeded()

        logger.warning("Payment failed: %s", sanitize_error_detail(result.error))
        return SubmissionState.failed(translate_payment_error(result.error))
