"""
Consent gate: derives the single "may submit" signal.

The checkbox intent is never trusted on its own. Every evaluation re-checks
validation and secure-field state, and a transition of the derived value
yields the lock commands that freeze or release the form:

- granted flips to True  -> disable every input and secure field
- granted flips to False -> enable them again
- no transition          -> no commands
"""
import logging
from dataclasses import dataclass
from typing import Mapping

from .schema import INPUT_FIELDS
from .secure_fields import SecureFieldState
from .validation import ValidationResult
from .widget.base import SecureFieldKind, SecureFieldWidget

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConsentState:
    granted: bool = False


@dataclass(frozen=True)
class LockCommand:
    """Enable/disable instruction for one input or secure field."""
    field: str
    disabled: bool


@dataclass(frozen=True)
class ConsentDecision:
    state: ConsentState
    commands: tuple[LockCommand, ...] = ()
    unmet: tuple[str, ...] = ()

    @property
    def changed(self) -> bool:
        return bool(self.commands)


LOCKABLE_FIELDS = INPUT_FIELDS + tuple(kind.value for kind in SecureFieldKind)


def unmet_preconditions(
    validation: ValidationResult,
    secure_fields: Mapping[SecureFieldKind, SecureFieldState],
) -> list[str]:
    """Reasons consent cannot currently be granted, independent of the checkbox."""
    unmet = []
    if validation:
        unmet.append("invalid_inputs")
    if not all(secure_fields[kind].touched for kind in SecureFieldKind):
        unmet.append("card_fields_untouched")
    if any(secure_fields[kind].error_message for kind in SecureFieldKind):
        unmet.append("card_field_errors")
    return unmet


def evaluate(
    user_intent: bool,
    validation: ValidationResult,
    secure_fields: Mapping[SecureFieldKind, SecureFieldState],
    previous: ConsentState = ConsentState(),
) -> ConsentDecision:
    """Pure reducer: new consent state plus the lock commands for the transition from ``previous``."""
    unmet = unmet_preconditions(validation, secure_fields)
    granted = user_intent and not unmet

    commands: tuple[LockCommand, ...] = ()
    if granted != previous.granted:
        commands = tuple(LockCommand(field=name, disabled=granted) for name in LOCKABLE_FIELDS)

    return ConsentDecision(state=ConsentState(granted=granted), commands=commands, unmet=tuple(unmet))


class ConsentGate:
    """Holds the current consent state and is the only writer of the field-disabled flags."""

    def __init__(self, widget: SecureFieldWidget):
        self._widget = widget
        self._state = ConsentState()
        self._inputs_disabled = False

    @property
    def state(self) -> ConsentState:
        return self._state

    @property
    def inputs_disabled(self) -> bool:
        return self._inputs_disabled

    def apply(
        self,
        user_intent: bool,
        validation: ValidationResult,
        secure_fields: Mapping[SecureFieldKind, SecureFieldState],
    ) -> ConsentDecision:
        """Re-evaluate and carry out any resulting lock commands."""
        decision = evaluate(user_intent, validation, secure_fields, previous=self._state)

        for command in decision.commands:
            if command.field in INPUT_FIELDS:
                self._inputs_disabled = command.disabled
            else:
                self._widget.set_disabled(SecureFieldKind(command.field), command.disabled)

        if decision.changed:
            if decision.state.granted:
                logger.info("Consent granted; form locked")
            else:
                logger.info("Consent revoked; form unlocked (unmet: %s)", ", ".join(decision.unmet) or "none")
        elif user_intent and not decision.state.granted:
            logger.info("Consent refused (unmet: %s)", ", ".join(decision.unmet))

        self._state = decision.state
        return decision
