"""Per-field touched/error state for the secure card inputs."""
from dataclasses import dataclass

from .widget.base import SecureFieldEvent, SecureFieldKind


REQUIRED_MESSAGES = {
    SecureFieldKind.CARD_NUMBER: "Card number is required.",
    SecureFieldKind.CARD_EXPIRY: "Expiry date is required.",
    SecureFieldKind.CARD_CVC: "CVC is required.",
}


@dataclass(frozen=True)
class SecureFieldState:
    """Display state of one secure field."""
    touched: bool = False
    error_message: str = ""


class SecureFieldTracker:
    """Folds widget change events into per-field state. The last event for a kind wins."""

    def __init__(self):
        self._states: dict[SecureFieldKind, SecureFieldState] = {
            kind: SecureFieldState() for kind in SecureFieldKind
        }

    def on_field_event(self, event: SecureFieldEvent) -> SecureFieldState:
        """Apply one change event and return the new state for its field."""
        if not event.complete and event.error and event.error.message:
            message = event.error.message
        elif not event.complete:
            message = REQUIRED_MESSAGES[event.kind]
        else:
            message = ""

        state = SecureFieldState(touched=True, error_message=message)
        self._states[event.kind] = state
        return state

    def state(self, kind: SecureFieldKind) -> SecureFieldState:
        return self._states[kind]

    def snapshot(self) -> dict[SecureFieldKind, SecureFieldState]:
        return dict(self._states)

    @property
    def all_touched(self) -> bool:
        return all(s.touched for s in self._states.values())

    @property
    def has_errors(self) -> bool:
        return any(s.error_message for s in self._states.values())

    def errors(self) -> dict[str, str]:
        """Non-empty error messages keyed by field name."""
        return {kind.value: s.error_message for kind, s in self._states.items() if s.error_message}
