"""Secure-field widget interface: the core sees completeness signals and opaque handles, never card digits."""
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Optional

from pydantic import BaseModel


class SecureFieldKind(str, Enum):
    """Card inputs rendered and tokenized by the external widget."""
    CARD_NUMBER = "card_number"
    CARD_EXPIRY = "card_expiry"
    CARD_CVC = "card_cvc"


class SecureFieldError(BaseModel):
    """Format error reported by the widget. Safe for display as-is."""
    message: str


class SecureFieldEvent(BaseModel):
    """Change event emitted by the widget for one secure field."""
    kind: SecureFieldKind
    complete: bool = False
    error: Optional[SecureFieldError] = None


ChangeListener = Callable[[SecureFieldEvent], Any]


class SecureFieldWidget(ABC):
    """Narrow capability interface over a payment widget."""

    def __init__(self):
        self._listeners: list[ChangeListener] = []

    def on_change(self, listener: ChangeListener) -> None:
        """Register a callback for change events on any secure field."""
        self._listeners.append(listener)

    def emit(self, event: SecureFieldEvent) -> None:
        """Deliver a change event to every registered listener, in registration order."""
        for listener in self._listeners:
            listener(event)

    @abstractmethod
    def set_disabled(self, kind: SecureFieldKind, disabled: bool) -> None:
        """Enable or disable one secure field."""
        ...

    @abstractmethod
    def handle_for(self, kind: SecureFieldKind) -> Any:
        """Opaque handle the payment service uses to read the field at submission time."""
        ...

    def handles(self) -> dict[SecureFieldKind, Any]:
        return {kind: self.handle_for(kind) for kind in SecureFieldKind}
