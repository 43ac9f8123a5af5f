"""In-process secure-field widget. Used by the tool server and as a deterministic test double."""
import logging
import secrets
from typing import Any, Optional

from .base import SecureFieldError, SecureFieldEvent, SecureFieldKind, SecureFieldWidget

logger = logging.getLogger(__name__)


class InMemorySecureFieldWidget(SecureFieldWidget):
    """Tracks disabled flags and per-field handles without ever holding card data."""

    def __init__(self):
        super().__init__()
        self._disabled: dict[SecureFieldKind, bool] = {kind: False for kind in SecureFieldKind}
        self._handles: dict[SecureFieldKind, Any] = {
            kind: f"{kind.value}_{secrets.token_hex(4)}" for kind in SecureFieldKind
        }

    def set_disabled(self, kind: SecureFieldKind, disabled: bool) -> None:
        self._disabled[kind] = disabled
        logger.debug("Secure field %s disabled=%s", kind.value, disabled)

    def is_disabled(self, kind: SecureFieldKind) -> bool:
        return self._disabled[kind]

    def handle_for(self, kind: SecureFieldKind) -> Any:
        return self._handles[kind]

    def change(
        self,
        kind: SecureFieldKind,
        complete: bool,
        error_message: Optional[str] = None,
        handle: Any = None,
    ) -> SecureFieldEvent:
        """Simulate a change on one field, optionally replacing its handle with a tokenizer-issued one."""
        if handle is not None:
            self._handles[kind] = handle
        error = SecureFieldError(message=error_message) if error_message else None
        event = SecureFieldEvent(kind=kind, complete=complete, error=error)
        self.emit(event)
        return event
