"""Secure-field widget abstraction and the in-process implementation."""
from .base import SecureFieldWidget, SecureFieldKind, SecureFieldEvent, SecureFieldError
from .memory import InMemorySecureFieldWidget

__all__ = [
    "SecureFieldWidget",
    "SecureFieldKind",
    "SecureFieldEvent",
    "SecureFieldError",
    "InMemorySecureFieldWidget",
]
