"""Validation of the plain-text checkout inputs.

Returns a field -> message map. A field is valid when its key is absent;
an empty string is never used to mean "no error".
"""
import re

from .schema import FormInputs
from .us_states import STATE_CODES

ValidationResult = dict[str, str]

# 5-digit ZIP, optionally ZIP+4. [0-9] rather than \d so non-ASCII digits are rejected.
ZIP_CODE_PATTERN = re.compile(r"[0-9]{5}(?:-[0-9]{4})?")

CARD_HOLDER_NAME_REQUIRED = "Cardholder name is required."
ZIP_CODE_INVALID = "Enter a valid 5-digit ZIP code."
STATE_CODE_INVALID = "Select a valid US state."


def validate(inputs: FormInputs) -> ValidationResult:
    """Validate name, ZIP code and state. Pure; safe to call on every keystroke."""
    errors: ValidationResult = {}

    if not inputs.card_holder_name.strip():
        errors["card_holder_name"] = CARD_HOLDER_NAME_REQUIRED

    if not ZIP_CODE_PATTERN.fullmatch(inputs.zip_code):
        errors["zip_code"] = ZIP_CODE_INVALID

    if inputs.state_code not in STATE_CODES:
        errors["state_code"] = STATE_CODE_INVALID

    return errors
