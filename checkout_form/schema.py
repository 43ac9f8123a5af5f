"""Pydantic models for the plain-text checkout inputs."""
from pydantic import BaseModel


class FormInputs(BaseModel):
    """Fields the cardholder types directly. Card data lives in the secure-field widget."""
    card_holder_name: str = ""
    zip_code: str = ""
    state_code: str = ""


# Plain-text input names, in form order
INPUT_FIELDS = ("card_holder_name", "zip_code", "state_code")
