"""
Utils module - Input validation helpers shared by server and client.
"""

from folioauth.utils.validators import (
    validate_email_address,
    validate_setup_form,
    validate_username,
)

__all__ = [
    "validate_email_address",
    "validate_setup_form",
    "validate_username",
]
