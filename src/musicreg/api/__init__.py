"""REST API for musicreg."""

from musicreg.api.app import create_app, register_exception_handlers
from musicreg.api.models import APIResponse, ErrorResponse, RegistrationCreate

__all__ = [
    "APIResponse",
    "ErrorResponse",
    "RegistrationCreate",
    "create_app",
    "register_exception_handlers",
]
