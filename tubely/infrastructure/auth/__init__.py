"""
Authentication helpers: bearer-token extraction and JWT issue/validation.
"""

from .tokens import InvalidTokenError, get_bearer_token, make_jwt, validate_jwt

__all__ = ["InvalidTokenError", "get_bearer_token", "make_jwt", "validate_jwt"]
