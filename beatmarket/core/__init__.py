"""
Core package initializer.

Authentication helpers (token handling, password hashing) and request
rate limiting.
"""

from .security import (
    generate_download_token,
    create_access_token,
    decode_token,
    hash_password,
    verify_password,
)
from .rate_limiter import rate_limit

__all__ = [
    "generate_download_token",
    "create_access_token",
    "decode_token",
    "hash_password",
    "verify_password",
    "rate_limit",
]
