"""
Request/response schemas.

Grouped by concern: accounts, catalog, checkout, orders and downloads.
"""

from .auth import (
    RegisterRequest,
    LoginRequest,
    UserResponse,
    TokenResponse,
)
from .beat import (
    LicenseFeatures,
    LicenseEntry,
    BeatCreate,
    BeatUpdate,
    BeatResponse,
    AdminBeatResponse,
    BeatListResponse,
    AdminBeatListResponse,
)
from .checkout import (
    CheckoutRequest,
    CheckoutResponse,
    UserIntent,
    GuestIntent,
    parse_intent,
)

__all__ = [
    "RegisterRequest",
    "LoginRequest",
    "UserResponse",
    "TokenResponse",
    "LicenseFeatures",
    "LicenseEntry",
    "BeatCreate",
    "BeatUpdate",
    "BeatResponse",
    "AdminBeatResponse",
    "BeatListResponse",
    "AdminBeatListResponse",
    "CheckoutRequest",
    "CheckoutResponse",
    "UserIntent",
    "GuestIntent",
    "parse_intent",
]
