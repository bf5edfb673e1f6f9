"""Checkout request schemas and the purchase intent carried through Stripe."""
import json
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Union
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, TypeAdapter, ValidationError

from beatmarket.models.enums import LicenseType


class CheckoutItemRequest(BaseModel):
    """One cart line as sent by the client."""
    beat_id: UUID
    license_type: LicenseType
    # Display price from the client; never trusted
    price: Optional[int] = None


class CheckoutRequest(BaseModel):
    items: List[CheckoutItemRequest] = Field(..., min_length=1)
    guest_email: Optional[EmailStr] = None
    locale: Optional[str] = Field(None, max_length=8)


class CheckoutResponse(BaseModel):
    session_id: str
    url: str


class IntentItem(BaseModel):
    """Line item snapshot priced server-side at checkout time."""
    beat_id: UUID
    beat_title: str
    license_type: LicenseType
    price: int = Field(..., ge=0)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "beat_id": str(self.beat_id),
            "beat_title": self.beat_title,
            "license_type": self.license_type.value,
            "price": self.price,
        }


class _IntentBase(BaseModel):
    items: List[IntentItem] = Field(..., min_length=1)
    locale: str = Field(..., min_length=2, max_length=8)

    @property
    def total_amount(self) -> int:
        return sum(item.price for item in self.items)

    def to_metadata(self) -> Dict[str, str]:
        """Flatten into Stripe metadata (string values only)."""
        metadata = {
            "mode": self.mode,
            "locale": self.locale,
            "items": json.dumps([item.snapshot() for item in self.items], separators=(",", ":")),
        }
        metadata.update(self._buyer_metadata())
        return metadata


class UserIntent(_IntentBase):
    mode: Literal["user"] = "user"
    user_id: UUID

    def _buyer_metadata(self) -> Dict[str, str]:
        return {"user_id": str(self.user_id)}


class GuestIntent(_IntentBase):
    mode: Literal["guest"] = "guest"
    guest_email: EmailStr

    def _buyer_metadata(self) -> Dict[str, str]:
        return {"guest_email": self.guest_email}


CheckoutIntent = Annotated[Union[UserIntent, GuestIntent], Field(discriminator="mode")]

_intent_adapter = TypeAdapter(CheckoutIntent)


class IntentError(ValueError):
    """Raised when session metadata does not describe a complete intent."""


def parse_intent(metadata: Optional[Mapping[str, Any]]) -> Union[UserIntent, GuestIntent]:
    """
    Rebuild the purchase intent from checkout session metadata.

    Fails closed: a missing mode, buyer field, locale or item list raises
    IntentError instead of falling back to defaults.
    """
    if not metadata:
        raise IntentError("Checkout session has no metadata")

    raw_items = metadata.get("items")
    if not raw_items:
        raise IntentError("Checkout session metadata has no line items")
    try:
        items = json.loads(raw_items)
    except (TypeError, json.JSONDecodeError) as exc:
        raise IntentError(f"Line items are not valid JSON: {exc}") from exc

    candidate = {key: value for key, value in metadata.items() if key != "items"}
    candidate["items"] = items
    try:
        return _intent_adapter.validate_python(candidate)
    except ValidationError as exc:
        raise IntentError(f"Invalid checkout intent: {exc.errors(include_url=False)}") from exc
