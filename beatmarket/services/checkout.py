"""Checkout session creation."""
import logging
from typing import List, Optional, Union

from sqlalchemy.orm import Session

from beatmarket.app.config import settings
from beatmarket.app.exceptions import ValidationFailedError
from beatmarket.models.user import User
from beatmarket.repositories.beat_repo import BeatRepository
from beatmarket.schemas.checkout import (
    CheckoutItemRequest,
    CheckoutResponse,
    GuestIntent,
    IntentItem,
    UserIntent,
)
from beatmarket.services.payments import StripeService
from beatmarket.utils.formatting import resolve_locale

logger = logging.getLogger(__name__)

# Stripe caps each metadata value at 500 characters
STRIPE_METADATA_VALUE_LIMIT = 500


class CheckoutService:
    """
    Turns a cart into a Stripe Checkout session.

    Every line is re-priced from the live catalog; the client's displayed
    price is never used. Nothing is persisted here: the order is created
    by the webhook once payment is confirmed.
    """

    def __init__(self, db: Session, payments: StripeService):
        self.db = db
        self.payments = payments
        self.beats = BeatRepository(db)

    def price_items(self, items: List[CheckoutItemRequest]) -> List[IntentItem]:
        """
        Re-fetch each beat and license tier and snapshot the current price.

        Raises:
            ValidationFailedError: Empty cart, duplicate beat, or any beat or
                tier that is missing, inactive or unavailable
        """
        if not items:
            raise ValidationFailedError("Cart is empty")

        priced = []
        seen = set()
        for item in items:
            if item.beat_id in seen:
                raise ValidationFailedError(f"Beat {item.beat_id} appears more than once in the cart")
            seen.add(item.beat_id)

            beat = self.beats.get_active(item.beat_id)
            if beat is None:
                raise ValidationFailedError(f"Beat {item.beat_id} is not available")

            license_entry = beat.get_license(item.license_type)
            if license_entry is None or not license_entry.get('available', False):
                raise ValidationFailedError(
                    f"License '{item.license_type.value}' is not available for '{beat.title}'"
                )

            priced.append(IntentItem(
                beat_id=beat.id,
                beat_title=beat.title,
                license_type=item.license_type,
                price=int(license_entry['price']),
            ))
        return priced

    def build_intent(
        self,
        items: List[CheckoutItemRequest],
        user: Optional[User] = None,
        guest_email: Optional[str] = None,
        locale: Optional[str] = None,
    ) -> Union[UserIntent, GuestIntent]:
        if user is None and not guest_email:
            raise ValidationFailedError("A guest email is required to check out without an account")

        priced = self.price_items(items)
        locale = resolve_locale(locale)
        if user is not None:
            return UserIntent(user_id=user.id, items=priced, locale=locale)
        return GuestIntent(guest_email=guest_email, items=priced, locale=locale)

    def create_checkout(
        self,
        items: List[CheckoutItemRequest],
        user: Optional[User] = None,
        guest_email: Optional[str] = None,
        locale: Optional[str] = None,
    ) -> CheckoutResponse:
        """
        Validate the cart and open a checkout session.

        All validation runs before the Stripe call, so a rejected cart never
        leaves a session behind.
        """
        intent = self.build_intent(items, user=user, guest_email=guest_email, locale=locale)
        metadata = intent.to_metadata()
        if len(metadata['items']) > STRIPE_METADATA_VALUE_LIMIT:
            raise ValidationFailedError("Too many items in the cart for a single checkout")

        base_url = settings.APP_URL.rstrip('/')
        session = self.payments.create_checkout_session(
            line_items=[
                {
                    'name': item.beat_title,
                    'description': f"{item.license_type.value.capitalize()} license",
                    'amount': item.price,
                }
                for item in intent.items
            ],
            customer_email=user.email if user is not None else guest_email,
            metadata=metadata,
            locale=intent.locale,
            success_url=f"{base_url}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{base_url}/cart",
        )
        logger.info(
            f"Checkout session {session['id']} opened ({intent.mode}, "
            f"{len(intent.items)} items, total {intent.total_amount})"
        )
        return CheckoutResponse(session_id=session['id'], url=session['url'])
