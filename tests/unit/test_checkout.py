import json
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from beatmarket.app.exceptions import ValidationFailedError
from beatmarket.models.enums import LicenseType
from beatmarket.schemas.checkout import (
    CheckoutItemRequest,
    GuestIntent,
    IntentError,
    IntentItem,
    UserIntent,
    parse_intent,
)
from beatmarket.services.checkout import CheckoutService
from beatmarket.services.payments import StripeService
from tests.factories import license_entry


@pytest.fixture
def payments():
    mock = MagicMock(spec=StripeService)
    mock.create_checkout_session.return_value = {"id": "cs_test_new", "url": "https://checkout.stripe.test/cs_test_new"}
    return mock


def _item(beat, license_type="basic", price=None):
    return CheckoutItemRequest(beat_id=beat.id, license_type=license_type, price=price)


# ---------------------------------------------------------------------
# Intent metadata
# ---------------------------------------------------------------------

@pytest.mark.unit
def test_guest_intent_metadata_parses_back():
    beat_id = uuid4()
    intent = GuestIntent(
        guest_email="guest@example.com",
        locale="fr",
        items=[IntentItem(beat_id=beat_id, beat_title="Night Drive", license_type="pro", price=9900)],
    )

    metadata = intent.to_metadata()
    assert metadata["mode"] == "guest"
    assert all(isinstance(value, str) for value in metadata.values())

    parsed = parse_intent(metadata)
    assert isinstance(parsed, GuestIntent)
    assert parsed.guest_email == "guest@example.com"
    assert parsed.items[0].beat_id == beat_id
    assert parsed.items[0].license_type == LicenseType.pro
    assert parsed.total_amount == 9900


@pytest.mark.unit
def test_user_intent_carries_user_id_only():
    user_id = uuid4()
    intent = UserIntent(
        user_id=user_id,
        locale="en",
        items=[IntentItem(beat_id=uuid4(), beat_title="A", license_type="basic", price=2900)],
    )
    metadata = intent.to_metadata()
    assert metadata["user_id"] == str(user_id)
    assert "guest_email" not in metadata
    assert isinstance(parse_intent(metadata), UserIntent)


@pytest.mark.unit
@pytest.mark.parametrize("metadata", [
    None,
    {},
    {"mode": "guest", "locale": "en", "guest_email": "a@b.com"},
    {"mode": "guest", "locale": "en", "guest_email": "a@b.com", "items": "not json"},
    {"mode": "guest", "locale": "en", "items": json.dumps([])},
    {"mode": "user", "locale": "en", "items": json.dumps([{"beat_id": str(uuid4()), "beat_title": "A", "license_type": "basic", "price": 1}])},
    {"locale": "en", "guest_email": "a@b.com", "items": json.dumps([{"beat_id": str(uuid4()), "beat_title": "A", "license_type": "basic", "price": 1}])},
    {"mode": "guest", "guest_email": "a@b.com", "items": json.dumps([{"beat_id": str(uuid4()), "beat_title": "A", "license_type": "basic", "price": 1}])},
])
def test_incomplete_metadata_fails_closed(metadata):
    with pytest.raises(IntentError):
        parse_intent(metadata)


# ---------------------------------------------------------------------
# Pricing
# ---------------------------------------------------------------------

@pytest.mark.unit
def test_prices_come_from_catalog_not_client(db_session, make_beat, payments):
    first = make_beat(title="First")
    second = make_beat(title="Second")
    service = CheckoutService(db_session, payments)

    intent = service.build_intent(
        [_item(first, "basic", price=1), _item(second, "pro", price=1)],
        guest_email="guest@example.com",
    )

    assert [item.price for item in intent.items] == [2900, 9900]
    assert intent.total_amount == 12800
    assert intent.locale == "en"


@pytest.mark.unit
def test_user_checkout_sends_metadata_and_urls(db_session, make_beat, make_user, payments):
    beat = make_beat()
    user = make_user()

    response = CheckoutService(db_session, payments).create_checkout([_item(beat, "standard")], user=user, locale="FR")

    assert response.session_id == "cs_test_new"
    kwargs = payments.create_checkout_session.call_args.kwargs
    assert kwargs["customer_email"] == user.email
    assert kwargs["locale"] == "fr"
    assert kwargs["line_items"] == [{"name": "Night Drive", "description": "Standard license", "amount": 4900}]
    assert kwargs["metadata"]["mode"] == "user"
    assert kwargs["metadata"]["user_id"] == str(user.id)
    assert kwargs["success_url"] == "https://shop.test/checkout/success?session_id={CHECKOUT_SESSION_ID}"
    assert kwargs["cancel_url"] == "https://shop.test/cart"


@pytest.mark.unit
def test_unsupported_locale_falls_back_to_default(db_session, make_beat, payments):
    beat = make_beat()
    intent = CheckoutService(db_session, payments).build_intent([_item(beat)], guest_email="g@example.com", locale="de")
    assert intent.locale == "en"


@pytest.mark.unit
def test_guest_checkout_requires_email(db_session, make_beat, payments):
    beat = make_beat()
    with pytest.raises(ValidationFailedError):
        CheckoutService(db_session, payments).create_checkout([_item(beat)])
    payments.create_checkout_session.assert_not_called()


@pytest.mark.unit
def test_inactive_beat_rejected_before_stripe(db_session, make_beat, payments):
    beat = make_beat(is_active=False)
    with pytest.raises(ValidationFailedError):
        CheckoutService(db_session, payments).create_checkout([_item(beat)], guest_email="g@example.com")
    payments.create_checkout_session.assert_not_called()


@pytest.mark.unit
def test_unknown_beat_rejected(db_session, payments):
    item = CheckoutItemRequest(beat_id=uuid4(), license_type="basic")
    with pytest.raises(ValidationFailedError):
        CheckoutService(db_session, payments).create_checkout([item], guest_email="g@example.com")
    payments.create_checkout_session.assert_not_called()


@pytest.mark.unit
def test_unavailable_or_missing_tier_rejected(db_session, make_beat, payments):
    beat = make_beat(licenses=[license_entry("basic", 2900), license_entry("pro", 9900, available=False)])
    service = CheckoutService(db_session, payments)

    with pytest.raises(ValidationFailedError):
        service.create_checkout([_item(beat, "pro")], guest_email="g@example.com")
    with pytest.raises(ValidationFailedError):
        service.create_checkout([_item(beat, "exclusive")], guest_email="g@example.com")
    payments.create_checkout_session.assert_not_called()


@pytest.mark.unit
def test_one_bad_item_rejects_whole_cart(db_session, make_beat, payments):
    good = make_beat(title="Good")
    bad = make_beat(title="Bad", is_active=False)
    with pytest.raises(ValidationFailedError):
        CheckoutService(db_session, payments).create_checkout(
            [_item(good), _item(bad)], guest_email="g@example.com"
        )
    payments.create_checkout_session.assert_not_called()


@pytest.mark.unit
def test_duplicate_beat_in_cart_rejected(db_session, make_beat, payments):
    beat = make_beat()
    with pytest.raises(ValidationFailedError):
        CheckoutService(db_session, payments).create_checkout(
            [_item(beat, "basic"), _item(beat, "pro")], guest_email="g@example.com"
        )


@pytest.mark.unit
def test_empty_cart_rejected(db_session, payments):
    with pytest.raises(ValidationFailedError):
        CheckoutService(db_session, payments).price_items([])


@pytest.mark.unit
def test_oversized_cart_rejected(db_session, make_beat, payments):
    beats = [make_beat(title=f"A rather long beat title number {i}") for i in range(6)]
    with pytest.raises(ValidationFailedError):
        CheckoutService(db_session, payments).create_checkout(
            [_item(beat) for beat in beats], guest_email="g@example.com"
        )
    payments.create_checkout_session.assert_not_called()
