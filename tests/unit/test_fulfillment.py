from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from beatmarket.app.exceptions import IntentParseError, NotFoundError, ValidationFailedError
from beatmarket.models import Download, Order, utcnow
from beatmarket.models.enums import LicenseType, OrderStatus
from beatmarket.schemas.beat import BeatUpdate
from beatmarket.schemas.checkout import CheckoutItemRequest, GuestIntent, IntentItem, UserIntent
from beatmarket.services.catalog import CatalogService
from beatmarket.services.checkout import CheckoutService
from beatmarket.services.fulfillment import (
    FulfillmentService,
    ItemFailed,
    ItemFulfilled,
    ItemSkipped,
)
from beatmarket.services.payments import StripeService
from beatmarket.services.storage.s3 import S3ServiceError
from tests.factories import DEFAULT_LICENSES


def _item(beat, license_type="basic", price=2900):
    return IntentItem(beat_id=beat.id, beat_title=beat.title, license_type=license_type, price=price)


def _session(intent, session_id="cs_test_1", **extra):
    session = {
        "id": session_id,
        "payment_intent": "pi_test_1",
        "metadata": intent.to_metadata(),
    }
    session.update(extra)
    return session


@pytest.fixture
def service(db_session, storage, notifier):
    return FulfillmentService(db_session, storage, notifier)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_user_basic_license_grants_mp3_and_contract(db_session, service, storage, notifier, make_user, make_beat):
    user = make_user()
    beat = make_beat()
    intent = UserIntent(user_id=user.id, locale="en", items=[_item(beat, "basic")])

    summary = await service.fulfill(_session(intent))

    assert summary.is_complete
    assert summary.email_sent is True
    order = db_session.query(Order).one()
    assert order.status == OrderStatus.completed
    assert order.user_id == user.id
    assert order.stripe_payment_id == "pi_test_1"
    assert order.total_amount == 2900
    assert not order.is_guest_order
    assert order.license_contract == f"contracts/{order.order_number}/{beat.id}.pdf"

    download = db_session.query(Download).one()
    assert download.files == {"mp3": "beats/x/mp3.mp3", "contract": order.license_contract}
    assert download.license_type == LicenseType.basic
    assert download.expires_at > utcnow() + timedelta(days=29)

    key, pdf, content_type, metadata = storage.upload_file.call_args.args
    assert key == order.license_contract
    assert pdf.startswith(b"%PDF")
    assert content_type == "application/pdf"
    assert metadata == {"order-number": order.order_number}

    db_session.refresh(user)
    assert user.purchases == [str(order.id)]
    db_session.refresh(beat)
    assert beat.sales_count == 1
    assert beat.is_active

    kwargs = notifier.send_order_confirmation.call_args.kwargs
    assert kwargs["email"] == user.email
    assert kwargs["download_url"] == f"https://shop.test/account/downloads?order={order.id}"
    assert kwargs["is_guest"] is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_order_total_is_the_snapshot_not_current_price(db_session, service, make_user, make_beat):
    user = make_user()
    beat = make_beat()
    intent = UserIntent(user_id=user.id, locale="en", items=[_item(beat, "basic", price=1500)])

    await service.fulfill(_session(intent))

    order = db_session.query(Order).one()
    assert order.total_amount == 1500
    assert order.items[0]["price"] == 1500


@pytest.mark.unit
@pytest.mark.asyncio
async def test_redelivered_session_is_a_no_op(db_session, service, storage, notifier, make_user, make_beat):
    user = make_user()
    beat = make_beat()
    intent = UserIntent(user_id=user.id, locale="en", items=[_item(beat)])

    first = await service.fulfill(_session(intent))
    second = await service.fulfill(_session(intent))

    assert not first.duplicate
    assert second.duplicate
    assert second.order_id == first.order_id
    assert db_session.query(Order).count() == 1
    assert db_session.query(Download).count() == 1
    assert storage.upload_file.call_count == 1
    assert notifier.send_order_confirmation.await_count == 1
    db_session.refresh(beat)
    assert beat.sales_count == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_guest_order_gets_token_and_no_grants(db_session, service, notifier, make_beat):
    beat = make_beat()
    intent = GuestIntent(guest_email="guest@example.com", locale="fr", items=[_item(beat, "standard", 4900)])

    summary = await service.fulfill(_session(intent, customer_details={"name": "Guest Buyer"}))

    assert summary.is_complete
    order = db_session.query(Order).one()
    assert order.is_guest_order
    assert order.user_id is None
    assert order.guest_email == "guest@example.com"
    assert order.delivery_email == "guest@example.com"
    assert order.locale == "fr"
    assert order.download_token
    assert order.download_count == 0
    assert utcnow() + timedelta(days=29) < order.download_expiry <= utcnow() + timedelta(days=30)
    assert db_session.query(Download).count() == 0

    kwargs = notifier.send_order_confirmation.call_args.kwargs
    assert kwargs["download_url"] == f"https://shop.test/downloads/guest/{order.download_token}"
    assert kwargs["is_guest"] is True
    assert kwargs["locale"] == "fr"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_exclusive_sale_takes_beat_off_catalog(db_session, service, make_user, make_beat):
    user = make_user()
    beat = make_beat()
    intent = UserIntent(user_id=user.id, locale="en", items=[_item(beat, "exclusive", 49900)])

    await service.fulfill(_session(intent))

    db_session.refresh(beat)
    assert beat.is_active is False
    assert beat.sales_count == 1
    download = db_session.query(Download).one()
    assert set(download.files) == {"mp3", "wav", "stems", "contract"}

    beats, total = CatalogService(db_session, service.storage).list_public()
    assert beat.id not in [listed.id for listed in beats]
    assert total == 0
    with pytest.raises(ValidationFailedError):
        CheckoutService(db_session, MagicMock(spec=StripeService)).price_items(
            [CheckoutItemRequest(beat_id=beat.id, license_type="exclusive")]
        )


@pytest.mark.unit
@pytest.mark.asyncio
async def test_exclusively_sold_beat_cannot_be_reactivated(db_session, service, make_user, make_beat):
    user = make_user()
    beat = make_beat()
    intent = UserIntent(user_id=user.id, locale="en", items=[_item(beat, "exclusive", 49900)])
    await service.fulfill(_session(intent))
    catalog = CatalogService(db_session, service.storage)

    edit = BeatUpdate.model_validate({
        "title": "Renamed", "bpm": 140, "musical_key": "C#m", "genres": ["Trap"], "licenses": DEFAULT_LICENSES,
    })
    updated = catalog.update_beat(beat.id, edit)
    assert updated.title == "Renamed"
    assert updated.is_active is False
    assert updated.files["stems"] == "beats/x/stems.zip"

    with pytest.raises(ValidationFailedError):
        catalog.update_beat(beat.id, edit.model_copy(update={"is_active": True}))
    db_session.refresh(beat)
    assert beat.is_active is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_missing_beat_is_skipped_others_fulfilled(db_session, service, make_user, make_beat):
    user = make_user()
    beat = make_beat()
    ghost = IntentItem(beat_id=uuid4(), beat_title="Gone", license_type="basic", price=2900)
    intent = UserIntent(user_id=user.id, locale="en", items=[ghost, _item(beat)])

    summary = await service.fulfill(_session(intent))

    assert isinstance(summary.results[0], ItemSkipped)
    assert isinstance(summary.results[1], ItemFulfilled)
    assert not summary.is_complete
    order = db_session.query(Order).one()
    assert order.total_amount == 5800
    assert db_session.query(Download).count() == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_upload_failure_marks_item_failed(db_session, service, storage, make_user, make_beat):
    user = make_user()
    broken = make_beat(title="Broken")
    fine = make_beat(title="Fine")
    storage.upload_file.side_effect = [S3ServiceError("bucket unavailable"), "contracts/ok.pdf"]
    intent = UserIntent(user_id=user.id, locale="en", items=[_item(broken), _item(fine)])

    summary = await service.fulfill(_session(intent))

    assert isinstance(summary.results[0], ItemFailed)
    assert "bucket unavailable" in summary.results[0].reason
    assert isinstance(summary.results[1], ItemFulfilled)
    assert db_session.query(Order).one().status == OrderStatus.completed
    assert db_session.query(Download).one().beat_id == fine.id
    db_session.refresh(broken)
    assert broken.sales_count == 0


@pytest.mark.unit
@pytest.mark.asyncio
async def test_email_failure_does_not_undo_order(db_session, service, notifier, make_user, make_beat):
    notifier.send_order_confirmation = AsyncMock(side_effect=RuntimeError("smtp down"))
    user = make_user()
    beat = make_beat()
    intent = UserIntent(user_id=user.id, locale="en", items=[_item(beat)])

    summary = await service.fulfill(_session(intent))

    assert summary.email_sent is False
    assert db_session.query(Order).count() == 1
    assert db_session.query(Download).count() == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unknown_user_raises_not_found(db_session, service, make_beat):
    beat = make_beat()
    intent = UserIntent(user_id=uuid4(), locale="en", items=[_item(beat)])

    with pytest.raises(NotFoundError):
        await service.fulfill(_session(intent))
    assert db_session.query(Order).count() == 0


@pytest.mark.unit
@pytest.mark.asyncio
async def test_malformed_metadata_creates_nothing(db_session, service):
    session = {"id": "cs_test_bad", "metadata": {"mode": "guest", "locale": "en", "items": "[]"}}

    with pytest.raises(IntentParseError):
        await service.fulfill(session)
    assert db_session.query(Order).count() == 0


@pytest.mark.unit
@pytest.mark.asyncio
async def test_session_without_id_rejected(service):
    with pytest.raises(IntentParseError):
        await service.fulfill({"metadata": {}})
