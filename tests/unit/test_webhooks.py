from datetime import timedelta

import pytest

from beatmarket.app.exceptions import GoneError, IntentParseError
from beatmarket.models import Order, WebhookEvent, utcnow
from beatmarket.models.enums import OrderStatus
from beatmarket.schemas.checkout import GuestIntent, IntentItem, UserIntent
from beatmarket.services.access import DownloadAccessService, GuestAccessService
from beatmarket.services.refunds import RefundService
from beatmarket.services.webhooks import WebhookService
from tests.factories import charge_refunded_event, checkout_completed_event


def _intent_for(user, beat):
    return UserIntent(
        user_id=user.id,
        locale="en",
        items=[IntentItem(beat_id=beat.id, beat_title=beat.title, license_type="basic", price=2900)],
    )


@pytest.fixture
def webhooks(db_session, storage, notifier):
    return WebhookService(db_session, storage, notifier)


# ---------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------

@pytest.mark.unit
@pytest.mark.asyncio
async def test_checkout_event_fulfills_and_is_logged(db_session, webhooks, make_user, make_beat):
    event = checkout_completed_event(_intent_for(make_user(), make_beat()))

    summary = await webhooks.dispatch(event)

    assert summary.is_complete
    record = db_session.query(WebhookEvent).one()
    assert record.provider == "stripe"
    assert record.event_type == "checkout.session.completed"
    assert record.processed is True
    assert record.processed_at is not None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_processed_event_id_is_not_handled_twice(db_session, webhooks, notifier, make_user, make_beat):
    event = checkout_completed_event(_intent_for(make_user(), make_beat()))

    await webhooks.dispatch(event)
    again = await webhooks.dispatch(event)

    assert again is None
    assert db_session.query(Order).count() == 1
    assert db_session.query(WebhookEvent).count() == 1
    assert notifier.send_order_confirmation.await_count == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_new_event_id_for_same_session_still_one_order(db_session, webhooks, make_user, make_beat):
    intent = _intent_for(make_user(), make_beat())

    await webhooks.dispatch(checkout_completed_event(intent, event_id="evt_a"))
    summary = await webhooks.dispatch(checkout_completed_event(intent, event_id="evt_b"))

    assert summary.duplicate
    assert db_session.query(Order).count() == 1
    assert db_session.query(WebhookEvent).count() == 2


@pytest.mark.unit
@pytest.mark.asyncio
async def test_failed_handler_leaves_event_unprocessed(db_session, webhooks):
    event = {
        "id": "evt_bad",
        "type": "checkout.session.completed",
        "data": {"object": {"id": "cs_bad", "metadata": {"mode": "guest"}}},
    }

    with pytest.raises(IntentParseError):
        await webhooks.dispatch(event)

    record = db_session.query(WebhookEvent).one()
    assert record.processed is False
    assert db_session.query(Order).count() == 0


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unhandled_event_types_are_acknowledged(db_session, webhooks):
    assert await webhooks.dispatch({"id": "evt_x", "type": "customer.created", "data": {"object": {}}}) is None
    assert await webhooks.dispatch({"id": "evt_y", "type": "payment_intent.succeeded", "data": {"object": {"id": "pi_1"}}}) is None
    assert db_session.query(WebhookEvent).filter(WebhookEvent.processed.is_(True)).count() == 2


# ---------------------------------------------------------------------
# Refunds
# ---------------------------------------------------------------------

@pytest.mark.unit
@pytest.mark.asyncio
async def test_refund_revokes_user_grants(db_session, webhooks, storage, make_user, make_beat):
    user = make_user()
    await webhooks.dispatch(checkout_completed_event(_intent_for(user, make_beat())))
    order = db_session.query(Order).one()
    grant = order.downloads[0]

    refunded = await webhooks.dispatch(charge_refunded_event(payment_intent="pi_test_1"))

    assert refunded.id == order.id
    assert refunded.status == OrderStatus.refunded
    db_session.expire_all()
    assert grant.expires_at <= utcnow()
    with pytest.raises(GoneError):
        DownloadAccessService(db_session, storage).resolve_url(grant.id, "mp3", user)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_refund_expires_guest_link(db_session, webhooks, storage, make_beat):
    beat = make_beat()
    intent = GuestIntent(
        guest_email="guest@example.com",
        locale="en",
        items=[IntentItem(beat_id=beat.id, beat_title=beat.title, license_type="basic", price=2900)],
    )
    await webhooks.dispatch(checkout_completed_event(intent))
    order = db_session.query(Order).one()

    await webhooks.dispatch(charge_refunded_event(payment_intent="pi_test_1"))

    with pytest.raises(GoneError):
        GuestAccessService(db_session, storage).register_download(order.download_token)


@pytest.mark.unit
def test_refund_for_unknown_payment_is_ignored(db_session):
    assert RefundService(db_session).handle_refund({"id": "ch_1", "payment_intent": "pi_unknown"}) is None
    assert RefundService(db_session).handle_refund({"id": "ch_2"}) is None


@pytest.mark.unit
def test_refund_keeps_grant_rows(db_session, make_user, make_beat, make_grant):
    grant = make_grant(make_user(), make_beat(), expires_delta=timedelta(days=10))

    order = RefundService(db_session).handle_refund({"id": "ch_1", "payment_intent": grant.order.stripe_payment_id})

    assert order.status == OrderStatus.refunded
    db_session.expire_all()
    assert grant.expires_at <= utcnow()
    assert len(order.downloads) == 1
