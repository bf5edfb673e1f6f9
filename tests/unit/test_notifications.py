import pytest

from beatmarket.services.messaging.notification_service import (
    ConfirmationLine,
    NotificationService,
    render_order_confirmation,
)

LINES = [
    ConfirmationLine(beat_title="Night <Drive>", license_type="basic", price=2900),
    ConfirmationLine(beat_title="Golden Hour", license_type="pro", price=9900),
]


@pytest.mark.unit
def test_confirmation_lists_items_total_and_link():
    html = render_order_confirmation("ORD-1", LINES, 12800, "https://shop.test/downloads/guest/tok", "en", is_guest=True)

    assert "Night &lt;Drive&gt;" in html
    assert "BASIC" in html and "PRO" in html
    assert "€128.00" in html
    assert 'href="https://shop.test/downloads/guest/tok"' in html
    assert "3 downloads" in html


@pytest.mark.unit
def test_confirmation_in_french_without_guest_note():
    html = render_order_confirmation("ORD-1", LINES, 12800, "https://shop.test/account/downloads", "fr")

    assert "Merci pour votre achat" in html
    assert "128,00 €" in html
    assert "téléchargements" not in html


@pytest.mark.unit
@pytest.mark.asyncio
async def test_send_order_confirmation_uses_localized_subject(mocker):
    send = mocker.patch.object(NotificationService, "_send_email_blocking", return_value={"id": "email_1"})

    sent = await NotificationService.send_order_confirmation(
        email="buyer@example.com",
        order_number="ORD-1",
        lines=LINES,
        total_amount=12800,
        download_url="https://shop.test/x",
        locale="fr",
    )

    assert sent is True
    to, subject, html = send.call_args.args
    assert to == "buyer@example.com"
    assert subject == "Votre commande ORD-1 est confirmée"
    assert "ORD-1" in html


@pytest.mark.unit
@pytest.mark.asyncio
async def test_send_email_retries_then_gives_up(mocker):
    send = mocker.patch.object(NotificationService, "_send_email_blocking", side_effect=RuntimeError("down"))
    sleep = mocker.patch("beatmarket.services.messaging.notification_service.asyncio.sleep", new=mocker.AsyncMock())

    sent = await NotificationService.send_email("a@b.com", "Subject", "<p>x</p>", max_retries=3)

    assert sent is False
    assert send.call_count == 3
    assert [call.args[0] for call in sleep.await_args_list] == [1, 2]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_send_email_recovers_on_retry(mocker):
    mocker.patch.object(
        NotificationService, "_send_email_blocking", side_effect=[RuntimeError("blip"), {"id": "email_2"}]
    )
    mocker.patch("beatmarket.services.messaging.notification_service.asyncio.sleep", new=mocker.AsyncMock())

    assert await NotificationService.send_email("a@b.com", "Subject", "<p>x</p>") is True
