"""
Plain test helpers shared across test modules.

Kept out of conftest.py so importing them never rebuilds the test engine.
"""
import hashlib
import hmac
import json
import time

from beatmarket.core.security import create_access_token

WEBHOOK_SECRET = "whsec_test_secret"


def license_entry(license_type, price, mp3=True, wav=False, stems=False, available=True):
    exclusive = license_type == "exclusive"
    return {
        "type": license_type,
        "price": price,
        "available": available,
        "features": {
            "mp3": mp3,
            "wav": wav,
            "stems": stems,
            "streams": -1 if exclusive else 50000,
            "physical_sales": -1 if exclusive else 500,
            "exclusivity": exclusive,
        },
    }


DEFAULT_LICENSES = [
    license_entry("basic", 2900),
    license_entry("standard", 4900, wav=True),
    license_entry("pro", 9900, wav=True, stems=True),
    license_entry("exclusive", 49900, wav=True, stems=True),
]


def auth_headers(user) -> dict:
    token = create_access_token({"sub": str(user.id), "role": user.role.value})
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------
# Stripe webhooks
# ---------------------------------------------------------------------

def stripe_signature(payload: str, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    """Build a Stripe-Signature header the way Stripe signs deliveries."""
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def checkout_completed_event(intent, session_id="cs_test_1", event_id="evt_test_1", payment_intent="pi_test_1"):
    return {
        "id": event_id,
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": session_id,
                "object": "checkout.session",
                "payment_intent": payment_intent,
                "payment_status": "paid",
                "metadata": intent.to_metadata(),
            }
        },
    }


def charge_refunded_event(payment_intent="pi_test_1", event_id="evt_refund_1"):
    return {
        "id": event_id,
        "type": "charge.refunded",
        "data": {"object": {"id": "ch_test_1", "object": "charge", "payment_intent": payment_intent}},
    }


def encode_event(event) -> str:
    return json.dumps(event, separators=(",", ":"))
