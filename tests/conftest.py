"""
Shared test configuration.

Environment is pinned before any beatmarket import so the settings
singleton and the engine are built against an in-memory SQLite database.
"""
import os
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

os.environ["SQLALCHEMY_DATABASE_URI"] = "sqlite://"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret"
os.environ["APP_URL"] = "https://shop.test"
os.environ.pop("REDIS_URL", None)
os.environ.pop("RESEND_API_KEY", None)

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from beatmarket.db.base import Base, SessionLocal
from beatmarket.core.security import hash_password
from beatmarket.models import Beat, Download, Order, User, UserRole, utcnow
from beatmarket.models.enums import LicenseType, OrderStatus
from beatmarket.services.messaging.notification_service import NotificationService
from beatmarket.services.storage.s3 import S3Service
from tests.factories import DEFAULT_LICENSES

test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
SessionLocal.configure(bind=test_engine)


# ---------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------

@pytest.fixture
def db_session():
    """Fresh schema per test; background tasks share it through SessionLocal."""
    Base.metadata.create_all(test_engine)
    session = SessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(test_engine)


# ---------------------------------------------------------------------
# External services
# ---------------------------------------------------------------------

@pytest.fixture
def storage():
    """S3 stand-in: uploads echo the key, URLs are predictable."""
    mock = MagicMock(spec=S3Service)
    mock.upload_file.side_effect = lambda key, data, content_type, metadata=None: key
    mock.generate_presigned_download_url.side_effect = (
        lambda key, expires_in=None, filename=None, inline=False: f"https://signed.test/{key}?dl={filename}"
    )
    mock.public_url.side_effect = lambda key: f"https://cdn.test/{key}" if key else None
    return mock


@pytest.fixture
def notifier():
    mock = MagicMock(spec=NotificationService)
    mock.send_order_confirmation = AsyncMock(return_value=True)
    return mock


# ---------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------

@pytest.fixture
def make_user(db_session):
    def _make(email="buyer@example.com", name="Test Buyer", role=UserRole.user, password="secret123"):
        user = User(
            name=name,
            email=email,
            hashed_password=hash_password(password),
            role=role,
            purchases=[],
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _make


@pytest.fixture
def make_beat(db_session):
    def _make(title="Night Drive", licenses=None, is_active=True, genres=None, moods=None, tags=None, files=None):
        beat = Beat(
            title=title,
            bpm=140,
            musical_key="C#m",
            genres=genres or ["Trap"],
            moods=moods or ["Dark"],
            tags=tags or ["808"],
            preview_key="previews/x/preview.mp3",
            cover_key="covers/x/cover.jpg",
            files=files if files is not None else {
                "mp3": "beats/x/mp3.mp3",
                "wav": "beats/x/wav.wav",
                "stems": "beats/x/stems.zip",
            },
            waveform={"peaks": [0.1, 0.5], "duration": 180},
            licenses=licenses if licenses is not None else DEFAULT_LICENSES,
            is_active=is_active,
        )
        db_session.add(beat)
        db_session.commit()
        db_session.refresh(beat)
        return beat
    return _make


@pytest.fixture
def make_guest_order(db_session):
    def _make(token="guest-token-123", download_count=0, expiry_delta=timedelta(days=30), beats=(), is_guest=True):
        items = [
            {"beat_id": str(beat.id), "beat_title": beat.title, "license_type": "standard", "price": 4900}
            for beat in beats
        ]
        order = Order(
            items=items,
            total_amount=sum(item["price"] for item in items),
            stripe_session_id=f"cs_test_{token}",
            stripe_payment_id=f"pi_test_{token}",
            status=OrderStatus.completed,
            delivery_email="guest@example.com",
            is_guest_order=is_guest,
            guest_email="guest@example.com" if is_guest else None,
            download_token=token,
            download_count=download_count,
            download_expiry=utcnow() + expiry_delta,
        )
        db_session.add(order)
        db_session.commit()
        db_session.refresh(order)
        return order
    return _make


@pytest.fixture
def make_grant(db_session):
    def _make(user, beat, expires_delta=timedelta(days=30), files=None, license_type=LicenseType.basic):
        order = Order(
            user_id=user.id,
            items=[{"beat_id": str(beat.id), "beat_title": beat.title, "license_type": license_type.value, "price": 2900}],
            total_amount=2900,
            stripe_session_id=f"cs_test_{beat.id}_{user.id}",
            stripe_payment_id=f"pi_test_{beat.id}_{user.id}",
            status=OrderStatus.completed,
            delivery_email=user.email,
        )
        db_session.add(order)
        db_session.commit()
        download = Download(
            order_id=order.id,
            user_id=user.id,
            beat_id=beat.id,
            license_type=license_type,
            download_count=0,
            expires_at=utcnow() + expires_delta,
            files=files if files is not None else {
                "mp3": "beats/x/mp3.mp3",
                "contract": f"contracts/{order.order_number}/{beat.id}.pdf",
            },
        )
        db_session.add(download)
        db_session.commit()
        db_session.refresh(download)
        return download
    return _make


