"""
Order fulfillment for completed Stripe Checkout sessions.

Flow for one ``checkout.session.completed`` event:

1. Rebuild the purchase intent from the session metadata (fails closed).
2. No-op if an order already exists for the session id.
3. Resolve the buyer and persist the order. From here on the purchase is
   recorded even if later steps fail.
4. Fold over the line items one at a time. Each item ends as
   ``ItemFulfilled``, ``ItemSkipped`` or ``ItemFailed``; a bad item never
   aborts the others.
5. Finalize the order, then send the confirmation email.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from functools import partial
from typing import Any, Dict, List, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from beatmarket.app.config import settings
from beatmarket.app.exceptions import IntentParseError, NotFoundError
from beatmarket.core.security import generate_download_token
from beatmarket.models.base import utcnow
from beatmarket.models.download import Download
from beatmarket.models.enums import FileKind, LicenseType, OrderStatus
from beatmarket.models.order import Order
from beatmarket.models.user import User
from beatmarket.repositories.beat_repo import BeatRepository
from beatmarket.repositories.order_repo import OrderRepository
from beatmarket.repositories.user_repo import UserRepository
from beatmarket.schemas.checkout import GuestIntent, IntentError, IntentItem, UserIntent, parse_intent
from beatmarket.services.contracts import ContractDetails, ContractGenerationError, generate_license_contract
from beatmarket.services.messaging.notification_service import ConfirmationLine, NotificationService
from beatmarket.services.storage.s3 import S3Service, S3ServiceError, contract_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ItemFulfilled:
    beat_id: UUID
    license_type: LicenseType
    contract_key: str
    download_id: Optional[UUID] = None


@dataclass(frozen=True)
class ItemSkipped:
    beat_id: UUID
    reason: str = "beat not found"


@dataclass(frozen=True)
class ItemFailed:
    beat_id: UUID
    reason: str


ItemResult = Union[ItemFulfilled, ItemSkipped, ItemFailed]


@dataclass
class FulfillmentSummary:
    order_id: UUID
    order_number: str
    duplicate: bool = False
    results: List[ItemResult] = field(default_factory=list)
    email_sent: Optional[bool] = None

    @property
    def fulfilled(self) -> List[ItemFulfilled]:
        return [r for r in self.results if isinstance(r, ItemFulfilled)]

    @property
    def skipped(self) -> List[ItemSkipped]:
        return [r for r in self.results if isinstance(r, ItemSkipped)]

    @property
    def failed(self) -> List[ItemFailed]:
        return [r for r in self.results if isinstance(r, ItemFailed)]

    @property
    def is_complete(self) -> bool:
        return not self.duplicate and len(self.fulfilled) == len(self.results)

    def describe(self) -> str:
        if self.duplicate:
            return f"Order {self.order_number}: duplicate delivery, nothing done"
        return (
            f"Order {self.order_number}: {len(self.fulfilled)} fulfilled, "
            f"{len(self.skipped)} skipped, {len(self.failed)} failed, "
            f"email {'sent' if self.email_sent else 'NOT sent'}"
        )


@dataclass
class Buyer:
    email: str
    name: str
    user: Optional[User] = None
    download_token: Optional[str] = None
    download_expiry: Optional[datetime] = None

    @property
    def is_guest(self) -> bool:
        return self.user is None


def user_download_url(order_id) -> str:
    return f"{settings.APP_URL.rstrip('/')}/account/downloads?order={order_id}"


def guest_download_url(token: str) -> str:
    return f"{settings.APP_URL.rstrip('/')}/downloads/guest/{token}"


class FulfillmentService:
    """Turns a paid checkout session into an order, contracts and download grants."""

    def __init__(self, db: Session, storage: S3Service, notifications: NotificationService):
        self.db = db
        self.storage = storage
        self.notifications = notifications
        self.orders = OrderRepository(db)
        self.beats = BeatRepository(db)
        self.users = UserRepository(db)

    @staticmethod
    async def _run_blocking(fn, *args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(fn, *args, **kwargs))

    async def fulfill(self, session: Dict[str, Any]) -> FulfillmentSummary:
        """
        Fulfill one completed checkout session.

        Args:
            session: The ``data.object`` of a ``checkout.session.completed`` event

        Raises:
            IntentParseError: Session id or metadata missing or malformed
            NotFoundError: The paying user no longer exists
        """
        session_id = session.get('id')
        if not session_id:
            raise IntentParseError("Checkout session has no id")

        try:
            intent = parse_intent(session.get('metadata'))
        except IntentError as exc:
            logger.error(f"Session {session_id}: {exc}")
            raise IntentParseError(str(exc)) from exc

        existing = self.orders.get_by_session_id(session_id)
        if existing is not None:
            logger.info(f"Session {session_id} already fulfilled as {existing.order_number}")
            return FulfillmentSummary(order_id=existing.id, order_number=existing.order_number, duplicate=True)

        buyer = self._resolve_buyer(intent, session)

        order, created = self._create_order(session, intent, buyer)
        if not created:
            logger.info(f"Session {session_id} fulfilled concurrently as {order.order_number}")
            return FulfillmentSummary(order_id=order.id, order_number=order.order_number, duplicate=True)

        summary = FulfillmentSummary(order_id=order.id, order_number=order.order_number)
        for item in intent.items:
            result = await self._fulfill_item(order, item, buyer)
            logger.info(f"Order {order.order_number} item {item.beat_id}: {result}")
            summary.results.append(result)

        self._finalize(order, buyer, summary)
        summary.email_sent = await self._notify(order, intent, buyer)

        if summary.is_complete and summary.email_sent:
            logger.info(summary.describe())
        else:
            logger.warning(summary.describe())
        return summary

    def _resolve_buyer(self, intent: Union[UserIntent, GuestIntent], session: Dict[str, Any]) -> Buyer:
        customer_name = (session.get('customer_details') or {}).get('name')

        if isinstance(intent, UserIntent):
            user = self.users.get(intent.user_id)
            if user is None:
                raise NotFoundError(f"User {intent.user_id} not found")
            return Buyer(email=user.email, name=user.name, user=user)

        return Buyer(
            email=intent.guest_email,
            name=customer_name or intent.guest_email,
            download_token=generate_download_token(),
            download_expiry=utcnow() + timedelta(days=settings.DOWNLOAD_EXPIRY_DAYS),
        )

    def _create_order(
        self,
        session: Dict[str, Any],
        intent: Union[UserIntent, GuestIntent],
        buyer: Buyer,
    ) -> Tuple[Order, bool]:
        """
        Persist the order.

        Returns ``(order, created)``. When a concurrent delivery of the same
        session committed first, the unique session id rejects this insert
        and the winning order is returned with ``created=False``.
        """
        order = Order(
            user_id=buyer.user.id if buyer.user else None,
            items=[item.snapshot() for item in intent.items],
            total_amount=intent.total_amount,
            stripe_payment_id=session.get('payment_intent'),
            stripe_session_id=session['id'],
            status=OrderStatus.completed,
            delivery_email=buyer.email,
            locale=intent.locale,
            is_guest_order=buyer.is_guest,
            guest_email=buyer.email if buyer.is_guest else None,
            download_token=buyer.download_token,
            download_count=0,
            download_expiry=buyer.download_expiry,
        )
        self.db.add(order)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            winner = self.orders.get_by_session_id(session['id'])
            if winner is None:
                raise
            return winner, False
        self.db.refresh(order)
        logger.info(
            f"Order {order.order_number} created for session {order.stripe_session_id} "
            f"({'guest' if buyer.is_guest else 'user'}, total {order.total_amount})"
        )
        return order, True

    async def _fulfill_item(self, order: Order, item: IntentItem, buyer: Buyer) -> ItemResult:
        beat = self.beats.get(item.beat_id)
        if beat is None:
            logger.warning(f"Order {order.order_number}: beat {item.beat_id} not found, skipping")
            return ItemSkipped(beat_id=item.beat_id)

        try:
            pdf = await self._run_blocking(
                generate_license_contract,
                ContractDetails(
                    order_number=order.order_number,
                    customer_name=buyer.name,
                    customer_email=buyer.email,
                    beat_title=item.beat_title,
                    license_type=item.license_type,
                    price=item.price,
                    date=order.created_at,
                    locale=order.locale,
                ),
            )
            key = await self._run_blocking(
                self.storage.upload_file,
                contract_key(order.order_number, str(beat.id)),
                pdf,
                'application/pdf',
                {'order-number': order.order_number},
            )

            download_id = None
            if buyer.user is not None:
                files = beat.files_for_license(item.license_type)
                files[FileKind.contract.value] = key
                download = Download(
                    order_id=order.id,
                    user_id=buyer.user.id,
                    beat_id=beat.id,
                    license_type=item.license_type,
                    download_count=0,
                    expires_at=utcnow() + timedelta(days=settings.DOWNLOAD_EXPIRY_DAYS),
                    files=files,
                )
                self.db.add(download)
                self.db.commit()
                download_id = download.id

            self.beats.record_sale(beat.id, deactivate=item.license_type == LicenseType.exclusive)
        except (ContractGenerationError, S3ServiceError, SQLAlchemyError) as exc:
            self.db.rollback()
            logger.error(f"Order {order.order_number}: item {item.beat_id} failed: {exc}")
            return ItemFailed(beat_id=item.beat_id, reason=str(exc))

        if item.license_type == LicenseType.exclusive:
            logger.info(f"Beat {beat.id} sold exclusively, removed from the catalog")
        return ItemFulfilled(
            beat_id=beat.id,
            license_type=item.license_type,
            contract_key=key,
            download_id=download_id,
        )

    def _finalize(self, order: Order, buyer: Buyer, summary: FulfillmentSummary) -> None:
        fulfilled = summary.fulfilled
        if fulfilled:
            order.license_contract = fulfilled[0].contract_key
            self.db.commit()
        if buyer.user is not None:
            self.users.add_purchase(buyer.user.id, order.id)

    async def _notify(self, order: Order, intent: Union[UserIntent, GuestIntent], buyer: Buyer) -> bool:
        if buyer.is_guest:
            download_url = guest_download_url(order.download_token)
        else:
            download_url = user_download_url(order.id)

        try:
            return await self.notifications.send_order_confirmation(
                email=buyer.email,
                order_number=order.order_number,
                lines=[
                    ConfirmationLine(
                        beat_title=item.beat_title,
                        license_type=item.license_type.value,
                        price=item.price,
                    )
                    for item in intent.items
                ],
                total_amount=order.total_amount,
                download_url=download_url,
                locale=order.locale,
                is_guest=buyer.is_guest,
            )
        except Exception as exc:
            logger.exception(f"Order {order.order_number}: confirmation email failed: {exc}")
            return False
