"""Order schemas."""
from pydantic import BaseModel, ConfigDict
from datetime import datetime
from uuid import UUID
from typing import Optional, List

from beatmarket.models.enums import LicenseType, OrderStatus


class OrderItem(BaseModel):
    beat_id: UUID
    beat_title: str
    license_type: LicenseType
    price: int


class OrderResponse(BaseModel):
    """Order as seen by its owner."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order_number: str
    items: List[OrderItem]
    total_amount: int
    status: OrderStatus
    delivery_email: str
    is_guest_order: bool
    created_at: datetime


class AdminOrderResponse(OrderResponse):
    user_id: Optional[UUID] = None
    guest_email: Optional[str] = None
    stripe_payment_id: Optional[str] = None
    stripe_session_id: str
    download_count: int
    download_expiry: Optional[datetime] = None


class OrderListResponse(BaseModel):
    items: List[OrderResponse]
    total: int


class AdminOrderListResponse(BaseModel):
    items: List[AdminOrderResponse]
    total: int
    page: int
    size: int
    pages: int


class TopBeat(BaseModel):
    id: UUID
    title: str
    sales_count: int


class AdminStatsResponse(BaseModel):
    total_beats: int
    active_beats: int
    total_orders: int
    completed_orders: int
    total_revenue: int
    month_revenue: int
    total_users: int
    top_beats: List[TopBeat]
