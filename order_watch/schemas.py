"""
Pydantic Schemas for Order Snapshots, Notification Records and the API

Order snapshots are parsed from the restaurant Order API (camelCase) and
never persisted. Notification records are the feed entries kept per
session and returned to the clients.

Author: Khalil Bannouri
Version: 4.0.0
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# =============================================================================
# ENUMS
# =============================================================================

class OrderStatusEnum(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class NotificationTypeEnum(str, Enum):
    NEW_ORDER = "new_order"
    NEW_ASSIGNMENT = "new_assignment"
    STATUS_CHANGE = "status_change"
    CANCELLED = "cancelled"
    DELIVERED = "delivered"


class RoleEnum(str, Enum):
    ADMIN = "admin"
    DELIVERY = "delivery"


class AppStateEnum(str, Enum):
    """Host application states forwarded by the clients."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    BACKGROUND = "background"


TERMINAL_STATUSES = frozenset({
    OrderStatusEnum.DELIVERED,
    OrderStatusEnum.CANCELLED,
    OrderStatusEnum.REFUNDED,
})


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# =============================================================================
# ORDER API SCHEMAS
# =============================================================================

class OrderSnapshot(BaseModel):
    """
    One order as currently reported by the Order API.

    Missing or malformed amount/address fields fall back to 0 / ''
    instead of failing the whole snapshot.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    order_id: str = Field(..., alias="orderId", min_length=1)
    status: OrderStatusEnum
    total_amount: float = Field(default=0.0, alias="totalAmount")
    address: str = Field(default="")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    status_updated_at: Optional[datetime] = Field(default=None, alias="statusUpdatedAt")

    @model_validator(mode="before")
    @classmethod
    def flatten_delivery_address(cls, data: Any) -> Any:
        """Lift ``deliveryAddress.address`` into ``address``."""
        if isinstance(data, dict) and "address" not in data:
            delivery = data.get("deliveryAddress")
            data = dict(data)
            data["address"] = delivery.get("address") if isinstance(delivery, dict) else ""
        return data

    @field_validator("order_id", mode="before")
    @classmethod
    def coerce_order_id(cls, v: Any) -> Any:
        if isinstance(v, int):
            return str(v)
        return v

    @field_validator("total_amount", mode="before")
    @classmethod
    def default_amount(cls, v: Any) -> float:
        try:
            return float(v)
        except (TypeError, ValueError):
            return 0.0

    @field_validator("address", mode="before")
    @classmethod
    def default_address(cls, v: Any) -> str:
        return v if isinstance(v, str) else ""

    @field_validator("created_at", "status_updated_at", mode="before")
    @classmethod
    def blank_timestamp(cls, v: Any) -> Any:
        return v or None

    @field_validator("created_at", "status_updated_at")
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)


# =============================================================================
# NOTIFICATION FEED SCHEMAS
# =============================================================================

class NotificationRecord(BaseModel):
    """A single entry of the notification feed (newest first)."""
    id: str
    type: NotificationTypeEnum
    title: str
    message: str
    order_id: str
    amount: float = 0.0
    address: str = ""
    timestamp: datetime
    read: bool = False
    icon: str = "notifications"
    color: str = "#6B7280"

    @field_validator("timestamp")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return _as_utc(v)


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class SessionCreate(BaseModel):
    """Open a watch session for an authenticated client."""
    role: RoleEnum = Field(..., examples=["delivery"])
    token: str = Field(..., min_length=1)
    user_id: str = Field(
        default="default",
        min_length=1,
        max_length=64,
        pattern=r"^[A-Za-z0-9_.-]+$",
        examples=["rider-17"],
    )
    push_token: Optional[str] = Field(None, examples=["ExponentPushToken[xxxxxxxx]"])


class AppStateRequest(BaseModel):
    """Foreground/background transition reported by the client."""
    state: AppStateEnum


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class SessionResponse(BaseModel):
    success: bool = True
    session_id: str
    role: RoleEnum
    lifecycle_state: str


class CycleResponse(BaseModel):
    """Outcome of an on-demand diff cycle."""
    applied: bool
    new_notifications: int = 0
    has_new_orders: bool = False
    orders: List[OrderSnapshot] = Field(default_factory=list)


class FeedResponse(BaseModel):
    notifications: List[NotificationRecord]
    unread_count: int
    attention_count: int


class BadgeResponse(BaseModel):
    unread_count: int
    attention_count: int


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    storage: str
    notification_service: str
    active_sessions: int
    timestamp: datetime
