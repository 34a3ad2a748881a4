# marketplace/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Any, Dict, List, Optional
from decimal import Decimal
from datetime import datetime


class CartItemIn(BaseModel):
    """Schema dla dodawania dziela do koszyka."""

    artwork_id: str = Field(..., min_length=1, description="ID dziela")
    quantity: int = Field(1, gt=0, description="Ilosc (musi byc > 0)")


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., gt=0, description="Nowa ilosc (musi byc > 0)")


class CartItemOut(BaseModel):
    id: str
    artwork_id: str
    quantity: int
    unit_price: Decimal

    model_config = ConfigDict(from_attributes=True)


class CartOut(BaseModel):
    cart_id: str | None
    user_id: str
    status: str
    items: List[CartItemOut]
    subtotal: Decimal
    count: int


class CheckoutIn(BaseModel):
    """Schema dla inicjalizacji platnosci z koszyka."""

    user_id: str = Field(..., min_length=1)
    cart_id: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3, max_length=255)


class CheckoutOut(BaseModel):
    authorization_url: str
    access_code: str
    reference: str
    order_id: str
    order_number: str


class OrderItemOut(BaseModel):
    id: str
    artwork_id: str
    creator_id: str
    quantity: int
    unit_price: Decimal

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    id: str
    order_number: str
    buyer_id: str
    total_amount: Decimal
    currency: str
    payment_status: str
    order_status: str
    payment_reference: str | None = None
    created_at: datetime
    items: List[OrderItemOut] = []

    model_config = ConfigDict(from_attributes=True)


# ----- bramka platnosci -----

class InitializedTransaction(BaseModel):
    authorization_url: str
    access_code: str
    reference: str


class VerifiedTransaction(BaseModel):
    """Wynik weryfikacji transakcji. Kwoty w kobo."""

    status: str
    reference: str
    amount_minor: int
    currency: str
    customer_email: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


# ----- rozliczenie -----

class CreatorCredit(BaseModel):
    creator_id: str
    amount: Decimal


class SettlementResult(BaseModel):
    success: bool
    order_id: str | None = None
    amount: Decimal | None = None
    status: str
    reference: str
    already_processed: bool = False
    credits: List[CreatorCredit] = []


# ----- portfel i powiadomienia -----

class WalletTransactionOut(BaseModel):
    id: str
    amount: Decimal
    transaction_type: str
    status: str
    description: str
    reference: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WalletOut(BaseModel):
    user_id: str
    balance: Decimal
    transactions: List[WalletTransactionOut]


class NotificationOut(BaseModel):
    id: str
    type: str
    title: str
    message: str
    link: str | None = None
    order_id: str | None = None
    artwork_id: str | None = None
    data: Dict[str, Any] = Field(default_factory=dict)
    is_read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationsOut(BaseModel):
    notifications: List[NotificationOut]
    unread_count: int


class MarkReadIn(BaseModel):
    notification_id: str | None = None
    mark_all: bool = False
