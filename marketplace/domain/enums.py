# marketplace/domain/enums.py
from enum import Enum


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class CartStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class TransactionType(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class GatewayStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    ABANDONED = "abandoned"


class NotificationType(str, Enum):
    ORDER = "order"
    SALE = "sale"
    PAYMENT = "payment"
