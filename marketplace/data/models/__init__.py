#import wszystkich modeli zeby SQLAlchemy je zarejestrowal w base metadata

from marketplace.data.models.artwork import ArtworkModel
from marketplace.data.models.cart import CartModel
from marketplace.data.models.cart_item import CartItemModel
from marketplace.data.models.order import OrderModel
from marketplace.data.models.order_item import OrderItemModel
from marketplace.data.models.wallet_transaction import WalletTransactionModel
from marketplace.data.models.notification import NotificationModel

__all__ = [
    "ArtworkModel",
    "CartModel",
    "CartItemModel",
    "OrderModel",
    "OrderItemModel",
    "WalletTransactionModel",
    "NotificationModel",
]
