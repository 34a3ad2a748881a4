from decimal import Decimal
from typing import Dict, Any, List

from sqlalchemy.orm import Session

from marketplace.data.models.cart import CartModel
from marketplace.data.models.cart_item import CartItemModel
from marketplace.domain.enums import CartStatus
from marketplace.repos.cart_repo import CartRepo
from marketplace.utils.money import quantize_amount
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class CartService:
    """
    Prosta implementacja cqrs dla domeny cart
    commands (add, update, remove) modyfikuja stan, wersja koszyka jako optimistic lock
    query (get) tylko odczyt
    Koszyk completed (po rozliczeniu) jest niezmienny, kolejny zakup tworzy nowy aktywny koszyk.
    """

    def __init__(self, db: Session):
        self.repo = CartRepo(db)

    def _to_dict(self, cart: CartModel | None, user_id: str, items: List[CartItemModel]) -> Dict[str, Any]:
        subtotal = sum((quantize_amount(i.unit_price) * i.quantity for i in items), Decimal("0.00"))
        return {
            "cart_id": cart.id if cart else None,
            "user_id": user_id,
            "status": cart.status if cart else CartStatus.ACTIVE.value,
            "items": [
                {
                    "id": i.id,
                    "artwork_id": i.artwork_id,
                    "quantity": i.quantity,
                    "unit_price": quantize_amount(i.unit_price),
                }
                for i in items
            ],
            "subtotal": subtotal,
            "count": sum(i.quantity for i in items),
        }

    def _load_owned_active_cart(self, user_id: str, cart_id: str) -> CartModel:
        cart = self.repo.get_cart(cart_id)

        if not cart:
            raise ValueError("Cart not found")

        if cart.user_id != user_id:
            raise PermissionError("Cart belongs to another user")

        if cart.status != CartStatus.ACTIVE.value:
            raise ValueError("Cart can no longer be modified")

        return cart

    def _bump_version(self, cart: CartModel) -> None:
        # UPDATE carts SET version = v+1 WHERE id = :id AND version = v
        rowcount = self.repo.update_cart_version(
            cart_id=cart.id,
            old_version=cart.version,
            new_data={"version": cart.version + 1},
        )

        if rowcount == 0:
            self.repo.rollback()
            raise RuntimeError("Concurrent modification - cart was changed by another operation")

        self.repo.commit()

    #query - odczyt
    def get_active_cart(self, user_id: str) -> Dict[str, Any]:
        cart = self.repo.get_active_cart_by_user(user_id)
        if not cart:
            return self._to_dict(None, user_id, [])
        return self._to_dict(cart, user_id, self.repo.get_cart_items(cart.id))

    #commands
    def get_or_create_active_cart(self, user_id: str) -> CartModel:
        existing = self.repo.get_active_cart_by_user(user_id)
        if existing:
            return existing

        created = self.repo.create_cart(
            CartModel(user_id=user_id, status=CartStatus.ACTIVE.value, version=1)
        )
        logger.info(f"Created cart {created.id} for user {user_id}")
        return created

    def add_item(self, user_id: str, artwork_id: str, quantity: int = 1) -> Dict[str, Any]:
        if quantity <= 0:
            raise ValueError("Quantity must be greater than 0")

        artwork = self.repo.get_artwork(artwork_id)
        if not artwork:
            raise ValueError("Artwork not found")
        if not artwork.is_available:
            raise ValueError("Artwork not available")

        cart = self.get_or_create_active_cart(user_id)
        # cena z chwili dodania do koszyka
        price = quantize_amount(artwork.price)

        existing_item = self.repo.get_cart_item(cart.id, artwork_id)
        if existing_item:
            logger.info(
                f"Artwork {artwork_id} already in cart {cart.id}, quantity "
                f"{existing_item.quantity} -> {existing_item.quantity + quantity}"
            )
            existing_item.quantity += quantity
            self.repo.add_cart_item(existing_item)
        else:
            logger.info(f"Adding artwork {artwork_id} to cart {cart.id}")
            self.repo.add_cart_item(
                CartItemModel(
                    cart_id=cart.id,
                    artwork_id=artwork_id,
                    quantity=quantity,
                    unit_price=price,
                )
            )

        self._bump_version(cart)
        return self.get_active_cart(user_id)

    def update_item(self, user_id: str, item_id: str, quantity: int) -> Dict[str, Any]:
        if quantity <= 0:
            raise ValueError("Quantity must be greater than 0")

        item = self.repo.get_cart_item_by_id(item_id)
        if not item:
            raise ValueError("Cart item not found")

        cart = self._load_owned_active_cart(user_id, item.cart_id)
        item.quantity = quantity
        self.repo.add_cart_item(item)

        self._bump_version(cart)
        return self.get_active_cart(user_id)

    def remove_item(self, user_id: str, item_id: str) -> Dict[str, Any]:
        item = self.repo.get_cart_item_by_id(item_id)
        if not item:
            raise ValueError("Cart item not found")

        cart = self._load_owned_active_cart(user_id, item.cart_id)
        logger.info(f"Removing item {item_id} from cart {cart.id}")
        self.repo.delete_cart_item(item)

        self._bump_version(cart)
        return self.get_active_cart(user_id)
