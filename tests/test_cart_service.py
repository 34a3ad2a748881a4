from decimal import Decimal

import pytest

from marketplace.repos.cart_repo import CartRepo
from marketplace.services.cart_service import CartService


def test_add_item_creates_cart_and_snapshots_price(db, make_artwork):
    artwork = make_artwork("creator-a", "2500.00")

    cart = CartService(db).add_item("buyer-1", artwork.id, 2)

    assert cart["cart_id"] is not None
    assert cart["status"] == "active"
    assert cart["count"] == 2
    assert cart["subtotal"] == Decimal("5000.00")
    assert cart["items"][0]["unit_price"] == Decimal("2500.00")

    # zmiana ceny w katalogu nie zmienia pozycji koszyka
    artwork.price = Decimal("9999.00")
    db.commit()
    assert CartService(db).get_active_cart("buyer-1")["subtotal"] == Decimal("5000.00")


def test_adding_same_artwork_increases_quantity(db, make_artwork):
    artwork = make_artwork()
    svc = CartService(db)

    svc.add_item("buyer-1", artwork.id, 1)
    cart = svc.add_item("buyer-1", artwork.id, 2)

    assert len(cart["items"]) == 1
    assert cart["items"][0]["quantity"] == 3


def test_unavailable_artwork_is_rejected(db, make_artwork):
    artwork = make_artwork(is_available=False)

    with pytest.raises(ValueError):
        CartService(db).add_item("buyer-1", artwork.id)


def test_update_and_remove_item(db, make_artwork):
    svc = CartService(db)
    cart = svc.add_item("buyer-1", make_artwork().id)
    item_id = cart["items"][0]["id"]

    cart = svc.update_item("buyer-1", item_id, 4)
    assert cart["count"] == 4

    cart = svc.remove_item("buyer-1", item_id)
    assert cart["items"] == []
    assert cart["subtotal"] == Decimal("0.00")


def test_other_user_cannot_modify_cart(db, make_artwork):
    svc = CartService(db)
    cart = svc.add_item("buyer-1", make_artwork().id)

    with pytest.raises(PermissionError):
        svc.update_item("intruder", cart["items"][0]["id"], 2)


def test_completed_cart_is_immutable_and_new_cart_is_opened(db, make_artwork):
    svc = CartService(db)
    artwork = make_artwork()
    cart = svc.add_item("buyer-1", artwork.id)
    CartRepo(db).complete_cart(cart["cart_id"])
    db.commit()

    with pytest.raises(ValueError):
        svc.update_item("buyer-1", cart["items"][0]["id"], 2)

    fresh = svc.add_item("buyer-1", artwork.id)
    assert fresh["cart_id"] != cart["cart_id"]


def test_version_conflict_is_reported(db, make_artwork, monkeypatch):
    svc = CartService(db)
    artwork = make_artwork()
    svc.add_item("buyer-1", artwork.id)

    monkeypatch.setattr(CartRepo, "update_cart_version", lambda self, **kwargs: 0)

    with pytest.raises(RuntimeError):
        svc.add_item("buyer-1", artwork.id)
