import logging
from typing import Any, Dict, Optional

from bson import ObjectId

from errors import BadRequestError, NotFoundError
from helpers import parse_object_id, serialize_doc
from repositories import CartRepository, ProductRepository
from schemas import Cart, CartItem

logger = logging.getLogger(__name__)

# Stock and cart are written separately (product first, then cart) and nothing
# rolls the first write back if the second fails. Two concurrent adds can both
# pass the stock check before either decrements it.


def _line_index(cart: Dict[str, Any], product_id: ObjectId) -> int:
    for i, item in enumerate(cart.get("items", [])):
        if str(item.get("productId")) == str(product_id):
            return i
    return -1


def _refresh_snapshot(item: Dict[str, Any], product: Dict[str, Any]) -> None:
    item["name"] = product.get("name", "")
    item["price"] = product.get("price", 0)


def _total(cart: Dict[str, Any]) -> float:
    return round(sum(float(it["price"]) * int(it["quantity"]) for it in cart.get("items", [])), 2)


class CartService:
    def __init__(self, carts: CartRepository, products: ProductRepository):
        self.carts = carts
        self.products = products

    def _save(self, cart: Dict[str, Any]) -> Dict[str, Any]:
        cart["totalPrice"] = _total(cart)
        return self.carts.save(cart)

    def view(self, cart: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        """Serialize a cart with each line's product resolved, or None when it has no lines."""
        if not cart or not cart.get("items"):
            return None
        items = []
        for it in cart["items"]:
            prod = self.products.find_by_id(it["productId"])
            product = None
            if prod:
                product = {
                    "id": str(prod["_id"]),
                    "name": prod.get("name"),
                    "price": prod.get("price"),
                    "stock": prod.get("stock"),
                    "isActive": prod.get("isActive", True),
                }
            items.append({**serialize_doc(it), "product": product})
        data = serialize_doc(cart)
        data["items"] = items
        return data

    def get_cart(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self.view(self.carts.find_active(parse_object_id(user_id, "user id")))

    def add_to_cart(self, user_id: str, product_id: str, quantity: int) -> Dict[str, Any]:
        pid = parse_object_id(product_id, "product id")
        uid = parse_object_id(user_id, "user id")
        if quantity < 1:
            raise BadRequestError("Quantity must be at least 1")

        product = self.products.find_by_id(pid)
        if not product or product.get("isActive") is False:
            raise NotFoundError("Product not found")
        if product.get("stock", 0) < quantity:
            raise BadRequestError("Not enough stock for this product")

        cart = self.carts.find_active(uid)
        if not cart:
            cart = Cart(user_id=uid).model_dump(by_alias=True)

        idx = _line_index(cart, pid)
        if idx > -1:
            line = cart["items"][idx]
            line["quantity"] += quantity
            _refresh_snapshot(line, product)
        else:
            line = CartItem(product_id=pid, name=product.get("name", ""), price=product.get("price", 0), quantity=quantity)
            cart["items"].append(line.model_dump(by_alias=True))

        self.products.adjust_stock(pid, -quantity)
        cart = self._save(cart)
        logger.debug("User %s added %d x %s", user_id, quantity, product_id)
        return self.view(self.carts.find_by_id(cart["_id"]))

    def update_cart_item(self, user_id: str, product_id: str, quantity: int) -> Dict[str, Any]:
        pid = parse_object_id(product_id, "product id")
        uid = parse_object_id(user_id, "user id")
        if quantity < 1:
            raise BadRequestError("Quantity must be at least 1")

        cart = self.carts.find_active(uid)
        if not cart:
            raise NotFoundError("Cart not found or empty")
        idx = _line_index(cart, pid)
        if idx == -1:
            raise NotFoundError("Product is not in the cart")

        product = self.products.find_by_id(pid)
        if not product:
            raise NotFoundError("Product not found in the catalog")

        line = cart["items"][idx]
        diff = quantity - line["quantity"]
        if diff > 0 and product.get("stock", 0) < diff:
            raise BadRequestError("Not enough stock")
        if diff:
            self.products.adjust_stock(pid, -diff)

        line["quantity"] = quantity
        _refresh_snapshot(line, product)
        cart = self._save(cart)
        return self.view(self.carts.find_by_id(cart["_id"]))

    def remove_from_cart(self, user_id: str, product_id: str) -> Optional[Dict[str, Any]]:
        """Drop a line and give its quantity back to stock. Returns None once the cart is gone."""
        pid = parse_object_id(product_id, "product id")
        uid = parse_object_id(user_id, "user id")

        cart = self.carts.find_active(uid)
        if not cart:
            raise NotFoundError("Cart not found or empty")
        idx = _line_index(cart, pid)
        if idx == -1:
            raise NotFoundError("Product is not in the cart")

        removed = cart["items"].pop(idx)
        if self.products.find_by_id(pid):
            self.products.adjust_stock(pid, removed["quantity"])

        if not cart["items"]:
            self.carts.delete(cart["_id"])
            return None

        cart = self._save(cart)
        return self.view(self.carts.find_by_id(cart["_id"]))

    def clear_cart(self, user_id: str) -> bool:
        """Return every line to stock and delete the cart. False when there was no cart."""
        cart = self.carts.find_active(parse_object_id(user_id, "user id"))
        if not cart:
            return False
        for item in cart.get("items", []):
            if self.products.find_by_id(item["productId"]):
                self.products.adjust_stock(item["productId"], item["quantity"])
        self.carts.delete(cart["_id"])
        return True
