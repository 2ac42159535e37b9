from fastapi import APIRouter, Depends
from pydantic import Field

from carts import CartService
from deps import get_cart_service
from schemas import Document
from security import CurrentUser, require_user

router = APIRouter(prefix="/cart", tags=["cart"])


class AddItem(Document):
    product_id: str
    quantity: int = Field(1, ge=1)


class UpdateItem(Document):
    product_id: str
    quantity: int = Field(..., ge=1)


class RemoveItem(Document):
    product_id: str


@router.get("")
def get_cart(
    current_user: CurrentUser = Depends(require_user()),
    service: CartService = Depends(get_cart_service),
):
    cart = service.get_cart(current_user.id)
    if not cart:
        return {"message": "Cart is empty"}
    return {"cart": cart}


@router.post("/add")
def add_to_cart(
    payload: AddItem,
    current_user: CurrentUser = Depends(require_user()),
    service: CartService = Depends(get_cart_service),
):
    cart = service.add_to_cart(current_user.id, payload.product_id, payload.quantity)
    return {"message": "Product added to cart", "cart": cart}


@router.put("/update")
def update_cart_item(
    payload: UpdateItem,
    current_user: CurrentUser = Depends(require_user()),
    service: CartService = Depends(get_cart_service),
):
    cart = service.update_cart_item(current_user.id, payload.product_id, payload.quantity)
    return {"message": "Cart item updated", "cart": cart}


@router.delete("/remove")
def remove_from_cart(
    payload: RemoveItem,
    current_user: CurrentUser = Depends(require_user()),
    service: CartService = Depends(get_cart_service),
):
    cart = service.remove_from_cart(current_user.id, payload.product_id)
    if cart is None:
        return {"message": "Product removed, cart is now empty"}
    return {"message": "Product removed from cart", "cart": cart}


@router.delete("/clear")
def clear_cart(
    current_user: CurrentUser = Depends(require_user()),
    service: CartService = Depends(get_cart_service),
):
    if not service.clear_cart(current_user.id):
        return {"message": "Cart is already empty"}
    return {"message": "Cart cleared"}
