import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId

from database import utcnow
from errors import NotFoundError
from helpers import mask_cards, parse_object_id, serialize_doc, serialize_list, set_single_flag
from repositories import UserRepository
from schemas import Address, Card

logger = logging.getLogger(__name__)

ADDRESS_FIELDS = ("title", "address", "city", "district", "zip")
CARD_FIELDS = ("title", "holder", "expMonth", "expYear")


def tokenize_card(pan: str) -> Tuple[str, str, str]:
    """Placeholder for a payment provider: (brand, last4, token). PAN and CVV are dropped."""
    digits = "".join(ch for ch in str(pan) if ch.isdigit())
    brand = "VISA" if digits.startswith("4") else "MASTERCARD"
    return brand, digits[-4:], "tok_" + uuid.uuid4().hex


def embedded(model: Any) -> Dict[str, Any]:
    now = utcnow()
    return {"_id": ObjectId(), **model.model_dump(by_alias=True), "createdAt": now, "updatedAt": now}


def new_address(data: Dict[str, Any]) -> Dict[str, Any]:
    return embedded(Address(**data))


def new_card(title: str, holder: str, pan: str, exp_month: int, exp_year: int, is_default: bool = False) -> Dict[str, Any]:
    brand, last4, token = tokenize_card(pan)
    card = Card(
        title=title,
        holder=holder,
        brand=brand,
        last4=last4,
        exp_month=exp_month,
        exp_year=exp_year,
        token=token,
        is_default=is_default,
    )
    return embedded(card)


def _same_id(item: Dict[str, Any], item_id: str) -> bool:
    return str(item.get("_id")) == str(item_id)


class ProfileService:
    def __init__(self, users: UserRepository):
        self.users = users

    def _user(self, user_id: str) -> Dict[str, Any]:
        user = self.users.find_by_id(parse_object_id(user_id, "user id"))
        if not user:
            raise NotFoundError("User not found")
        return user

    # addresses

    def list_addresses(self, user_id: str) -> List[Dict[str, Any]]:
        return serialize_list(self._user(user_id).get("addresses") or [])

    def add_address(self, user_id: str, data: Dict[str, Any]) -> List[Dict[str, Any]]:
        user = self._user(user_id)
        addresses = list(user.get("addresses") or [])
        address = new_address(data)
        addresses.append(address)
        if address["isDefault"]:
            set_single_flag(addresses, "isDefault", lambda a: a is address)
        self.users.set_addresses(user["_id"], addresses)
        return serialize_list(addresses)

    def update_address(self, user_id: str, address_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        user = self._user(user_id)
        addresses = list(user.get("addresses") or [])
        target = next((a for a in addresses if _same_id(a, address_id)), None)
        if target is None:
            raise NotFoundError("Address not found")
        for field in ADDRESS_FIELDS:
            if changes.get(field) is not None:
                target[field] = changes[field]
        target["updatedAt"] = utcnow()
        self.users.set_addresses(user["_id"], addresses)
        return serialize_doc(target)

    def delete_address(self, user_id: str, address_id: str) -> List[Dict[str, Any]]:
        user = self._user(user_id)
        addresses = list(user.get("addresses") or [])
        remaining = [a for a in addresses if not _same_id(a, address_id)]
        if len(remaining) == len(addresses):
            raise NotFoundError("Address not found")
        self.users.set_addresses(user["_id"], remaining)
        return serialize_list(remaining)

    def set_default_address(self, user_id: str, address_id: str) -> List[Dict[str, Any]]:
        user = self._user(user_id)
        addresses = list(user.get("addresses") or [])
        if not set_single_flag(addresses, "isDefault", lambda a: _same_id(a, address_id)):
            raise NotFoundError("Address not found")
        self.users.set_addresses(user["_id"], addresses)
        return serialize_list(addresses)

    # cards

    def list_cards(self, user_id: str) -> List[Dict[str, Any]]:
        return mask_cards(self._user(user_id).get("cards") or [])

    def add_card(
        self,
        user_id: str,
        title: str,
        holder: str,
        pan: str,
        exp_month: int,
        exp_year: int,
        is_default: Optional[bool] = False,
    ) -> List[Dict[str, Any]]:
        user = self._user(user_id)
        cards = list(user.get("cards") or [])
        card = new_card(title, holder, pan, exp_month, exp_year, bool(is_default))
        cards.append(card)
        if card["isDefault"]:
            set_single_flag(cards, "isDefault", lambda c: c is card)
        self.users.set_cards(user["_id"], cards)
        logger.info("Card ****%s stored for user %s", card["last4"], user_id)
        return mask_cards(cards)

    def update_card(self, user_id: str, card_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        user = self._user(user_id)
        cards = list(user.get("cards") or [])
        target = next((c for c in cards if _same_id(c, card_id)), None)
        if target is None:
            raise NotFoundError("Card not found")
        for field in CARD_FIELDS:
            if changes.get(field) is not None:
                target[field] = changes[field]
        target["updatedAt"] = utcnow()
        self.users.set_cards(user["_id"], cards)
        return mask_cards([target])[0]

    def delete_card(self, user_id: str, card_id: str) -> List[Dict[str, Any]]:
        user = self._user(user_id)
        cards = list(user.get("cards") or [])
        remaining = [c for c in cards if not _same_id(c, card_id)]
        if len(remaining) == len(cards):
            raise NotFoundError("Card not found")
        self.users.set_cards(user["_id"], remaining)
        return mask_cards(remaining)

    def set_default_card(self, user_id: str, card_id: str) -> List[Dict[str, Any]]:
        user = self._user(user_id)
        cards = list(user.get("cards") or [])
        if not set_single_flag(cards, "isDefault", lambda c: _same_id(c, card_id)):
            raise NotFoundError("Card not found")
        self.users.set_cards(user["_id"], cards)
        return mask_cards(cards)
