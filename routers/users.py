import re
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import Field, field_validator

from deps import get_profile_service, get_user_repository
from helpers import luhn_valid, sanitize_user
from profiles import ProfileService
from repositories import UserRepository
from schemas import Document
from security import CurrentUser, require_user

router = APIRouter(prefix="/users", tags=["users"])


class AddressInput(Document):
    title: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    district: str = Field(..., min_length=1)
    zip: str = Field(..., min_length=1)
    is_default: Optional[bool] = None


class AddressUpdate(Document):
    title: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    district: Optional[str] = None
    zip: Optional[str] = None


class CardInput(Document):
    title: str = Field(..., min_length=1)
    holder: str = Field(..., min_length=1)
    pan: str
    exp_month: int = Field(..., ge=1, le=12)
    exp_year: int = Field(..., ge=2024)
    cvv: str = Field(..., pattern=r"^\d{3,4}$")
    is_default: Optional[bool] = False

    @field_validator("pan")
    @classmethod
    def _card_number(cls, v: str) -> str:
        digits = re.sub(r"[\s-]", "", v)
        if not re.fullmatch(r"\d{12,19}", digits) or not luhn_valid(digits):
            raise ValueError("invalid card number")
        return digits


class CardUpdate(Document):
    # PAN/CVV cannot be changed, add a new card instead
    title: Optional[str] = None
    holder: Optional[str] = None
    exp_month: Optional[int] = Field(None, ge=1, le=12)
    exp_year: Optional[int] = Field(None, ge=2024)


@router.get("")
def list_users(
    _: CurrentUser = Depends(require_user("admin")),
    users: UserRepository = Depends(get_user_repository),
):
    return [sanitize_user(u) for u in users.list_all()]


# Addresses

@router.get("/addresses")
def list_addresses(
    current_user: CurrentUser = Depends(require_user()),
    profiles: ProfileService = Depends(get_profile_service),
):
    return profiles.list_addresses(current_user.id)


@router.post("/addresses", status_code=201)
def add_address(
    payload: AddressInput,
    current_user: CurrentUser = Depends(require_user()),
    profiles: ProfileService = Depends(get_profile_service),
):
    data = payload.model_dump()
    data["is_default"] = bool(payload.is_default)
    addresses = profiles.add_address(current_user.id, data)
    return {"message": "Address added", "addresses": addresses}


@router.patch("/addresses/{address_id}")
def update_address(
    address_id: str,
    payload: AddressUpdate,
    current_user: CurrentUser = Depends(require_user()),
    profiles: ProfileService = Depends(get_profile_service),
):
    address = profiles.update_address(current_user.id, address_id, payload.model_dump(by_alias=True, exclude_unset=True))
    return {"message": "Address updated", "address": address}


@router.delete("/addresses/{address_id}")
def delete_address(
    address_id: str,
    current_user: CurrentUser = Depends(require_user()),
    profiles: ProfileService = Depends(get_profile_service),
):
    addresses = profiles.delete_address(current_user.id, address_id)
    return {"message": "Address deleted", "addresses": addresses}


@router.patch("/addresses/{address_id}/default")
def set_default_address(
    address_id: str,
    current_user: CurrentUser = Depends(require_user()),
    profiles: ProfileService = Depends(get_profile_service),
):
    addresses = profiles.set_default_address(current_user.id, address_id)
    return {"message": "Default address set", "addresses": addresses}


# Cards (token is never returned)

@router.get("/cards")
def list_cards(
    current_user: CurrentUser = Depends(require_user()),
    profiles: ProfileService = Depends(get_profile_service),
):
    return profiles.list_cards(current_user.id)


@router.post("/cards", status_code=201)
def add_card(
    payload: CardInput,
    current_user: CurrentUser = Depends(require_user()),
    profiles: ProfileService = Depends(get_profile_service),
):
    cards = profiles.add_card(
        current_user.id,
        title=payload.title,
        holder=payload.holder,
        pan=payload.pan,
        exp_month=payload.exp_month,
        exp_year=payload.exp_year,
        is_default=payload.is_default,
    )
    return {"message": "Card added", "cards": cards}


@router.patch("/cards/{card_id}")
def update_card(
    card_id: str,
    payload: CardUpdate,
    current_user: CurrentUser = Depends(require_user()),
    profiles: ProfileService = Depends(get_profile_service),
):
    card = profiles.update_card(current_user.id, card_id, payload.model_dump(by_alias=True, exclude_unset=True))
    return {"message": "Card updated", "card": card}


@router.delete("/cards/{card_id}")
def delete_card(
    card_id: str,
    current_user: CurrentUser = Depends(require_user()),
    profiles: ProfileService = Depends(get_profile_service),
):
    cards = profiles.delete_card(current_user.id, card_id)
    return {"message": "Card deleted", "cards": cards}


@router.patch("/cards/{card_id}/default")
def set_default_card(
    card_id: str,
    current_user: CurrentUser = Depends(require_user()),
    profiles: ProfileService = Depends(get_profile_service),
):
    cards = profiles.set_default_card(current_user.id, card_id)
    return {"message": "Default card set", "cards": cards}
