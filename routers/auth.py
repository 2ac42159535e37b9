import logging
from typing import Any, Dict, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, EmailStr, Field

from config import Settings
from deps import get_settings, get_user_repository
from errors import AuthenticationError, ConflictError, ForbiddenError, NotFoundError
from helpers import parse_object_id, sanitize_user
from profiles import new_address, new_card
from repositories import UserRepository
from routers.users import AddressInput, CardInput
from schemas import Document, User
from security import (
    CurrentUser,
    clear_auth_cookie,
    create_access_token,
    decode_token,
    hash_password,
    require_user,
    set_auth_cookie,
    verify_password,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class RegisterInput(Document):
    name: str = Field(..., min_length=2)
    tckn: str = Field(..., pattern=r"^\d{11}$")
    email: EmailStr
    phone: str = Field(..., min_length=10)
    password: str = Field(..., min_length=8)
    address: Optional[AddressInput] = None
    payment: Optional[CardInput] = None


class LoginInput(BaseModel):
    email: EmailStr
    password: str


def _conflicting_field(existing: Dict[str, Any], payload: RegisterInput, email: str) -> str:
    if existing.get("email") == email:
        return "email"
    if existing.get("tckn") == payload.tckn:
        return "tckn"
    return "phone"


def _session(response: Response, user: Dict[str, Any], settings: Settings) -> str:
    token = create_access_token(user, settings)
    set_auth_cookie(response, token, settings)
    return token


@router.post("/register", status_code=201)
def register(
    payload: RegisterInput,
    response: Response,
    users: UserRepository = Depends(get_user_repository),
    settings: Settings = Depends(get_settings),
):
    email = payload.email.lower()
    existing = users.find_conflict(email, payload.tckn, payload.phone)
    if existing:
        field = _conflicting_field(existing, payload, email)
        raise ConflictError(f"An account with this {field} already exists")

    user = User(
        name=payload.name.strip(),
        tckn=payload.tckn,
        email=email,
        phone=payload.phone,
        password=hash_password(payload.password),
        role="user",
    )
    doc = user.model_dump(by_alias=True)

    # optional first address/card from the signup form, both become default
    if payload.address:
        data = payload.address.model_dump()
        data["is_default"] = True if payload.address.is_default is None else payload.address.is_default
        doc["addresses"] = [new_address(data)]
    if payload.payment:
        p = payload.payment
        doc["cards"] = [new_card(p.title, p.holder, p.pan, p.exp_month, p.exp_year, True)]

    created = users.create(doc)
    token = _session(response, created, settings)
    logger.info("Registered user %s", created["_id"])
    return {"message": "Registration successful", "token": token, "user": sanitize_user(created)}


@router.post("/login")
def login(
    payload: LoginInput,
    response: Response,
    users: UserRepository = Depends(get_user_repository),
    settings: Settings = Depends(get_settings),
):
    user = users.find_by_email_with_password(payload.email.lower())
    if not user or not verify_password(payload.password, user.get("password")):
        logger.info("Failed login for %s", payload.email.lower())
        raise AuthenticationError("Invalid email or password")
    if user.get("isActive") is False:
        raise ForbiddenError("Account is disabled")

    token = _session(response, user, settings)
    return {"message": "Login successful", "token": token, "user": sanitize_user(user)}


def _reject_session(message: str, settings: Settings) -> JSONResponse:
    response = JSONResponse(status_code=401, content={"message": message})
    clear_auth_cookie(response, settings)
    return response


@router.api_route("/refresh", methods=["GET", "POST"])
def refresh(
    request: Request,
    response: Response,
    users: UserRepository = Depends(get_user_repository),
    settings: Settings = Depends(get_settings),
):
    token = request.cookies.get(settings.cookie_name)
    if not token:
        return _reject_session("No session cookie", settings)
    try:
        payload = decode_token(token, settings)
    except AuthenticationError as exc:
        return _reject_session(exc.detail, settings)

    user = users.find_by_id(ObjectId(payload["sub"])) if ObjectId.is_valid(payload["sub"]) else None
    if not user or user.get("isActive") is False:
        return _reject_session("User not found or inactive", settings)

    new_token = _session(response, user, settings)
    return {"message": "Session refreshed", "token": new_token, "user": sanitize_user(user)}


@router.post("/logout")
def logout(response: Response, settings: Settings = Depends(get_settings)):
    clear_auth_cookie(response, settings)
    return {"message": "Logged out"}


@router.get("/me")
def me(
    current_user: CurrentUser = Depends(require_user()),
    users: UserRepository = Depends(get_user_repository),
):
    user = users.find_by_id(parse_object_id(current_user.id, "user id"))
    if not user:
        raise NotFoundError("User not found")
    return {"user": sanitize_user(user)}
