"""
Database Schemas

Each Pydantic model represents a MongoDB collection (or a document embedded in
one). Model name lowercased is the collection name. Field names are stored and
exchanged in camelCase (materialNo, isPrimary, isDefault, ...).
"""

from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator
from pydantic.alias_generators import to_camel


class Document(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProductImage(Document):
    url: str = Field(..., min_length=1)
    is_primary: bool = False
    label: str = ""
    source: str = Field("external", description="external | sap | upload")


class Product(Document):
    material_no: str = Field(..., min_length=1, description="Business key (SAP matnr)")
    name: str = Field(..., min_length=1)
    price: float = Field(0, ge=0)
    currency: str = "TRY"
    material_group: Optional[str] = None
    material_group_name: Optional[str] = None
    stock: int = Field(0, ge=0)
    date: Optional[datetime] = None
    images: List[ProductImage] = Field(default_factory=list)
    is_active: bool = True

    @model_validator(mode="after")
    def _single_primary(self):
        if sum(1 for im in self.images if im.is_primary) > 1:
            raise ValueError("only one image can be primary")
        return self


class Address(Document):
    title: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    district: str = Field(..., min_length=1)
    zip: str = Field(..., min_length=1)
    is_default: bool = False


class Card(Document):
    """Stored payment card. Only brand/last4 and the provider token are kept."""

    title: str = Field(..., min_length=1)
    holder: str = Field(..., min_length=1)
    brand: Optional[str] = None
    last4: str = Field(..., min_length=4, max_length=4)
    exp_month: int = Field(..., ge=1, le=12)
    exp_year: int = Field(..., ge=2024)
    token: str
    is_default: bool = False


class User(Document):
    name: str = Field(..., min_length=2)
    tckn: str = Field(..., pattern=r"^\d{11}$", description="National ID")
    email: EmailStr
    phone: str = Field(..., min_length=10)
    password: str = Field(..., description="BCrypt hashed password")
    role: Literal["user", "admin"] = "user"
    is_active: bool = True
    addresses: List[dict] = Field(default_factory=list)
    cards: List[dict] = Field(default_factory=list)


class CartItem(Document):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, arbitrary_types_allowed=True)

    product_id: Any = Field(..., description="ObjectId of the referenced product")
    # snapshot taken from the product on every mutating cart call
    name: str
    price: float = Field(..., ge=0)
    quantity: int = Field(..., ge=1)


class Cart(Document):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, arbitrary_types_allowed=True)

    user_id: Any = Field(..., description="ObjectId of the owning user")
    items: List[CartItem] = Field(default_factory=list)
    status: Literal["active", "completed", "cancelled"] = "active"
    total_price: float = Field(0, ge=0)
