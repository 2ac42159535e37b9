from datetime import datetime
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field, model_validator

from catalog import ProductService
from deps import get_feed_client, get_product_service
from feed import FeedClient
from helpers import normalize_product
from schemas import Document, Product, ProductImage
from security import CurrentUser, require_user

router = APIRouter(prefix="/products", tags=["products"])

admin_only = require_user("admin")


class ProductUpdate(Document):
    material_no: Optional[str] = Field(None, min_length=1)
    name: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = None
    material_group: Optional[str] = None
    material_group_name: Optional[str] = None
    stock: Optional[int] = Field(None, ge=0)
    date: Optional[datetime] = None
    images: Optional[List[ProductImage]] = None
    is_active: Optional[bool] = None

    @model_validator(mode="after")
    def _single_primary(self):
        if self.images and sum(1 for im in self.images if im.is_primary) > 1:
            raise ValueError("only one image can be primary")
        return self


class SapItems(BaseModel):
    # shape is checked by the service so callers get its error message
    items: Any = None


class ImageInput(Document):
    url: Optional[str] = None
    label: str = ""
    is_primary: bool = False
    source: str = "external"


class ImageUrl(BaseModel):
    url: str = Field(..., min_length=1)


@router.get("")
def list_products(service: ProductService = Depends(get_product_service)):
    return [normalize_product(p) for p in service.get_all_products()]


@router.post("", status_code=201)
def create_product(
    payload: Product,
    _: CurrentUser = Depends(admin_only),
    service: ProductService = Depends(get_product_service),
):
    return normalize_product(service.create_product(payload))


# SAP feed

@router.post("/sap/import")
def import_sap(
    payload: SapItems,
    _: CurrentUser = Depends(admin_only),
    service: ProductService = Depends(get_product_service),
):
    summary = service.import_from_sap(payload.items)
    return {"message": "SAP data imported (upsert)", "summary": summary}


@router.post("/sap/import-from-url")
def import_sap_from_url(
    _: CurrentUser = Depends(admin_only),
    feed: FeedClient = Depends(get_feed_client),
    service: ProductService = Depends(get_product_service),
):
    items = feed.fetch()
    summary = service.import_from_sap(items)
    return {"message": "SAP data fetched and imported", "fetched": len(items), "summary": summary}


@router.post("/sap/normalize")
def normalize_sap(payload: SapItems):
    items = payload.items if isinstance(payload.items, list) else []
    return [normalize_product(item) if isinstance(item, dict) else None for item in items]


@router.get("/sap/fetch")
def fetch_sap(
    _: CurrentUser = Depends(admin_only),
    feed: FeedClient = Depends(get_feed_client),
):
    items = feed.fetch()
    return {"count": len(items), "items": items}


# images, addressed by material number

@router.post("/{material_no}/images")
def add_image(
    material_no: str,
    payload: ImageInput,
    _: CurrentUser = Depends(admin_only),
    service: ProductService = Depends(get_product_service),
):
    product = service.add_external_image(
        material_no,
        payload.url,
        label=payload.label,
        is_primary=payload.is_primary,
        source=payload.source,
    )
    return {"message": "Image added", "product": normalize_product(product)}


@router.patch("/{material_no}/images/primary")
def set_primary_image(
    material_no: str,
    payload: ImageUrl,
    _: CurrentUser = Depends(admin_only),
    service: ProductService = Depends(get_product_service),
):
    product = service.set_primary_image(material_no, payload.url)
    return {"message": "Primary image set", "product": normalize_product(product)}


@router.delete("/{material_no}/images")
def delete_image(
    material_no: str,
    payload: ImageUrl,
    _: CurrentUser = Depends(admin_only),
    service: ProductService = Depends(get_product_service),
):
    product = service.delete_image(material_no, payload.url)
    return {"message": "Image deleted", "product": normalize_product(product)}


# CRUD by id

@router.get("/{product_id}")
def get_product(product_id: str, service: ProductService = Depends(get_product_service)):
    return normalize_product(service.get_product_by_id(product_id))


@router.put("/{product_id}")
def update_product(
    product_id: str,
    payload: ProductUpdate,
    _: CurrentUser = Depends(admin_only),
    service: ProductService = Depends(get_product_service),
):
    data = payload.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)
    return normalize_product(service.update_product(product_id, data))


@router.delete("/{product_id}", status_code=204)
def delete_product(
    product_id: str,
    _: CurrentUser = Depends(admin_only),
    service: ProductService = Depends(get_product_service),
):
    service.delete_product(product_id)
    return Response(status_code=204)
