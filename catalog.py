import logging
from typing import Any, Dict, List, Optional

from errors import BadRequestError, NotFoundError
from helpers import is_valid_http_url, parse_object_id, set_single_flag, to_date, to_number
from repositories import ProductRepository
from schemas import Product, ProductImage

logger = logging.getLogger(__name__)

CURRENCY = "TRY"


def sap_to_model(item: Dict[str, Any]) -> Dict[str, Any]:
    """Map one SAP material row onto the product document fields.

    matnr -> materialNo, maktx -> name, stprs -> price, labst -> stock,
    matkl -> materialGroup, wgbez -> materialGroupName, dates -> date.
    Images and isActive are never produced here.
    """
    doc: Dict[str, Any] = {
        "materialNo": str(item.get("matnr") or "").strip(),
        "name": str(item.get("maktx") or "").strip(),
        "price": to_number(item.get("stprs"), 0),
        "currency": CURRENCY,
        "stock": int(to_number(item.get("labst"), 0)),
        "date": to_date(item.get("dates")),
    }
    if item.get("matkl"):
        doc["materialGroup"] = str(item["matkl"])
    if item.get("wgbez"):
        doc["materialGroupName"] = str(item["wgbez"])
    return doc


class ProductService:
    def __init__(self, products: ProductRepository):
        self.products = products

    # CRUD

    def create_product(self, data: Product) -> Dict[str, Any]:
        return self.products.create(data.model_dump(by_alias=True))

    def get_all_products(self) -> List[Dict[str, Any]]:
        return self.products.find_all()

    def get_product_by_id(self, product_id: str) -> Dict[str, Any]:
        product = self.products.find_by_id(parse_object_id(product_id, "product id"))
        if not product:
            raise NotFoundError("Product not found")
        return product

    def update_product(self, product_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        if not data:
            raise BadRequestError("No fields to update")
        updated = self.products.update(parse_object_id(product_id, "product id"), data)
        if not updated:
            raise NotFoundError("Product not found")
        return updated

    def delete_product(self, product_id: str) -> Dict[str, Any]:
        deleted = self.products.delete(parse_object_id(product_id, "product id"))
        if not deleted:
            raise NotFoundError("Product not found")
        return deleted

    # SAP bulk upsert

    def import_from_sap(self, items: Any) -> Dict[str, int]:
        if not isinstance(items, list) or not items:
            raise BadRequestError("items must be a non-empty list")

        # same material repeated in one payload: the last row wins
        latest: Dict[str, Dict[str, Any]] = {}
        for raw in items:
            if not isinstance(raw, dict) or not raw.get("matnr"):
                continue
            latest[str(raw["matnr"]).strip()] = raw

        docs = [sap_to_model(raw) for raw in latest.values()]
        docs = [doc for doc in docs if doc["materialNo"] and doc["name"]]
        if not docs:
            raise BadRequestError("No valid SAP records (matnr and maktx are required)")

        summary = {"matched": 0, "modified": 0, "upserted": 0}
        for doc in docs:
            result = self.products.upsert_by_material_no(doc)
            summary["matched"] += result.matched_count
            summary["modified"] += result.modified_count or 0
            if result.upserted_id is not None:
                summary["upserted"] += 1

        logger.info(
            "SAP import: %d rows in, %d unique, matched=%d modified=%d upserted=%d",
            len(items), len(docs), summary["matched"], summary["modified"], summary["upserted"],
        )
        return summary

    # images

    def _product_by_material_no(self, material_no: str) -> Dict[str, Any]:
        product = self.products.find_by_material_no(material_no)
        if not product:
            raise NotFoundError("Product not found")
        return product

    def _save_images(self, product: Dict[str, Any], images: List[Dict[str, Any]]) -> Dict[str, Any]:
        saved = self.products.set_images(product["_id"], images)
        if not saved:
            raise NotFoundError("Product not found")
        return saved

    def add_external_image(
        self,
        material_no: str,
        url: Optional[str],
        label: str = "",
        is_primary: bool = False,
        source: str = "external",
    ) -> Dict[str, Any]:
        if not is_valid_http_url(url):
            raise BadRequestError("A valid http/https URL is required")
        product = self._product_by_material_no(material_no)

        images = list(product.get("images") or [])
        if not any(im.get("url") == url for im in images):
            image = ProductImage(url=url, label=label or "", is_primary=False, source=source or "external")
            images.append(image.model_dump(by_alias=True))

        if is_primary:
            set_single_flag(images, "isPrimary", lambda im: im.get("url") == url)
        elif not any(im.get("isPrimary") for im in images):
            first = images[0]
            set_single_flag(images, "isPrimary", lambda im: im is first)

        logger.debug("Image %s attached to %s (primary=%s)", url, material_no, is_primary)
        return self._save_images(product, images)

    def set_primary_image(self, material_no: str, url: str) -> Dict[str, Any]:
        product = self._product_by_material_no(material_no)
        images = list(product.get("images") or [])
        if not set_single_flag(images, "isPrimary", lambda im: im.get("url") == url):
            raise NotFoundError("Image URL is not attached to this product")
        return self._save_images(product, images)

    def delete_image(self, material_no: str, url: str) -> Dict[str, Any]:
        product = self._product_by_material_no(material_no)
        images = list(product.get("images") or [])

        remaining = [im for im in images if im.get("url") != url]
        if len(remaining) == len(images):
            raise NotFoundError("Image URL is not attached to this product")

        if remaining and not any(im.get("isPrimary") for im in remaining):
            first = remaining[0]
            set_single_flag(remaining, "isPrimary", lambda im: im is first)

        return self._save_images(product, remaining)
