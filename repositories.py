from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.results import UpdateResult

from database import create_document, get_documents, utcnow

NO_PASSWORD = {"password": 0}


class ProductRepository:
    collection = "product"

    def __init__(self, db: Database):
        self.db = db
        self.col = db[self.collection]

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return create_document(self.db, self.collection, data)

    def find_all(self) -> List[Dict[str, Any]]:
        return get_documents(self.db, self.collection)

    def find_by_id(self, product_id: ObjectId) -> Optional[Dict[str, Any]]:
        return self.col.find_one({"_id": product_id})

    def find_by_material_no(self, material_no: str) -> Optional[Dict[str, Any]]:
        return self.col.find_one({"materialNo": material_no})

    def update(self, product_id: ObjectId, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self.col.find_one_and_update(
            {"_id": product_id},
            {"$set": {**data, "updatedAt": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )

    def delete(self, product_id: ObjectId) -> Optional[Dict[str, Any]]:
        return self.col.find_one_and_delete({"_id": product_id})

    def upsert_by_material_no(self, doc: Dict[str, Any]) -> UpdateResult:
        now = utcnow()
        # images and flags are only seeded on insert so re-imports keep them
        return self.col.update_one(
            {"materialNo": doc["materialNo"]},
            {
                "$set": doc,
                "$setOnInsert": {"images": [], "isActive": True, "createdAt": now, "updatedAt": now},
            },
            upsert=True,
        )

    def set_images(self, product_id: ObjectId, images: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        return self.col.find_one_and_update(
            {"_id": product_id},
            {"$set": {"images": images, "updatedAt": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )

    def adjust_stock(self, product_id: ObjectId, delta: int) -> None:
        self.col.update_one({"_id": product_id}, {"$inc": {"stock": delta}, "$set": {"updatedAt": utcnow()}})


class UserRepository:
    collection = "user"

    def __init__(self, db: Database):
        self.db = db
        self.col = db[self.collection]

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return create_document(self.db, self.collection, data)

    def find_by_email_with_password(self, email: str) -> Optional[Dict[str, Any]]:
        return self.col.find_one({"email": email})

    def find_by_id(self, user_id: ObjectId) -> Optional[Dict[str, Any]]:
        return self.col.find_one({"_id": user_id}, NO_PASSWORD)

    def find_conflict(self, email: str, tckn: str, phone: str) -> Optional[Dict[str, Any]]:
        return self.col.find_one(
            {"$or": [{"email": email}, {"tckn": tckn}, {"phone": phone}]},
            {"email": 1, "tckn": 1, "phone": 1},
        )

    def list_all(self) -> List[Dict[str, Any]]:
        return get_documents(self.db, self.collection, projection=NO_PASSWORD)

    def set_addresses(self, user_id: ObjectId, addresses: List[Dict[str, Any]]) -> None:
        self.col.update_one({"_id": user_id}, {"$set": {"addresses": addresses, "updatedAt": utcnow()}})

    def set_cards(self, user_id: ObjectId, cards: List[Dict[str, Any]]) -> None:
        self.col.update_one({"_id": user_id}, {"$set": {"cards": cards, "updatedAt": utcnow()}})


class CartRepository:
    collection = "cart"

    def __init__(self, db: Database):
        self.db = db
        self.col = db[self.collection]

    def find_active(self, user_id: ObjectId) -> Optional[Dict[str, Any]]:
        return self.col.find_one({"userId": user_id, "status": "active"})

    def find_by_id(self, cart_id: ObjectId) -> Optional[Dict[str, Any]]:
        return self.col.find_one({"_id": cart_id})

    def save(self, cart: Dict[str, Any]) -> Dict[str, Any]:
        if cart.get("_id") is None:
            cart.pop("_id", None)
            return create_document(self.db, self.collection, cart)
        fields = {k: v for k, v in cart.items() if k not in ("_id", "createdAt")}
        fields["updatedAt"] = utcnow()
        self.col.update_one({"_id": cart["_id"]}, {"$set": fields})
        cart.update(fields)
        return cart

    def delete(self, cart_id: ObjectId) -> None:
        self.col.delete_one({"_id": cart_id})
