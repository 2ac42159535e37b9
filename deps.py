from fastapi import Depends, Request
from pymongo.database import Database

from carts import CartService
from catalog import ProductService
from config import Settings
from errors import DatabaseNotConfigured
from feed import FeedClient
from profiles import ProfileService
from repositories import CartRepository, ProductRepository, UserRepository


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request) -> Database:
    db = request.app.state.db
    if db is None:
        raise DatabaseNotConfigured()
    return db


def get_product_repository(db: Database = Depends(get_db)) -> ProductRepository:
    return ProductRepository(db)


def get_user_repository(db: Database = Depends(get_db)) -> UserRepository:
    return UserRepository(db)


def get_cart_repository(db: Database = Depends(get_db)) -> CartRepository:
    return CartRepository(db)


def get_product_service(products: ProductRepository = Depends(get_product_repository)) -> ProductService:
    return ProductService(products)


def get_cart_service(
    carts: CartRepository = Depends(get_cart_repository),
    products: ProductRepository = Depends(get_product_repository),
) -> CartService:
    return CartService(carts, products)


def get_profile_service(users: UserRepository = Depends(get_user_repository)) -> ProfileService:
    return ProfileService(users)


def get_feed_client(settings: Settings = Depends(get_settings)) -> FeedClient:
    return FeedClient(settings)
