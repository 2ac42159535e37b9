from fastapi import APIRouter

from routers import auth, cart, products, users

api_router = APIRouter(prefix="/api")
api_router.include_router(auth.router)
api_router.include_router(products.router)
api_router.include_router(cart.router)
api_router.include_router(users.router)
