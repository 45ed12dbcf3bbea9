from fastapi import APIRouter

from routers import auth, examples, health, hello, products

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(auth.router, prefix="/auth", tags=["Auth"])
api_router.include_router(products.router, prefix="/products", tags=["Products"])
api_router.include_router(hello.router, prefix="/hello", tags=["Hello"])
api_router.include_router(examples.router, prefix="/examples", tags=["Examples"])

__all__ = ["api_router"]
