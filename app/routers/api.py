# app/routers/api.py

from fastapi import APIRouter

from app.routers import admin, auth, client, merchant, notification

# Все пути, подключенные к нему, будут иметь префикс /api
api_router = APIRouter(prefix="/api")

# Публичные эндпоинты и аутентификация
api_router.include_router(auth.router, tags=["Authentication"])

# Ролевые эндпоинты
api_router.include_router(client.router, tags=["Client"])
api_router.include_router(merchant.router, tags=["Merchant"])
api_router.include_router(admin.router, tags=["Admin"])

api_router.include_router(notification.router, tags=["Notifications"])
