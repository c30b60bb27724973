# app/main.py

import logging
from contextlib import asynccontextmanager
from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

# Конфигурация и ядро
from app.core.config import settings as config
from app.core.exceptions import DataIntegrityError, data_integrity_exception_handler
from app.core.limiter import limiter
from app.core.logging_config import setup_logging
from app.core.redis import redis_client
from app.db.base import Base  # noqa: F401  (регистрирует все модели)
from app.crud import audit as crud_audit
from app.dependencies import get_db_context

# Роутеры FastAPI
from app.routers.api import api_router

# Фоновые задачи
from app.services.notification_cleanup import cleanup_old_notifications_task
from app.services.qrcode import expire_qr_codes_task

# --- Инициализация ---
logger = logging.getLogger(__name__)
scheduler = AsyncIOScheduler()

# --- Обработчик критических ошибок ---
async def unhandled_exception_handler(request: Request, exc: Exception):
    """
    Глобальный обработчик для всех необработанных исключений.
    Логирует ошибку с контекстом (пользователь, действие) и пишет запись в журнал аудита.
    """
    user = getattr(request.state, "user", None)
    user_id = getattr(user, "id", None)
    action = f"{request.method} {request.url.path}"
    logger.critical(f"Unhandled exception for request: {action} (user_id={user_id})", exc_info=exc)

    try:
        with get_db_context() as db:
            crud_audit.create_log(
                db,
                action="unhandled_error",
                user_id=user_id,
                details=f"{action}: {type(exc).__name__}: {exc}",
                ip_address=request.client.host if request.client else None,
            )
            db.commit()
    except Exception:
        logger.error("Failed to write unhandled error to the audit log", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error. The error has been logged."},
    )

# --- Lifespan Manager (запуск и остановка приложения) ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("Application lifespan startup...")

    # Надежная блокировка через Redis: планировщик запускается только в одном воркере
    is_main_worker = await redis_client.set("app_startup_lock", "1", ex=60, nx=True)

    if is_main_worker:
        logger.info("This is the main worker. Starting scheduler...")
        if not scheduler.running:
            scheduler.add_job(cleanup_old_notifications_task, 'cron', hour=5, minute=30, timezone='UTC')
            scheduler.add_job(expire_qr_codes_task, 'interval', hours=1)
            scheduler.start()
            logger.info("Scheduler started with background jobs.")
    else:
        logger.info("This is a secondary worker. Skipping scheduler setup.")

    yield

    # Код при остановке
    if is_main_worker:
        logger.info("Main worker shutting down...")
        if scheduler.running:
            scheduler.shutdown()
            logger.info("Scheduler shut down.")
        await redis_client.delete("app_startup_lock")
    else:
        logger.info("Secondary worker shutting down.")

# --- Создание FastAPI приложения ---
app = FastAPI(
    title="Vale Cashback API",
    description="Cashback and referral ledger for clients, merchants and admins",
    version="0.1.0",
    lifespan=lifespan
)

origins = [
    "http://localhost",
    "http://localhost:3000",
    "http://localhost:5173", # для Vite
    config.FRONTEND_URL,
    *config.CORS_ORIGINS,
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Лимитер запросов ---
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# --- Регистрация обработчиков исключений ---
app.add_exception_handler(DataIntegrityError, data_integrity_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Подключение роутеров FastAPI ---
app.include_router(api_router)


@app.get("/health")
def health():
    return {"status": "ok"}
