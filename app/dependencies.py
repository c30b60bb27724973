# app/dependencies.py

import logging
from typing import Iterator
from contextlib import contextmanager

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from jose import JWTError, jwt
from fastapi import Request
from app.core.config import settings
from app.db.session import SessionLocal
from app.models.user import User, UserStatus, UserType

# --- Инициализация логгера ---
logger = logging.getLogger(__name__)

# --- Схемы аутентификации ---
strict_bearer_scheme = HTTPBearer(auto_error=True)

# Статусы, с которыми доступ к API закрыт
BLOCKED_STATUSES = (UserStatus.INACTIVE, UserStatus.REJECTED)

# --- Управление сессией БД ---
def get_db_session_instance() -> Session:
    """Создает и возвращает экземпляр сессии БД."""
    return SessionLocal()

def get_db() -> Iterator[Session]:
    """
    Основная зависимость FastAPI для получения сессии БД.
    Незакоммиченные изменения (например, после ошибки) откатываются при закрытии.
    """
    db = get_db_session_instance()
    try:
        yield db
    finally:
        db.close()

@contextmanager
def get_db_context() -> Iterator[Session]:
    """
    Контекстный менеджер для получения сессии БД вне FastAPI (для фоновых задач).
    """
    db = get_db_session_instance()
    try:
        yield db
    finally:
        db.close()

# --- Зависимости аутентификации и авторизации ---

def _user_id_from_token(token: str) -> int | None:
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    user_id = payload.get("sub")
    return int(user_id) if user_id is not None else None


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(strict_bearer_scheme),
    db: Session = Depends(get_db)
) -> User:
    """
    ОБЯЗАТЕЛЬНАЯ зависимость.
    Требует валидный токен. Если его нет или он невалиден - вызывает ошибку 401.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        user_id = _user_id_from_token(credentials.credentials)
        if user_id is None:
            logger.warning("Token payload is missing 'sub' (user_id).")
            raise credentials_exception
    except (JWTError, ValueError) as e:
        logger.warning(f"JWT Error during token decoding: {e}")
        raise credentials_exception

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        logger.warning(f"User with ID {user_id} from token not found in DB.")
        raise credentials_exception

    if user.status in BLOCKED_STATUSES:
        logger.warning(f"Access denied for user {user.id} with status '{user.status}'.")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is not active")

    request.state.user = user
    logger.debug(f"Successfully authenticated user ID: {user.id} ({user.type})")
    return user


def require_user_type(*allowed_types: str):
    """
    Фабрика зависимостей: пропускает только пользователей указанных типов.
    """
    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.type not in allowed_types:
            logger.warning(
                f"Permission denied for user {current_user.id} ({current_user.type}). "
                f"Required: {allowed_types}"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to access this resource."
            )
        return current_user

    return dependency


def get_admin_user(current_user: User = Depends(get_current_user)) -> User:
    """
    Зависимость для защиты админских эндпоинтов.
    """
    if current_user.type != UserType.ADMIN:
        logger.warning(f"Admin access denied for user {current_user.id} ({current_user.type}).")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to access this resource."
        )
    return current_user


get_client_user = require_user_type(UserType.CLIENT)
get_merchant_user = require_user_type(UserType.MERCHANT)


def get_client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None
