# app/routers/auth.py
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from app.core.limiter import limiter
from app.dependencies import get_current_user, get_db
from app.models.user import User
from app.schemas.user import AuthResponse, ClientRegister, InviteInfo, LoginRequest, MerchantRegister
from app.schemas.user import User as UserSchema
from app.services import auth as auth_service
from app.services import referral as referral_service

router = APIRouter()


@router.post("/auth/login", response_model=AuthResponse)
@limiter.limit("5/minute")
def login(
    request: Request,
    credentials: LoginRequest,
    db: Session = Depends(get_db)
):
    """
    Вход по email и паролю. Возвращает JWT токен.
    Защищено лимитом в 5 запросов в минуту.
    """
    return auth_service.login(db, credentials)


@router.get("/auth/me", response_model=UserSchema)
def read_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.post("/register/client", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
def register_client(
    request: Request,
    data: ClientRegister,
    db: Session = Depends(get_db)
):
    """Регистрация клиента с необязательным кодом приглашения."""
    return auth_service.register_client(db, data)


@router.post("/register/merchant", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
def register_merchant(
    request: Request,
    data: MerchantRegister,
    db: Session = Depends(get_db)
):
    """Регистрация продавца вместе с магазином."""
    return auth_service.register_merchant(db, data)


@router.get("/invite/{code}", response_model=InviteInfo)
def resolve_invite(code: str, db: Session = Depends(get_db)):
    """Публичный эндпоинт: кто пригласил по этому коду."""
    return referral_service.resolve_invite(db, code)
