# app/routers/client.py
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from app.core.limiter import limiter
from app.dependencies import get_client_ip, get_client_user, get_db
from app.models.user import User
from app.schemas.ledger import Balance, PaginatedLedgerEntries
from app.schemas.qrcode import QRPayRequest
from app.schemas.referral import ReferralInfo
from app.schemas.transaction import Transaction
from app.schemas.transfer import PaginatedTransfers, Transfer, TransferCreate
from app.services import ledger as ledger_service
from app.services import qrcode as qrcode_service
from app.services import referral as referral_service
from app.services import transfer as transfer_service

router = APIRouter(prefix="/client")


@router.post("/transfers", response_model=Transfer, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
def create_transfer(
    request: Request,
    transfer_data: TransferCreate,
    current_user: User = Depends(get_client_user),
    db: Session = Depends(get_db)
):
    """Перевод кешбэка другому клиенту (минимум $1.00)."""
    return transfer_service.create_transfer(db, current_user, transfer_data)


@router.get("/transfers", response_model=PaginatedTransfers)
def list_transfers(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_client_user),
    db: Session = Depends(get_db)
):
    return transfer_service.get_paginated_transfers(db, current_user, page, size)


@router.post("/pay-qrcode", response_model=Transaction, status_code=status.HTTP_201_CREATED)
def pay_qr_code(
    request: Request,
    pay_data: QRPayRequest,
    current_user: User = Depends(get_client_user),
    db: Session = Depends(get_db)
):
    """Оплата по QR-коду магазина: код становится продажей."""
    return qrcode_service.pay_qr_code(db, current_user, pay_data, ip_address=get_client_ip(request))


@router.get("/balance", response_model=Balance)
def get_balance(
    current_user: User = Depends(get_client_user),
    db: Session = Depends(get_db)
):
    return ledger_service.get_balance_summary(db, current_user)


@router.get("/cashbacks", response_model=PaginatedLedgerEntries)
def list_cashbacks(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_client_user),
    db: Session = Depends(get_db)
):
    """История движений по счету (кешбэк, бонусы, переводы, сторно)."""
    return ledger_service.get_history(db, current_user.id, page, size)


@router.get("/referrals", response_model=ReferralInfo)
def get_referrals(
    current_user: User = Depends(get_client_user),
    db: Session = Depends(get_db)
):
    return referral_service.get_referral_info(db, current_user)
