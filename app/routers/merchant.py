# app/routers/merchant.py
from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session
from typing import Literal

from app.dependencies import get_client_ip, get_db, get_merchant_user
from app.models.user import User
from app.schemas.ledger import Balance
from app.schemas.qrcode import QRCode, QRCodeCreate
from app.schemas.referral import ReferralInfo
from app.schemas.transaction import PaginatedTransactions, SaleCreate, SaleStatusUpdate, SaleUpdate, Transaction
from app.schemas.withdrawal import PaginatedWithdrawalRequests, WithdrawalRequest, WithdrawalRequestCreate
from app.services import ledger as ledger_service
from app.services import qrcode as qrcode_service
from app.services import referral as referral_service
from app.services import sales as sales_service
from app.services import withdrawal as withdrawal_service

router = APIRouter(prefix="/merchant")

StatusFilter = Literal["pending", "completed", "cancelled", "refunded"]


# --- Продажи ---

@router.post("/sales", response_model=Transaction, status_code=status.HTTP_201_CREATED)
def record_sale(
    request: Request,
    sale: SaleCreate,
    current_user: User = Depends(get_merchant_user),
    db: Session = Depends(get_db)
):
    """
    Записывает продажу и начисляет кешбэк покупателю и бонус рефереру.
    Повтор с тем же idempotency_key возвращает уже записанную продажу.
    """
    return sales_service.record_sale(db, current_user, sale, ip_address=get_client_ip(request))


@router.get("/sales", response_model=PaginatedTransactions)
def list_sales(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    status_filter: StatusFilter | None = Query(None, alias="status"),
    current_user: User = Depends(get_merchant_user),
    db: Session = Depends(get_db)
):
    return sales_service.get_paginated_sales(db, current_user, page, size, status_filter)


@router.get("/sales/{transaction_id}", response_model=Transaction)
def get_sale(
    transaction_id: int,
    current_user: User = Depends(get_merchant_user),
    db: Session = Depends(get_db)
):
    return sales_service.get_sale(db, current_user, transaction_id)


@router.put("/sales/{transaction_id}/status", response_model=Transaction)
def change_sale_status(
    request: Request,
    transaction_id: int,
    status_update: SaleStatusUpdate,
    current_user: User = Depends(get_merchant_user),
    db: Session = Depends(get_db)
):
    """Смена статуса продажи. Отмена и возврат сторнируют начисления."""
    return sales_service.change_status(
        db, current_user, transaction_id, status_update.status, ip_address=get_client_ip(request)
    )


@router.put("/sales/{transaction_id}", response_model=Transaction)
def update_sale(
    transaction_id: int,
    sale_update: SaleUpdate,
    current_user: User = Depends(get_merchant_user),
    db: Session = Depends(get_db)
):
    return sales_service.update_sale(db, current_user, transaction_id, sale_update)


@router.delete("/sales/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_sale(
    request: Request,
    transaction_id: int,
    current_user: User = Depends(get_merchant_user),
    db: Session = Depends(get_db)
):
    """Удаление возможно только для отмененных или возвращенных продаж."""
    sales_service.delete_sale(db, current_user, transaction_id, ip_address=get_client_ip(request))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- QR-коды ---

@router.post("/qrcode", response_model=QRCode, status_code=status.HTTP_201_CREATED)
def issue_qr_code(
    qr_data: QRCodeCreate,
    current_user: User = Depends(get_merchant_user),
    db: Session = Depends(get_db)
):
    """Одноразовый платежный код, действует 1 час."""
    return qrcode_service.issue_qr_code(db, current_user, qr_data)


# --- Вывод средств ---

@router.post("/withdrawal-requests", response_model=WithdrawalRequest, status_code=status.HTTP_201_CREATED)
def create_withdrawal_request(
    request_data: WithdrawalRequestCreate,
    current_user: User = Depends(get_merchant_user),
    db: Session = Depends(get_db)
):
    return withdrawal_service.create_request(db, current_user, request_data)


@router.get("/withdrawal-requests", response_model=PaginatedWithdrawalRequests)
def list_withdrawal_requests(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_merchant_user),
    db: Session = Depends(get_db)
):
    return withdrawal_service.get_user_requests(db, current_user, page, size)


# --- Баланс и приглашения ---

@router.get("/balance", response_model=Balance)
def get_balance(
    current_user: User = Depends(get_merchant_user),
    db: Session = Depends(get_db)
):
    return ledger_service.get_balance_summary(db, current_user)


@router.get("/referrals", response_model=ReferralInfo)
def get_referrals(
    current_user: User = Depends(get_merchant_user),
    db: Session = Depends(get_db)
):
    return referral_service.get_referral_info(db, current_user)
