# app/routers/admin.py
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from typing import Literal

from app.dependencies import get_admin_user, get_client_ip, get_db
from app.models.user import User
from app.schemas.settings import CommissionSettings, CommissionSettingsUpdate, PaginatedCommissionSettings
from app.schemas.withdrawal import PaginatedWithdrawalRequests, WithdrawalProcess, WithdrawalRequest
from app.services import settings as settings_service
from app.services import withdrawal as withdrawal_service

router = APIRouter(prefix="/admin")


@router.get("/withdrawal-requests", response_model=PaginatedWithdrawalRequests)
def list_withdrawal_requests(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    status_filter: Literal["pending", "completed", "rejected"] | None = Query(None, alias="status"),
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """[АДМИН] Все заявки на вывод, от новых к старым."""
    return withdrawal_service.get_all_requests(db, page, size, status_filter)


@router.patch("/withdrawal-requests/{request_id}", response_model=WithdrawalRequest)
def process_withdrawal_request(
    request: Request,
    request_id: int,
    process_data: WithdrawalProcess,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """
    [АДМИН] Одобрение или отклонение заявки. Переход возможен один раз;
    одобрение списывает сумму с баланса продавца.
    """
    return withdrawal_service.process_request(db, admin, request_id, process_data, ip_address=get_client_ip(request))


@router.get("/settings/rates", response_model=CommissionSettings)
def get_rates(
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """[АДМИН] Действующие ставки (при первом обращении создаются значения по умолчанию)."""
    current = settings_service.get_current_settings(db)
    db.commit()
    return current


@router.patch("/settings/rates", response_model=CommissionSettings)
def update_rates(
    settings_data: CommissionSettingsUpdate,
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    """[АДМИН] Частичное обновление ставок. Создает новую запись в истории."""
    return settings_service.update_settings(db, admin, settings_data)


@router.get("/settings/rates/history", response_model=PaginatedCommissionSettings)
def get_rates_history(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    admin: User = Depends(get_admin_user),
    db: Session = Depends(get_db)
):
    return settings_service.get_history(db, page, size)
