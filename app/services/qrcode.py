# app/services/qrcode.py

import logging
import secrets
from datetime import datetime, timedelta, timezone
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.crud import qrcode as crud_qrcode
from app.crud import user as crud_user
from app.dependencies import get_db_context
from app.models.qrcode import QRCode
from app.models.user import User
from app.schemas.qrcode import QRCodeCreate, QRPayRequest
from app.schemas.transaction import SaleCreate
from app.schemas.transaction import Transaction as TransactionSchema
from app.services import sales as sales_service
from app.utils.money import quantize

logger = logging.getLogger(__name__)

# Неиспользованные коды удаляются через сутки после истечения
EXPIRED_CODES_GRACE_HOURS = 24


def issue_qr_code(db: Session, merchant_user: User, qr_data: QRCodeCreate) -> QRCode:
    """Выпускает одноразовый платежный код на фиксированную сумму."""
    merchant = sales_service.get_merchant_for_user(db, merchant_user, require_approved=True)

    expires_at = datetime.now(timezone.utc) + timedelta(minutes=settings.QR_CODE_TTL_MINUTES)
    qr_code = crud_qrcode.create_qr_code(
        db,
        user_id=merchant_user.id,
        code=secrets.token_hex(16),
        amount=quantize(qr_data.amount),
        description=qr_data.description or f"Payment to {merchant.store_name}",
        expires_at=expires_at,
    )
    db.commit()
    db.refresh(qr_code)
    logger.info(f"QR code {qr_code.id} issued by merchant {merchant.id} for {qr_code.amount}, expires at {expires_at}.")
    return qr_code


def pay_qr_code(db: Session, client: User, pay_data: QRPayRequest, ip_address: str | None = None) -> TransactionSchema:
    """
    Оплата по QR-коду. Код блокируется, помечается использованным и
    превращается в продажу в одной транзакции БД.
    """
    qr_code = crud_qrcode.get_redeemable_for_update(db, pay_data.code.strip(), datetime.now(timezone.utc))
    if not qr_code:
        logger.warning(f"User {client.id} tried to pay with invalid, used or expired QR code.")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="QR code is invalid or expired")

    merchant_user = crud_user.get_user_by_id(db, qr_code.user_id)
    if not merchant_user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Merchant not found")

    qr_code.used = True
    sale = SaleCreate(
        customer_id=client.id,
        manual_amount=qr_code.amount,
        payment_method=pay_data.payment_method,
        description=qr_code.description,
        idempotency_key=f"qr:{qr_code.code}",
    )
    # record_sale делает commit: отметка об использовании кода фиксируется вместе с продажей
    transaction = sales_service.record_sale(db, merchant_user, sale, ip_address=ip_address)
    logger.info(f"QR code {qr_code.id} redeemed by user {client.id} as transaction {transaction.id}.")
    return transaction


def expire_qr_codes_task():
    """Фоновая задача: удаляет неиспользованные коды, истекшие более суток назад."""
    logger.info("--- Starting scheduled job: Expired QR Codes Cleanup ---")
    with get_db_context() as db:
        try:
            threshold = datetime.now(timezone.utc) - timedelta(hours=EXPIRED_CODES_GRACE_HOURS)
            deleted_count = crud_qrcode.delete_expired_unused(db, older_than=threshold)
            if deleted_count > 0:
                logger.info(f"Successfully deleted {deleted_count} expired QR codes.")
            else:
                logger.info("No expired QR codes to delete.")
        except Exception:
            logger.error("An error occurred during QR codes cleanup task", exc_info=True)
            db.rollback()
    logger.info("--- Finished scheduled job: Expired QR Codes Cleanup ---")
