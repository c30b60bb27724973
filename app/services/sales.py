# app/services/sales.py

import logging
import math
from decimal import Decimal
from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.crud import audit as crud_audit
from app.crud import ledger as crud_ledger
from app.crud import merchant as crud_merchant
from app.crud import referral as crud_referral
from app.crud import transaction as crud_transaction
from app.crud import user as crud_user
from app.models.ledger import LedgerEntryKind
from app.models.merchant import Merchant
from app.models.referral import ReferralKind, ReferralStatus
from app.models.transaction import Transaction, TransactionStatus
from app.models.user import User, UserType
from app.schemas.settings import CommissionRates
from app.schemas.transaction import (
    Distribution,
    PaginatedTransactions,
    SaleCreate,
    SaleUpdate,
)
from app.schemas.transaction import Transaction as TransactionSchema
from app.services import ledger as ledger_service
from app.services import notification as notification_service
from app.services import settings as settings_service
from app.utils.money import ZERO, parse_money, parse_rate, percent_of, quantize

logger = logging.getLogger(__name__)

# Разрешенные переходы статуса продажи
ALLOWED_TRANSITIONS = {
    TransactionStatus.PENDING: {TransactionStatus.COMPLETED, TransactionStatus.CANCELLED},
    TransactionStatus.COMPLETED: {TransactionStatus.CANCELLED, TransactionStatus.REFUNDED},
    TransactionStatus.CANCELLED: set(),
    TransactionStatus.REFUNDED: set(),
}
DELETABLE_STATUSES = {TransactionStatus.CANCELLED, TransactionStatus.REFUNDED}
EDITABLE_STATUSES = {TransactionStatus.PENDING, TransactionStatus.COMPLETED}


def get_merchant_for_user(db: Session, user: User, require_approved: bool = False) -> Merchant:
    merchant = crud_merchant.get_merchant_by_user_id(db, user_id=user.id)
    if not merchant:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Merchant not found")
    if require_approved and not merchant.approved:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Merchant is not approved yet")
    return merchant


def calculate_amount(sale: SaleCreate) -> Decimal:
    """Сумма продажи: позиции, либо ручная сумма в режиме "быстрой продажи"."""
    if sale.items:
        return quantize(sum((item.price * item.quantity for item in sale.items), ZERO))
    return quantize(sale.manual_amount)


def calculate_distribution(
    transaction: Transaction, merchant: Merchant, rates: CommissionRates, referral_bonus: Decimal
) -> Distribution:
    amount = parse_money(transaction.amount)
    merchant_rate = (
        parse_rate(merchant.commission_rate, "commission_rate")
        if merchant.commission_rate is not None else rates.merchant_commission
    )
    cashback = parse_money(transaction.cashback_amount, field="cashback_amount")
    merchant_commission = percent_of(amount, merchant_rate)
    platform_fee = percent_of(amount, rates.platform_fee)
    return Distribution(
        cashback=cashback,
        referral_bonus=referral_bonus,
        merchant_commission=merchant_commission,
        platform_fee=platform_fee,
        total=cashback + referral_bonus + merchant_commission + platform_fee,
    )


def _referral_bonus_for(db: Session, transaction: Transaction, rates: CommissionRates) -> Decimal:
    referral = crud_referral.get_referral_by_transaction(db, transaction_id=transaction.id)
    if referral:
        return parse_money(referral.bonus, field="referral_bonus")
    if transaction.referrer_id and transaction.status == TransactionStatus.PENDING:
        # Еще не начислен: показываем ожидаемый бонус
        return percent_of(parse_money(transaction.amount), rates.referral_bonus)
    return ZERO


def to_schema(db: Session, transaction: Transaction, merchant: Merchant | None = None) -> TransactionSchema:
    """Продажа вместе с разбивкой суммы по получателям."""
    if merchant is None:
        merchant = crud_merchant.get_merchant_by_id(db, transaction.merchant_id)
    rates = settings_service.get_rates(db)
    result = TransactionSchema.model_validate(transaction)
    result.distribution = calculate_distribution(
        transaction, merchant, rates, _referral_bonus_for(db, transaction, rates)
    )
    return result


def resolve_referrer(db: Session, buyer: User, referrer_id: int | None) -> int | None:
    """
    Явно переданный реферер, иначе - самая свежая активная реферальная
    связь покупателя.
    """
    if referrer_id is not None:
        if referrer_id == buyer.id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Buyer cannot refer themselves")
        referrer = crud_user.get_user_by_id(db, referrer_id)
        if not referrer:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Referrer not found")
        return referrer.id

    link = crud_referral.get_latest_active_referral_for(db, referred_id=buyer.id)
    return link.referrer_id if link else None


def post_sale_credits(db: Session, transaction: Transaction, rates: CommissionRates) -> Decimal:
    """
    Начисляет кешбэк покупателю и реферальный бонус рефереру.
    Оба начисления идемпотентны по ID продажи. Возвращает сумму бонуса.
    Требует внешнего вызова db.commit().
    """
    ledger_service.credit(
        db,
        user_id=transaction.user_id,
        amount=parse_money(transaction.cashback_amount, field="cashback_amount"),
        kind=LedgerEntryKind.CASHBACK,
        reference_id=transaction.id,
        description=f"Cashback for purchase #{transaction.id}",
    )

    if not transaction.referrer_id:
        return ZERO

    existing = crud_referral.get_referral_by_transaction(db, transaction_id=transaction.id)
    if existing:
        logger.warning(f"Referral bonus for transaction {transaction.id} already exists (referral {existing.id}).")
        return parse_money(existing.bonus, field="referral_bonus")

    bonus = percent_of(parse_money(transaction.amount), rates.referral_bonus)
    referral = crud_referral.create_referral(
        db,
        referrer_id=transaction.referrer_id,
        referred_id=transaction.user_id,
        bonus=bonus,
        kind=ReferralKind.SALE,
        status=ReferralStatus.ACTIVE,
        transaction_id=transaction.id,
    )
    ledger_service.credit(
        db,
        user_id=transaction.referrer_id,
        amount=bonus,
        kind=LedgerEntryKind.REFERRAL_SALE,
        reference_id=transaction.id,
        description=f"Referral bonus for purchase #{transaction.id}",
    )
    logger.info(
        f"Referral bonus {bonus} for transaction {transaction.id} credited to user {transaction.referrer_id} "
        f"(referral {referral.id})."
    )
    return bonus


def reverse_sale_credits(db: Session, transaction: Transaction) -> None:
    """Сторно кешбэка и реферального бонуса по продаже (с ограничением нулем)."""
    cashback_entry = crud_ledger.get_entry(
        db, user_id=transaction.user_id, kind=LedgerEntryKind.CASHBACK, reference_id=transaction.id
    )
    if cashback_entry:
        ledger_service.reverse(
            db,
            user_id=transaction.user_id,
            amount=parse_money(cashback_entry.delta, field="delta"),
            kind=LedgerEntryKind.CASHBACK_REVERSAL,
            reference_id=transaction.id,
            description=f"Cashback reversal for purchase #{transaction.id} ({transaction.status})",
        )

    referral = crud_referral.get_referral_by_transaction(db, transaction_id=transaction.id)
    if referral and referral.status == ReferralStatus.ACTIVE:
        ledger_service.reverse(
            db,
            user_id=referral.referrer_id,
            amount=parse_money(referral.bonus, field="bonus"),
            kind=LedgerEntryKind.REFERRAL_REVERSAL,
            reference_id=transaction.id,
            description=f"Referral bonus reversal for purchase #{transaction.id} ({transaction.status})",
        )
        referral.status = ReferralStatus.REVERSED


def record_sale(db: Session, merchant_user: User, sale: SaleCreate, ip_address: str | None = None) -> TransactionSchema:
    """
    Записывает продажу. Вставка продажи, начисление кешбэка и реферального
    бонуса выполняются в одной транзакции БД.
    """
    merchant = get_merchant_for_user(db, merchant_user, require_approved=True)

    if sale.idempotency_key:
        existing = crud_transaction.get_by_idempotency_key(db, merchant.id, sale.idempotency_key)
        if existing:
            logger.info(f"Sale with idempotency key '{sale.idempotency_key}' already recorded as {existing.id}.")
            return to_schema(db, existing, merchant)

    buyer = crud_user.get_user_by_id(db, sale.customer_id)
    if not buyer:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Customer not found")
    if buyer.id == merchant_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Merchant cannot buy from own store")
    if buyer.type != UserType.CLIENT:
        logger.warning(f"Sale by merchant {merchant.id} to non-client user {buyer.id} ({buyer.type}).")

    amount = calculate_amount(sale)
    if amount <= ZERO:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Sale amount must be positive")

    rates = settings_service.get_rates(db)
    cashback = percent_of(amount, rates.client_cashback)
    referrer_id = resolve_referrer(db, buyer, sale.referrer_id)

    try:
        transaction = crud_transaction.create_transaction(
            db,
            user_id=buyer.id,
            merchant_id=merchant.id,
            amount=amount,
            cashback_amount=cashback,
            status=sale.status,
            payment_method=sale.payment_method,
            description=sale.description,
            notes=sale.notes,
            manual_amount=quantize(sale.manual_amount) if not sale.items and sale.manual_amount else None,
            idempotency_key=sale.idempotency_key,
            referrer_id=referrer_id,
        )
        for item in sale.items:
            crud_transaction.add_item(
                db, transaction,
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=item.quantity,
                price=quantize(item.price),
            )

        bonus = ZERO
        if transaction.status == TransactionStatus.COMPLETED:
            bonus = post_sale_credits(db, transaction, rates)

        crud_audit.create_log(
            db, action="sale_recorded", user_id=merchant_user.id, ip_address=ip_address,
            details=(
                f"Transaction {transaction.id}: buyer {buyer.id}, amount {amount}, cashback {cashback}, "
                f"status {transaction.status}, referrer {referrer_id}"
            ),
        )
        db.commit()
    except IntegrityError:
        db.rollback()
        if sale.idempotency_key:
            # Параллельный запрос с тем же ключом успел раньше
            existing = crud_transaction.get_by_idempotency_key(db, merchant.id, sale.idempotency_key)
            if existing:
                logger.warning(f"Concurrent sale with idempotency key '{sale.idempotency_key}' resolved to {existing.id}.")
                return to_schema(db, existing, merchant)
        logger.error(f"Integrity error while recording sale for merchant {merchant.id}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Sale could not be recorded, please retry")

    db.refresh(transaction)
    logger.info(
        f"Sale {transaction.id} recorded by merchant {merchant.id}: buyer {buyer.id}, amount {amount}, "
        f"cashback {cashback}, referral bonus {bonus}, status {transaction.status}."
    )

    if transaction.status == TransactionStatus.COMPLETED:
        _notify_completed_sale(db, transaction, merchant, buyer, bonus)

    return to_schema(db, transaction, merchant)


def _notify_completed_sale(db: Session, transaction: Transaction, merchant: Merchant, buyer: User, bonus: Decimal) -> None:
    notification_service.create_transaction_notification(db, transaction, merchant.store_name)
    notification_service.create_merchant_transaction_notification(db, merchant.user_id, transaction, buyer.name)
    if transaction.referrer_id and bonus > ZERO:
        notification_service.create_referral_bonus_notification(
            db, transaction.referrer_id, buyer.name, bonus
        )


def change_status(
    db: Session, merchant_user: User, transaction_id: int, new_status: str, ip_address: str | None = None
) -> TransactionSchema:
    """
    Переводит продажу в новый статус:
    pending -> completed (начисления), pending|completed -> cancelled,
    completed -> refunded (сторно начислений).
    """
    merchant = get_merchant_for_user(db, merchant_user)
    transaction = crud_transaction.get_merchant_transaction_for_update(db, transaction_id, merchant.id)
    if not transaction:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found")

    old_status = transaction.status
    if new_status not in ALLOWED_TRANSITIONS.get(old_status, set()):
        logger.warning(f"Rejected status change of transaction {transaction.id}: {old_status} -> {new_status}.")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot change transaction status from '{old_status}' to '{new_status}'"
        )

    rates = settings_service.get_rates(db)
    transaction.status = new_status
    bonus = ZERO
    if new_status == TransactionStatus.COMPLETED:
        bonus = post_sale_credits(db, transaction, rates)
    elif old_status == TransactionStatus.COMPLETED:
        reverse_sale_credits(db, transaction)

    crud_audit.create_log(
        db, action="sale_status_changed", user_id=merchant_user.id, ip_address=ip_address,
        details=f"Transaction {transaction.id}: {old_status} -> {new_status}",
    )
    db.commit()
    db.refresh(transaction)
    logger.info(f"Transaction {transaction.id} status changed by merchant {merchant.id}: {old_status} -> {new_status}.")

    if new_status == TransactionStatus.COMPLETED:
        buyer = crud_user.get_user_by_id(db, transaction.user_id)
        _notify_completed_sale(db, transaction, merchant, buyer, bonus)
    else:
        notification_service.create_transaction_status_notification(db, transaction, old_status)

    return to_schema(db, transaction, merchant)


def update_sale(db: Session, merchant_user: User, transaction_id: int, sale_update: SaleUpdate) -> TransactionSchema:
    """Редактирование заметок и способа оплаты (суммы не меняются)."""
    merchant = get_merchant_for_user(db, merchant_user)
    transaction = crud_transaction.get_merchant_transaction_for_update(db, transaction_id, merchant.id)
    if not transaction:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found")
    if transaction.status not in EDITABLE_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Transaction in status '{transaction.status}' cannot be edited"
        )

    update_data = sale_update.model_dump(exclude_unset=True)
    for key, value in update_data.items():
        setattr(transaction, key, value)
    db.commit()
    db.refresh(transaction)
    logger.info(f"Transaction {transaction.id} updated by merchant {merchant.id}: {list(update_data)}")
    return to_schema(db, transaction, merchant)


def delete_sale(db: Session, merchant_user: User, transaction_id: int, ip_address: str | None = None) -> None:
    """Физическое удаление - только из cancelled/refunded. Позиции удаляются каскадом."""
    merchant = get_merchant_for_user(db, merchant_user)
    transaction = crud_transaction.get_merchant_transaction_for_update(db, transaction_id, merchant.id)
    if not transaction:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found")
    if transaction.status not in DELETABLE_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only cancelled or refunded transactions can be deleted"
        )

    crud_referral.detach_from_transaction(db, transaction.id)
    crud_audit.create_log(
        db, action="sale_deleted", user_id=merchant_user.id, ip_address=ip_address,
        details=f"Transaction {transaction.id} ({transaction.status}, amount {transaction.amount}) deleted",
    )
    crud_transaction.delete_transaction(db, transaction)
    db.commit()
    logger.info(f"Transaction {transaction_id} deleted by merchant {merchant.id}.")


def get_sale(db: Session, merchant_user: User, transaction_id: int) -> TransactionSchema:
    merchant = get_merchant_for_user(db, merchant_user)
    transaction = crud_transaction.get_transaction(db, transaction_id)
    if not transaction or transaction.merchant_id != merchant.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Transaction not found")
    return to_schema(db, transaction, merchant)


def get_paginated_sales(
    db: Session, merchant_user: User, page: int, size: int, status_filter: str | None = None
) -> PaginatedTransactions:
    """Собирает пагинированный список продаж магазина (от новых к старым)."""
    merchant = get_merchant_for_user(db, merchant_user)
    skip = (page - 1) * size
    transactions = crud_transaction.get_merchant_transactions(
        db, merchant_id=merchant.id, skip=skip, limit=size, status=status_filter
    )
    total_items = crud_transaction.count_merchant_transactions(db, merchant_id=merchant.id, status=status_filter)
    total_pages = math.ceil(total_items / size) if total_items > 0 else 1
    return PaginatedTransactions(
        total_items=total_items,
        total_pages=total_pages,
        current_page=page,
        size=size,
        items=[to_schema(db, tx, merchant) for tx in transactions],
    )
