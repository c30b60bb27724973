# app/services/notification.py
"""
Уведомления, которые создает финансовое ядро.

Все функции вызываются ПОСЛЕ commit финансовой операции. Ошибка при создании
уведомления логируется и откатывается отдельно, на леджер она не влияет.
"""
import logging
from decimal import Decimal
from sqlalchemy.orm import Session

from app.crud import notification as crud_notification
from app.crud import user as crud_user
from app.models.notification import NotificationType
from app.models.transaction import Transaction
from app.models.transfer import Transfer
from app.models.user import User, UserType
from app.models.withdrawal import WithdrawalRequest, WithdrawalStatus
from app.utils.money import format_money

logger = logging.getLogger(__name__)


def _notify(
    db: Session,
    user_id: int,
    type: str,
    title: str,
    message: str,
    related_entity_id: int | None = None,
    data: dict | None = None,
) -> bool:
    """
    Приватная обертка для безопасного создания уведомления.
    Возвращает True при успехе.
    """
    try:
        crud_notification.create_notification(
            db,
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            related_entity_id=str(related_entity_id) if related_entity_id is not None else None,
            data=data,
        )
        return True
    except Exception:
        logger.error(f"Failed to create '{type}' notification for user {user_id}", exc_info=True)
        db.rollback()
        return False


def create_transaction_notification(db: Session, transaction: Transaction, store_name: str) -> bool:
    """Покупателю: покупка и начисленный кешбэк."""
    return _notify(
        db,
        user_id=transaction.user_id,
        type=NotificationType.TRANSACTION,
        title="New purchase",
        message=(
            f"You made a purchase of {format_money(transaction.amount)} at {store_name} "
            f"and received {format_money(transaction.cashback_amount)} in cashback."
        ),
        related_entity_id=transaction.id,
        data={
            "transaction_id": transaction.id,
            "merchant_id": transaction.merchant_id,
            "store_name": store_name,
            "amount": transaction.amount,
            "cashback_amount": transaction.cashback_amount,
        },
    )


def create_merchant_transaction_notification(
    db: Session, merchant_user_id: int, transaction: Transaction, client_name: str
) -> bool:
    return _notify(
        db,
        user_id=merchant_user_id,
        type=NotificationType.TRANSACTION,
        title="New sale recorded",
        message=f"{client_name} made a purchase of {format_money(transaction.amount)} at your store.",
        related_entity_id=transaction.id,
        data={"transaction_id": transaction.id, "client_name": client_name, "amount": transaction.amount},
    )


def create_transaction_status_notification(db: Session, transaction: Transaction, old_status: str) -> bool:
    return _notify(
        db,
        user_id=transaction.user_id,
        type=NotificationType.TRANSACTION,
        title="Purchase status updated",
        message=(
            f"Your purchase #{transaction.id} of {format_money(transaction.amount)} "
            f"changed from {old_status} to {transaction.status}."
        ),
        related_entity_id=transaction.id,
        data={"transaction_id": transaction.id, "old_status": old_status, "new_status": transaction.status},
    )


def create_transfer_sent_notification(db: Session, transfer: Transfer, to_user_name: str) -> bool:
    return _notify(
        db,
        user_id=transfer.from_user_id,
        type=NotificationType.TRANSFER,
        title="Transfer sent",
        message=f"You transferred {format_money(transfer.amount)} to {to_user_name}.",
        related_entity_id=transfer.id,
        data={"transfer_id": transfer.id, "to_user_name": to_user_name, "amount": transfer.amount},
    )


def create_transfer_received_notification(db: Session, transfer: Transfer, from_user_name: str) -> bool:
    return _notify(
        db,
        user_id=transfer.to_user_id,
        type=NotificationType.TRANSFER,
        title="Transfer received",
        message=f"You received {format_money(transfer.amount)} from {from_user_name}.",
        related_entity_id=transfer.id,
        data={"transfer_id": transfer.id, "from_user_name": from_user_name, "amount": transfer.amount},
    )


def create_referral_bonus_notification(
    db: Session, referrer_id: int, referred_name: str, bonus: Decimal, referral_id: int | None = None
) -> bool:
    return _notify(
        db,
        user_id=referrer_id,
        type=NotificationType.REFERRAL,
        title="Referral bonus",
        message=f"You received a {format_money(bonus)} bonus for referring {referred_name}.",
        related_entity_id=referral_id,
        data={"referred_name": referred_name, "bonus_amount": bonus},
    )


def create_withdrawal_request_notification(db: Session, withdrawal: WithdrawalRequest) -> bool:
    """Продавцу: статус его заявки на вывод (создана / выполнена / отклонена)."""
    titles = {
        WithdrawalStatus.PENDING: "Withdrawal request received",
        WithdrawalStatus.COMPLETED: "Withdrawal approved",
        WithdrawalStatus.REJECTED: "Withdrawal rejected",
    }
    messages = {
        WithdrawalStatus.PENDING: (
            f"Your withdrawal request of {format_money(withdrawal.amount)} was received and is awaiting approval."
        ),
        WithdrawalStatus.COMPLETED: (
            f"Your withdrawal request of {format_money(withdrawal.amount)} was approved and paid."
        ),
        WithdrawalStatus.REJECTED: (
            f"Your withdrawal request of {format_money(withdrawal.amount)} was rejected."
        ),
    }
    message = messages[withdrawal.status]
    if withdrawal.notes and withdrawal.status != WithdrawalStatus.PENDING:
        message += f" Notes: {withdrawal.notes}"
    return _notify(
        db,
        user_id=withdrawal.user_id,
        type=NotificationType.WITHDRAWAL,
        title=titles[withdrawal.status],
        message=message,
        related_entity_id=withdrawal.id,
        data={"withdrawal_id": withdrawal.id, "amount": withdrawal.amount, "status": withdrawal.status},
    )


def create_admin_withdrawal_notification(db: Session, withdrawal: WithdrawalRequest) -> int:
    """Всем администраторам: новая заявка на вывод. Возвращает число созданных уведомлений."""
    admins: list[User] = crud_user.get_users_by_type(db, UserType.ADMIN)
    sent = 0
    for admin in admins:
        if _notify(
            db,
            user_id=admin.id,
            type=NotificationType.WITHDRAWAL,
            title="New withdrawal request",
            message=(
                f"{withdrawal.store_name} requested a withdrawal of {format_money(withdrawal.amount)} "
                f"via {withdrawal.payment_method}."
            ),
            related_entity_id=withdrawal.id,
            data={"withdrawal_id": withdrawal.id, "merchant_id": withdrawal.merchant_id, "amount": withdrawal.amount},
        ):
            sent += 1
    logger.info(f"Admin withdrawal alert for request {withdrawal.id} sent to {sent}/{len(admins)} admins.")
    return sent
