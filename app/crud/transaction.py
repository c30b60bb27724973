# app/crud/transaction.py
from decimal import Decimal
from typing import List
from sqlalchemy.orm import Session, selectinload

from app.models.transaction import Transaction, TransactionItem


def create_transaction(
    db: Session,
    user_id: int,
    merchant_id: int,
    amount: Decimal,
    cashback_amount: Decimal,
    status: str,
    payment_method: str,
    description: str | None = None,
    manual_amount: Decimal | None = None,
    idempotency_key: str | None = None,
    referrer_id: int | None = None,
    notes: str | None = None,
) -> Transaction:
    """Создает продажу и получает ее ID. Требует внешнего вызова db.commit()."""
    transaction = Transaction(
        referrer_id=referrer_id,
        notes=notes,
        user_id=user_id,
        merchant_id=merchant_id,
        amount=amount,
        cashback_amount=cashback_amount,
        status=status,
        payment_method=payment_method,
        description=description,
        manual_amount=manual_amount,
        idempotency_key=idempotency_key,
    )
    db.add(transaction)
    db.flush()
    return transaction

def add_item(
    db: Session,
    transaction: Transaction,
    product_name: str,
    quantity: int,
    price: Decimal,
    product_id: int | None = None,
) -> TransactionItem:
    item = TransactionItem(
        product_id=product_id,
        product_name=product_name,
        quantity=quantity,
        price=price,
    )
    transaction.items.append(item)
    return item

def get_transaction(db: Session, transaction_id: int) -> Transaction | None:
    return db.query(Transaction).options(selectinload(Transaction.items)).filter(
        Transaction.id == transaction_id
    ).first()

def get_merchant_transaction_for_update(db: Session, transaction_id: int, merchant_id: int) -> Transaction | None:
    """Продажа магазина с блокировкой строки - для смены статуса."""
    return db.query(Transaction).filter(
        Transaction.id == transaction_id,
        Transaction.merchant_id == merchant_id
    ).with_for_update().first()

def get_by_idempotency_key(db: Session, merchant_id: int, idempotency_key: str) -> Transaction | None:
    return db.query(Transaction).filter(
        Transaction.merchant_id == merchant_id,
        Transaction.idempotency_key == idempotency_key
    ).first()

def get_merchant_transactions(
    db: Session,
    merchant_id: int,
    skip: int = 0,
    limit: int = 20,
    status: str | None = None,
) -> List[Transaction]:
    query = db.query(Transaction).options(selectinload(Transaction.items)).filter(
        Transaction.merchant_id == merchant_id
    )
    if status:
        query = query.filter(Transaction.status == status)
    return query.order_by(Transaction.created_at.desc(), Transaction.id.desc()).offset(skip).limit(limit).all()

def count_merchant_transactions(db: Session, merchant_id: int, status: str | None = None) -> int:
    query = db.query(Transaction).filter(Transaction.merchant_id == merchant_id)
    if status:
        query = query.filter(Transaction.status == status)
    return query.count()

def delete_transaction(db: Session, transaction: Transaction) -> None:
    """Удаляет продажу вместе с позициями (каскад). Требует внешнего вызова db.commit()."""
    db.delete(transaction)
