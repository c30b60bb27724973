# app/crud/merchant.py
from decimal import Decimal
from sqlalchemy.orm import Session
from app.models.merchant import Merchant


def get_merchant_by_id(db: Session, merchant_id: int) -> Merchant | None:
    return db.query(Merchant).filter(Merchant.id == merchant_id).first()

def get_merchant_by_user_id(db: Session, user_id: int) -> Merchant | None:
    return db.query(Merchant).filter(Merchant.user_id == user_id).first()

def create_merchant(
    db: Session,
    user_id: int,
    store_name: str,
    category: str,
    commission_rate: Decimal,
    approved: bool,
    address: str | None = None,
    city: str | None = None,
    state: str | None = None,
    country: str | None = None,
) -> Merchant:
    """Создает магазин для пользователя-продавца. Требует внешнего вызова db.commit()."""
    db_merchant = Merchant(
        user_id=user_id,
        store_name=store_name,
        category=category,
        commission_rate=commission_rate,
        approved=approved,
        address=address,
        city=city,
        state=state,
        country=country,
    )
    db.add(db_merchant)
    db.flush()
    return db_merchant
