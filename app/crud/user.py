# app/crud/user.py
from sqlalchemy.orm import Session
from sqlalchemy import func
from app.models.user import User, UserType


def get_user_by_id(db: Session, user_id: int) -> User | None:
    """Получает пользователя по его первичному ключу."""
    return db.query(User).filter(User.id == user_id).first()

def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(func.lower(User.email) == email.lower()).first()

def get_client_by_contact(db: Session, email: str | None = None, phone: str | None = None) -> User | None:
    """Ищет клиента по email или телефону (для переводов)."""
    query = db.query(User).filter(User.type == UserType.CLIENT)
    if email:
        return query.filter(func.lower(User.email) == email.lower()).first()
    if phone:
        return query.filter(User.phone == phone).first()
    return None

def get_user_by_invitation_code(db: Session, code: str) -> User | None:
    """Поиск по коду приглашения без учета регистра."""
    return db.query(User).filter(func.lower(User.invitation_code) == code.lower()).first()

def lock_user(db: Session, user_id: int) -> User | None:
    """
    Выбирает пользователя с блокировкой строки (`SELECT ... FOR UPDATE`).
    Все операции "проверил баланс -> списал" сериализуются на этой блокировке.
    """
    return db.query(User).filter(User.id == user_id).with_for_update().first()

def get_users_by_type(db: Session, user_type: str) -> list[User]:
    return db.query(User).filter(User.type == user_type).order_by(User.id.asc()).all()

def create_user(
    db: Session,
    name: str,
    email: str,
    password_hash: str,
    user_type: str,
    phone: str | None = None,
    country: str | None = None,
    status: str = "active",
) -> User:
    """
    Создает пользователя и сразу получает его ID (flush), чтобы построить
    username и код приглашения. Требует внешнего вызова db.commit().
    """
    db_user = User(
        name=name,
        email=email,
        password=password_hash,
        type=user_type,
        phone=phone,
        country=country,
        status=status,
    )
    db.add(db_user)
    db.flush()
    return db_user
