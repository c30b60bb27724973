# tests/conftest.py
import os

# Окружение для тестов должно быть выставлено ДО импорта приложения
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["DATABASE_DSN"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"

from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.base import Base  # Импортируем все модели для создания таблиц
from app.db.session import SessionLocal
from app.dependencies import get_db
from app.main import app
from app.crud import merchant as crud_merchant
from app.crud import user as crud_user
from app.models.ledger import LedgerEntryKind
from app.models.user import User, UserType
from app.services import auth as auth_service
from app.services import ledger as ledger_service
from app.services import referral as referral_service

# In-memory SQLite с одним общим соединением - быстро и изолированно
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Фоновые задачи и глобальный обработчик ошибок открывают сессии сами
SessionLocal.configure(bind=engine)

TEST_PASSWORD = "secret123"


@pytest.fixture(scope="function")
def db_session() -> Session:
    """
    Фикстура для создания чистой базы данных для каждого теста.
    """
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
async def client(db_session):
    """HTTP-клиент к приложению; get_db отдает ту же сессию, что и тесты."""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def _make_user(db: Session, name: str, email: str, user_type: str) -> User:
    user = crud_user.create_user(
        db,
        name=name,
        email=email,
        password_hash=auth_service.hash_password(TEST_PASSWORD),
        user_type=user_type,
    )
    user.invitation_code = referral_service.build_invitation_code(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def make_user(db_session):
    def factory(name: str, email: str, user_type: str = UserType.CLIENT) -> User:
        return _make_user(db_session, name, email, user_type)
    return factory


@pytest.fixture
def client_user(make_user) -> User:
    return make_user("Ana Client", "ana@example.com")


@pytest.fixture
def other_client(make_user) -> User:
    return make_user("Bruno Client", "bruno@example.com")


@pytest.fixture
def referrer_user(make_user) -> User:
    return make_user("Rita Referrer", "rita@example.com")


@pytest.fixture
def admin_user(make_user) -> User:
    return make_user("Admin", "admin@example.com", UserType.ADMIN)


@pytest.fixture
def merchant_user(db_session, make_user) -> User:
    user = make_user("Mario Merchant", "mario@example.com", UserType.MERCHANT)
    crud_merchant.create_merchant(
        db_session,
        user_id=user.id,
        store_name="Mario's Store",
        category="grocery",
        commission_rate=Decimal("2.0"),
        approved=True,
    )
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def fund(db_session):
    """Начисляет пользователю кешбэк напрямую через леджер."""
    counter = {"ref": 100000}

    def factory(user: User, amount: str) -> None:
        counter["ref"] += 1
        ledger_service.credit(
            db_session, user.id, Decimal(amount), LedgerEntryKind.CASHBACK,
            reference_id=counter["ref"], description="test funding"
        )
        db_session.commit()
    return factory


def _auth_headers_for(user: User) -> dict:
    token = auth_service.create_access_token({"sub": str(user.id), "type": user.type})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers_for():
    """Заголовок Authorization с JWT для пользователя."""
    return _auth_headers_for
