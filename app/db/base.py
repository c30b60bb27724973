# app/db/base.py
# Импортирует все модели, чтобы Base.metadata и связи по строковым именам
# были полными (для Alembic, тестов и старта приложения).

from app.db.session import Base  # noqa: F401
from app.models.user import User  # noqa: F401
from app.models.merchant import Merchant  # noqa: F401
from app.models.transaction import Transaction, TransactionItem  # noqa: F401
from app.models.ledger import LedgerEntry  # noqa: F401
from app.models.referral import Referral  # noqa: F401
from app.models.transfer import Transfer  # noqa: F401
from app.models.withdrawal import WithdrawalRequest  # noqa: F401
from app.models.commission import CommissionSettings  # noqa: F401
from app.models.qrcode import QRCode  # noqa: F401
from app.models.notification import Notification  # noqa: F401
from app.models.audit import AuditLog  # noqa: F401
