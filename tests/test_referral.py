# tests/test_referral.py

import logging
from decimal import Decimal

import pytest
from fastapi import HTTPException

from app.crud import merchant as crud_merchant
from app.models.ledger import LedgerEntry, LedgerEntryKind
from app.models.referral import Referral
from app.services import ledger as ledger_service
from app.services import referral as referral_service


def test_invitation_code_format(client_user, merchant_user):
    assert client_user.invitation_code == f"CL{client_user.id:04d}"
    assert merchant_user.invitation_code == f"LJ{merchant_user.id:04d}"


def test_register_referral_twice_creates_one_row_and_one_bonus(db_session, referrer_user, client_user):
    first = referral_service.register_referral(db_session, referrer_user.invitation_code, client_user)
    db_session.commit()
    second = referral_service.register_referral(db_session, referrer_user.invitation_code, client_user)
    db_session.commit()

    assert first.id == second.id
    assert db_session.query(Referral).count() == 1
    bonuses = db_session.query(LedgerEntry).filter(LedgerEntry.kind == LedgerEntryKind.REFERRAL_SIGNUP).all()
    assert len(bonuses) == 1
    # Бонус за регистрацию фиксированный: 1.0 -> $1.00
    assert ledger_service.get_balance(db_session, referrer_user.id) == Decimal("1.00")


def test_register_referral_code_is_case_insensitive(db_session, referrer_user, client_user):
    referral = referral_service.register_referral(db_session, referrer_user.invitation_code.lower(), client_user)
    db_session.commit()
    assert referral is not None
    assert referral.referrer_id == referrer_user.id


def test_unknown_code_does_not_break_registration(db_session, client_user):
    assert referral_service.register_referral(db_session, "CL9999", client_user) is None
    assert referral_service.register_referral(db_session, None, client_user) is None
    assert db_session.query(Referral).count() == 0


def test_self_referral_is_ignored(db_session, client_user):
    assert referral_service.register_referral(db_session, client_user.invitation_code, client_user) is None
    assert db_session.query(Referral).count() == 0


def test_prefix_mismatch_is_logged_but_accepted(db_session, referrer_user, client_user, caplog):
    # Код клиента с префиксом магазина
    referrer_user.invitation_code = f"LJ{referrer_user.id:04d}"
    db_session.commit()

    with caplog.at_level(logging.WARNING, logger="app.services.referral"):
        referral = referral_service.register_referral(db_session, referrer_user.invitation_code, client_user)
        db_session.commit()

    assert referral is not None
    assert "prefix suggests a merchant" in caplog.text


def test_resolve_invite_for_merchant(db_session, merchant_user):
    info = referral_service.resolve_invite(db_session, merchant_user.invitation_code)
    assert info.referrer_id == merchant_user.id
    assert info.referrer_type == "merchant"
    assert info.store.store_name == "Mario's Store"
    assert info.commission_rate == Decimal("2.00")


def test_resolve_invite_for_client_has_no_store(db_session, client_user):
    info = referral_service.resolve_invite(db_session, client_user.invitation_code)
    assert info.store is None
    assert info.referrer_name == "Ana Client"


@pytest.mark.parametrize("code", ["", "CL", "XX0001", "CL9999"])
def test_resolve_invite_rejects_bad_codes(db_session, client_user, code):
    with pytest.raises(HTTPException) as exc_info:
        referral_service.resolve_invite(db_session, code)
    assert exc_info.value.status_code == 404


def test_referral_info(db_session, referrer_user, client_user, other_client):
    referral_service.register_referral(db_session, referrer_user.invitation_code, client_user)
    referral_service.register_referral(db_session, referrer_user.invitation_code, other_client)
    db_session.commit()

    info = referral_service.get_referral_info(db_session, referrer_user)
    assert info.invitation_code == referrer_user.invitation_code
    assert info.referral_link.endswith(f"/register?referral={referrer_user.invitation_code}")
    assert info.total_referrals == 2
    assert info.active_referrals == 2
    assert info.total_earned == Decimal("2.00")
    assert len(info.recent) == 2


def test_merchant_can_invite(db_session, merchant_user, client_user):
    assert crud_merchant.get_merchant_by_user_id(db_session, merchant_user.id) is not None
    referral = referral_service.register_referral(db_session, merchant_user.invitation_code, client_user)
    db_session.commit()
    assert referral.referrer_id == merchant_user.id
    assert ledger_service.get_referral_earnings(db_session, merchant_user.id) == Decimal("1.00")
