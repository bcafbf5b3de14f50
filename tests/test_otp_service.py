"""
tests/test_otp_service.py: One-Time Code Tests
=================================================
Generation, verification, expiry and the periodic sweep.
"""

from __future__ import annotations

import hashlib
import hmac
from datetime import datetime, timedelta, timezone

import pytest

from app.application.services import otp_service
from app.application.services.otp_service import (
    EMAIL_VERIFICATION,
    PASSWORD_RESET,
    clear_otp,
    generate_otp,
    sweep_expired_otps,
    verify_otp,
)
from app.config import get_settings

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class TestGenerate:
    def test_code_is_six_digits(self, make_user):
        user = make_user("alice")
        code = generate_otp(user, EMAIL_VERIFICATION, now=NOW)
        assert len(code) == 6
        assert code.isdigit()

    def test_only_hash_is_stored(self, make_user):
        user = make_user("alice")
        code = generate_otp(user, EMAIL_VERIFICATION, now=NOW)
        assert user.email_otp_hash != code
        assert len(user.email_otp_hash) == 64

    def test_hash_is_keyed_with_secret(self, make_user):
        user = make_user("alice")
        code = generate_otp(user, EMAIL_VERIFICATION, now=NOW)
        assert user.email_otp_hash != hashlib.sha256(code.encode()).hexdigest()
        expected = hmac.new(get_settings().SECRET_KEY.encode(), code.encode(), hashlib.sha256).hexdigest()
        assert user.email_otp_hash == expected

    def test_expiry_is_ten_minutes_out(self, make_user):
        user = make_user("alice")
        generate_otp(user, PASSWORD_RESET, now=NOW)
        assert user.reset_otp_expires_at == NOW + timedelta(minutes=10)

    def test_regenerating_replaces_previous_code(self, make_user):
        user = make_user("alice")
        first = generate_otp(user, EMAIL_VERIFICATION, now=NOW)
        second = generate_otp(user, EMAIL_VERIFICATION, now=NOW)
        if first != second:
            assert not verify_otp(user, EMAIL_VERIFICATION, first, now=NOW)
        assert verify_otp(user, EMAIL_VERIFICATION, second, now=NOW)

    def test_purposes_are_independent(self, make_user):
        user = make_user("alice")
        generate_otp(user, EMAIL_VERIFICATION, now=NOW)
        assert user.reset_otp_hash is None

    def test_unknown_purpose_rejected(self, make_user):
        user = make_user("alice")
        with pytest.raises(ValueError):
            generate_otp(user, "sms", now=NOW)


class TestVerify:
    def test_matching_code_within_window(self, make_user):
        user = make_user("alice")
        code = generate_otp(user, EMAIL_VERIFICATION, now=NOW)
        assert verify_otp(user, EMAIL_VERIFICATION, code, now=NOW + timedelta(minutes=9))

    def test_wrong_code(self, make_user):
        user = make_user("alice")
        code = generate_otp(user, EMAIL_VERIFICATION, now=NOW)
        wrong = "000000" if code != "000000" else "111111"
        assert not verify_otp(user, EMAIL_VERIFICATION, wrong, now=NOW)

    def test_expired_code(self, make_user):
        user = make_user("alice")
        code = generate_otp(user, EMAIL_VERIFICATION, now=NOW)
        assert not verify_otp(user, EMAIL_VERIFICATION, code, now=NOW + timedelta(minutes=10))

    def test_no_code_issued(self, make_user):
        user = make_user("alice")
        assert not verify_otp(user, PASSWORD_RESET, "123456", now=NOW)

    def test_code_for_other_purpose_does_not_match(self, make_user):
        user = make_user("alice")
        code = generate_otp(user, EMAIL_VERIFICATION, now=NOW)
        assert not verify_otp(user, PASSWORD_RESET, code, now=NOW)

    def test_verification_leaves_state_alone(self, make_user):
        user = make_user("alice")
        generate_otp(user, EMAIL_VERIFICATION, now=NOW)
        verify_otp(user, EMAIL_VERIFICATION, "nope", now=NOW)
        assert user.email_otp_hash is not None

    def test_clear(self, make_user):
        user = make_user("alice")
        code = generate_otp(user, EMAIL_VERIFICATION, now=NOW)
        clear_otp(user, EMAIL_VERIFICATION)
        assert user.email_otp_hash is None
        assert user.email_otp_expires_at is None
        assert not verify_otp(user, EMAIL_VERIFICATION, code, now=NOW)


class TestAsUtc:
    def test_naive_is_assumed_utc(self):
        naive = datetime(2026, 1, 1, 12, 0)
        assert otp_service.as_utc(naive) == NOW

    def test_aware_is_untouched(self):
        assert otp_service.as_utc(NOW) is NOW

    def test_none(self):
        assert otp_service.as_utc(None) is None


class TestSweep:
    def test_clears_only_expired_codes(self, db_session, make_user):
        stale = make_user("stale")
        fresh = make_user("fresh")
        generate_otp(stale, EMAIL_VERIFICATION, now=NOW - timedelta(hours=1))
        generate_otp(stale, PASSWORD_RESET, now=NOW - timedelta(hours=1))
        generate_otp(fresh, EMAIL_VERIFICATION, now=NOW)
        db_session.commit()

        cleared = sweep_expired_otps(db_session, now=NOW + timedelta(minutes=1))

        assert cleared == 2
        db_session.refresh(stale)
        db_session.refresh(fresh)
        assert stale.email_otp_hash is None
        assert stale.reset_otp_hash is None
        assert fresh.email_otp_hash is not None

    def test_nothing_to_sweep(self, db_session, make_user):
        make_user("alice")
        assert sweep_expired_otps(db_session, now=NOW) == 0
