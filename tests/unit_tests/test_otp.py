"""Tests for the email OTP slot."""

import pytest

from security.otp import OTP_KEY, OtpService, generate_otp_code
from storage import InMemoryStore


class TestGenerate:
    def test_six_digit_numeric(self):
        for _ in range(200):
            code = generate_otp_code()
            assert len(code) == 6
            assert code.isdigit()
            assert 100000 <= int(code) <= 999999


class TestOtpService:
    def test_consume_succeeds_exactly_once(self):
        otp = OtpService(InMemoryStore())
        code = otp.issue()
        assert otp.consume(code) is True
        assert otp.consume(code) is False
        assert otp.read() is None

    def test_new_code_replaces_old(self):
        otp = OtpService(InMemoryStore())
        otp.store_code("111111")
        otp.store_code("222222")
        assert otp.consume("111111") is False
        assert otp.consume("222222") is True

    def test_wrong_code_keeps_slot(self):
        otp = OtpService(InMemoryStore())
        otp.store_code("123456")
        assert otp.consume("654321") is False
        assert otp.read() == "123456"

    def test_expires_after_ttl(self, clock):
        otp = OtpService(InMemoryStore(clock=clock), ttl_seconds=300)
        otp.store_code("123456")
        clock.advance(299)
        assert otp.read() == "123456"
        clock.advance(2)
        assert otp.read() is None
        assert otp.consume("123456") is False

    def test_explicit_ttl_and_clear(self, clock):
        store = InMemoryStore(clock=clock)
        otp = OtpService(store)
        otp.store_code("111111", ttl_seconds=10)
        clock.advance(11)
        assert store.get(OTP_KEY) is None

        otp.store_code("222222")
        otp.clear()
        assert otp.read() is None

    def test_non_positive_ttl_rejected(self):
        otp = OtpService(InMemoryStore())
        for ttl in (0, -1):
            with pytest.raises(ValueError):
                otp.store_code("111111", ttl_seconds=ttl)
        assert otp.read() is None

    def test_empty_code_never_matches(self):
        otp = OtpService(InMemoryStore())
        otp.issue()
        assert otp.consume("") is False
