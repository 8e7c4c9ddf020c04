import hmac
import secrets
from typing import Optional

from storage import KeyValueStore

OTP_KEY = "admin:otp"
OTP_MIN = 100000
OTP_MAX = 999999


def generate_otp_code() -> str:
    """Uniform 6-digit code in [100000, 999999]."""
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


class OtpService:
    """
    Single global slot for the email OTP fallback. Storing a new code
    replaces any unconsumed one; a code is deleted once verified.
    """

    def __init__(self, store: KeyValueStore, ttl_seconds: int = 300):
        self.store = store
        self.ttl_seconds = ttl_seconds

    def generate(self) -> str:
        return generate_otp_code()

    def store_code(self, code: str, ttl_seconds: Optional[int] = None) -> None:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        if ttl <= 0:
            raise ValueError("OTP ttl must be positive")
        self.store.set(OTP_KEY, code, ex=ttl)

    def read(self) -> Optional[str]:
        return self.store.get(OTP_KEY)

    def clear(self) -> None:
        self.store.delete(OTP_KEY)

    def issue(self) -> str:
        code = self.generate()
        self.store_code(code)
        return code

    def consume(self, code: str) -> bool:
        """True (and the slot is cleared) only if `code` matches the live code."""
        stored = self.read()
        if not stored or not code:
            return False
        if not hmac.compare_digest(stored.encode("utf-8"), code.encode("utf-8")):
            return False
        self.clear()
        return True
