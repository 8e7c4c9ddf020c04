from typing import Optional

import pyotp

# Accept the previous and next 30s step as well as the current one
VALID_WINDOW = 1


def verify_totp(secret: Optional[str], code: str, for_time=None) -> bool:
    if not secret or not code:
        return False
    code = code.strip().replace(" ", "")
    if not code.isdigit():
        return False
    try:
        totp = pyotp.TOTP(secret)
        return totp.verify(code, for_time=for_time, valid_window=VALID_WINDOW)
    except (ValueError, TypeError):
        # secret is not valid base32
        return False


def new_totp_secret() -> str:
    return pyotp.random_base32()


def provisioning_uri(secret: str, account_name: str, issuer: str) -> str:
    return pyotp.TOTP(secret).provisioning_uri(name=account_name, issuer_name=issuer)
