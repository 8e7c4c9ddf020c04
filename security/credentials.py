"""
Administrator account storage.

The system has exactly one administrator. Its record lives in the
key-value store under ``admin:account`` as JSON and is seeded from
configuration the first time it is read. If the store is unreachable the
configuration values are served instead (read-only).
"""

import hmac
import json
import logging
from dataclasses import asdict, dataclass, replace
from typing import Optional

from config import AdminDefaults
from security.password import DEFAULT_ROUNDS, hash_password, verify_password
from storage import KeyValueStore, StorageUnavailable

logger = logging.getLogger(__name__)

ACCOUNT_KEY = "admin:account"


class _Unset:
    def __repr__(self):
        return "UNSET"

    def __bool__(self):
        return False


UNSET = _Unset()


@dataclass(frozen=True)
class AdministratorAccount:
    email: str
    username: str
    password_hash: Optional[str] = None
    totp_secret: Optional[str] = None

    def matches_identifier(self, identifier: str) -> bool:
        ident = (identifier or "").strip().lower()
        return bool(ident) and ident in (self.email.lower(), self.username.lower())

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, raw: str) -> "AdministratorAccount":
        data = json.loads(raw)
        return cls(
            email=data["email"],
            username=data["username"],
            password_hash=data.get("password_hash"),
            totp_secret=data.get("totp_secret"),
        )


@dataclass(frozen=True)
class AccountPatch:
    """
    Partial update. Fields left as UNSET keep their current value;
    password_hash and totp_secret may be explicitly set to None to clear them.
    `password` is plaintext and is hashed by CredentialStore.update.
    """

    email: object = UNSET
    username: object = UNSET
    password: object = UNSET
    password_hash: object = UNSET
    totp_secret: object = UNSET


def apply_patch(account: AdministratorAccount, patch: AccountPatch) -> AdministratorAccount:
    """Merge a patch into an account. Plaintext passwords are not handled here."""
    changes = {}
    if patch.email is not UNSET and patch.email:
        changes["email"] = patch.email
    if patch.username is not UNSET and patch.username:
        changes["username"] = patch.username
    if patch.password_hash is not UNSET:
        changes["password_hash"] = patch.password_hash
    if patch.totp_secret is not UNSET:
        changes["totp_secret"] = patch.totp_secret
    return replace(account, **changes)


@dataclass(frozen=True)
class PasswordCheck:
    ok: bool
    email: str = ""


class CredentialStore:
    def __init__(
        self,
        store: KeyValueStore,
        defaults: AdminDefaults,
        allow_plaintext_fallback: bool = False,
        bcrypt_rounds: int = DEFAULT_ROUNDS,
    ):
        self.store = store
        self.defaults = defaults
        self.allow_plaintext_fallback = allow_plaintext_fallback
        self.bcrypt_rounds = bcrypt_rounds
        self._default_account = None
        self._dummy_hash = None

    def default_account(self) -> AdministratorAccount:
        """Account built from configuration. Hashes ADMIN_PASSWORD at most once."""
        if self._default_account is None:
            d = self.defaults
            password_hash = d.password_hash
            if not password_hash and d.password:
                password_hash = hash_password(d.password, rounds=self.bcrypt_rounds)
            self._default_account = AdministratorAccount(
                email=d.email,
                username=d.username,
                password_hash=password_hash,
                totp_secret=d.totp_secret,
            )
        return self._default_account

    def initialize(self) -> AdministratorAccount:
        """(Re)write the stored account from configuration defaults."""
        account = self.default_account()
        self.store.set(ACCOUNT_KEY, account.to_json())
        return account

    def get(self) -> AdministratorAccount:
        try:
            raw = self.store.get(ACCOUNT_KEY)
            if raw is None:
                return self.initialize()
        except StorageUnavailable as exc:
            logger.warning("Account store unavailable, using configured administrator: %s", exc)
            return self.default_account()

        try:
            return AdministratorAccount.from_json(raw)
        except (ValueError, KeyError, TypeError):
            logger.error("Stored administrator record is corrupt, reseeding from configuration")
            return self.initialize()

    def update(self, patch: AccountPatch) -> AdministratorAccount:
        """Merge and persist. Raises StorageUnavailable if the store is down."""
        if patch.password is not UNSET and patch.password:
            patch = replace(
                patch,
                password=UNSET,
                password_hash=hash_password(patch.password, rounds=self.bcrypt_rounds),
            )
        account = apply_patch(self.get(), patch)
        self.store.set(ACCOUNT_KEY, account.to_json())
        return account

    def _burn_hash_check(self, plaintext: str) -> None:
        # Keep timing close to a real comparison when no stored hash is checked
        if self._dummy_hash is None:
            self._dummy_hash = hash_password("not-the-admin-password", rounds=self.bcrypt_rounds)
        verify_password(plaintext or "x", self._dummy_hash)

    def verify_password(self, identifier: str, plaintext: str) -> PasswordCheck:
        account = self.get()
        if not account.matches_identifier(identifier):
            self._burn_hash_check(plaintext)
            return PasswordCheck(ok=False)

        if account.password_hash:
            if verify_password(plaintext, account.password_hash):
                return PasswordCheck(ok=True, email=account.email)
            return PasswordCheck(ok=False)

        # Insecure development fallback: plaintext ADMIN_PASSWORD
        plain = self.defaults.password
        if not self.allow_plaintext_fallback or not plain:
            self._burn_hash_check(plaintext)
            return PasswordCheck(ok=False)
        logger.warning("Verifying administrator password against plaintext ADMIN_PASSWORD")
        if hmac.compare_digest(plaintext.encode("utf-8"), plain.encode("utf-8")):
            return PasswordCheck(ok=True, email=account.email)
        return PasswordCheck(ok=False)
