"""Password hashing strategies and session token generation."""

import hashlib
import hmac
import secrets

from passlib.context import CryptContext

from metastore.config import settings

SESSION_TOKEN_BYTES = 32


class PasswordHasher:
    scheme = ""

    def hash(self, password: str) -> str:
        raise NotImplementedError

    def verify(self, plain: str, hashed: str) -> bool:
        raise NotImplementedError


class Sha256PasswordHasher(PasswordHasher):
    """
    Unsalted single-round SHA-256, hex encoded.

    Weak, but it is what every stored credential was written with; keep it
    until all users have been migrated to a slow hash.
    """

    scheme = "sha256"

    def hash(self, password: str) -> str:
        return hashlib.sha256(password.encode("utf-8")).hexdigest()

    def verify(self, plain: str, hashed: str) -> bool:
        return hmac.compare_digest(self.hash(plain), hashed or "")


class BcryptPasswordHasher(PasswordHasher):
    scheme = "bcrypt"

    def __init__(self):
        self._context = CryptContext(schemes=["bcrypt"], deprecated="auto")

    def hash(self, password: str) -> str:
        return self._context.hash(password[:72])

    def verify(self, plain: str, hashed: str) -> bool:
        try:
            return self._context.verify(plain[:72], hashed)
        except ValueError:
            # legacy hex digests are not bcrypt hashes
            return False


_HASHERS: dict[str, type[PasswordHasher]] = {
    Sha256PasswordHasher.scheme: Sha256PasswordHasher,
    BcryptPasswordHasher.scheme: BcryptPasswordHasher,
}


def get_password_hasher(scheme: str | None = None) -> PasswordHasher:
    scheme = scheme or settings.PASSWORD_HASH_SCHEME
    try:
        return _HASHERS[scheme]()
    except KeyError:
        raise ValueError(f"Unknown password hash scheme: {scheme}") from None


def generate_session_token() -> str:
    return secrets.token_hex(SESSION_TOKEN_BYTES)
