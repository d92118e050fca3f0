"""Staff credential verification."""

import hashlib
import hmac
import logging
import secrets

from .errors import AuthenticationError, ValidationError
from .models import StaffUser
from .store import Store

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 100_000


def hash_password(password: str, salt: str | None = None) -> str:
    """Return "salt:hash" using PBKDF2-SHA256."""
    salt = salt or secrets.token_hex(16)
    pwd_hash = hashlib.pbkdf2_hmac(
        "sha256", password.encode(), bytes.fromhex(salt), PBKDF2_ITERATIONS
    ).hex()
    return f"{salt}:{pwd_hash}"


def verify_password(password: str, password_hash: str) -> bool:
    try:
        salt, stored = password_hash.split(":", 1)
        check = hashlib.pbkdf2_hmac(
            "sha256", password.encode(), bytes.fromhex(salt), PBKDF2_ITERATIONS
        ).hex()
    except ValueError:
        return False
    return hmac.compare_digest(check, stored)


class AuthService:
    """Maps email + password to a staff identity."""

    def __init__(self, store: Store):
        self.store = store

    def login(self, email: str, password: str) -> StaffUser | None:
        """Return the matching staff user, or None if the credentials don't match."""
        wanted = (email or "").strip().lower()
        for user in self.store.list_staff_users():
            if user.email.lower() == wanted and verify_password(password, user.password_hash):
                logger.info("Staff login: %s", user.email)
                return user
        logger.warning("Failed staff login for %s", wanted)
        return None

    def authenticate(self, email: str, password: str) -> StaffUser:
        """
        Like login() but raises on failure.

        Raises:
            AuthenticationError: If the credentials don't match.
        """
        user = self.login(email, password)
        if user is None:
            raise AuthenticationError()
        return user

    def register(self, name: str, email: str, password: str, role: str = "staff") -> StaffUser:
        if not name.strip():
            raise ValidationError("name", "Name is required.")
        if not email.strip():
            raise ValidationError("email", "Email is required.")
        if not password:
            raise ValidationError("password", "Password is required.")
        user = StaffUser.create(
            name=name.strip(),
            email=email.strip(),
            password_hash=hash_password(password),
            role=role,
        )
        return self.store.add_staff_user(user)
