"""Password hashing and password policy.

Learn: Uses bcrypt for secure password hashing. bcrypt automatically
handles salting and is resistant to rainbow table attacks.
The work factor (rounds=12) takes ~100ms per hash on modern hardware.

The policy check returns every violated rule at once so a registration
attempt can report all of them in a single response.
"""

import secrets
from dataclasses import dataclass
from functools import lru_cache

import bcrypt

from storefront.config import settings


def hash_password(password: str) -> str:
    """Hash a password with bcrypt.

    Passwords are truncated to 72 bytes (bcrypt's limit).
    """
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its bcrypt hash."""
    try:
        pw_bytes = password.encode("utf-8")[:72]
        hash_bytes = password_hash.encode("utf-8")
        return bcrypt.checkpw(pw_bytes, hash_bytes)
    except (ValueError, TypeError):
        return False


@lru_cache(maxsize=1)
def _unknown_user_hash() -> str:
    return hash_password(secrets.token_urlsafe(16))


def burn_password_check(password: str) -> bool:
    """Run a full bcrypt check that always fails.

    Used when no account matches, so an unknown email takes as long to
    reject as a wrong password.
    """
    verify_password(password, _unknown_user_hash())
    return False


@dataclass(frozen=True)
class PasswordPolicy:
    min_length: int = 6
    require_digit: bool = True
    require_lowercase: bool = True
    require_uppercase: bool = True
    require_non_alphanumeric: bool = True

    @classmethod
    def from_settings(cls) -> "PasswordPolicy":
        return cls(
            min_length=settings.password_min_length,
            require_digit=settings.password_require_digit,
            require_lowercase=settings.password_require_lowercase,
            require_uppercase=settings.password_require_uppercase,
            require_non_alphanumeric=settings.password_require_non_alphanumeric,
        )

    def violations(self, password: str) -> list[str]:
        """Return a human-readable message for every rule the password breaks."""
        errors = []
        if len(password) < self.min_length:
            errors.append(
                f"Passwords must be at least {self.min_length} characters."
            )
        if self.require_non_alphanumeric and all(c.isalnum() for c in password):
            errors.append(
                "Passwords must have at least one non alphanumeric character."
            )
        if self.require_digit and not any(c.isdigit() for c in password):
            errors.append("Passwords must have at least one digit ('0'-'9').")
        if self.require_lowercase and not any(c.islower() for c in password):
            errors.append("Passwords must have at least one lowercase ('a'-'z').")
        if self.require_uppercase and not any(c.isupper() for c in password):
            errors.append("Passwords must have at least one uppercase ('A'-'Z').")
        return errors
