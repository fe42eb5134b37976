"""Credential store — system of record for user identity.

Learn: Everything that touches a password hash or a confirmation code
lives here. The auth workflow only ever sees User rows, booleans, and
opaque code strings; it never hashes, compares, or inspects codes itself.

Writes are flushed, not committed. The calling route decides when the
unit of work is complete.
"""

import hashlib
import secrets
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.auth.password import (
    PasswordPolicy,
    burn_password_check,
    hash_password,
    verify_password,
)
from storefront.db.models import EmailConfirmation, User

logger = structlog.get_logger()


def normalize_email(email: str) -> str:
    return email.strip().upper()


def _hash_code(code: str) -> str:
    return hashlib.sha256(code.encode("utf-8")).hexdigest()


@dataclass
class CreationResult:
    """Outcome of CredentialStore.create: a success flag plus error list."""

    succeeded: bool
    user: Optional[User] = None
    errors: list[str] = field(default_factory=list)


class CredentialStore:
    """User persistence, password verification, and confirmation codes."""

    def __init__(self, db: AsyncSession, policy: Optional[PasswordPolicy] = None):
        self.db = db
        self.policy = policy or PasswordPolicy.from_settings()

    # ─── Lookup ─────────────────────────────────────────

    async def find_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.normalized_email == normalize_email(email))
        )
        return result.scalars().first()

    async def find_by_id(self, user_id: str) -> Optional[User]:
        """Look up a user by id. A malformed id is simply not found."""
        try:
            uid = uuid.UUID(str(user_id))
        except ValueError:
            return None
        return await self.db.get(User, uid)

    # ─── Create ─────────────────────────────────────────

    async def create(self, email: str, password: str) -> CreationResult:
        """Create an unconfirmed user, enforcing the password policy."""
        errors = self.policy.violations(password)
        if errors:
            return CreationResult(succeeded=False, errors=errors)

        user = User(
            email=email.strip(),
            normalized_email=normalize_email(email),
            password_hash=hash_password(password),
            email_confirmed=False,
        )
        self.db.add(user)
        try:
            await self.db.flush()
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email.
            await self.db.rollback()
            logger.info("storefront.users.create_conflict")
            return CreationResult(succeeded=False, errors=["Email already exists"])

        logger.info("storefront.users.created", user_id=str(user.id))
        return CreationResult(succeeded=True, user=user)

    # ─── Passwords ──────────────────────────────────────

    async def check_password(self, user: Optional[User], password: str) -> bool:
        """Verify a password. With no user, the same bcrypt work is done and fails."""
        if user is None:
            return burn_password_check(password)
        return verify_password(password, user.password_hash)

    # ─── Email confirmation ─────────────────────────────

    async def generate_confirmation_code(self, user: User) -> str:
        """Create a new single-use confirmation code for the user.

        Returns the raw code. Only its hash is persisted.
        """
        code = secrets.token_urlsafe(32)
        self.db.add(EmailConfirmation(user_id=user.id, code_hash=_hash_code(code)))
        await self.db.flush()
        return code

    async def confirm_email(self, user: User, code: str) -> bool:
        """Mark the user's email confirmed if `code` is an unused code of theirs."""
        result = await self.db.execute(
            select(EmailConfirmation).where(
                EmailConfirmation.user_id == user.id,
                EmailConfirmation.code_hash == _hash_code(code),
                EmailConfirmation.used_at.is_(None),
            )
        )
        confirmation = result.scalars().first()
        if confirmation is None:
            logger.info("storefront.users.confirm_rejected", user_id=str(user.id))
            return False

        confirmation.used_at = datetime.now(timezone.utc)
        user.email_confirmed = True
        await self.db.flush()
        logger.info("storefront.users.email_confirmed", user_id=str(user.id))
        return True
